#!/usr/bin/env python
"""Register a user (and seed their checklist) from the command line."""
import argparse
import logging
import sys

from tasklist.config import Settings
from tasklist.credentials import CredentialStore
from tasklist.database import connect_store
from tasklist.errors import ChecklistError
from tasklist.logging_setup import setup_logging

logger = logging.getLogger("tasklist.add_user")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("username")
    parser.add_argument("password")
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    setup_logging(settings.log_level)
    try:
        store = connect_store(settings)
    except ChecklistError as exc:
        logger.error("%s", exc.message)
        return 1
    credentials = CredentialStore(store, rounds=settings.password_hash_rounds)
    try:
        user = credentials.register(args.username, args.password)
    except ChecklistError as exc:
        logger.error("%s", exc.message)
        return 1
    finally:
        if store is not None:
            store.dispose()

    logger.info("User created: %s (id %s)", user.username, user.id)
    return 0


if __name__ == "__main__":
    sys.exit(main())
