#!/usr/bin/env python
"""Prepare the store out of band.

Without options, print the schema and seed script to paste into the
store's SQL editor. With --create, create the tables through SQLAlchemy
instead (handy for SQLite and local databases); the running app itself
never creates tables.
"""
import argparse
import logging
import sys

from tasklist import seed
from tasklist.config import Settings
from tasklist.database import connect_store, create_tables
from tasklist.errors import StoreUnavailable
from tasklist.logging_setup import setup_logging

logger = logging.getLogger("tasklist.setup_store")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Print the setup script or create the tables")
    parser.add_argument("--create", action="store_true", help="create the tables in the configured store")
    args = parser.parse_args(argv)

    if not args.create:
        print(seed.sql_script())
        return 0

    settings = Settings.from_env()
    setup_logging(settings.log_level)
    try:
        store = connect_store(settings)
    except StoreUnavailable as exc:
        logger.error("%s", exc.message)
        return 1
    if store is None:
        logger.error("Store not configured: set STORE_URL and STORE_API_KEY")
        return 1
    try:
        create_tables(store)
    finally:
        store.dispose()
    logger.info("Tables created; use 'initialize' in the app to insert the checklist")
    return 0


if __name__ == "__main__":
    sys.exit(main())
