from typing import Iterable


class ChecklistError(Exception):
    """Base class for errors that carry a user-facing message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StoreNotConfigured(ChecklistError):
    def __init__(self):
        super().__init__(
            "Store not configured: set the STORE_URL and STORE_API_KEY environment variables"
        )


class StoreUnavailable(ChecklistError):
    """Store configured, but no engine could be built for its URL."""

    def __init__(self, detail: str):
        super().__init__(f"Database connection failed: {detail}")
        self.detail = detail


class DuplicateUsername(ChecklistError):
    def __init__(self, username: str):
        super().__init__("Username already exists")
        self.username = username


class InvalidCredentials(ChecklistError):
    def __init__(self):
        super().__init__("Incorrect username or password")


class SchemaMissing(ChecklistError):
    def __init__(self, tables: Iterable[str]):
        self.tables = sorted(tables)
        super().__init__(
            f"Database tables missing: {', '.join(self.tables)}. Run the setup script first."
        )


class QueryFailed(ChecklistError):
    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class PersistFailed(ChecklistError):
    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidTransition(ChecklistError):
    def __init__(self, action: str, status: str):
        super().__init__(f"Cannot {action} while status is '{status}'")
        self.action = action
        self.status = status
