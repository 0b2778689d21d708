"""
Application exception taxonomy.
Errors are raised where they are detected and translated to HTTP responses
only at the boundary (see the handlers registered in app.main).
"""


class ConfigurationError(Exception):
    """Invalid or missing startup settings. Fatal: aborts process start."""


class NotConfiguredError(Exception):
    """A database operation was attempted without DATABASE_URL."""

    def __init__(self, message: str = "Database is not configured"):
        super().__init__(message)


class AuthorizationError(Exception):
    """
    Per-request authorization denial.
    The reason is part of the client contract: either "Unauthorized" or "Invalid token".
    """

    UNAUTHORIZED = "Unauthorized"
    INVALID_TOKEN = "Invalid token"

    def __init__(self, reason: str = UNAUTHORIZED):
        super().__init__(reason)
        self.reason = reason


class MigrationError(Exception):
    """A SQL migration failed; the whole migration transaction was rolled back."""

    def __init__(self, migration: str, cause: Exception):
        super().__init__(f"Migration {migration} failed: {cause}")
        self.migration = migration
