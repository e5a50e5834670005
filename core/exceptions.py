"""Startup failure exceptions for Predix.

Each class maps to one fatal category raised before the HTTP listener
accepts traffic. The lifespan and the migrate CLI let them propagate so the
process exits non-zero.
"""


class StartupError(Exception):
    """Base class for errors that stop the process from starting."""

    pass


class ConfigurationError(StartupError):
    """Raised when a required setting (e.g. a database credential) is missing."""

    pass


class DatabaseUnavailableError(StartupError):
    """Raised when the database cannot be reached at startup."""

    pass


class MigrationError(StartupError):
    """Raised when a migration file fails to execute.

    Files before the failing one have already been applied; there is no
    rollback. The filename is kept on the exception for the startup log.
    """

    def __init__(self, filename: str, message: str = "") -> None:
        self.filename = filename
        super().__init__(f"Migration {filename} failed" + (f": {message}" if message else ""))
