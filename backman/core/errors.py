"""
BackMan exception hierarchy.

Every error raised by the package inherits from BackmanError, so callers
can catch one subsystem or everything.

Usage:
    try:
        tasks = await store.load()
    except StoreError as e:
        # Fall back to an empty task list
    except BackmanError as e:
        # Anything else from BackMan
"""


class BackmanError(Exception):
    """Base exception for all BackMan errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigError(BackmanError):
    """Configuration is invalid, missing, or malformed."""

    pass


class StoreError(BackmanError):
    """The task store could not be read, parsed, or written."""

    def __init__(
        self,
        message: str,
        path: str = "",
        details: dict | None = None,
    ):
        self.path = path
        super().__init__(message, details)


class LaunchError(BackmanError):
    """An external process could not be started."""

    def __init__(
        self,
        message: str,
        target: str = "",
        elevated: bool = False,
        details: dict | None = None,
    ):
        self.target = target
        self.elevated = elevated
        super().__init__(message, details)
