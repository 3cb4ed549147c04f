"""
Error hierarchy for the loader setup tool.

Two kinds of failure matter to callers:

- ValidationError: bad or missing operator input. Aborts the current
  loader only; the driver moves on to the next loader.
- FatalError: an external dependency failed (KMS, DynamoDB) or the region
  is unusable. Aborts the whole run so that no unencrypted secret or
  half-built record is written.
"""


class SetupError(Exception):
    """Base class for all loader setup errors."""


class ValidationError(SetupError, ValueError):
    """Raised when an input field fails validation."""

    def __init__(self, message: str, field_name: str | None = None):
        self.message = message
        self.field_name = field_name
        if field_name:
            super().__init__(f"{field_name}: {message}")
        else:
            super().__init__(message)


class ConfigFileError(SetupError):
    """Raised when the setup document cannot be read or has the wrong shape."""


class FatalError(SetupError):
    """Raised when an external service call fails and the run must stop."""


class EncryptionError(FatalError):
    """Raised when KMS cannot encrypt a secret value."""


class StorageError(FatalError):
    """Raised when the configuration record cannot be written to DynamoDB."""


class InvalidRegionError(FatalError):
    """Raised when the region is missing or not in the supported list."""

    def __init__(self, message: str, field_name: str = "region"):
        self.message = message
        self.field_name = field_name
        super().__init__(f"{field_name}: {message}")
