"""
Errors raised by the settings managers.

The HTTP and CLI layers translate these into status codes / exit codes.
"""


class SettingsError(Exception):
    """Base exception for settings errors."""

    pass


class SettingValidationError(SettingsError):
    """
    Raised when a value fails the rule-set declared for a setting.

    ``errors`` maps the field name ("value") to every violation message.
    The write does not happen.
    """

    def __init__(self, errors: dict[str, list[str]]):
        self.errors = errors
        messages = "; ".join(msg for msgs in errors.values() for msg in msgs)
        super().__init__(messages or "Validation failed")


class SettingNotFoundError(SettingsError):
    """Raised when a required setting or history record does not exist."""

    pass


class HistoryKeyMismatchError(SettingsError):
    """Raised when a history record belongs to a different setting key."""

    pass


class UnauthenticatedError(SettingsError):
    """Raised when a user-scoped write has no principal to scope it to."""

    pass


class UnsupportedFormatError(SettingsError):
    """Raised when export/import is asked for a format other than json/yaml."""

    pass


class MalformedImportError(SettingsError):
    """Raised when an import payload is not a list of records."""

    pass
