# portable_settings/core/errors.py

class SettingsError(Exception):
    """Base class for everything the settings engine raises internally."""


class StorageUnavailable(SettingsError):
    """The settings directory could not be created."""


class DocumentUnreadable(SettingsError):
    """The settings file is missing or is not well-formed XML."""


class CodecError(SettingsError):
    """A stored fragment does not match the declared serialization."""


class PersistFailure(SettingsError):
    """Writing the settings document to disk failed."""
