class MirrorError(Exception):
    """Base class for every error raised by the sync engine."""

    kind = "mirror_error"


class PayloadValidationError(MirrorError, ValueError):
    """An inbound tree or edit request is malformed. Nothing was written."""

    kind = "validation_error"


class StorageError(MirrorError):
    """A write, delete or prepare step on the storage root failed."""

    kind = "storage_error"


class WatchError(MirrorError):
    """The underlying filesystem watch reported a failure."""

    kind = "watch_error"


class ContentReadError(MirrorError):
    """A changed file could not be read back when the change was reported."""

    kind = "content_read_error"


class WatcherUnavailableError(MirrorError):
    """A change poll was requested but no watcher is configured."""

    kind = "watcher_unavailable"
