from typing import override


class KvexpressError(Exception):
    """Base exception for kvexpress errors."""

    def format_user_message(self) -> str:
        """Format a user-friendly error message."""
        return str(self)

    def get_suggestion(self) -> str | None:
        """Return actionable suggestion for resolving the error."""
        return None


class InvalidPathError(KvexpressError):
    """Raised when a target path is not absolute."""

    @override
    def get_suggestion(self) -> str:
        return "Please supply a complete file path (starting with '/')"


class FatalError(KvexpressError):
    """Base class for environment failures that must stop the apply.

    A fatal error is never downgraded to a rejection: the target may be in
    any state the filesystem left it in, but it is never partially written.
    """

    _path: str
    _reason: str

    def __init__(self, path: str, reason: str, detail: str = "") -> None:
        self._path = path
        self._reason = reason
        message = f"Could not {reason.replace('_', ' ')}: '{path}'"
        if detail:
            message += f" ({detail})"
        super().__init__(message)

    @property
    def path(self) -> str:
        return self._path

    @property
    def reason(self) -> str:
        """Short machine-readable tag, also used as the metrics name."""
        return self._reason

    @override
    def __reduce__(self) -> tuple[type, tuple[str, str, str]]:
        return (self.__class__, (self._path, self._reason, ""))


class DirectoryCreateError(FatalError):
    """Raised when the target's parent directory chain cannot be created."""

    @override
    def get_suggestion(self) -> str:
        return "Check that no regular file sits in the directory path"


class WriteError(FatalError):
    """Raised when the staging file cannot be written."""

    @override
    def get_suggestion(self) -> str:
        return "Check free disk space and directory permissions"


class OwnershipError(FatalError):
    """Raised when the owner cannot be resolved or applied."""

    @override
    def get_suggestion(self) -> str:
        return "Run as a user allowed to chown, or set core.strict_ownership to false"


class RenameError(FatalError):
    """Raised when the staging file cannot be renamed over the target."""

    pass


class ReadError(FatalError):
    """Raised when an existing target cannot be read for comparison."""

    @override
    def get_suggestion(self) -> str:
        return "Check that kvexpress may read the target file"


class TargetIsDirectoryError(FatalError):
    """Raised when a path kvexpress would write or remove is a directory."""

    pass


class LockTimeoutError(FatalError):
    """Raised when another apply against the same target holds the mutex too long."""

    @override
    def get_suggestion(self) -> str:
        return "Wait for the other kvexpress process to finish or raise core.lock_timeout"


class KVFetchError(KvexpressError):
    """Raised when a key cannot be read from the KV store."""

    @override
    def get_suggestion(self) -> str:
        return "Check the Consul address, token and key"


class ConfigError(KvexpressError):
    """Base class for configuration errors."""

    pass


class ConfigValidationError(ConfigError):
    """Raised when a config value fails validation."""

    pass
