"""Domain errors for hostupdater."""


class UpdaterError(RuntimeError):
    """Raised when the update run cannot continue safely."""


class PrivilegeError(UpdaterError):
    """Raised when the run lacks administrative rights."""


class ConnectivityError(UpdaterError):
    """Raised when no probe target is reachable."""


class InsufficientSpaceError(UpdaterError):
    """Raised when the package filesystem has less free space than required."""


class LockTimeoutError(UpdaterError):
    """Raised when the package database stays busy past the wait timeout."""


class IndexRefreshError(UpdaterError):
    """Raised when the package index cannot be refreshed."""
