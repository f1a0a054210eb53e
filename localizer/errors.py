"""Exception types raised by the localizer."""


class LocalizerError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(LocalizerError, ValueError):
    """Malformed or missing configuration (bad extrinsics, leaf sizes, ...)."""


class NotReadyError(LocalizerError, TimeoutError):
    """Map or position fix did not arrive before the readiness timeout."""


class ShutdownError(LocalizerError):
    """The node was shut down while a scan was waiting or arriving."""


class NotInitializedError(LocalizerError, RuntimeError):
    """Tracking was requested before the initial pose was estimated."""


class RecorderError(LocalizerError, OSError):
    """The result trace could not be opened or written."""
