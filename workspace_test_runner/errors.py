"""Exceptions raised by the test runner."""


class DiscoveryError(Exception):
    """Raised when the workspace cannot be scanned for projects."""


class ConfigError(ValueError):
    """Raised when runner settings cannot be loaded."""


class LaunchError(Exception):
    """Raised when a test command cannot be started."""
