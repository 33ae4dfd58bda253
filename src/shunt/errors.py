"""Exception types raised by shunt."""


class ShuntError(Exception):
    """Base class for all shunt errors."""


class ConfigError(ShuntError):
    """The configuration file could not be read or is invalid."""


class LaunchError(ShuntError):
    """A single command could not be started."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"command {name!r} failed to start: {reason}")
        self.name = name
        self.reason = reason


class InvalidWorkdir(LaunchError):
    """A command's working directory is missing or not a directory."""


class StreamReadError(ShuntError):
    """Reading a child's output stream failed."""


class WriteError(ShuntError):
    """Output could not be written to the terminal."""
