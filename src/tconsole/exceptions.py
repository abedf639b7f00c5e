# src/tconsole/exceptions.py

"""
Custom exceptions for tconsole.
"""


class TConsoleError(Exception):
    """Base class for all tconsole errors."""

    pass


class ConfigurationError(TConsoleError):
    """Raised when the configuration file is missing pieces or is malformed."""

    def __init__(self, message: str, path: str | None = None, details: Exception | None = None):
        self.path = path
        self.details = details
        full_message = f"[Config] {message}"
        if path:
            full_message += f" (File: '{path}')"
        super().__init__(full_message)
        if details is not None:
            self.add_note(f"Original error: {type(details).__name__}: {details}")


class EnvironmentLoadError(TConsoleError):
    """Raised when a lifecycle hook or preload target fails while loading the environment."""

    def __init__(self, message: str, details: BaseException | None = None):
        self.details = details
        super().__init__(message)


class ChannelClosed(TConsoleError):
    """The process on the other end of a channel has gone away."""

    pass


class PayloadDecodeError(TConsoleError):
    """A frame could not be decoded (bad header, truncated body, invalid JSON)."""

    pass


class FrameBodyError(PayloadDecodeError):
    """The frame header was valid but its body wasn't. The stream is still in sync."""

    pass


class WorkerDecodeError(PayloadDecodeError):
    """The payload written by an isolated worker could not be decoded."""

    pass


class UnknownFileSet(TConsoleError):
    """A file set name was requested that the configuration doesn't define."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{name} isn't a defined file set.")


class UnknownSettingName(TConsoleError):
    """A runtime setting was requested that doesn't exist."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{name} isn't an available runtime setting.")


# 🔼⚙️
