import copy


class ExporterError(Exception):
    """Base class for every error raised by the exporter."""

    def with_context(self, context: str) -> "ExporterError":
        """Return a copy of this error whose message is prefixed with ``context``."""
        err = copy.copy(self)
        err.args = (f"{context}: {self}",)
        return err


class ConfigError(ExporterError, ValueError):
    pass


class AuthenticationError(ExporterError):
    pass


class TransportError(ExporterError):
    pass


class HTTPStatusError(ExporterError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DecodeError(ExporterError):
    pass


class ScrapeTimeoutError(ExporterError):
    pass


class AllHostsFailedError(ExporterError):
    def __init__(self, messages: list[str]) -> None:
        super().__init__("\n".join(messages))
        self.messages = messages
