"""Bridge domain exceptions."""

from __future__ import annotations


class BridgeError(Exception):
    """Base for bridge domain errors."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, object] | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.original_error = original_error


class BridgeConfigurationError(BridgeError):
    """Config validation or load failure."""


class LoginError(BridgeError):
    """A network failed to connect or complete its handshake. Fatal."""

    def __init__(self, network: str, message: str, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.network = network


class SendError(BridgeError):
    """Outbound send to a network failed."""

    def __init__(self, network: str, message: str, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.network = network
