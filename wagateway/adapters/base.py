from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol

QR_EVENT = "qr"
READY_EVENT = "ready"
DISCONNECTED_EVENT = "disconnected"
AUTH_FAILURE_EVENT = "auth_failure"


class MessagingClient(Protocol):
    """Contract for the messaging client library the gateway drives.

    The client owns session, device linking and transport. It reports its
    lifecycle through callbacks registered with ``on``:

    - ``qr(payload)``: a login challenge to be scanned by the phone
    - ``ready()``: the session is authenticated
    - ``disconnected(reason)``: the session dropped
    - ``auth_failure(message)``: the session was rejected
    """

    def on(self, event: str, callback: Callable[..., Any]) -> None:
        ...

    def initialize(self) -> Awaitable[Any]:
        """Begin session establishment. May not settle until authenticated."""
        ...

    def send_message(self, to: str, text: str) -> Awaitable[Any]:
        """Queue a text message, raising with a readable message on failure."""
        ...

    def destroy(self) -> Awaitable[Any]:
        """Release the session and any automation resources."""
        ...
