from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from wagateway.adapters.base import (
    AUTH_FAILURE_EVENT,
    DISCONNECTED_EVENT,
    QR_EVENT,
    READY_EVENT,
    MessagingClient,
)

logger = logging.getLogger(__name__)

CONTACT_SUFFIX = "@c.us"

_NON_DIGITS = re.compile(r"[^0-9]")


class ConnectionState(Enum):
    INITIALIZING = "initializing"
    QR_PENDING = "qr_pending"
    READY = "ready"
    DISCONNECTED = "disconnected"
    AUTH_FAILED = "auth_failed"


class SendError(Exception):
    """Raised when a message could not be handed to the WhatsApp client."""


@dataclass(frozen=True)
class LifecycleSnapshot:
    state: ConnectionState
    qr: str | None = None
    disconnect_reason: str | None = None
    updated_at: datetime | None = None

    @property
    def qr_available(self) -> bool:
        return self.state == ConnectionState.QR_PENDING and bool(self.qr)


def to_chat_id(phone_number: str) -> str:
    """Turn a free-form phone number into a WhatsApp contact address.

    Every non-digit is dropped and the contact suffix appended, so
    "+1 (555) 123-4567" becomes "15551234567@c.us". Raises ValueError when
    no digits remain.
    """
    digits = _NON_DIGITS.sub("", phone_number)
    if not digits:
        raise ValueError(f"Phone number has no digits: {phone_number!r}")
    return digits + CONTACT_SUFFIX


class WhatsAppAdapter:
    """WhatsApp adapter for sending text messages.

    Wraps a messaging client library and tracks its login lifecycle from the
    events it emits. QR code pairing is required for initial setup; each QR
    payload is kept for the HTTP endpoint and passed to any registered QR
    listeners (e.g. the terminal printer).
    """

    def __init__(self, client: MessagingClient | None = None, send_timeout: float | None = None) -> None:
        self._client = client
        self._send_timeout = send_timeout
        self._snapshot = LifecycleSnapshot(ConnectionState.INITIALIZING, updated_at=_now())
        self._qr_listeners: list[Callable[[str], None]] = []
        self._init_task: asyncio.Task[Any] | None = None
        self._subscribed = False
        self._stopped = False

    @property
    def state(self) -> ConnectionState:
        return self._snapshot.state

    @property
    def configured(self) -> bool:
        return self._client is not None

    def snapshot(self) -> LifecycleSnapshot:
        """Return the current lifecycle state. Snapshots are immutable."""
        return self._snapshot

    def add_qr_listener(self, listener: Callable[[str], None]) -> None:
        self._qr_listeners.append(listener)

    def subscribe(self) -> None:
        """Register lifecycle callbacks on the client. Safe to call twice."""
        if self._client is None or self._subscribed:
            return
        self._client.on(QR_EVENT, self._guarded(self._on_qr))
        self._client.on(READY_EVENT, self._guarded(self._on_ready))
        self._client.on(DISCONNECTED_EVENT, self._guarded(self._on_disconnected))
        self._client.on(AUTH_FAILURE_EVENT, self._guarded(self._on_auth_failure))
        self._subscribed = True

    async def start(self) -> None:
        """Kick off client initialization in the background.

        Initialization may not settle until the phone has scanned a QR code,
        so it runs as its own task and the caller never waits on it.
        """
        if self._client is None:
            logger.warning("No WhatsApp client configured. Sends will fail until one is set.")
            return
        self.subscribe()
        logger.info("Starting WhatsApp client...")
        self._init_task = asyncio.create_task(self._initialize())
        # One tick so initialize() has begun before startup returns
        await asyncio.sleep(0)

    async def _initialize(self) -> None:
        try:
            await self._client.initialize()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("WhatsApp client failed to initialize")
            self._set(ConnectionState.DISCONNECTED, disconnect_reason=str(e) or e.__class__.__name__)

    async def send(self, to: str, message: str) -> None:
        """Send a text message via WhatsApp.

        ``to`` must already be a contact address (see ``to_chat_id``). The
        call is attempted once regardless of lifecycle state; the client's own
        error is raised if it is not ready.
        """
        if self._client is None:
            raise SendError("WhatsApp client not configured")
        pending = self._client.send_message(to, message)
        if self._send_timeout is None:
            await pending
            return
        try:
            await asyncio.wait_for(pending, timeout=self._send_timeout)
        except asyncio.TimeoutError:
            raise SendError(
                f"Timed out after {self._send_timeout:g}s waiting for WhatsApp to accept the message"
            ) from None

    async def stop(self) -> None:
        """Destroy the client session. Only the first call has any effect."""
        if self._stopped:
            return
        self._stopped = True
        if self._init_task is not None and not self._init_task.done():
            self._init_task.cancel()
            try:
                await self._init_task
            except asyncio.CancelledError:
                pass
        if self._client is None:
            return
        try:
            await self._client.destroy()
            logger.info("WhatsApp client destroyed")
        except Exception:
            logger.exception("Error destroying WhatsApp client")

    def _on_qr(self, payload: str) -> None:
        logger.info("QR code received, scan it with WhatsApp to log in")
        self._set(ConnectionState.QR_PENDING, qr=payload)
        for listener in self._qr_listeners:
            listener(payload)

    def _on_ready(self, *_: Any) -> None:
        logger.info("WhatsApp client is ready")
        self._set(ConnectionState.READY)

    def _on_disconnected(self, reason: Any = None) -> None:
        logger.warning("WhatsApp client disconnected: %s", reason)
        self._set(ConnectionState.DISCONNECTED, disconnect_reason=None if reason is None else str(reason))

    def _on_auth_failure(self, message: Any = None) -> None:
        logger.error("WhatsApp authentication failed: %s", message)
        self._set(ConnectionState.AUTH_FAILED, disconnect_reason=None if message is None else str(message))

    def _set(self, state: ConnectionState, qr: str | None = None, disconnect_reason: str | None = None) -> None:
        self._snapshot = LifecycleSnapshot(state, qr=qr, disconnect_reason=disconnect_reason, updated_at=_now())

    @staticmethod
    def _guarded(handler: Callable[..., None]) -> Callable[..., None]:
        """Keep handler errors inside the gateway instead of the client library."""

        def _wrapper(*args: Any) -> None:
            try:
                handler(*args)
            except Exception:
                logger.exception("Error handling WhatsApp lifecycle event")

        return _wrapper


def _now() -> datetime:
    return datetime.now(timezone.utc)
