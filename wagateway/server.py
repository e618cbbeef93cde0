"""HTTP surface of the gateway.

Endpoints:
    GET  /health        - liveness, always ok
    GET  /status        - WhatsApp lifecycle state
    GET  /qr            - login QR code as an HTML page, 400 when none pending
    POST /send-receipt  - {phoneNumber, receiptText}
    POST /send-message  - {phoneNumber, message}

Send endpoints validate presence only, normalize the number to a contact
address and make a single awaited call to the adapter. Missing fields are a
400 and never reach the adapter; adapter failures are a 500 carrying the
adapter's message in ``details``.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel

from wagateway.adapters.whatsapp import WhatsAppAdapter, to_chat_id
from wagateway.qr import QRDelivery, render_qr_page

logger = logging.getLogger(__name__)

NO_QR_MESSAGE = "No QR code available. Already authenticated or not yet issued."


class HealthResponse(BaseModel):
    status: str
    timestamp: str


class StatusResponse(BaseModel):
    state: str
    qrAvailable: bool
    disconnectReason: str | None = None
    updatedAt: str | None = None
    timestamp: str


class SendResult(BaseModel):
    success: bool
    message: str
    phoneNumber: str
    sentAt: str


def _timestamp(moment: datetime | None = None) -> str:
    return (moment or datetime.now(timezone.utc)).isoformat(timespec="milliseconds").replace("+00:00", "Z")


async def _read_json(request: Request) -> dict[str, Any]:
    """Parse the body as a JSON object; anything else reads as empty."""
    try:
        data = await request.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _required(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        return None
    return value


def create_app(adapter: WhatsAppAdapter, qr_delivery: QRDelivery = QRDelivery.BOTH) -> FastAPI:
    """Build the FastAPI app around an adapter.

    The adapter is started in the lifespan and destroyed on shutdown, so
    the HTTP server accepts requests while WhatsApp is still logging in.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await adapter.start()
        try:
            yield
        finally:
            logger.info("Shutting down...")
            await adapter.stop()

    app = FastAPI(title="wagateway", description="HTTP gateway for outbound WhatsApp messages", lifespan=lifespan)

    async def _forward(request: Request, text_field: str, kind: str) -> Any:
        data = await _read_json(request)
        phone_number = _required(data, "phoneNumber")
        text = _required(data, text_field)
        if phone_number is None or text is None:
            return JSONResponse(status_code=400, content={"error": f"Missing phoneNumber or {text_field}"})

        try:
            chat_id = to_chat_id(phone_number)
        except ValueError:
            return JSONResponse(status_code=400, content={"error": "Invalid phoneNumber: no digits found"})

        logger.info("Sending %s to %s", kind, chat_id)
        try:
            await adapter.send(chat_id, text)
        except Exception as e:
            logger.exception("Error sending %s to %s", kind, chat_id)
            return JSONResponse(
                status_code=500,
                content={"error": f"Failed to send {kind}", "details": str(e) or e.__class__.__name__},
            )

        return SendResult(
            success=True,
            message=f"{kind.capitalize()} sent successfully",
            phoneNumber=phone_number,
            sentAt=_timestamp(),
        )

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", timestamp=_timestamp())

    @app.get("/status", response_model=StatusResponse)
    async def status() -> StatusResponse:
        snap = adapter.snapshot()
        return StatusResponse(
            state=snap.state.value,
            qrAvailable=snap.qr_available,
            disconnectReason=snap.disconnect_reason,
            updatedAt=_timestamp(snap.updated_at) if snap.updated_at else None,
            timestamp=_timestamp(),
        )

    @app.get("/qr", response_class=HTMLResponse)
    async def qr() -> Any:
        snap = adapter.snapshot()
        if not qr_delivery.to_endpoint or not snap.qr_available:
            return JSONResponse(status_code=400, content={"error": NO_QR_MESSAGE})
        return HTMLResponse(render_qr_page(snap.qr))

    @app.post("/send-receipt", response_model=SendResult)
    async def send_receipt(request: Request) -> Any:
        return await _forward(request, "receiptText", "receipt")

    @app.post("/send-message", response_model=SendResult)
    async def send_message(request: Request) -> Any:
        return await _forward(request, "message", "message")

    return app
