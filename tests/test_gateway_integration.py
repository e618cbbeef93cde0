"""Integration tests for the gateway.

Drives the FastAPI app with a scripted WhatsApp client double: login via QR,
concurrent sends, and shutdown.
"""
from __future__ import annotations

import asyncio
import random
from typing import Any, Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from wagateway.adapters.whatsapp import WhatsAppAdapter
from wagateway.server import create_app


class ScriptedClient:
    """Minimal stand-in for a WhatsApp Web client library."""

    def __init__(self, fail_for: set[str] | None = None) -> None:
        self.handlers: dict[str, Callable[..., Any]] = {}
        self.sent: list[tuple[str, str]] = []
        self.destroyed = 0
        self.fail_for = fail_for or set()

    def on(self, event: str, callback: Callable[..., Any]) -> None:
        self.handlers[event] = callback

    def emit(self, event: str, *args: Any) -> None:
        self.handlers[event](*args)

    async def initialize(self) -> None:
        self.emit("qr", "2@scripted-login-challenge")

    async def send_message(self, to: str, text: str) -> dict:
        await asyncio.sleep(random.uniform(0, 0.02))
        if to in self.fail_for:
            raise RuntimeError(f"No LID for user {to}")
        self.sent.append((to, text))
        return {"id": f"msg-{len(self.sent)}"}

    async def destroy(self) -> None:
        self.destroyed += 1


def test_login_then_send_flow() -> None:
    client = ScriptedClient()
    adapter = WhatsAppAdapter(client=client)

    with TestClient(create_app(adapter)) as http:
        # initialize() emitted a QR challenge
        assert http.get("/status").json()["state"] == "qr_pending"
        assert http.get("/qr").status_code == 200

        client.emit("ready")
        assert http.get("/qr").status_code == 400

        resp = http.post("/send-receipt", json={"phoneNumber": "+44 7700 900123", "receiptText": "Total: 12.50"})
        assert resp.status_code == 200
        assert client.sent == [("447700900123@c.us", "Total: 12.50")]

        client.emit("disconnected", "LOGOUT")
        assert http.get("/status").json()["disconnectReason"] == "LOGOUT"
        assert http.get("/health").status_code == 200

    assert client.destroyed == 1


@pytest.mark.asyncio
async def test_concurrent_sends_are_correlated() -> None:
    client = ScriptedClient(fail_for={"15550000003@c.us"})
    adapter = WhatsAppAdapter(client=client, send_timeout=5)
    app = create_app(adapter)
    numbers = [f"+1 555 000 {i:04d}" for i in range(10)]

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as http:
        responses = await asyncio.gather(*(
            http.post("/send-message", json={"phoneNumber": number, "message": f"hello {number}"})
            for number in numbers
        ))

    for number, resp in zip(numbers, responses):
        if number == "+1 555 000 0003":
            assert resp.status_code == 500
            assert resp.json()["details"] == "No LID for user 15550000003@c.us"
        else:
            assert resp.status_code == 200
            assert resp.json()["phoneNumber"] == number

    assert sorted(client.sent) == sorted(
        (f"1555000{i:04d}@c.us", f"hello +1 555 000 {i:04d}") for i in range(10) if i != 3
    )
