"""QR challenge delivery.

The login QR can go to the operator's terminal, to the ``/qr`` HTTP page, or
both. Rendering is done with segno; the page embeds a PNG data URI so it needs
no static file serving.
"""
from __future__ import annotations

import html
from enum import Enum

import segno

_PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<meta http-equiv="refresh" content="{refresh}">
<title>WhatsApp login</title>
</head>
<body style="font-family: sans-serif; text-align: center; margin-top: 40px;">
<h2>Scan this QR code with WhatsApp</h2>
<p>Open WhatsApp on your phone, go to Linked Devices and scan the code below.</p>
<img src="{data_uri}" alt="{alt}">
</body>
</html>
"""


class QRDelivery(Enum):
    TERMINAL = "terminal"
    ENDPOINT = "endpoint"
    BOTH = "both"

    @property
    def to_terminal(self) -> bool:
        return self in (QRDelivery.TERMINAL, QRDelivery.BOTH)

    @property
    def to_endpoint(self) -> bool:
        return self in (QRDelivery.ENDPOINT, QRDelivery.BOTH)


def render_qr_page(payload: str, scale: int = 6, refresh_seconds: int = 20) -> str:
    """Render a QR payload as a standalone HTML page with an inline PNG."""
    qr = segno.make_qr(payload)
    data_uri = qr.png_data_uri(scale=scale, border=4)
    return _PAGE_TEMPLATE.format(
        refresh=refresh_seconds,
        data_uri=data_uri,
        alt=html.escape("WhatsApp login QR code"),
    )
