from __future__ import annotations

import base64
import re

from wagateway.qr import QRDelivery, render_qr_page


def test_delivery_flags() -> None:
    assert QRDelivery.TERMINAL.to_terminal and not QRDelivery.TERMINAL.to_endpoint
    assert QRDelivery.ENDPOINT.to_endpoint and not QRDelivery.ENDPOINT.to_terminal
    assert QRDelivery.BOTH.to_terminal and QRDelivery.BOTH.to_endpoint


def test_delivery_from_config_value() -> None:
    assert QRDelivery("endpoint") is QRDelivery.ENDPOINT


def test_page_embeds_png_data_uri() -> None:
    page = render_qr_page("2@abcdef,ghijkl,mnopqr")
    match = re.search(r'src="data:image/png;base64,([A-Za-z0-9+/=]+)"', page)
    assert match is not None
    png = base64.b64decode(match.group(1))
    assert png.startswith(b"\x89PNG")


def test_page_does_not_leak_payload_as_text() -> None:
    page = render_qr_page("secret-login-payload")
    assert "secret-login-payload" not in page
    assert "<html>" in page
