from __future__ import annotations

import importlib
import logging
from typing import Any, Callable, TextIO

from wagateway.adapters.whatsapp import WhatsAppAdapter
from wagateway.config import WhatsAppConfig
from wagateway.qr import QRDelivery

logger = logging.getLogger(__name__)


def load_client_factory(path: str) -> Callable[[], Any]:
    """Resolve a ``"package.module:callable"`` reference to the client factory."""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Client factory must look like 'package.module:callable', got {path!r}")
    module = importlib.import_module(module_name)
    try:
        factory = getattr(module, attr)
    except AttributeError:
        raise ValueError(f"Module {module_name!r} has no attribute {attr!r}") from None
    if not callable(factory):
        raise ValueError(f"Client factory {path!r} is not callable")
    return factory


def build_adapter(config: WhatsAppConfig, stdout: TextIO | None = None) -> WhatsAppAdapter:
    """Create the WhatsApp adapter described by configuration.

    The client is built from ``client_factory`` when set. QR codes are
    printed to the terminal when the delivery mode includes it.
    """
    client = None
    if config.client_factory:
        client = load_client_factory(config.client_factory)()
        logger.info("WhatsApp client created from %s", config.client_factory)

    adapter = WhatsAppAdapter(client=client, send_timeout=config.send_timeout_seconds)

    if QRDelivery(config.qr_delivery).to_terminal:
        from wagateway.adapters.terminal import TerminalQRPrinter

        adapter.add_qr_listener(TerminalQRPrinter(stdout=stdout).print_qr)

    return adapter
