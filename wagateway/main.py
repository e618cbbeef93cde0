from __future__ import annotations

import argparse
import logging

from wagateway.config import QR_DELIVERY_MODES, Config, load_config, parse_port

logger = logging.getLogger(__name__)


def _setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _port_arg(value: str) -> int:
    try:
        return parse_port(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def _apply_cli_overrides(config: Config, parsed: argparse.Namespace) -> Config:
    port = getattr(parsed, "port", None)
    host = getattr(parsed, "host", None)
    qr_delivery = getattr(parsed, "qr_delivery", None)
    if port is not None:
        config.server.port = port
    if host is not None:
        config.server.host = host
    if qr_delivery is not None:
        config.whatsapp.qr_delivery = qr_delivery
    return config


def _run_serve(config: Config) -> None:
    """Start the HTTP gateway and the WhatsApp client on one event loop."""
    import uvicorn

    from wagateway.adapters.factory import build_adapter
    from wagateway.qr import QRDelivery
    from wagateway.server import create_app

    adapter = build_adapter(config.whatsapp)
    app = create_app(adapter, qr_delivery=QRDelivery(config.whatsapp.qr_delivery))

    base_url = f"http://localhost:{config.server.port}"
    logger.info("WhatsApp gateway running on %s", base_url)
    logger.info("Send receipts to: POST %s/send-receipt", base_url)
    logger.info("Send messages to: POST %s/send-message", base_url)
    if QRDelivery(config.whatsapp.qr_delivery).to_endpoint:
        logger.info("Login QR code at: GET %s/qr", base_url)

    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.server.log_level.lower(),
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="wagateway",
        description="HTTP gateway for sending WhatsApp messages and receipts",
    )
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to config file (default: config.yaml)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP gateway (default)")
    serve_parser.add_argument("--port", type=_port_arg, help="Port to listen on (default: $PORT or 3001)")
    serve_parser.add_argument("--host", help="Interface to bind (default: 0.0.0.0)")
    serve_parser.add_argument(
        "--qr-delivery",
        choices=QR_DELIVERY_MODES,
        help="Where to show the login QR code",
    )

    return parser


def main(args: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    parsed = parser.parse_args(args)
    config = _apply_cli_overrides(load_config(parsed.config), parsed)
    _setup_logging(config.server.log_level)

    if parsed.command in (None, "serve"):
        _run_serve(config)
    else:
        parser.print_help()
        parser.exit(1)


if __name__ == "__main__":
    main()
