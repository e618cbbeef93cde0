from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

DEFAULT_PORT = 3001
QR_DELIVERY_MODES = ("terminal", "endpoint", "both")
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    log_level: str = "INFO"


@dataclass
class WhatsAppConfig:
    client_factory: str | None = None
    qr_delivery: str = "both"
    send_timeout_seconds: float | None = 60.0


@dataclass
class Config:
    server: ServerConfig = field(default_factory=ServerConfig)
    whatsapp: WhatsAppConfig = field(default_factory=WhatsAppConfig)


def _load_dotenv(env_path: str | Path | None = None) -> None:
    """Populate os.environ from a .env file without clobbering real env vars."""
    if env_path is None:
        load_dotenv()
    else:
        load_dotenv(env_path)


ENV_OVERRIDES = {
    "PORT": ("server", "port"),
    "WAGATEWAY_HOST": ("server", "host"),
    "WAGATEWAY_LOG_LEVEL": ("server", "log_level"),
    "WAGATEWAY_CLIENT_FACTORY": ("whatsapp", "client_factory"),
    "WAGATEWAY_QR_DELIVERY": ("whatsapp", "qr_delivery"),
    "WAGATEWAY_SEND_TIMEOUT": ("whatsapp", "send_timeout_seconds"),
}


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Override config values with environment variables."""
    for env_var, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value is None or value == "":
            continue
        if not isinstance(raw.get(section), dict):
            raw[section] = {}
        raw[section][key] = value
    return raw


def parse_port(value: Any) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid port: {value!r}") from None
    if not 0 < port < 65536:
        raise ValueError(f"Port out of range: {port}")
    return port


def _parse_log_level(value: Any) -> str:
    level = str(value).upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"Unknown log_level {value!r}, expected one of {', '.join(LOG_LEVELS)}")
    return level


def _parse_timeout(value: Any) -> float | None:
    """A missing, null or non-positive timeout disables the send deadline."""
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in ("", "none", "null", "off"):
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid send timeout: {value!r}") from None
    return seconds if seconds > 0 else None


def _dict_to_config(raw: dict[str, Any]) -> Config:
    """Convert a raw dict to a Config dataclass, validating as it goes."""
    server_data = raw.get("server") or {}
    whatsapp_data = raw.get("whatsapp") or {}
    if not isinstance(server_data, dict) or not isinstance(whatsapp_data, dict):
        raise ValueError("Config sections 'server' and 'whatsapp' must be mappings")

    server = ServerConfig(**server_data)
    server.port = parse_port(server.port)
    server.log_level = _parse_log_level(server.log_level)

    whatsapp = WhatsAppConfig(**whatsapp_data)
    whatsapp.qr_delivery = str(whatsapp.qr_delivery).lower()
    if whatsapp.qr_delivery not in QR_DELIVERY_MODES:
        raise ValueError(
            f"Unknown qr_delivery {whatsapp.qr_delivery!r}, expected one of {', '.join(QR_DELIVERY_MODES)}"
        )
    whatsapp.send_timeout_seconds = _parse_timeout(whatsapp.send_timeout_seconds)
    if not whatsapp.client_factory:
        whatsapp.client_factory = None

    return Config(server=server, whatsapp=whatsapp)


def load_config(config_path: str | Path = "config.yaml", env_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file, then .env, then env var overrides.

    If the file doesn't exist, defaults are used. The port falls back to 3001
    when PORT is unset.
    """
    config_path = Path(config_path)
    raw: dict[str, Any] = {}

    if config_path.exists():
        with open(config_path) as f:
            loaded = yaml.safe_load(f)
            if isinstance(loaded, dict):
                raw = loaded

    _load_dotenv(env_path)
    raw = _apply_env_overrides(raw)
    return _dict_to_config(raw)
