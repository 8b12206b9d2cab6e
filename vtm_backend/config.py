"""Application configuration helpers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple
import math
import os


@dataclass(frozen=True)
class AppConfig:
    """Process-wide configuration, loaded once at startup."""

    jwt_secret_key: str
    session_ttl_minutes: int
    payment_intent_ttl_minutes: int
    customer_id_prefix: str
    customer_id_seed: int
    app_base_url: str
    firebase_project_id: Optional[str]
    paypal_mode: str
    paypal_client_id: Optional[str]
    paypal_client_secret: Optional[str]
    payment_currency: str
    external_timeout_seconds: float
    cors_origins: Tuple[str, ...]
    db_config: Dict[str, Any] = field(default_factory=dict)

    @property
    def paypal_base_url(self) -> str:
        if self.paypal_mode == "live":
            return "https://api-m.paypal.com"
        return "https://api-m.sandbox.paypal.com"

    @property
    def payment_processor_enabled(self) -> bool:
        return bool(self.paypal_client_id and self.paypal_client_secret)


def _to_bool(value: Optional[str], *, default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return default


def _to_int(value: Optional[str], *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected integer value, got {value!r}") from exc


def _to_float(value: Optional[str], *, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected float value, got {value!r}") from exc


def _parse_connect_timeout(raw_value: Optional[str]) -> int:
    timeout = _to_float(raw_value, default=5.0)
    if timeout < 0:
        raise ValueError("DB_CONNECT_TIMEOUT must be non-negative")
    return int(math.ceil(timeout))


def _split_csv(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


def load_app_config(env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load :class:`AppConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    paypal_mode = (env_mapping.get("PAYPAL_MODE") or "sandbox").strip().lower()
    if paypal_mode not in {"sandbox", "live"}:
        raise ValueError(f"PAYPAL_MODE must be 'sandbox' or 'live', got {paypal_mode!r}")

    session_ttl = max(1, _to_int(env_mapping.get("SESSION_TTL_MINUTES"), default=6 * 60))
    intent_ttl = max(1, _to_int(env_mapping.get("PAYMENT_INTENT_TTL_MINUTES"), default=30))

    db_config = dict(
        host=env_mapping.get("DB_HOST", "127.0.0.1"),
        port=_to_int(env_mapping.get("DB_PORT"), default=5432),
        dbname=env_mapping.get("DB_NAME", "vtm_db"),
        user=env_mapping.get("DB_USER", "vtm_user"),
        password=env_mapping.get("DB_PASSWORD", "vtm_pass"),
        connect_timeout=_parse_connect_timeout(env_mapping.get("DB_CONNECT_TIMEOUT")),
    )

    return AppConfig(
        jwt_secret_key=env_mapping.get("JWT_SECRET_KEY", "dev-secret-change-me"),
        session_ttl_minutes=session_ttl,
        payment_intent_ttl_minutes=intent_ttl,
        customer_id_prefix=(env_mapping.get("CUSTOMER_ID_PREFIX") or "VTM").strip().upper(),
        customer_id_seed=_to_int(env_mapping.get("CUSTOMER_ID_SEED"), default=1000),
        app_base_url=env_mapping.get("APP_BASE_URL", "http://localhost:3000").rstrip("/"),
        firebase_project_id=env_mapping.get("FIREBASE_PROJECT_ID") or None,
        paypal_mode=paypal_mode,
        paypal_client_id=env_mapping.get("PAYPAL_CLIENT_ID") or None,
        paypal_client_secret=env_mapping.get("PAYPAL_CLIENT_SECRET") or None,
        payment_currency=(env_mapping.get("PAYMENT_CURRENCY") or "USD").strip().upper(),
        external_timeout_seconds=max(
            0.5, _to_float(env_mapping.get("EXTERNAL_TIMEOUT_SECONDS"), default=10.0)
        ),
        cors_origins=_split_csv(env_mapping.get("CORS_ORIGINS")) or ("*",),
        db_config=db_config,
    )


def env_flag(name: str, *, default: bool = False) -> bool:
    return _to_bool(os.getenv(name), default=default)


__all__ = ["AppConfig", "env_flag", "load_app_config"]
