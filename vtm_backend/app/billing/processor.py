"""Payment processor integrations used by the billing service."""
from __future__ import annotations

import base64
import json
import logging
import socket
import threading
import time
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Protocol, Tuple
from urllib import error as urllib_error, parse as urllib_parse, request as urllib_request
from uuid import uuid4

from ..errors import ExternalServiceError
from .models import CaptureResult, CaptureStatus

logger = logging.getLogger(__name__)

ALREADY_CAPTURED_ISSUE = "ORDER_ALREADY_CAPTURED"


class PaymentProcessor(Protocol):
    """External payment processor integration."""

    def create_order(
        self,
        *,
        amount: Decimal,
        currency: str,
        description: str,
        reference_id: str,
    ) -> Tuple[str, Optional[str]]:
        """Create an order and return ``(order_id, approve_url)``."""

    def capture_order(self, order_id: str) -> CaptureResult:
        """Capture an approved order and report whether the funds moved."""


Transport = Callable[[urllib_request.Request, float], Tuple[int, Dict[str, Any]]]


def _send(request: urllib_request.Request, timeout: float) -> Tuple[int, Dict[str, Any]]:
    """Perform ``request`` and return ``(status, json_body)``.

    HTTP error responses are returned rather than raised so callers can inspect
    the processor's error payload. Network failures become
    :class:`ExternalServiceError`.
    """

    try:
        with urllib_request.urlopen(request, timeout=timeout) as response:
            status = response.status
            body = response.read()
    except urllib_error.HTTPError as exc:
        status = exc.code
        body = exc.read() or b""
    except (urllib_error.URLError, socket.timeout, OSError) as exc:
        logger.warning("Payment processor unreachable", extra={"url": request.full_url, "error": str(exc)})
        raise ExternalServiceError("Payment processor unavailable") from exc

    if not body:
        return status, {}
    try:
        return status, json.loads(body.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.warning("Payment processor returned an unreadable body", extra={"status": status})
        raise ExternalServiceError("Payment processor returned an invalid response") from exc


def _format_amount(amount: Decimal) -> str:
    return f"{amount.quantize(Decimal('0.01'))}"


class PayPalPaymentProcessor:
    """PayPal Orders v2 client authenticated with OAuth2 client credentials."""

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[Transport] = None,
    ) -> None:
        if not client_id or not client_secret:
            raise ValueError("PayPal client credentials are required")
        self._client_id = client_id
        self._client_secret = client_secret
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport or _send
        self._lock = threading.Lock()
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0

    def _get_access_token(self) -> str:
        with self._lock:
            if self._access_token and time.monotonic() < self._token_expires_at:
                return self._access_token

            credentials = f"{self._client_id}:{self._client_secret}".encode("utf-8")
            request = urllib_request.Request(
                f"{self._base_url}/v1/oauth2/token",
                data=urllib_parse.urlencode({"grant_type": "client_credentials"}).encode("ascii"),
                headers={
                    "Authorization": "Basic " + base64.b64encode(credentials).decode("ascii"),
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Accept": "application/json",
                },
                method="POST",
            )
            status, payload = self._transport(request, self._timeout)
            token = payload.get("access_token")
            if status != 200 or not token:
                logger.error("PayPal authentication failed", extra={"status": status})
                raise ExternalServiceError("Payment processor authentication failed")

            # Refresh a minute early.
            expires_in = int(payload.get("expires_in") or 0)
            self._access_token = token
            self._token_expires_at = time.monotonic() + max(expires_in - 60, 0)
            return token

    def _call(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Tuple[int, Dict[str, Any]]:
        data = json.dumps(body).encode("utf-8") if body is not None else None
        request = urllib_request.Request(
            f"{self._base_url}{path}",
            data=data,
            headers={
                "Authorization": f"Bearer {self._get_access_token()}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            method=method,
        )
        status, payload = self._transport(request, self._timeout)
        if status >= 500:
            logger.warning("PayPal server error", extra={"status": status, "path": path})
            raise ExternalServiceError("Payment processor unavailable", detail={"status": status})
        return status, payload

    def create_order(
        self,
        *,
        amount: Decimal,
        currency: str,
        description: str,
        reference_id: str,
    ) -> Tuple[str, Optional[str]]:
        status, payload = self._call(
            "POST",
            "/v2/checkout/orders",
            {
                "intent": "CAPTURE",
                "purchase_units": [
                    {
                        "reference_id": reference_id,
                        "description": description,
                        "amount": {"currency_code": currency, "value": _format_amount(amount)},
                    }
                ],
            },
        )
        order_id = payload.get("id")
        if status not in (200, 201) or not order_id:
            logger.error("PayPal order creation failed", extra={"status": status, "payload": payload})
            raise ExternalServiceError("Payment order could not be created", detail={"status": status})

        approve_url = None
        for link in payload.get("links") or []:
            if link.get("rel") in {"approve", "payer-action"}:
                approve_url = link.get("href")
                break
        return order_id, approve_url

    def capture_order(self, order_id: str) -> CaptureResult:
        quoted = urllib_parse.quote(order_id, safe="")
        status, payload = self._call("POST", f"/v2/checkout/orders/{quoted}/capture", {})
        if status in (200, 201):
            return self._capture_result(order_id, payload)

        issue = self._first_issue(payload)
        if issue == ALREADY_CAPTURED_ISSUE:
            # Captured by an earlier attempt; report the order's current state.
            status, payload = self._call("GET", f"/v2/checkout/orders/{quoted}")
            if status == 200:
                return self._capture_result(order_id, payload)

        logger.info("PayPal capture not completed", extra={"order_id": order_id, "status": status, "issue": issue})
        return CaptureResult(
            order_id=order_id,
            status=CaptureStatus.INCOMPLETE,
            provider_status=issue or payload.get("status"),
        )

    @staticmethod
    def _first_issue(payload: Dict[str, Any]) -> Optional[str]:
        details = payload.get("details") or []
        if details and isinstance(details[0], dict):
            return details[0].get("issue")
        return payload.get("name")

    @staticmethod
    def _capture_result(order_id: str, payload: Dict[str, Any]) -> CaptureResult:
        provider_status = payload.get("status")
        amount = None
        currency = None
        for unit in payload.get("purchase_units") or []:
            captures = (unit.get("payments") or {}).get("captures") or []
            if captures:
                value = captures[0].get("amount") or {}
                if value.get("value") is not None:
                    amount = Decimal(str(value["value"]))
                currency = value.get("currency_code")
                break
        return CaptureResult(
            order_id=order_id,
            status=CaptureStatus.COMPLETED if provider_status == "COMPLETED" else CaptureStatus.INCOMPLETE,
            provider_status=provider_status,
            amount=amount,
            currency=currency,
        )


class SandboxPaymentProcessor:
    """Local stand-in used when no PayPal credentials are configured.

    Orders it created capture as completed unless marked declined; unknown
    order ids are reported incomplete.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._orders: Dict[str, Tuple[Decimal, str]] = {}
        self._declined: set[str] = set()

    def create_order(
        self,
        *,
        amount: Decimal,
        currency: str,
        description: str,
        reference_id: str,
    ) -> Tuple[str, Optional[str]]:
        order_id = f"SANDBOX-{uuid4().hex[:17].upper()}"
        with self._lock:
            self._orders[order_id] = (amount, currency)
        logger.info("Sandbox order %s created for %s (%s)", order_id, reference_id, description)
        return order_id, None

    def decline(self, order_id: str) -> None:
        with self._lock:
            self._declined.add(order_id)

    def capture_order(self, order_id: str) -> CaptureResult:
        with self._lock:
            order = self._orders.get(order_id)
            declined = order_id in self._declined
        if order is None or declined:
            return CaptureResult(
                order_id=order_id,
                status=CaptureStatus.INCOMPLETE,
                provider_status="DECLINED" if declined else "NOT_FOUND",
            )
        amount, currency = order
        return CaptureResult(
            order_id=order_id,
            status=CaptureStatus.COMPLETED,
            provider_status="COMPLETED",
            amount=amount,
            currency=currency,
        )


__all__ = [
    "PayPalPaymentProcessor",
    "PaymentProcessor",
    "SandboxPaymentProcessor",
    "Transport",
]
