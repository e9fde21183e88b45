"""Client for the serverless functions that hold the gateway secrets.

Pesapal and Daraja are never called directly from this service; the
`pesapal-*` and `mpesa-*` functions do the OAuth dance and the REST calls.
"""
import json
import logging

import requests
from django.conf import settings

log = logging.getLogger(__name__)


class FunctionError(Exception):
    def __init__(self, message: str, *, transient: bool = False, status: int | None = None):
        super().__init__(message)
        self.transient = transient
        self.status = status


def function_url(name: str) -> str:
    base = (getattr(settings, "PAYMENT_FUNCTIONS_URL", "") or "").rstrip("/")
    if not base:
        raise FunctionError("PAYMENT_FUNCTIONS_URL not configured")
    return f"{base}/{name}"


def invoke(name: str, body: dict) -> dict:
    """POST `body` to function `name` and return its decoded JSON answer."""
    url = function_url(name)
    headers = {"Content-Type": "application/json"}
    key = getattr(settings, "PAYMENT_FUNCTIONS_KEY", "")
    if key:
        headers["Authorization"] = f"Bearer {key}"
    timeout = float(getattr(settings, "PAYMENT_FUNCTIONS_TIMEOUT", 20))
    try:
        resp = requests.post(url, headers=headers, data=json.dumps(body), timeout=timeout)
    except requests.Timeout as e:
        raise FunctionError(f"{name} timed out", transient=True) from e
    except requests.RequestException as e:
        raise FunctionError(f"{name} unreachable: {e}", transient=True) from e
    if resp.status_code >= 500:
        raise FunctionError(f"{name} 5xx: {resp.status_code}", transient=True, status=resp.status_code)
    if resp.status_code == 429:
        raise FunctionError(f"{name} rate limited", transient=True, status=429)
    try:
        data = resp.json()
    except ValueError as e:
        raise FunctionError(f"{name} returned non-JSON ({resp.status_code})", status=resp.status_code) from e
    if resp.status_code >= 400:
        message = (data or {}).get("error") if isinstance(data, dict) else None
        raise FunctionError(message or f"{name} 4xx: {resp.status_code}", status=resp.status_code)
    if not isinstance(data, dict):
        raise FunctionError(f"{name} returned unexpected payload")
    log.info("[payments] function %s answered %s", name, resp.status_code)
    return data
