from __future__ import annotations

import json

from django.http import HttpResponse, JsonResponse


def flash_payload(kind: str, title: str, message: str) -> dict:
    return {"flash": {"type": kind, "title": title, "message": message}}


def with_flash(resp: HttpResponse, kind: str, title: str, message: str) -> HttpResponse:
    """Attach an HX-Trigger flash so the page shows a toast after the swap."""
    resp["HX-Trigger"] = json.dumps(flash_payload(kind, title, message))
    return resp


def flash_error(
    message: str, *, title: str = "Oops", status: int = 422, retry_after: int | None = None
) -> JsonResponse:
    payload = flash_payload("error", title, message)
    resp = JsonResponse(payload, status=status)
    resp["HX-Trigger"] = json.dumps(payload)
    if retry_after:
        resp["Retry-After"] = str(retry_after)
    return resp


def flash_success(message: str, *, title: str = "Done", status: int = 204) -> HttpResponse:
    return with_flash(HttpResponse(status=status), "success", title, message)
