import json
import logging
import os

import phonenumbers
import requests
from celery import shared_task
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import transaction
from django.template import Context
from django.template import Template as DjTemplate
from django.utils import timezone

from .models import Notification, NotificationAttempt, Template

log = logging.getLogger(__name__)


class TransientError(Exception):
    pass


class PermanentError(Exception):
    pass


DEFAULT_TEMPLATES = {
    ("sms", "owner_new_order"): {
        "body_txt": "New order {{ code }} ({{ currency }} {{ total }}){% if table %}, table {{ table }}{% endif %}. Orders: {{ orders_url }}"
    },
    ("sms", "owner_waiter_call"): {
        "body_txt": "Table {{ table }} is calling a waiter{% if name %} ({{ name }}){% endif %}.{% if notes %} {{ notes }}{% endif %}"
    },
    ("sms", "order_link"): {"body_txt": "{{ restaurant }}: we received order {{ code }}. Track it here: {{ url }}"},
    ("sms", "order_status_update"): {
        "body_txt": "{% if message %}{{ message }}{% else %}Order {{ code }}: {{ status }}.{% endif %} {{ url }}"
    },
    ("email", "order_link"): {
        "subject": "{{ restaurant }} - order {{ code }} received",
        "body_txt": "Thanks for your order {{ code }} at {{ restaurant }}. Follow its progress here: {{ url }}",
        "body_html": "<div style=\"font-family:system-ui,Arial;line-height:1.5;color:#111\"><p>Thanks for your order <strong>{{ code }}</strong> at {{ restaurant }}.</p><p><a href=\"{{ url }}\">Follow your order</a></p></div>",
    },
}


def normalize_phone_e164(val: str) -> str:
    try:
        pn = phonenumbers.parse(val, None)
    except phonenumbers.NumberParseException as e:
        raise PermanentError("invalid phone") from e
    if not phonenumbers.is_valid_number(pn):
        raise PermanentError("invalid phone")
    return phonenumbers.format_number(pn, phonenumbers.PhoneNumberFormat.E164)


def render_template(code: str, channel: str, payload: dict) -> dict:
    """Render a DB template, falling back to the built-in default for empty parts."""
    t = Template.objects.filter(code=code, channel=channel).first()
    default = DEFAULT_TEMPLATES.get((channel, code)) or {}
    ctx = Context(payload or {})

    def _part(name: str) -> str:
        src = getattr(t, name, "") if t else ""
        out = DjTemplate(src).render(ctx) if src else ""
        if not out.strip():
            out = DjTemplate(default.get(name, "")).render(ctx)
        return out.strip()

    if channel == "sms":
        return {"text": _part("body_txt")}
    return {"subject": _part("subject"), "text": _part("body_txt"), "html": _part("body_html")}


def _check_response(resp, provider: str) -> None:
    if resp.status_code >= 500:
        raise TransientError(f"{provider} 5xx: {resp.status_code}")
    if resp.status_code == 429:
        raise TransientError(f"{provider} rate limited")
    if resp.status_code >= 400:
        raise PermanentError(f"{provider} 4xx: {resp.text}")


def _twilio_send_sms(to_e164: str, body: str) -> dict:
    sid = os.getenv("TWILIO_ACCOUNT_SID", "")
    tok = os.getenv("TWILIO_AUTH_TOKEN", "")
    from_num = os.getenv("TWILIO_SMS_FROM", "")
    if not (sid and tok and from_num):
        raise TransientError("Twilio not configured")
    url = f"https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
    try:
        resp = requests.post(url, data={"From": from_num, "To": to_e164, "Body": body[:1500]}, auth=(sid, tok), timeout=20)
    except requests.RequestException as e:
        raise TransientError(f"Twilio unreachable: {e}") from e
    _check_response(resp, "Twilio")
    j = resp.json()
    return {"sid": j.get("sid"), "raw": j}


def _sendgrid_send_email(to_email: str, subject: str, text: str, html: str) -> dict:
    api_key = os.getenv("SENDGRID_API_KEY", "")
    from_email = os.getenv("SENDGRID_FROM_EMAIL", "")
    from_name = os.getenv("SENDGRID_FROM_NAME", "") or "MenuHub"
    if not (api_key and from_email):
        raise TransientError("SendGrid not configured")
    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
    content = [{"type": "text/plain", "value": text or ""}]
    if html:
        content.append({"type": "text/html", "value": html})
    body = {
        "personalizations": [{"to": [{"email": to_email}]}],
        "from": {"email": from_email, "name": from_name},
        "subject": subject or "",
        "content": content,
    }
    try:
        resp = requests.post("https://api.sendgrid.com/v3/mail/send", headers=headers, data=json.dumps(body), timeout=20)
    except requests.RequestException as e:
        raise TransientError(f"SendGrid unreachable: {e}") from e
    _check_response(resp, "SendGrid")
    return {"message_id": resp.headers.get("X-Message-Id") or "", "raw_headers": dict(resp.headers)}


def _deliver(n: Notification, dev_mode: bool) -> tuple[str, str, dict]:
    """Send one notification; returns (provider, message id, provider response)."""
    if n.type == "sms":
        to = normalize_phone_e164(n.to)
        text = render_template(n.template_code, "sms", n.payload_json).get("text") or ""
        if dev_mode:
            log.info("DEV NOTIF [sms] to %s template=%s body=\"%s\"", to, n.template_code, text)
            return "dev", "DEV", {"dev": True}
        resp = _twilio_send_sms(to, text)
        return "twilio", resp.get("sid") or "", resp
    if n.type == "email":
        try:
            validate_email(n.to)
        except ValidationError as e:
            raise PermanentError("invalid email") from e
        ren = render_template(n.template_code, "email", n.payload_json)
        if dev_mode:
            log.info("DEV NOTIF [email] to %s template=%s subject=\"%s\"", n.to, n.template_code, ren.get("subject"))
            return "dev", "DEV", {"dev": True}
        resp = _sendgrid_send_email(n.to, ren.get("subject"), ren.get("text"), ren.get("html"))
        return "sendgrid", resp.get("message_id") or "", resp
    raise PermanentError("invalid type")


@shared_task(bind=True, max_retries=5, autoretry_for=(TransientError,), retry_backoff=True, retry_backoff_max=3600)
def send_notification(self, notification_id: str):
    dev_mode = os.getenv("NOTIF_DEV_MODE", "true").lower() in ("1", "true", "yes")

    with transaction.atomic():
        try:
            n = Notification.objects.select_for_update().get(id=notification_id)
        except Notification.DoesNotExist:
            log.warning("Notification %s not found", notification_id)
            return
        if n.status not in ("queued", "processing"):
            return
        n.status = "processing"
        n.attempts = (n.attempts or 0) + 1
        n.save(update_fields=["status", "attempts", "updated_at"])

    attempt = NotificationAttempt(notification=n, started_at=timezone.now())
    try:
        provider, message_id, response = _deliver(n, dev_mode)
    except TransientError as te:
        attempt.result = "error"
        attempt.error_message = str(te)
        attempt.finished_at = timezone.now()
        attempt.save()
        # escalate to Celery autoretry
        raise
    except PermanentError as e:
        n.status = "failed"
        n.error_message = str(e)
        n.save(update_fields=["status", "error_message", "updated_at"])
        attempt.result = "error"
        attempt.error_message = str(e)
        attempt.finished_at = timezone.now()
        attempt.save()
        log.warning("Notification %s failed: %s", notification_id, e)
        return

    now = timezone.now()
    n.provider = provider
    n.provider_message_id = message_id
    n.status = "sent"
    n.sent_at = now
    if provider == "dev":
        n.delivered_at = now
    n.save()
    attempt.result = "ok"
    attempt.provider_response_json = response
    attempt.finished_at = now
    attempt.save()
