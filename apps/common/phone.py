from django.conf import settings
import phonenumbers


def to_e164(raw: str, default_region: str | None = None) -> str:
    region = default_region or getattr(settings, "DEFAULT_PHONE_REGION", "KE")
    try:
        n = phonenumbers.parse(raw, region)
    except phonenumbers.NumberParseException:
        raise ValueError("Invalid phone number")
    if not phonenumbers.is_valid_number(n):
        raise ValueError("Invalid phone number")
    return phonenumbers.format_number(n, phonenumbers.PhoneNumberFormat.E164)


def to_msisdn(e164: str) -> str:
    """M-Pesa expects the number without the leading plus (2547XXXXXXXX)."""
    return (e164 or "").lstrip("+")


def mask_phone(phone: str) -> str:
    digits = "".join(ch for ch in (phone or "") if ch.isdigit())
    if len(digits) < 4:
        return "********"
    return f"{digits[:3]}*****{digits[-3:]}"
