import secrets
import string
from typing import Protocol


class _ExistsFunc(Protocol):
    def __call__(self, code: str) -> bool:
        ...


_ALPHABET = string.ascii_uppercase + string.digits
_LOWER_ALPHABET = string.ascii_lowercase + string.digits


def _random_code(length: int = 8, alphabet: str = _ALPHABET) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_unique_code(
    *,
    length: int = 8,
    exists: _ExistsFunc,
    max_attempts: int = 12,
) -> str:
    """Return a random uppercase+digits code that is unique under the provided exists() check."""
    for _ in range(max_attempts):
        code = _random_code(length)
        if not exists(code):
            return code
    raise RuntimeError("unable to generate unique code")


def generate_customer_token() -> str:
    """Opaque, URL-safe token handed to customers instead of the order primary key."""
    return secrets.token_urlsafe(24)


def synthetic_reference(prefix: str, millis: int) -> str:
    return f"{prefix}_{millis}_{_random_code(9, _LOWER_ALPHABET)}"
