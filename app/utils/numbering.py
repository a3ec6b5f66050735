"""Human-readable document numbers and public tracking codes."""

import secrets
import string
from datetime import datetime

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
# No 0/O or 1/I so codes read back over the phone
_TRACKING_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def load_number_prefix(now: datetime) -> str:
    return f"LD{now.year}{now.month:02d}"


def format_load_number(now: datetime, sequence: int) -> str:
    """``LD{YYYY}{MM}{seq:04d}``, sequence restarting every month."""
    return f"{load_number_prefix(now)}{sequence:04d}"


def format_order_number(now: datetime, suffix: str = None) -> str:
    """``ORD-YYYYMMDD-XXXX`` with a random alphanumeric suffix."""
    suffix = suffix or "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(4))
    return f"ORD-{now:%Y%m%d}-{suffix}"


def format_sequential(prefix: str, sequence: int, width: int = 6) -> str:
    """``INV-000001`` style numbers."""
    return f"{prefix}-{sequence:0{width}d}"


def generate_tracking_code(length: int = 10) -> str:
    return "".join(secrets.choice(_TRACKING_ALPHABET) for _ in range(length))
