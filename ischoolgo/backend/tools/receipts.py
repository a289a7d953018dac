import secrets
import string
from datetime import datetime, timezone
from typing import Optional

_ALPHABET = string.ascii_uppercase + string.digits


def generate_receipt_number(now: Optional[datetime] = None) -> str:
    """RCP-<unix epoch millis>-<6 uppercase alphanumerics>."""
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(6))
    return f"RCP-{millis}-{suffix}"
