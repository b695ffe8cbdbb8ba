import secrets
from datetime import datetime

import shortuuid


def generate_shortuuid() -> str:
    return shortuuid.uuid()


def generate_release_code(now: datetime | None = None) -> str:
    """YYMMDD date stamp followed by a 4-digit random suffix."""
    stamp = (now or datetime.now()).strftime("%y%m%d")
    return f"{stamp}{secrets.randbelow(10000):04d}"
