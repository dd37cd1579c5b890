"""
Payment reference generation
"""
import secrets
import time


def generate_reference(prefix: str = "FYW") -> str:
    """
    Build a unique, human-traceable payment reference

    Format: <PREFIX>-<epoch millis>-<8 upper-case hex chars>, e.g.
    FYW-1718030000123-9F2C11AB. The payments.reference unique index is
    the final guarantee against collisions.
    """
    millis = int(time.time() * 1000)
    return f"{prefix}-{millis}-{secrets.token_hex(4).upper()}"
