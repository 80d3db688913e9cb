import uuid
from rentauto.utils.dates import utc_now


def generate_reference(prefix: str) -> str:
    """Human readable record number such as RNT-20240101-3FA9C2"""
    return f"{prefix}-{utc_now().strftime('%Y%m%d')}-{uuid.uuid4().hex[:6].upper()}"
