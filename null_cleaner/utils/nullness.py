from typing import Any


NULL_TOKEN = 'null'


def is_null_like(value: Any) -> bool:
    """Return True for a real None or for any value whose trimmed text is 'null' (any case)."""
    if value is None:
        return True
    try:
        text = value if isinstance(value, str) else str(value)
    except Exception:
        return False
    return text.strip().lower() == NULL_TOKEN


def is_null_like_field(d, key: str) -> bool:
    """Null-likeness of a present key. A missing key is never null-like."""
    return isinstance(d, dict) and key in d and is_null_like(d.get(key))
