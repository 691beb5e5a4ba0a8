# utils/helpers.py
import time


def safe_strip(value):
    """Safely strip a string value, handling None"""
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped if stripped else None
    return value


def now_ms():
    """Current time in epoch milliseconds (the token expiry cookie format)"""
    return int(time.time() * 1000)
