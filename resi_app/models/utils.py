import hashlib
import re
from datetime import timedelta

from resi_app.core.date_helper import utcnow


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def expiry_from_now(delta: timedelta):
    return utcnow() + delta


def camel_to_snake(value: str) -> str:
    value = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", value)
    return re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", value).lower()


def default_preferences() -> dict:
    return {
        "language": "id",
        "notifications": {"email": True, "push": True, "sms": False},
        "theme": "system",
    }


def merge_preferences(current: dict | None, changes: dict) -> dict:
    merged = {**default_preferences(), **(current or {})}
    for key, value in changes.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged
