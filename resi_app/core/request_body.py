import json
import logging
from typing import Any, Dict, List, Tuple, Type, TypeVar

import pydantic
from fastapi import Request
from pydantic import BaseModel
from starlette.datastructures import UploadFile

from .errors import ValidationError
from .exception_handler import format_validation_errors

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def _decode(value: str) -> Any:
    """Form fields may carry JSON (objects, arrays, numbers, booleans)."""
    stripped = value.strip()
    if stripped[:1] in ("{", "[") or stripped in ("true", "false", "null"):
        try:
            return json.loads(stripped)
        except json.JSONDecodeError:
            return value
    return value


def _assign(target: dict, dotted_key: str, value: Any):
    parts = dotted_key.split(".")
    for part in parts[:-1]:
        child = target.get(part)
        if not isinstance(child, dict):
            child = {}
            target[part] = child
        target = child
    target[parts[-1]] = value


async def read_payload(request: Request) -> Tuple[dict, Dict[str, List[UploadFile]]]:
    """Return (fields, files) from a JSON or multipart request body.

    Multipart keys such as ``address.city`` are nested into objects, and a
    key repeated several times becomes a list.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data") or content_type.startswith(
        "application/x-www-form-urlencoded"
    ):
        form = await request.form()
        data: dict = {}
        files: Dict[str, List[UploadFile]] = {}
        for key in form.keys():
            values = form.getlist(key)
            uploads = [v for v in values if isinstance(v, UploadFile)]
            if uploads:
                files[key] = uploads
                continue
            decoded = [_decode(v) for v in values]
            _assign(data, key, decoded[0] if len(decoded) == 1 else decoded)
        return data, files

    body = await request.body()
    if not body:
        return {}, {}
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        raise ValidationError.single("body", "Format JSON tidak valid.")
    if not isinstance(data, dict):
        raise ValidationError.single("body", "Body harus berupa objek JSON.")
    return data, {}


def parse_model(schema: Type[T], data: dict) -> T:
    try:
        return schema.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(format_validation_errors(e.errors()))
