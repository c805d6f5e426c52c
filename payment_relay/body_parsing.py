"""
Per-route request body decoding.

The webhook route must see the exact bytes Stripe signed, so it is decoded as raw
bytes. Every other route gets its JSON body validated into a pydantic model.
"""

from enum import Enum
from typing import Optional, Type

from fastapi import Request
from pydantic import BaseModel, ValidationError


class BodyDecoding(str, Enum):
    JSON = "json"
    RAW = "raw"


WEBHOOK_PATH = "/webhook/stripe"

ROUTE_BODY_DECODING = {
    WEBHOOK_PATH: BodyDecoding.RAW,
}

DEFAULT_BODY_DECODING = BodyDecoding.JSON


class BodyDecodeError(Exception):
    pass


def body_decoding_for(path: str) -> BodyDecoding:
    return ROUTE_BODY_DECODING.get(path, DEFAULT_BODY_DECODING)


def describe_validation_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if any(e["type"] == "json_invalid" for e in errors):
        return "Invalid JSON body"
    if any(e["type"] in ("model_type", "dict_type") for e in errors):
        return "JSON body must be an object"
    fields = sorted({str(e["loc"][0]) for e in errors if e["loc"]})
    return f"Invalid value for {', '.join(fields)}"


def decoded_body(model: Optional[Type[BaseModel]] = None):
    """Dependency returning the raw bytes or the validated ``model`` for the route."""

    async def dependency(request: Request):
        raw = await request.body()
        if body_decoding_for(request.url.path) is BodyDecoding.RAW:
            return raw

        if model is None:
            raise TypeError(f"No body model declared for {request.url.path}")
        try:
            return model.model_validate_json(raw if raw.strip() else b"{}")
        except ValidationError as e:
            raise BodyDecodeError(describe_validation_error(e))

    return dependency
