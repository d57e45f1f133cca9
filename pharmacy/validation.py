"""Turns raw request payloads into typed schemas or a ValidationError."""
from typing import Any, Dict, List, Sequence

import pydantic

from . import schemas
from .errors import ValidationError


def format_errors(errors: Sequence[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Flatten pydantic error dicts into ``{"field", "message"}`` pairs."""
    out = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        out.append({"field": ".".join(loc) or "__root__", "message": err.get("msg", "Invalid value")})
    return out


def validate_order(raw: Any) -> schemas.OrderCreate:
    try:
        return schemas.OrderCreate.model_validate(raw)
    except pydantic.ValidationError as exc:
        raise ValidationError("Invalid order data", errors=format_errors(exc.errors())) from exc
