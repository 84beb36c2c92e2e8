"""Input validation for untrusted request data.

Both validators are pure: they return a ``Validation`` holding either the
normalized value or a ``ValidationError`` listing every violated field, so
route handlers can branch on ``result.ok`` instead of catching exceptions.
"""

from typing import Any, Dict, List, NamedTuple, Tuple

import pydantic

from .errors import FieldError, ValidationError
from .schemas import CharacterCreate, CharacterIdParam

# (field, pydantic error type) -> message shown to clients
_MESSAGES: Dict[Tuple[str, str], str] = {
    ("name", "string_too_short"): "Name is required",
    ("species", "string_too_short"): "Species is required",
    ("id", "string_pattern_mismatch"): "ID must be a number",
}


class Validation(NamedTuple):
    value: Any
    error: ValidationError | None

    @property
    def ok(self) -> bool:
        return self.error is None


def _field_errors(exc: pydantic.ValidationError) -> List[FieldError]:
    out: List[FieldError] = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err["loc"])
        message = _MESSAGES.get((field, err["type"]), err["msg"])
        out.append(FieldError(field=field, message=message))
    return out


def validate_create(payload: Any) -> Validation:
    """Validate a create-character body.

    Args:
        payload: Decoded JSON body (any shape).

    Returns:
        ``Validation`` whose value is a dict with ``name``, ``status``,
        ``species``, ``gender`` and ``type`` (defaulted to ``""``), or whose
        error lists one entry per violated constraint.
    """
    try:
        model = CharacterCreate.model_validate(payload)
    except pydantic.ValidationError as exc:
        return Validation(None, ValidationError("Validation failed", _field_errors(exc)))
    return Validation(model.model_dump(mode="json"), None)


def validate_identifier(raw: Any) -> Validation:
    """Validate a path identifier and parse it to ``int``."""
    try:
        param = CharacterIdParam.model_validate({"id": raw})
    except pydantic.ValidationError as exc:
        return Validation(None, ValidationError("Invalid ID", _field_errors(exc)))
    return Validation(int(param.id), None)
