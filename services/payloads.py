from __future__ import annotations  # Request payload validation shared by services

from typing import Any, Mapping, Type, TypeVar

import pydantic

from errors import ValidationError, describe_validation

M = TypeVar("M", bound=pydantic.BaseModel)


def parse_payload(model: Type[M], data: Any, *, what: str) -> M:
    """Validate ``data`` as ``model``; pydantic failures become ``ValidationError``."""

    if isinstance(data, model):
        return data
    if isinstance(data, pydantic.BaseModel):
        data = data.model_dump()
    if not isinstance(data, Mapping):
        raise ValidationError(f"Invalid {what}", details="expected an object")
    try:
        return model.model_validate(dict(data))
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Invalid {what}", details=describe_validation(exc)) from exc


__all__ = ["parse_payload"]
