"""Codec plumbing shared by every persisted format.

A codec turns text from a storage backend into a validated model and
back. Each format module defines plain ``decode``/``encode``/``validate``
functions and bundles them in a :class:`Codec`, which adds the
non-raising ``safe_*`` variants.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from tally.exceptions import CodecError

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


@dataclass
class CodecResult(Generic[T]):
    """Outcome of a non-raising codec call.

    Exactly one of ``data`` and ``error`` is set, matching ``success``.
    """

    success: bool
    data: T | None = None
    error: Exception | None = None


class Codec(Generic[T]):
    """A named decode/encode/validate triple for one document format."""

    def __init__(
        self,
        name: str,
        decode: Callable[[str], T],
        encode: Callable[[Any], str],
        validate: Callable[[Any], CodecResult[T]],
    ) -> None:
        self.name = name
        self.decode = decode
        self.encode = encode
        self.validate = validate

    def safe_decode(self, content: str) -> CodecResult[T]:
        try:
            return CodecResult(success=True, data=self.decode(content))
        except CodecError as exc:
            return CodecResult(success=False, error=exc)

    def safe_encode(self, obj: Any) -> CodecResult[str]:
        try:
            return CodecResult(success=True, data=self.encode(obj))
        except CodecError as exc:
            return CodecResult(success=False, error=exc)

    def __repr__(self) -> str:
        return f"Codec({self.name!r})"


def parse_json(content: str, what: str) -> Any:
    """Parse a whole JSON document, raising CodecError on malformed text."""
    try:
        return json.loads(content)
    except json.JSONDecodeError as exc:
        raise CodecError(f"Invalid JSON in {what}: {exc}") from exc


def validate_model(model: type[M], obj: Any, what: str) -> M:
    """Validate obj (a model instance or raw dict) against model.

    Model instances are re-validated from their wire dump so that
    objects mutated after construction are still checked.

    Raises:
        CodecError: With the aggregated pydantic message.
    """
    if isinstance(obj, BaseModel):
        obj = obj.model_dump(mode="json", by_alias=True, exclude_unset=True)
    try:
        return model.model_validate(obj)
    except ValidationError as exc:
        raise CodecError(f"Invalid {what}: {exc}") from exc


def model_validator_for(model: type[M], what: str) -> Callable[[Any], CodecResult[M]]:
    """Build a non-raising ``validate`` function for a single model."""

    def validate(obj: Any) -> CodecResult[M]:
        try:
            return CodecResult(success=True, data=validate_model(model, obj, what))
        except CodecError as exc:
            return CodecResult(success=False, error=exc)

    return validate


def dump_json(data: Any) -> str:
    """Serialize a JSON-ready value the way every document is stored."""
    return json.dumps(data, indent=2, ensure_ascii=False)
