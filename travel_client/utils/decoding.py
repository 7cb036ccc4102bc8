"""Row-by-row decoding of gateway responses.

A single corrupt row must not blank an entire list, so every row is validated
on its own and failures are logged and skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from travel_client.errors import PartialDecodeError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

__all__ = ["decode_row", "decode_rows"]


def decode_row(row: Any, model: type[ModelT]) -> ModelT:
    """Validate one row, raising :class:`PartialDecodeError` when it is malformed."""

    if not isinstance(row, Mapping):
        raise PartialDecodeError(
            f"Expected a mapping for {model.__name__}, got {type(row).__name__}", row=row
        )
    try:
        return model.model_validate(dict(row))
    except PydanticValidationError as exc:
        fields = ", ".join(
            ".".join(str(part) for part in error["loc"]) or "<row>" for error in exc.errors()
        )
        raise PartialDecodeError(
            f"Malformed {model.__name__} row (fields: {fields})", row=row
        ) from exc


def decode_rows(rows: Iterable[Any], model: type[ModelT]) -> list[ModelT]:
    """Decode every well-formed row and skip the rest."""

    decoded: list[ModelT] = []
    skipped = 0
    for row in rows:
        try:
            decoded.append(decode_row(row, model))
        except PartialDecodeError as exc:
            skipped += 1
            row_id = row.get("id") if isinstance(row, Mapping) else None
            logger.warning("Skipping row id=%s: %s", row_id, exc.message)
    if skipped:
        logger.warning(
            "Decoded %d %s row(s); skipped %d malformed",
            len(decoded),
            model.__name__,
            skipped,
        )
    return decoded
