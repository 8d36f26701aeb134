"""Validation of raw gear and case records before scoring.

Catalog rows arrive as plain dicts. They are coerced into the frozen
pydantic models here so that a malformed record fails fast with the name
of the offending field instead of being scored with made-up values.
"""

from collections.abc import Mapping
from typing import Any, Optional

from pydantic import ValidationError

from casematch.models.case import CaseItem
from casematch.models.gear import GearItem
from casematch.models.match import ValidationIssue


class RecordValidationError(ValueError):
    """A gear or case record is missing a field or carries a bad value."""

    def __init__(self, field: str, message: str, record_id: Optional[str] = None):
        self.field = field
        self.message = message
        self.record_id = record_id
        super().__init__(f"{field}: {message}")

    def to_issue(self, index: int) -> ValidationIssue:
        return ValidationIssue(
            index=index,
            record_id=self.record_id,
            field=self.field,
            message=self.message,
        )

    def to_detail(self) -> dict[str, Any]:
        return {"field": self.field, "message": self.message, "record_id": self.record_id}


def _record_id(record: Any) -> Optional[str]:
    if not isinstance(record, Mapping):
        return None
    for key in ("id", "_id", "gearId", "caseId"):
        if record.get(key) is not None:
            return str(record[key])
    return None


def _from_pydantic(exc: ValidationError, record: Any) -> RecordValidationError:
    """Use the first pydantic error location as the offending field."""
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "record"
    return RecordValidationError(field, first.get("msg", "invalid value"), _record_id(record))


def coerce_gear(record: GearItem | Mapping[str, Any]) -> GearItem:
    """Return a validated GearItem or raise RecordValidationError."""
    if isinstance(record, GearItem):
        return record
    if not isinstance(record, Mapping):
        raise RecordValidationError("record", f"expected an object, got {type(record).__name__}")
    try:
        return GearItem.model_validate(record)
    except ValidationError as e:
        raise _from_pydantic(e, record) from e


def coerce_case(record: CaseItem | Mapping[str, Any]) -> CaseItem:
    """Return a validated CaseItem or raise RecordValidationError."""
    if isinstance(record, CaseItem):
        return record
    if not isinstance(record, Mapping):
        raise RecordValidationError("record", f"expected an object, got {type(record).__name__}")
    try:
        return CaseItem.model_validate(record)
    except ValidationError as e:
        raise _from_pydantic(e, record) from e
