from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from casematch.core.enums import LengthUnit, WeightUnit
from casematch.services.units import (
    normalize_dimensions,
    normalize_weight,
    parse_length_unit,
    parse_weight_unit,
)


def reject_bool(value: Any) -> Any:
    # pydantic's lax float mode reads True/False as 1.0/0.0
    if isinstance(value, bool):
        raise ValueError("expected a number, got a boolean")
    return value


class Dimensions(BaseModel):
    """Bounding box (gear) or usable cavity (case), in any supported unit."""

    model_config = ConfigDict(frozen=True)

    length: float = Field(gt=0, allow_inf_nan=False)
    width: float = Field(gt=0, allow_inf_nan=False)
    height: float = Field(gt=0, allow_inf_nan=False)
    unit: LengthUnit = LengthUnit.INCH

    @field_validator("length", "width", "height", mode="before")
    @classmethod
    def numeric_only(cls, value: Any) -> Any:
        return reject_bool(value)

    @field_validator("unit", mode="before")
    @classmethod
    def parse_unit(cls, value: Any) -> LengthUnit:
        if value is None or value == "":
            return LengthUnit.INCH
        return parse_length_unit(value)

    def in_inches(self) -> tuple[float, float, float]:
        return normalize_dimensions(self.length, self.width, self.height, self.unit)


class Weight(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: float = Field(ge=0, allow_inf_nan=False)
    unit: WeightUnit = WeightUnit.POUND

    @field_validator("value", mode="before")
    @classmethod
    def numeric_only(cls, value: Any) -> Any:
        return reject_bool(value)

    @field_validator("unit", mode="before")
    @classmethod
    def parse_unit(cls, value: Any) -> WeightUnit:
        if value is None or value == "":
            return WeightUnit.POUND
        return parse_weight_unit(value)

    def in_pounds(self) -> float:
        return normalize_weight(self.value, self.unit)


def coerce_weight(value: Any) -> Any:
    """Accept a bare number as a weight in the default unit (lb)."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return {"value": value}
    return value


def blank_if_none(value: Any) -> Any:
    """Catalog rows carry NULL for unset text fields."""
    if value is None:
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class GearItem(BaseModel):
    """A piece of audio gear as supplied by the catalog."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(default="", validation_alias=AliasChoices("id", "_id", "gearId"))
    name: str = ""
    brand: str = ""
    category: str = ""
    type: str = ""
    dimensions: Dimensions
    weight: Optional[Weight] = None

    @field_validator("id", "name", "brand", "category", "type", mode="before")
    @classmethod
    def text_fields(cls, value: Any) -> Any:
        return blank_if_none(value)

    @field_validator("weight", mode="before")
    @classmethod
    def bare_weight(cls, value: Any) -> Any:
        return coerce_weight(value)

    @property
    def weight_lb(self) -> Optional[float]:
        return self.weight.in_pounds() if self.weight is not None else None
