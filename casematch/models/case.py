from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from casematch.core.enums import (
    WEIGHT_CLASS_CAPACITY_LB,
    ProtectionLevel,
    WeightClass,
)
from casematch.models.gear import Dimensions, Weight, blank_if_none, coerce_weight


class CaseItem(BaseModel):
    """A protective case as supplied by the catalog.

    Accepts the catalog's camelCase field names (``interiorDimensions``,
    ``maxWeight``, ``protectionLevel``, ``compatibleWith``) as well as
    snake_case. Older seed rows use ``internalDimensions`` for the cavity.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(default="", validation_alias=AliasChoices("id", "_id", "caseId"))
    name: str = ""
    brand: str = ""
    type: str = ""  # e.g. "Hard", "Soft", "Flight", "Waterproof"

    interior_dimensions: Dimensions = Field(
        validation_alias=AliasChoices(
            "interior_dimensions",
            "interiorDimensions",
            "internalDimensions",
            "internal_dimensions",
        )
    )
    max_weight: Optional[Weight] = Field(
        default=None, validation_alias=AliasChoices("max_weight", "maxWeight")
    )
    weight_class: Optional[WeightClass] = Field(
        default=None, validation_alias=AliasChoices("weight_class", "weightClass")
    )

    protection_level: Optional[ProtectionLevel] = Field(
        default=None,
        validation_alias=AliasChoices("protection_level", "protectionLevel"),
    )
    waterproof: bool = False
    shockproof: bool = False
    dustproof: bool = False

    # Category names or gear ids the manufacturer lists as compatible
    compatible_with: tuple[str, ...] = Field(
        default=(), validation_alias=AliasChoices("compatible_with", "compatibleWith")
    )

    @field_validator("id", "name", "brand", "type", mode="before")
    @classmethod
    def text_fields(cls, value: Any) -> Any:
        return blank_if_none(value)

    @field_validator("max_weight", mode="before")
    @classmethod
    def bare_weight(cls, value: Any) -> Any:
        return coerce_weight(value)

    @field_validator("protection_level", "weight_class", mode="before")
    @classmethod
    def lower_enum(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("waterproof", "shockproof", "dustproof", mode="before")
    @classmethod
    def null_is_false(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("compatible_with", mode="before")
    @classmethod
    def hint_list(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            return (value,)
        return tuple(str(v) for v in value if v is not None)

    @property
    def capacity_lb(self) -> Optional[float]:
        """Weight capacity in pounds, falling back to the weight class rating."""
        if self.max_weight is not None:
            return self.max_weight.in_pounds()
        if self.weight_class is not None:
            return WEIGHT_CLASS_CAPACITY_LB[self.weight_class]
        return None
