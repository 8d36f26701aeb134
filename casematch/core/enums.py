"""Enums for case classification and measurement units."""

from enum import Enum


class ProtectionLevel(str, Enum):
    """Protection rating declared by the case manufacturer."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class WeightClass(str, Enum):
    """Coarse load rating used when a case has no explicit max weight."""

    LIGHT = "light"
    MEDIUM = "medium"
    HEAVY = "heavy"


class LengthUnit(str, Enum):
    INCH = "in"
    CENTIMETER = "cm"
    MILLIMETER = "mm"
    METER = "m"


class WeightUnit(str, Enum):
    POUND = "lb"
    KILOGRAM = "kg"
    GRAM = "g"
    OUNCE = "oz"


# Load capacity (lb) implied by a weight class
WEIGHT_CLASS_CAPACITY_LB: dict[WeightClass, float] = {
    WeightClass.LIGHT: 10.0,
    WeightClass.MEDIUM: 30.0,
    WeightClass.HEAVY: 75.0,
}
