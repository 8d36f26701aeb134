"""Unit conversion for gear and case measurements.

This module is the single source of truth for unit normalization.
Lengths are compared in inches and weights in pounds; every record is
converted through the fixed tables below before any scoring happens.
"""

from casematch.core.enums import LengthUnit, WeightUnit

# Multiply a value in the given unit by the factor to get inches
INCHES_PER_UNIT: dict[LengthUnit, float] = {
    LengthUnit.INCH: 1.0,
    LengthUnit.CENTIMETER: 1 / 2.54,
    LengthUnit.MILLIMETER: 1 / 25.4,
    LengthUnit.METER: 100 / 2.54,
}

# Multiply a value in the given unit by the factor to get pounds
POUNDS_PER_UNIT: dict[WeightUnit, float] = {
    WeightUnit.POUND: 1.0,
    WeightUnit.KILOGRAM: 2.20462,
    WeightUnit.GRAM: 0.00220462,
    WeightUnit.OUNCE: 0.0625,
}

_LENGTH_ALIASES: dict[str, LengthUnit] = {
    "in": LengthUnit.INCH,
    "inch": LengthUnit.INCH,
    "inches": LengthUnit.INCH,
    '"': LengthUnit.INCH,
    "cm": LengthUnit.CENTIMETER,
    "centimeter": LengthUnit.CENTIMETER,
    "centimeters": LengthUnit.CENTIMETER,
    "mm": LengthUnit.MILLIMETER,
    "millimeter": LengthUnit.MILLIMETER,
    "millimeters": LengthUnit.MILLIMETER,
    "m": LengthUnit.METER,
    "meter": LengthUnit.METER,
    "meters": LengthUnit.METER,
}

_WEIGHT_ALIASES: dict[str, WeightUnit] = {
    "lb": WeightUnit.POUND,
    "lbs": WeightUnit.POUND,
    "pound": WeightUnit.POUND,
    "pounds": WeightUnit.POUND,
    "kg": WeightUnit.KILOGRAM,
    "kgs": WeightUnit.KILOGRAM,
    "kilogram": WeightUnit.KILOGRAM,
    "kilograms": WeightUnit.KILOGRAM,
    "g": WeightUnit.GRAM,
    "gram": WeightUnit.GRAM,
    "grams": WeightUnit.GRAM,
    "oz": WeightUnit.OUNCE,
    "ounce": WeightUnit.OUNCE,
    "ounces": WeightUnit.OUNCE,
}


def parse_length_unit(unit: str | LengthUnit) -> LengthUnit:
    """Resolve a length unit string like 'cm' or 'Inches'.

    Raises ValueError for anything not in the conversion table.
    """
    if isinstance(unit, LengthUnit):
        return unit
    resolved = _LENGTH_ALIASES.get(str(unit).strip().lower())
    if resolved is None:
        raise ValueError(f"Unsupported length unit: {unit!r}")
    return resolved


def parse_weight_unit(unit: str | WeightUnit) -> WeightUnit:
    """Resolve a weight unit string like 'kg' or 'lbs'."""
    if isinstance(unit, WeightUnit):
        return unit
    resolved = _WEIGHT_ALIASES.get(str(unit).strip().lower())
    if resolved is None:
        raise ValueError(f"Unsupported weight unit: {unit!r}")
    return resolved


def to_inches(value: float, unit: str | LengthUnit) -> float:
    return value * INCHES_PER_UNIT[parse_length_unit(unit)]


def to_pounds(value: float, unit: str | WeightUnit) -> float:
    return value * POUNDS_PER_UNIT[parse_weight_unit(unit)]


def normalize_dimensions(
    length: float, width: float, height: float, unit: str | LengthUnit
) -> tuple[float, float, float]:
    """Convert an L x W x H box to inches.

    Examples:
        >>> normalize_dimensions(10, 5, 2, "in")
        (10.0, 5.0, 2.0)
    """
    factor = INCHES_PER_UNIT[parse_length_unit(unit)]
    return (length * factor, width * factor, height * factor)


def normalize_weight(value: float, unit: str | WeightUnit) -> float:
    """Convert a weight to pounds."""
    return to_pounds(value, unit)
