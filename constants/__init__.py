"""
Constants Package

Plan catalog and validation whitelists.
"""

from .catalog import (
    DEFAULT_WORKOUT_PLAN_ID,
    DEFAULT_DIET_PLAN_ID,
    LEGACY_DEFAULT_IDS,
    IMPORTED_WORKOUT_PLAN_ID,
    IMPORTED_DIET_PLAN_ID,
    WORKOUT_PLANS,
    DIET_PLANS,
    EMPTY_WORKOUT_PLAN,
    EMPTY_DIET_PLAN,
)

from .validation import (
    DATE_PATTERN,
    WORKOUT,
    DIET,
    VALID_DOMAINS,
    VALID_STORAGE_PREFERENCES,
    VALID_TIME_RANGES,
    MACRO_FIELDS,
    MAX_LENGTHS,
    MAX_NUMERIC_VALUE,
)
