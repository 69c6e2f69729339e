"""
Plan Normalization Service

Reshapes workout and diet plans coming from import files, request bodies or
the database into one canonical form, and clones day records so callers never
mutate shared structures.

Two meal shapes exist in exported files:
- legacy:  {"meal": "Breakfast", "time": "8:00 AM", "foodItems": ["Eggs"]}
- current: {"name": "Breakfast", "time": "8:00 AM", "items": [{...}]}
"""

import copy
import json
import logging
from datetime import datetime, timezone

from constants.catalog import IMPORTED_WORKOUT_PLAN_ID, IMPORTED_DIET_PLAN_ID
from constants.validation import MACRO_FIELDS, MAX_LENGTHS, MAX_NUMERIC_VALUE
from utils.sanitizer import sanitize_text, sanitize_name, safe_float, safe_int, safe_bool

logger = logging.getLogger(__name__)

EXPORT_VERSION = '1.0'

LEGACY_MEAL = 'legacy'
CURRENT_MEAL = 'current'


class PlanImportError(Exception):
    """Raised when an import document holds no usable plan."""
    pass


# ============================================
# MEAL ITEMS AND MEALS
# ============================================

def _macro(value):
    return safe_float(value, 0.0, min_val=0, max_val=MAX_NUMERIC_VALUE)


def normalize_item(item):
    """Meal item as a dict with a name, completed flag and four macros."""
    if isinstance(item, str):
        item = {'name': item}
    elif not isinstance(item, dict):
        item = {}

    normalized = {
        'name': sanitize_name(item.get('name'), 'Unknown item', MAX_LENGTHS['item_name']),
        'completed': safe_bool(item.get('completed', False)),
    }
    for field in MACRO_FIELDS:
        normalized[field] = _macro(item.get(field))
    return normalized


def classify_meal(meal):
    """
    Tell which export shape a meal uses.

    A meal with `items` is current even if it also carries legacy keys;
    otherwise `meal` or `foodItems` mark it legacy.
    """
    if not isinstance(meal, dict):
        return CURRENT_MEAL
    if 'items' in meal:
        return CURRENT_MEAL
    if 'meal' in meal or 'foodItems' in meal:
        return LEGACY_MEAL
    return CURRENT_MEAL


def normalize_meal(meal):
    if not isinstance(meal, dict):
        meal = {}

    if classify_meal(meal) == LEGACY_MEAL:
        name = meal.get('name') or meal.get('meal')
        raw_items = meal.get('foodItems')
    else:
        name = meal.get('name')
        raw_items = meal.get('items')

    if not isinstance(raw_items, list):
        raw_items = []

    normalized = {
        'name': sanitize_name(name, '', MAX_LENGTHS['meal_name']),
        'time': sanitize_name(meal.get('time'), '', MAX_LENGTHS['meal_time']),
        'items': [normalize_item(item) for item in raw_items],
    }

    # Aggregate macros are optional and only kept when the source has them
    for field in MACRO_FIELDS:
        if field in meal:
            normalized[field] = _macro(meal.get(field))

    return normalized


def normalize_meals(meals):
    if not isinstance(meals, list):
        return []
    return [normalize_meal(meal) for meal in meals]


# ============================================
# EXERCISES AND WORKOUT DAYS
# ============================================

def normalize_exercise(exercise):
    if isinstance(exercise, str):
        exercise = {'name': exercise}
    elif not isinstance(exercise, dict):
        exercise = {}

    return {
        'name': sanitize_name(exercise.get('name'), 'Unknown exercise', MAX_LENGTHS['exercise_name']),
        'sets': sanitize_name(exercise.get('sets'), '', MAX_LENGTHS['sets']),
        'reps': safe_int(exercise.get('reps'), 0, min_val=0, max_val=MAX_NUMERIC_VALUE),
        'completed': safe_bool(exercise.get('completed', False)),
    }


def normalize_workout_day(day):
    if not isinstance(day, dict):
        day = {}
    exercises = day.get('exercises')
    if not isinstance(exercises, list):
        exercises = []
    return {
        'name': sanitize_name(day.get('name'), '', MAX_LENGTHS['day_name']),
        'exercises': [normalize_exercise(exercise) for exercise in exercises],
    }


# ============================================
# PLANS
# ============================================

def normalize_workout_plan(plan):
    """Canonical workout plan: id, name, description and a list of days."""
    if not isinstance(plan, dict):
        raise PlanImportError("Workout plan must be an object")

    days = plan.get('days')
    if not isinstance(days, list):
        days = []

    return {
        'id': sanitize_text(plan.get('id') or '', 64),
        'name': sanitize_name(plan.get('name'), '', MAX_LENGTHS['plan_name']),
        'description': sanitize_text(plan.get('description') or '', MAX_LENGTHS['description']),
        'days': [normalize_workout_day(day) for day in days],
    }


def normalize_diet_plan(plan):
    """Canonical diet plan: targets plus meals in the current shape."""
    if not isinstance(plan, dict):
        raise PlanImportError("Diet plan must be an object")

    normalized = {
        'id': sanitize_text(plan.get('id') or '', 64),
        'name': sanitize_name(plan.get('name'), '', MAX_LENGTHS['plan_name']),
        'description': sanitize_text(plan.get('description') or '', MAX_LENGTHS['description']),
    }
    for key in ('targetCalories', 'targetProtein', 'targetCarbs', 'targetFats'):
        normalized[key] = safe_int(plan.get(key), 0, min_val=0, max_val=MAX_NUMERIC_VALUE)
    normalized['meals'] = normalize_meals(plan.get('meals'))
    return normalized


def as_imported_workout_plan(plan):
    normalized = normalize_workout_plan(plan)
    normalized['id'] = IMPORTED_WORKOUT_PLAN_ID
    return normalized


def as_imported_diet_plan(plan):
    normalized = normalize_diet_plan(plan)
    normalized['id'] = IMPORTED_DIET_PLAN_ID
    return normalized


def _looks_like_diet_plan(plan):
    return isinstance(plan, dict) and ('meals' in plan or 'targetCalories' in plan)


def _looks_like_workout_plan(plan):
    return isinstance(plan, dict) and 'days' in plan


def parse_import_document(data):
    """
    Pick the plans out of an import document.

    Accepts a JSON string or already-decoded data in any of three layouts:
    an object with `workoutPlans` / `dietPlans` arrays, a bare plan object,
    or a bare array of plans. Only the first plan of each kind is used.

    Returns:
        (workout_plan, diet_plan) with None for a kind that is absent

    Raises:
        PlanImportError: when the document is not JSON or contains no plan
    """
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except ValueError as e:
            raise PlanImportError(f"Error parsing JSON: {e}")

    workout_candidates = []
    diet_candidates = []

    if isinstance(data, dict) and ('workoutPlans' in data or 'dietPlans' in data):
        for key, bucket in (('workoutPlans', workout_candidates), ('dietPlans', diet_candidates)):
            plans = data.get(key)
            if plans is None:
                continue
            if not isinstance(plans, list):
                raise PlanImportError(f"'{key}' must be an array")
            bucket.extend(plans)
    elif isinstance(data, list):
        for plan in data:
            if _looks_like_diet_plan(plan):
                diet_candidates.append(plan)
            elif _looks_like_workout_plan(plan):
                workout_candidates.append(plan)
    elif isinstance(data, dict):
        if _looks_like_diet_plan(data):
            diet_candidates.append(data)
        elif _looks_like_workout_plan(data):
            workout_candidates.append(data)
    else:
        raise PlanImportError("Import data must be a JSON object or array")

    workout_plan = as_imported_workout_plan(workout_candidates[0]) if workout_candidates else None
    diet_plan = as_imported_diet_plan(diet_candidates[0]) if diet_candidates else None

    if workout_plan is None and diet_plan is None:
        raise PlanImportError("No valid workout or diet plans found in import data")

    logger.debug(
        "Parsed import document: %d workout, %d diet candidates",
        len(workout_candidates), len(diet_candidates),
    )
    return workout_plan, diet_plan


def export_plans(workout_plans=None, diet_plans=None, exported_at=None):
    """Build the export document for the given plans."""
    exported_at = exported_at or datetime.now(timezone.utc)
    return {
        'workoutPlans': [normalize_workout_plan(plan) for plan in (workout_plans or [])],
        'dietPlans': [normalize_diet_plan(plan) for plan in (diet_plans or [])],
        'exportDate': exported_at.isoformat(),
        'version': EXPORT_VERSION,
    }


def export_plans_to_json(workout_plans=None, diet_plans=None, exported_at=None):
    return json.dumps(export_plans(workout_plans, diet_plans, exported_at), indent=2)


# ============================================
# DAY RECORDS
# ============================================

def clone(value):
    """Deep copy of a plan or day payload."""
    return copy.deepcopy(value)


def fresh_workout_day(template_day):
    """Clone a plan day with every exercise reset to not done, zero reps."""
    day = normalize_workout_day(clone(template_day))
    for exercise in day['exercises']:
        exercise['completed'] = False
        exercise['reps'] = 0
    return day


def fresh_diet_meals(meals):
    """Clone plan meals with every item reset to not eaten."""
    fresh = normalize_meals(clone(meals))
    for meal in fresh:
        for item in meal['items']:
            item['completed'] = False
    return fresh


def is_workout_complete(workout):
    """True iff there is at least one exercise and every exercise is done."""
    exercises = (workout or {}).get('exercises') or []
    return bool(exercises) and all(exercise.get('completed') for exercise in exercises)


def is_diet_complete(meals):
    """True iff there is at least one item and every item of every meal is eaten."""
    items = [item for meal in (meals or []) for item in (meal.get('items') or [])]
    return bool(items) and all(item.get('completed') for item in items)


def sum_completed_macros(meals):
    """Macro totals over eaten items, rounded to whole numbers."""
    totals = dict.fromkeys(MACRO_FIELDS, 0.0)
    for meal in meals or []:
        for item in meal.get('items') or []:
            if not item.get('completed'):
                continue
            for field in MACRO_FIELDS:
                totals[field] += safe_float(item.get(field), 0.0)
    return {field: int(round(value)) for field, value in totals.items()}
