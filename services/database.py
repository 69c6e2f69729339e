"""
Data Access Service

Every read and write of the six tracker tables goes through here. Each call
first checks its table (SELECT 1 ... LIMIT 1) so a database without the
schema fails fast with a clear message instead of a raw driver error.

Writes are upserts: day records are keyed by (date, user_id), plans by
(id, user_id), settings by user_id. Failures are normalized into StoreError
and reported through optional SaveCallbacks before being raised.
"""

import logging

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from constants.validation import MACRO_FIELDS, MAX_NUMERIC_VALUE, VALID_STORAGE_PREFERENCES
from models import (
    db, new_id, TABLE_MODELS,
    WorkoutPlan, DietPlan, WorkoutHistory, DietHistory, MacroHistory, UserSettings,
)
from services.normalize import (
    normalize_workout_plan, normalize_diet_plan, normalize_workout_day, normalize_meals,
    is_workout_complete, is_diet_complete,
)
from utils.context import parse_date, format_date, today
from utils.sanitizer import safe_int

logger = logging.getLogger(__name__)

# StoreError codes
TABLE_MISSING = 'TABLE_MISSING'
DUPLICATE = 'DUPLICATE'
FOREIGN_KEY = 'FOREIGN_KEY'
INVALID_DATE = 'INVALID_DATE'
FUTURE_DATE = 'FUTURE_DATE'
CONNECTION = 'CONNECTION'
UNKNOWN = 'UNKNOWN'

TABLE_MISSING_MESSAGE = "Table does not exist. Please run the database setup script."

PROGRESS_TABLES = ('workout_history', 'diet_history', 'macro_history')

DEFAULT_DATABASE_STATUS = {
    'checked': False,
    'isReady': False,
    'message': 'Database status not checked',
}

DEFAULT_STORAGE_PREFERENCE = 'database'


class StoreError(Exception):
    """A failed store operation, normalized from whatever the driver raised."""

    def __init__(self, message, code=UNKNOWN, original=None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.original = original

    def to_dict(self):
        return {'message': self.message, 'code': self.code}


class SaveCallbacks:
    """
    Optional hooks around a write.

    on_saving() fires before the write, on_success(result) after the commit,
    on_error(StoreError) when it fails.
    """

    def __init__(self, on_saving=None, on_success=None, on_error=None):
        self.on_saving = on_saving
        self.on_success = on_success
        self.on_error = on_error

    def saving(self):
        if self.on_saving:
            self.on_saving()

    def success(self, result=None):
        if self.on_success:
            self.on_success(result)

    def error(self, error):
        if self.on_error:
            self.on_error(error)


_NO_CALLBACKS = SaveCallbacks()


# ============================================
# ERRORS AND TABLE CHECKS
# ============================================

def handle_store_error(operation, error):
    """
    Turn any exception raised during `operation` into a StoreError.

    The message names the operation; the code classifies the failure.
    """
    if isinstance(error, StoreError):
        logger.error("%s failed: %s (%s)", operation, error.message, error.code)
        return error

    text = str(getattr(error, 'orig', None) or error)
    lowered = text.lower()

    if 'no such table' in lowered or 'does not exist' in lowered or 'undefinedtable' in lowered:
        result = StoreError(TABLE_MISSING_MESSAGE, TABLE_MISSING, error)
    elif isinstance(error, IntegrityError) and 'foreign key' in lowered:
        result = StoreError("Foreign key violation. Referenced record does not exist.", FOREIGN_KEY, error)
    elif isinstance(error, IntegrityError):
        result = StoreError("Duplicate entry. A record with the same unique key already exists.", DUPLICATE, error)
    elif isinstance(error, OperationalError) or (
            isinstance(error, DBAPIError) and error.connection_invalidated):
        result = StoreError(f"{operation} failed: could not reach the database ({text})", CONNECTION, error)
    else:
        result = StoreError(f"{operation} failed: {text}", UNKNOWN, error)

    logger.error("%s failed: %s (%s)", operation, result.message, result.code, exc_info=error)
    return result


def _check_table_name(table_name):
    if table_name not in TABLE_MODELS:
        raise ValueError(f"Unknown table: {table_name}")


def table_exists(table_name):
    """Check a tracker table with a one-row select."""
    _check_table_name(table_name)
    try:
        db.session.execute(db.text(f"SELECT 1 FROM {table_name} LIMIT 1"))
        return True
    except Exception:
        db.session.rollback()
        logger.warning("Table %s does not exist", table_name)
        return False


def require_table(table_name):
    if not table_exists(table_name):
        raise StoreError(TABLE_MISSING_MESSAGE, TABLE_MISSING)


def check_connection():
    """
    Check that the database answers at all.

    Returns:
        dict with 'connected' and, on failure, 'error' (a StoreError dict)
    """
    try:
        db.session.execute(db.text("SELECT 1"))
        return {'connected': True}
    except Exception as e:
        db.session.rollback()
        error = handle_store_error('Checking connection', e)
        error.code = CONNECTION
        return {'connected': False, 'error': error.to_dict()}


def validate_date(value, allow_future=False):
    """
    Check a YYYY-MM-DD string for a write.

    Returns the canonical date string; raises StoreError otherwise.
    """
    parsed = parse_date(value)
    if parsed is None:
        raise StoreError(f"Invalid date format: {value}. Expected YYYY-MM-DD", INVALID_DATE)
    if not allow_future and parsed > today():
        raise StoreError(f"Cannot save progress for a future date: {value}", FUTURE_DATE)
    return format_date(parsed)


def _write(operation, table_name, work, callbacks=None, commit=True):
    """
    Run one write against `table_name`.

    With commit=False the caller owns the transaction and any rollback.
    """
    callbacks = callbacks or _NO_CALLBACKS
    callbacks.saving()
    try:
        require_table(table_name)
        result = work()
        if commit:
            db.session.commit()
    except Exception as e:
        if commit:
            db.session.rollback()
        error = handle_store_error(operation, e)
        callbacks.error(error)
        if error is e:
            raise
        raise error from e
    callbacks.success(result)
    return result


def _read(operation, table_name, work, default):
    """Run one read; a missing table yields `default`."""
    if not table_exists(table_name):
        return default
    try:
        return work()
    except Exception as e:
        db.session.rollback()
        error = handle_store_error(operation, e)
        if error is e:
            raise
        raise error from e


def _delete_where(model, table_name, commit=True, **filters):
    """Delete matching rows, returning how many went. A missing table deletes nothing."""
    if not table_exists(table_name):
        return 0
    try:
        count = model.query.filter_by(**filters).delete(synchronize_session=False)
        if commit:
            db.session.commit()
        return count
    except Exception as e:
        if commit:
            db.session.rollback()
        error = handle_store_error(f"Deleting from {table_name}", e)
        if error is e:
            raise
        raise error from e


def _upsert_day(model, user_id, date, values):
    record = model.query.filter_by(user_id=user_id, date=date).first()
    if record is None:
        record = model(id=values.pop('id', None) or new_id(), user_id=user_id, date=date)
        db.session.add(record)
    else:
        values.pop('id', None)
    for key, value in values.items():
        setattr(record, key, value)
    db.session.flush()
    return record.to_dict()


# ============================================
# WORKOUT PLANS
# ============================================

def get_workout_plans(user_id):
    return _read(
        'Fetching workout plans', 'workout_plans',
        lambda: [p.to_dict() for p in WorkoutPlan.query.filter_by(user_id=user_id)
                 .order_by(WorkoutPlan.created_at).all()],
        [],
    )


def get_workout_plan(user_id, plan_id):
    return _read(
        'Fetching workout plan', 'workout_plans',
        lambda: _first_dict(WorkoutPlan.query.filter_by(user_id=user_id, id=plan_id)),
        None,
    )


def save_workout_plan(user_id, plan, callbacks=None, commit=True):
    """Insert or replace a custom workout plan. Plans without an id get one."""
    plan = normalize_workout_plan(plan)
    plan['id'] = plan['id'] or new_id()

    def work():
        record = WorkoutPlan.query.filter_by(user_id=user_id, id=plan['id']).first()
        if record is None:
            record = WorkoutPlan(id=plan['id'], user_id=user_id)
            db.session.add(record)
        record.name = plan['name']
        record.description = plan['description']
        record.days = plan['days']
        db.session.flush()
        return record.to_dict()

    return _write('Saving workout plan', 'workout_plans', work, callbacks, commit)


def delete_workout_plans(user_id, commit=True):
    return _delete_where(WorkoutPlan, 'workout_plans', commit, user_id=user_id)


# ============================================
# DIET PLANS
# ============================================

def get_diet_plans(user_id):
    return _read(
        'Fetching diet plans', 'diet_plans',
        lambda: [p.to_dict() for p in DietPlan.query.filter_by(user_id=user_id)
                 .order_by(DietPlan.created_at).all()],
        [],
    )


def get_diet_plan(user_id, plan_id):
    return _read(
        'Fetching diet plan', 'diet_plans',
        lambda: _first_dict(DietPlan.query.filter_by(user_id=user_id, id=plan_id)),
        None,
    )


def save_diet_plan(user_id, plan, callbacks=None, commit=True):
    """Insert or replace a custom diet plan."""
    plan = normalize_diet_plan(plan)
    plan['id'] = plan['id'] or new_id()

    def work():
        record = DietPlan.query.filter_by(user_id=user_id, id=plan['id']).first()
        if record is None:
            record = DietPlan(id=plan['id'], user_id=user_id)
            db.session.add(record)
        record.name = plan['name']
        record.description = plan['description']
        record.target_calories = plan['targetCalories']
        record.target_protein = plan['targetProtein']
        record.target_carbs = plan['targetCarbs']
        record.target_fats = plan['targetFats']
        record.meals = plan['meals']
        db.session.flush()
        return record.to_dict()

    return _write('Saving diet plan', 'diet_plans', work, callbacks, commit)


def delete_diet_plans(user_id, commit=True):
    return _delete_where(DietPlan, 'diet_plans', commit, user_id=user_id)


# ============================================
# WORKOUT HISTORY
# ============================================

def _history_query(model, user_id, since=None, until=None):
    query = model.query.filter_by(user_id=user_id)
    if since:
        query = query.filter(model.date >= since)
    if until:
        query = query.filter(model.date <= until)
    return query.order_by(model.date)


def _first_dict(query):
    record = query.first()
    return record.to_dict() if record else None


def get_workout_history(user_id, since=None, until=None):
    """Dated workouts for a user, oldest first."""
    return _read(
        'Fetching workout history', 'workout_history',
        lambda: [r.to_dict() for r in _history_query(WorkoutHistory, user_id, since, until).all()],
        [],
    )


def get_workout_day(user_id, date):
    return _read(
        'Fetching workout day', 'workout_history',
        lambda: _first_dict(WorkoutHistory.query.filter_by(user_id=user_id, date=date)),
        None,
    )


def save_workout_day(user_id, date, workout, callbacks=None, commit=True):
    """
    Upsert the workout performed on `date`.

    `completed` is recomputed from the exercises; whatever the caller sent
    for it is ignored.
    """
    workout = normalize_workout_day(workout)

    def work():
        day = validate_date(date)
        return _upsert_day(WorkoutHistory, user_id, day, {
            'workout': workout,
            'completed': is_workout_complete(workout),
        })

    return _write('Saving workout', 'workout_history', work, callbacks, commit)


def delete_workout_day(user_id, date, commit=True):
    return _delete_where(WorkoutHistory, 'workout_history', commit, user_id=user_id, date=date)


def delete_workout_history(user_id, commit=True):
    return _delete_where(WorkoutHistory, 'workout_history', commit, user_id=user_id)


# ============================================
# DIET HISTORY
# ============================================

def get_diet_history(user_id, since=None, until=None):
    return _read(
        'Fetching diet history', 'diet_history',
        lambda: [r.to_dict() for r in _history_query(DietHistory, user_id, since, until).all()],
        [],
    )


def get_diet_day(user_id, date):
    return _read(
        'Fetching diet day', 'diet_history',
        lambda: _first_dict(DietHistory.query.filter_by(user_id=user_id, date=date)),
        None,
    )


def save_diet_day(user_id, date, meals, callbacks=None, commit=True):
    """Upsert the diet day for `date`, recomputing `completed` from the items."""
    meals = normalize_meals(meals)

    def work():
        day = validate_date(date)
        return _upsert_day(DietHistory, user_id, day, {
            'meals': meals,
            'completed': is_diet_complete(meals),
        })

    return _write('Saving diet day', 'diet_history', work, callbacks, commit)


def delete_diet_day(user_id, date, commit=True):
    return _delete_where(DietHistory, 'diet_history', commit, user_id=user_id, date=date)


def delete_diet_history(user_id, commit=True):
    return _delete_where(DietHistory, 'diet_history', commit, user_id=user_id)


# ============================================
# MACRO HISTORY
# ============================================

def get_macro_history(user_id, since=None, until=None):
    return _read(
        'Fetching macro history', 'macro_history',
        lambda: [r.to_dict() for r in _history_query(MacroHistory, user_id, since, until).all()],
        [],
    )


def save_macros(user_id, date, macros, callbacks=None, commit=True):
    """
    Upsert the macro totals for `date`, rounded to whole numbers.

    A day with nothing eaten is not written; the call still reports success.
    """
    callbacks = callbacks or _NO_CALLBACKS
    values = {
        field: safe_int((macros or {}).get(field), 0, min_val=0, max_val=MAX_NUMERIC_VALUE)
        for field in MACRO_FIELDS
    }

    if not any(values.values()):
        callbacks.saving()
        logger.debug("Skipping macro save for %s: all values are zero", date)
        callbacks.success(None)
        return None

    def work():
        day = validate_date(date)
        return _upsert_day(MacroHistory, user_id, day, dict(values))

    return _write('Saving macros', 'macro_history', work, callbacks, commit)


def delete_macros(user_id, date, commit=True):
    return _delete_where(MacroHistory, 'macro_history', commit, user_id=user_id, date=date)


def delete_macro_history(user_id, commit=True):
    return _delete_where(MacroHistory, 'macro_history', commit, user_id=user_id)


# ============================================
# USER SETTINGS
# ============================================

def _default_settings(user_id):
    return {
        'id': None,
        'user_id': user_id,
        'current_workout_plan_id': None,
        'current_diet_plan_id': None,
        'storage_preference': DEFAULT_STORAGE_PREFERENCE,
        'database_status': None,
    }


def get_user_settings(user_id):
    """The user's settings row as a dict, or defaults when there is none yet."""
    settings = _read(
        'Fetching user settings', 'user_settings',
        lambda: _first_dict(UserSettings.query.filter_by(user_id=user_id)),
        None,
    )
    return settings or _default_settings(user_id)


def _settings_row(user_id):
    record = UserSettings.query.filter_by(user_id=user_id).first()
    if record is None:
        record = UserSettings(
            id=new_id(),
            user_id=user_id,
            storage_preference=DEFAULT_STORAGE_PREFERENCE,
        )
        db.session.add(record)
    return record


def _update_settings(operation, user_id, values, callbacks=None, commit=True):
    def work():
        record = _settings_row(user_id)
        for key, value in values.items():
            setattr(record, key, value)
        db.session.flush()
        return record.to_dict()

    return _write(operation, 'user_settings', work, callbacks, commit)


def set_current_workout_plan(user_id, plan_id, callbacks=None, commit=True):
    """Point the user's workout marker at `plan_id`. '' means explicitly none."""
    return _update_settings('Setting current workout plan', user_id,
                            {'current_workout_plan_id': plan_id}, callbacks, commit)


def set_current_diet_plan(user_id, plan_id, callbacks=None, commit=True):
    return _update_settings('Setting current diet plan', user_id,
                            {'current_diet_plan_id': plan_id}, callbacks, commit)


def set_storage_preference(user_id, preference, callbacks=None, commit=True):
    if preference not in VALID_STORAGE_PREFERENCES:
        raise StoreError(f"Unknown storage preference: {preference}", UNKNOWN)
    return _update_settings('Setting storage preference', user_id,
                            {'storage_preference': preference}, callbacks, commit)


def get_database_status(user_id):
    """Last schema status stored for the user, or the 'not checked' default."""
    status = get_user_settings(user_id).get('database_status')
    if isinstance(status, dict) and status:
        return status
    return dict(DEFAULT_DATABASE_STATUS)


def store_database_status(user_id, status, callbacks=None):
    return _update_settings('Storing database status', user_id,
                            {'database_status': status}, callbacks)


# ============================================
# BULK
# ============================================

_PROGRESS_MODELS = {
    'workout_history': WorkoutHistory,
    'diet_history': DietHistory,
    'macro_history': MacroHistory,
}


def clear_all_progress(user_id):
    """
    Delete every progress row of the user, table by table.

    Plans and settings survive. One failing table does not stop the others.

    Returns:
        dict with 'success', 'message' and per-table 'details'
    """
    connection = check_connection()
    if not connection['connected']:
        logger.error("Cannot clear progress: database connection failed")
        return {
            'success': False,
            'message': 'Failed to connect to the database',
            'details': connection,
        }

    results = {}
    for table_name in PROGRESS_TABLES:
        if not table_exists(table_name):
            results[table_name] = {'success': True, 'message': 'Table does not exist, skipping'}
            continue
        try:
            deleted = _delete_where(_PROGRESS_MODELS[table_name], table_name, user_id=user_id)
            results[table_name] = {'success': True, 'deleted': deleted}
            logger.info("Cleared %d rows from %s for %s", deleted, table_name, user_id)
        except StoreError as e:
            results[table_name] = {'success': False, 'error': e.message, 'code': e.code}

    if any(not result['success'] for result in results.values()):
        return {
            'success': False,
            'message': 'Some tables could not be cleared. Check details for more information.',
            'details': results,
        }

    return {
        'success': True,
        'message': 'Successfully cleared all progress data',
        'details': results,
    }
