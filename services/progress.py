"""
Daily Progress Service

Builds the editable checklist for one date and keeps it in step with the
store. A day record comes from the cache, then the database, and is otherwise
cloned from the current plan's template. Edits go to a copy of the record,
update the cache and are written back through the debouncer.
"""

import logging
from datetime import timedelta

from constants.validation import WORKOUT, DIET
from services import database, stats
from services.autosave import SAVED, ERROR
from services.cache import WORKOUT_HISTORY, DIET_HISTORY, MACRO_HISTORY
from services.database import StoreError, SaveCallbacks
from services.normalize import (
    clone, fresh_workout_day, fresh_diet_meals, normalize_workout_day, normalize_meals,
    is_workout_complete, is_diet_complete, sum_completed_macros,
)
from utils.context import parse_date, format_date
from utils.sanitizer import safe_int

logger = logging.getLogger(__name__)

FUTURE_DATE_NOTICE = "You can't track future dates. Showing today instead."


def workout_day_for(plan, day):
    """Template day for a calendar date: days[weekday % len(days)], Monday = 0."""
    days = plan.get('days') or []
    if not days:
        return {'name': '', 'exercises': []}
    return days[day.weekday() % len(days)]


class DayProgress:
    """Shared date handling, caching and write-back of one domain."""

    domain = None
    section = None

    def __init__(self, user_id, plan, today, cache=None, debouncer=None):
        self.user_id = user_id
        self.plan = plan
        self.today = today
        self.cache = cache
        self.debouncer = debouncer

    # ----- dates -----

    def resolve_date(self, value=None):
        """
        Turn a requested date into the date to work on.

        Returns (date, notice). Missing dates mean today; dates after today
        are moved to today and come back with a notice for the user.

        Raises:
            ValueError: when the value is not a YYYY-MM-DD date
        """
        if value in (None, ''):
            return self.today, None
        parsed = parse_date(value)
        if parsed is None:
            raise ValueError(f"Invalid date: {value}. Expected YYYY-MM-DD")
        if parsed > self.today:
            logger.info("Redirecting future date %s to %s", value, self.today)
            return self.today, FUTURE_DATE_NOTICE
        return parsed, None

    # ----- history -----

    def _load_history(self):
        raise NotImplementedError

    def _load_day(self, date_str):
        raise NotImplementedError

    def history(self):
        """Cached day records, oldest first."""
        if self.cache is None:
            return self._load_history()
        return self.cache.get_history(self.user_id, self.section, self._load_history, self.today)

    def _since(self):
        limit = self.cache.limit if self.cache is not None else 90
        return format_date(self.today - timedelta(days=limit))

    def resolve_day(self, day):
        """
        The record for a date: unsaved edits, cache, store, then a fresh
        template copy.

        Returns (record, stored) where stored tells whether it came from
        saved history or a pending write.
        """
        date_str = format_date(day)
        if self.debouncer is not None:
            pending = self.debouncer.pending_payload(self._key(date_str))
            if pending is not None:
                return pending, True

        if self.cache is not None:
            self.history()
            cached = self.cache.get_day(self.user_id, self.section, date_str)
            if cached is not None:
                return cached, True

        try:
            record = self._load_day(date_str)
        except StoreError as e:
            logger.warning("Could not load %s for %s: %s", self.domain, date_str, e.message)
            record = None
        if record is not None:
            return record, True

        return self.new_day(day), False

    def new_day(self, day):
        raise NotImplementedError

    def recompute(self, record):
        raise NotImplementedError

    # ----- writes -----

    def _key(self, date_str):
        return (self.user_id, self.domain, date_str)

    def _remember(self, record):
        if self.cache is not None:
            self.cache.put_day(self.user_id, self.section, record, self.today)

    def _persist(self, record):
        raise NotImplementedError

    def _callbacks(self, date_str):
        return SaveCallbacks(
            on_saving=lambda: logger.debug("Saving %s for %s", self.domain, date_str),
            on_error=lambda error: logger.error(
                "Saving %s for %s failed: %s", self.domain, date_str, error.message),
        )

    def _schedule(self, record):
        snapshot = clone(record)
        if self.debouncer is None:
            return self._save_now(snapshot)
        return self.debouncer.schedule(
            self._key(record['date']), lambda: self._persist(snapshot), payload=snapshot
        )

    def _save_now(self, record):
        try:
            self._persist(record)
        except StoreError:
            return ERROR
        return SAVED

    def _edit(self, value, mutate):
        day, notice = self.resolve_date(value)
        record, _ = self.resolve_day(day)
        record = clone(record)
        mutate(record)
        self.recompute(record)
        self._remember(record)
        status = self._schedule(record)
        return {'date': record['date'], 'notice': notice, 'day': record, 'saveStatus': status}

    def view(self, value=None):
        """The day record for a requested date, plus streak and completion."""
        day, notice = self.resolve_date(value)
        record, stored = self.resolve_day(day)
        return {
            'date': format_date(day),
            'notice': notice,
            'day': record,
            'stored': stored,
            'streak': self.compute_streak(),
        }

    def save(self, value=None):
        """
        Write the current record for a date right away.

        A pending auto-save of the same day is dropped; this write carries
        the newer state.
        """
        day, notice = self.resolve_date(value)
        record, _ = self.resolve_day(day)
        record = clone(record)
        self.recompute(record)
        if self.debouncer is not None:
            self.debouncer.cancel(self._key(record['date']))
        try:
            self._persist(record)
        except StoreError as e:
            return {'success': False, 'date': record['date'], 'notice': notice,
                    'message': e.message, 'code': e.code, 'saveStatus': ERROR}
        self._remember(record)
        return {'success': True, 'date': record['date'], 'notice': notice,
                'day': record, 'saveStatus': SAVED}

    def reset_day(self, value=None):
        """Forget a day's saved progress and return a fresh template copy."""
        day, notice = self.resolve_date(value)
        date_str = format_date(day)
        if self.debouncer is not None:
            self.debouncer.cancel(self._key(date_str))
        try:
            self._delete(date_str)
        except StoreError as e:
            return {'success': False, 'date': date_str, 'notice': notice,
                    'message': e.message, 'code': e.code}
        self._forget(date_str)
        return {'success': True, 'date': date_str, 'notice': notice, 'day': self.new_day(day)}

    def _delete(self, date_str):
        raise NotImplementedError

    def _forget(self, date_str):
        if self.cache is not None:
            self.cache.drop_day(self.user_id, self.section, date_str)

    def compute_streak(self):
        return stats.compute_streak(self.history(), self.today)


class WorkoutProgress(DayProgress):
    domain = WORKOUT
    section = WORKOUT_HISTORY

    def _load_history(self):
        return database.get_workout_history(self.user_id, since=self._since())

    def _load_day(self, date_str):
        return database.get_workout_day(self.user_id, date_str)

    def new_day(self, day):
        workout = fresh_workout_day(workout_day_for(self.plan, day))
        return {'date': format_date(day), 'workout': workout, 'completed': False}

    def recompute(self, record):
        record['workout'] = normalize_workout_day(record.get('workout'))
        record['completed'] = is_workout_complete(record['workout'])

    def _exercise(self, record, index):
        exercises = record['workout']['exercises']
        if not isinstance(index, int) or not 0 <= index < len(exercises):
            raise IndexError(f"No exercise at position {index}")
        return exercises[index]

    def toggle_item(self, value, exercise_index):
        """Flip one exercise between done and not done."""
        def mutate(record):
            self.recompute(record)
            exercise = self._exercise(record, exercise_index)
            exercise['completed'] = not exercise.get('completed')
        return self._edit(value, mutate)

    def set_reps(self, value, exercise_index, reps):
        def mutate(record):
            self.recompute(record)
            exercise = self._exercise(record, exercise_index)
            exercise['reps'] = safe_int(reps, 0, min_val=0)
        return self._edit(value, mutate)

    def _persist(self, record):
        saved = database.save_workout_day(
            self.user_id, record['date'], record['workout'], self._callbacks(record['date'])
        )
        self._log_exercises(saved)
        return saved

    def _log_exercises(self, record):
        if self.cache is None:
            return
        entries = [
            {'date': record['date'], 'exerciseName': exercise['name'], 'reps': exercise['reps']}
            for exercise in record['workout']['exercises']
            if exercise.get('reps', 0) > 0
        ]
        self.exercise_log()
        self.cache.record_exercises(self.user_id, record['date'], entries, self.today)

    def exercise_log(self):
        """
        Logged reps per exercise and date.

        A cold cache is seeded from the saved workouts.
        """
        if self.cache is None:
            return _log_from_history(self._load_history())
        return self.cache.get_exercise_log(
            self.user_id, lambda: _log_from_history(self.history()), self.today
        )

    def _delete(self, date_str):
        database.delete_workout_day(self.user_id, date_str)

    def _forget(self, date_str):
        super()._forget(date_str)
        if self.cache is not None:
            self.exercise_log()
            self.cache.record_exercises(self.user_id, date_str, [], self.today)


def _log_from_history(history):
    return [
        {'date': entry['date'], 'exerciseName': exercise.get('name', ''), 'reps': exercise.get('reps', 0)}
        for entry in history
        for exercise in (entry.get('workout') or {}).get('exercises') or []
        if (exercise.get('reps') or 0) > 0
    ]


class DietProgress(DayProgress):
    domain = DIET
    section = DIET_HISTORY

    def _load_history(self):
        return database.get_diet_history(self.user_id, since=self._since())

    def _load_day(self, date_str):
        return database.get_diet_day(self.user_id, date_str)

    def new_day(self, day):
        return {'date': format_date(day), 'meals': fresh_diet_meals(self.plan.get('meals') or []),
                'completed': False}

    def recompute(self, record):
        record['meals'] = normalize_meals(record.get('meals'))
        record['completed'] = is_diet_complete(record['meals'])

    def toggle_item(self, value, meal_index, item_index):
        """Flip one meal item between eaten and not eaten."""
        def mutate(record):
            self.recompute(record)
            meals = record['meals']
            if not isinstance(meal_index, int) or not 0 <= meal_index < len(meals):
                raise IndexError(f"No meal at position {meal_index}")
            items = meals[meal_index]['items']
            if not isinstance(item_index, int) or not 0 <= item_index < len(items):
                raise IndexError(f"No item at position {item_index}")
            items[item_index]['completed'] = not items[item_index].get('completed')
        return self._edit(value, mutate)

    def _persist(self, record):
        saved = database.save_diet_day(
            self.user_id, record['date'], record['meals'], self._callbacks(record['date'])
        )
        self._save_macros(saved)
        return saved

    def _save_macros(self, record):
        """Write the day's macro totals. Failures are logged, never raised."""
        totals = sum_completed_macros(record['meals'])
        date_str = record['date']
        try:
            if any(totals.values()):
                saved = database.save_macros(self.user_id, date_str, totals)
                if saved is not None and self.cache is not None:
                    self.macro_history()
                    self.cache.put_day(self.user_id, MACRO_HISTORY, saved, self.today)
            else:
                # Nothing eaten: drop a stale row from an earlier save
                database.delete_macros(self.user_id, date_str)
                if self.cache is not None:
                    self.cache.drop_day(self.user_id, MACRO_HISTORY, date_str)
        except StoreError as e:
            logger.error("Saving macros for %s failed: %s", date_str, e.message)

    def _load_macro_history(self):
        return database.get_macro_history(self.user_id, since=self._since())

    def macro_history(self):
        if self.cache is None:
            return self._load_macro_history()
        return self.cache.get_history(self.user_id, MACRO_HISTORY, self._load_macro_history, self.today)

    def _delete(self, date_str):
        database.delete_diet_day(self.user_id, date_str)
        database.delete_macros(self.user_id, date_str)

    def _forget(self, date_str):
        super()._forget(date_str)
        if self.cache is not None:
            self.cache.drop_day(self.user_id, MACRO_HISTORY, date_str)
