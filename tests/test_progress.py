from datetime import timedelta

import pytest

from constants.catalog import WORKOUT_PLANS, DIET_PLANS, EMPTY_WORKOUT_PLAN
from services import database
from services.autosave import Debouncer, SAVED, SCHEDULED
from services.progress import WorkoutProgress, DietProgress, FUTURE_DATE_NOTICE, workout_day_for

from conftest import workout_day


def fmt(day):
    return day.strftime('%Y-%m-%d')


@pytest.fixture
def workout(app, state, user_id, today):
    return WorkoutProgress(user_id, WORKOUT_PLANS[0], today, state.cache, state.debouncer)


@pytest.fixture
def diet(app, state, user_id, today):
    return DietProgress(user_id, DIET_PLANS[0], today, state.cache, state.debouncer)


def last_sunday(today):
    return today - timedelta(days=(today.weekday() + 1) % 7)


def stored_macros(user_id, date):
    rows = database.get_macro_history(user_id, since=date, until=date)
    return rows[0] if rows else None


def test_template_day_follows_weekday(workout, today):
    days = WORKOUT_PLANS[0]['days']

    record = workout.new_day(today)

    assert record['workout']['name'] == days[today.weekday() % len(days)]['name']
    assert record['completed'] is False
    assert all(not exercise['completed'] for exercise in record['workout']['exercises'])


def test_plan_without_days_gives_empty_workout(today):
    assert workout_day_for(EMPTY_WORKOUT_PLAN, today)['exercises'] == []


def test_future_dates_show_today_with_notice(workout, today):
    view = workout.view(fmt(today + timedelta(days=3)))

    assert view['date'] == fmt(today)
    assert view['notice'] == FUTURE_DATE_NOTICE
    assert view['stored'] is False


def test_invalid_date_is_rejected(workout):
    with pytest.raises(ValueError):
        workout.view('yesterday')


def test_toggle_saves_and_toggling_back_restores(workout, user_id, today):
    first = workout.toggle_item(None, 0)

    assert first['saveStatus'] == SAVED
    assert first['day']['workout']['exercises'][0]['completed'] is True
    stored = database.get_workout_day(user_id, fmt(today))
    assert stored['workout']['exercises'][0]['completed'] is True

    second = workout.toggle_item(None, 0)

    assert second['day']['workout']['exercises'][0]['completed'] is False
    assert database.get_workout_day(user_id, fmt(today))['workout']['exercises'][0]['completed'] is False


def test_toggle_out_of_range(workout):
    with pytest.raises(IndexError):
        workout.toggle_item(None, 99)


def test_single_exercise_rest_day_completes(workout, user_id, today):
    sunday = last_sunday(today)

    result = workout.toggle_item(fmt(sunday), 0)

    assert result['day']['workout']['name'] == 'Day 7: Rest'
    assert result['day']['completed'] is True
    assert database.get_workout_day(user_id, fmt(sunday))['completed'] is True


def test_streak_counts_completed_days(workout, user_id, today):
    for offset in (0, 1):
        database.save_workout_day(user_id, fmt(today - timedelta(days=offset)), workout_day(('A', True, 0)))
    database.save_workout_day(user_id, fmt(today - timedelta(days=2)), workout_day(('A', False, 0)))

    assert workout.view()['streak'] == 2


def test_reps_feed_the_exercise_log(workout, today):
    result = workout.set_reps(None, 0, '12')
    name = result['day']['workout']['exercises'][0]['name']

    log = workout.exercise_log()

    assert {'date': fmt(today), 'exerciseName': name, 'reps': 12} in log


def test_reset_day_removes_progress(workout, user_id, today):
    workout.set_reps(None, 0, 8)
    workout.toggle_item(None, 0)

    result = workout.reset_day()

    assert result['success'] is True
    assert result['day']['workout']['exercises'][0]['completed'] is False
    assert database.get_workout_day(user_id, fmt(today)) is None
    assert workout.exercise_log() == []


def test_debounced_edits_wait_for_explicit_save(app, state, user_id, today):
    debouncer = Debouncer(delay=10)
    debouncer.app = app
    workout = WorkoutProgress(user_id, WORKOUT_PLANS[0], today, state.cache, debouncer)

    result = workout.toggle_item(None, 0)

    assert result['saveStatus'] == SCHEDULED
    assert database.get_workout_day(user_id, fmt(today)) is None

    saved = workout.save()

    assert saved['success'] is True
    assert not debouncer.pending_keys()
    assert database.get_workout_day(user_id, fmt(today))['workout']['exercises'][0]['completed'] is True


def test_diet_toggle_writes_macros(diet, user_id, today):
    result = diet.toggle_item(None, 0, 0)

    assert result['day']['meals'][0]['items'][0]['name'] == 'Banana'
    macros = stored_macros(user_id, fmt(today))
    assert (macros['calories'], macros['protein'], macros['carbs'], macros['fats']) == (120, 1, 30, 0)
    assert [entry['date'] for entry in diet.macro_history()] == [fmt(today)]


def test_untoggling_everything_drops_macros(diet, user_id, today):
    diet.toggle_item(None, 0, 0)
    diet.toggle_item(None, 0, 0)

    assert stored_macros(user_id, fmt(today)) is None
    assert diet.macro_history() == []
    assert database.get_diet_day(user_id, fmt(today))['completed'] is False


def test_diet_reset_clears_macros(diet, user_id, today):
    diet.toggle_item(None, 0, 0)

    diet.reset_day()

    assert database.get_diet_day(user_id, fmt(today)) is None
    assert stored_macros(user_id, fmt(today)) is None


def test_diet_toggle_out_of_range(diet):
    with pytest.raises(IndexError):
        diet.toggle_item(None, 0, 42)


def test_edits_outside_cache_window_coalesce(app, state, user_id, today):
    debouncer = Debouncer(delay=10)
    debouncer.app = app
    workout = WorkoutProgress(user_id, WORKOUT_PLANS[0], today, state.cache, debouncer)
    day = today - timedelta(days=120)
    if day.weekday() == 6:
        # Sunday is the one-exercise rest day
        day -= timedelta(days=1)

    workout.view()
    workout.toggle_item(fmt(day), 0)
    second = workout.toggle_item(fmt(day), 1)

    assert [e['completed'] for e in second['day']['workout']['exercises'][:2]] == [True, True]

    debouncer.flush()

    stored = database.get_workout_day(user_id, fmt(day))
    assert [e['completed'] for e in stored['workout']['exercises'][:2]] == [True, True]


def test_pending_edit_is_served_before_the_store(app, state, user_id, today):
    debouncer = Debouncer(delay=10)
    debouncer.app = app
    workout = WorkoutProgress(user_id, WORKOUT_PLANS[0], today, state.cache, debouncer)

    workout.toggle_item(None, 0)
    state.cache.invalidate(user_id)

    view = workout.view()

    assert view['stored'] is True
    assert view['day']['workout']['exercises'][0]['completed'] is True
    debouncer.flush()
