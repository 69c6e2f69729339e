from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from models import db, MacroHistory, WorkoutHistory
from services import database
from services.database import StoreError, SaveCallbacks

from conftest import workout_day, diet_meals


def fmt(day):
    return day.strftime('%Y-%m-%d')


class Recorder:
    def __init__(self):
        self.events = []

    def callbacks(self):
        return SaveCallbacks(
            on_saving=lambda: self.events.append('saving'),
            on_success=lambda result: self.events.append('success'),
            on_error=lambda error: self.events.append(('error', error.code)),
        )


def test_table_exists_detects_dropped_tables(app):
    assert database.table_exists('workout_history')
    db.session.commit()

    MacroHistory.__table__.drop(db.engine)

    assert not database.table_exists('macro_history')
    with pytest.raises(ValueError):
        database.table_exists('users; DROP TABLE workout_history')


def test_workout_day_upsert_is_unique_per_date(app, user_id, today):
    date = fmt(today)

    first = database.save_workout_day(user_id, date, workout_day(('Squats', False, 0)))
    second = database.save_workout_day(user_id, date, workout_day(('Squats', True, 8)))

    assert first['id'] == second['id']
    assert WorkoutHistory.query.filter_by(user_id=user_id).count() == 1
    assert second['completed'] is True
    assert second['workout']['exercises'][0]['reps'] == 8


def test_completed_flag_is_recomputed(app, user_id, today):
    payload = workout_day(('Squats', True, 0), ('Lunges', False, 0))
    payload['completed'] = True

    saved = database.save_workout_day(user_id, fmt(today), payload)

    assert saved['completed'] is False


def test_days_are_scoped_by_user(app, today):
    database.save_workout_day('alice', fmt(today), workout_day(('Squats', True, 0)))
    database.save_workout_day('bob', fmt(today), workout_day(('Squats', False, 0)))

    assert database.get_workout_day('alice', fmt(today))['completed'] is True
    assert database.get_workout_day('bob', fmt(today))['completed'] is False


def test_future_and_invalid_dates_are_rejected(app, user_id, today):
    recorder = Recorder()

    with pytest.raises(StoreError) as excinfo:
        database.save_workout_day(user_id, fmt(today + timedelta(days=1)), workout_day(),
                                  recorder.callbacks())
    assert excinfo.value.code == database.FUTURE_DATE
    assert recorder.events == ['saving', ('error', database.FUTURE_DATE)]

    with pytest.raises(StoreError) as excinfo:
        database.save_diet_day(user_id, '2024-13-45', diet_meals())
    assert excinfo.value.code == database.INVALID_DATE


def test_save_reports_through_callbacks(app, user_id, today):
    recorder = Recorder()

    database.save_diet_day(user_id, fmt(today), diet_meals(('Rice', True, 200)), recorder.callbacks())

    assert recorder.events == ['saving', 'success']


def test_zero_macros_are_not_written(app, user_id, today):
    recorder = Recorder()

    result = database.save_macros(
        user_id, fmt(today), {'calories': 0, 'protein': 0, 'carbs': 0, 'fats': 0}, recorder.callbacks()
    )

    assert result is None
    assert recorder.events == ['saving', 'success']
    assert MacroHistory.query.count() == 0


def test_macros_are_rounded(app, user_id, today):
    saved = database.save_macros(user_id, fmt(today), {'calories': 450.6, 'protein': '30.2', 'carbs': 41, 'fats': None})

    assert saved['calories'] == 451
    assert saved['protein'] == 30
    assert saved['fats'] == 0


def test_missing_table_fails_writes_and_empties_reads(app, user_id, today):
    MacroHistory.__table__.drop(db.engine)
    recorder = Recorder()

    with pytest.raises(StoreError) as excinfo:
        database.save_macros(user_id, fmt(today), {'calories': 100}, recorder.callbacks())

    assert excinfo.value.code == database.TABLE_MISSING
    assert 'database setup script' in excinfo.value.message
    assert recorder.events == ['saving', ('error', database.TABLE_MISSING)]
    assert database.get_macro_history(user_id) == []


def test_history_is_sorted_and_filtered(app, user_id, today):
    for offset in (3, 1, 2):
        database.save_workout_day(user_id, fmt(today - timedelta(days=offset)), workout_day(('A', True, 0)))

    history = database.get_workout_history(user_id)
    recent = database.get_workout_history(user_id, since=fmt(today - timedelta(days=2)))

    assert [entry['date'] for entry in history] == sorted(entry['date'] for entry in history)
    assert len(recent) == 2


def test_delete_day(app, user_id, today):
    database.save_diet_day(user_id, fmt(today), diet_meals(('Rice', True, 200)))

    assert database.delete_diet_day(user_id, fmt(today)) == 1
    assert database.get_diet_day(user_id, fmt(today)) is None


def test_settings_defaults_and_updates(app, user_id):
    settings = database.get_user_settings(user_id)
    assert settings['current_workout_plan_id'] is None
    assert settings['storage_preference'] == 'database'

    database.set_current_workout_plan(user_id, 'default-workout')
    database.set_storage_preference(user_id, 'local')

    settings = database.get_user_settings(user_id)
    assert settings['current_workout_plan_id'] == 'default-workout'
    assert settings['storage_preference'] == 'local'

    with pytest.raises(StoreError):
        database.set_storage_preference(user_id, 'floppy')


def test_database_status_round_trip(app, user_id):
    assert database.get_database_status(user_id) == {
        'checked': False, 'isReady': False, 'message': 'Database status not checked',
    }

    database.store_database_status(user_id, {'checked': True, 'isReady': True, 'message': 'ok'})

    assert database.get_database_status(user_id)['isReady'] is True


def test_clear_all_progress_reports_per_table(app, today):
    database.save_workout_day('alice', fmt(today), workout_day(('Squats', True, 0)))
    database.save_diet_day('alice', fmt(today), diet_meals(('Rice', True, 200)))
    database.save_macros('alice', fmt(today), {'calories': 200})
    database.save_workout_day('bob', fmt(today), workout_day(('Squats', True, 0)))
    database.save_workout_plan('alice', {'name': 'Mine', 'days': []})

    result = database.clear_all_progress('alice')

    assert result['success'] is True
    assert result['details']['workout_history'] == {'success': True, 'deleted': 1}
    assert result['details']['macro_history']['deleted'] == 1
    assert database.get_workout_history('alice') == []
    assert len(database.get_workout_history('bob')) == 1
    assert len(database.get_workout_plans('alice')) == 1


def test_clear_all_progress_skips_missing_tables(app, user_id):
    MacroHistory.__table__.drop(db.engine)

    result = database.clear_all_progress(user_id)

    assert result['success'] is True
    assert result['details']['macro_history']['message'] == 'Table does not exist, skipping'


def test_plan_save_assigns_id_and_replaces(app, user_id):
    saved = database.save_workout_plan(user_id, {'name': 'Mine', 'days': [{'name': 'A', 'exercises': []}]})
    assert saved['id']

    database.save_workout_plan(user_id, {'id': saved['id'], 'name': 'Renamed', 'days': []})

    plans = database.get_workout_plans(user_id)
    assert len(plans) == 1
    assert plans[0]['name'] == 'Renamed'


@pytest.mark.parametrize('error, code', [
    (IntegrityError('INSERT', {}, Exception('UNIQUE constraint failed: macro_history.date')), database.DUPLICATE),
    (IntegrityError('INSERT', {}, Exception('FOREIGN KEY constraint failed')), database.FOREIGN_KEY),
    (OperationalError('SELECT', {}, Exception('no such table: diet_history')), database.TABLE_MISSING),
    (OperationalError('SELECT', {}, Exception('unable to open database file')), database.CONNECTION),
    (RuntimeError('boom'), database.UNKNOWN),
])
def test_handle_store_error_classifies(error, code):
    result = database.handle_store_error('Testing', error)

    assert isinstance(result, StoreError)
    assert result.code == code
    assert result.original is error
