from datetime import date, timedelta

from services.cache import HistoryCache, cap_entries, WORKOUT_HISTORY, MACRO_HISTORY

TODAY = date(2026, 10, 14)


def entry(offset, **extra):
    record = {'date': (TODAY - timedelta(days=offset)).strftime('%Y-%m-%d'), 'completed': False}
    record.update(extra)
    return record


def test_cap_entries_by_count_and_age():
    entries = [entry(offset) for offset in range(10)]

    assert len(cap_entries(entries, 3)) == 3
    assert cap_entries(entries, 3)[-1]['date'] == entry(0)['date']
    # 5-day window keeps today and the four days before it
    assert len(cap_entries(entries, 5, TODAY)) == 5


def test_history_reads_through_once():
    cache = HistoryCache(limit=90)
    calls = []

    def loader():
        calls.append(1)
        return [entry(1), entry(0)]

    first = cache.get_history('u', WORKOUT_HISTORY, loader, TODAY)
    second = cache.get_history('u', WORKOUT_HISTORY, loader, TODAY)

    assert len(calls) == 1
    assert [e['date'] for e in first] == [entry(1)['date'], entry(0)['date']]
    assert first == second


def test_values_are_copies():
    cache = HistoryCache()
    cache.get_history('u', WORKOUT_HISTORY, lambda: [entry(0)])

    record = cache.get_day('u', WORKOUT_HISTORY, entry(0)['date'])
    record['completed'] = True

    assert cache.get_day('u', WORKOUT_HISTORY, entry(0)['date'])['completed'] is False


def test_put_day_only_updates_loaded_sections():
    cache = HistoryCache()

    cache.put_day('u', MACRO_HISTORY, entry(0, calories=100))
    assert cache.get_day('u', MACRO_HISTORY, entry(0)['date']) is None

    cache.get_history('u', MACRO_HISTORY, lambda: [])
    cache.put_day('u', MACRO_HISTORY, entry(0, calories=100))
    assert cache.get_day('u', MACRO_HISTORY, entry(0)['date'])['calories'] == 100


def test_invalidate_sections_and_users():
    cache = HistoryCache()
    cache.get_history('u', WORKOUT_HISTORY, lambda: [entry(0)])
    cache.get_history('u', MACRO_HISTORY, lambda: [entry(0)])
    cache.put_plan('u', 'workout', {'id': 'p1', 'name': 'Plan'})

    cache.invalidate('u', WORKOUT_HISTORY)
    assert cache.get_day('u', WORKOUT_HISTORY, entry(0)['date']) is None
    assert cache.get_day('u', MACRO_HISTORY, entry(0)['date']) is not None
    assert cache.get_plan('u', 'workout')['id'] == 'p1'

    cache.invalidate('u')
    assert cache.get_day('u', MACRO_HISTORY, entry(0)['date']) is None
    assert cache.get_plan('u', 'workout') is None


def test_exercise_log_replaces_entries_of_a_date():
    cache = HistoryCache()
    day = entry(0)['date']

    cache.get_exercise_log('u', lambda: [{'date': entry(3)['date'], 'exerciseName': 'Squats', 'reps': 5}])
    cache.record_exercises('u', day, [{'date': day, 'exerciseName': 'Squats', 'reps': 8}])
    cache.record_exercises('u', day, [{'date': day, 'exerciseName': 'Squats', 'reps': 10}])

    log = cache.get_exercise_log('u')
    assert [e['reps'] for e in log] == [5, 10]


def test_least_recently_used_users_are_dropped():
    cache = HistoryCache(max_users=2)
    for user in ('a', 'b'):
        cache.get_history(user, WORKOUT_HISTORY, lambda: [entry(0)])

    # touching 'a' makes 'b' the oldest
    cache.get_history('a', WORKOUT_HISTORY)
    cache.get_history('c', WORKOUT_HISTORY, lambda: [entry(0)])

    assert cache.get_day('a', WORKOUT_HISTORY, entry(0)['date']) is not None
    assert cache.get_day('b', WORKOUT_HISTORY, entry(0)['date']) is None
