import threading
import time

from services.autosave import Debouncer, SCHEDULED, SAVED, ERROR


def make_debouncer(app, delay):
    debouncer = Debouncer(delay=delay)
    debouncer.app = app
    return debouncer


def test_rapid_edits_coalesce(app):
    debouncer = make_debouncer(app, 10)
    calls = []

    for value in (1, 2, 3):
        status = debouncer.schedule(('u', 'workout', '2024-01-01'), lambda value=value: calls.append(value))
        assert status == SCHEDULED

    results = debouncer.flush()

    assert calls == [3]
    assert results == {('u', 'workout', '2024-01-01'): SAVED}


def test_keys_are_independent(app):
    debouncer = make_debouncer(app, 10)
    calls = []

    debouncer.schedule(('u', 'workout', '2024-01-01'), lambda: calls.append('workout'))
    debouncer.schedule(('u', 'diet', '2024-01-01'), lambda: calls.append('diet'))
    debouncer.flush()

    assert sorted(calls) == ['diet', 'workout']


def test_timer_fires_after_delay(app):
    debouncer = make_debouncer(app, 0.05)
    fired = threading.Event()

    debouncer.schedule('key', fired.set)

    assert fired.wait(2)
    deadline = time.monotonic() + 2
    while debouncer.is_pending('key') and time.monotonic() < deadline:
        time.sleep(0.01)
    assert not debouncer.is_pending('key')


def test_cancel_drops_pending_write(app):
    debouncer = make_debouncer(app, 10)
    calls = []

    debouncer.schedule('key', lambda: calls.append(1))

    assert debouncer.cancel('key') is True
    assert debouncer.cancel('key') is False
    assert debouncer.flush() == {}
    assert calls == []


def test_zero_delay_runs_inline(app):
    debouncer = make_debouncer(app, 0)

    def broken():
        raise RuntimeError('disk full')

    assert debouncer.schedule('ok', lambda: None) == SAVED
    assert debouncer.schedule('broken', broken) == ERROR


def test_delay_comes_from_config(app):
    assert Debouncer(app).delay == app.config['AUTOSAVE_DELAY']


def test_pending_payload_follows_the_latest_edit(app):
    debouncer = make_debouncer(app, 10)
    key = ('u', 'workout', '2024-01-01')

    debouncer.schedule(key, lambda: None, payload={'completed': False})
    debouncer.schedule(key, lambda: None, payload={'completed': True})

    payload = debouncer.pending_payload(key)
    payload['completed'] = 'changed'
    assert debouncer.pending_payload(key) == {'completed': True}

    debouncer.flush()
    assert debouncer.pending_payload(key) is None


def test_entry_stays_pending_while_the_write_runs(app):
    debouncer = make_debouncer(app, 0.01)
    seen = []
    done = threading.Event()

    def write():
        seen.append(debouncer.pending_payload('key'))
        done.set()

    debouncer.schedule('key', write, payload={'reps': 5})

    assert done.wait(2)
    assert seen == [{'reps': 5}]
