"""
Debounced Auto-Save

Coalesces rapid edits of the same day into one write. Each key (user, domain,
date) owns at most one pending timer; a new edit cancels and restarts it, so
only the final state inside the window reaches the database.
"""

import copy
import logging
import threading

from flask import has_app_context

logger = logging.getLogger(__name__)

SCHEDULED = 'scheduled'
SAVED = 'saved'
ERROR = 'error'


class Debouncer:
    """
    Per-key debounce timers.

    Timer callbacks run on their own thread, inside an application context of
    the app passed to init_app(). A delay of 0 runs the write inline.
    """

    def __init__(self, app=None, delay=0.5):
        self.app = app
        self.delay = delay
        self._pending = {}
        self._lock = threading.Lock()
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.app = app
        self.delay = app.config.get('AUTOSAVE_DELAY', self.delay)

    def schedule(self, key, func, delay=None, payload=None):
        """
        Run `func` after `delay` seconds unless `key` is scheduled again first.

        `payload` is the unsaved state the write carries; pending_payload()
        hands it back until the write runs or is cancelled.

        Returns:
            SCHEDULED, or SAVED / ERROR when the write ran inline
        """
        delay = self.delay if delay is None else delay
        self.cancel(key)

        if delay <= 0:
            return self._run(key, func)

        timer = threading.Timer(delay, self._fire, args=(key,))
        timer.daemon = True
        with self._lock:
            self._pending[key] = (timer, func, payload)
        timer.start()
        logger.debug("Scheduled save for %s in %.2fs", key, delay)
        return SCHEDULED

    def cancel(self, key):
        """Drop the pending write for `key`. Returns True if one was pending."""
        with self._lock:
            entry = self._pending.pop(key, None)
        if entry is None:
            return False
        entry[0].cancel()
        return True

    def is_pending(self, key):
        with self._lock:
            return key in self._pending

    def pending_payload(self, key):
        """Copy of the payload of the pending write for `key`, or None."""
        with self._lock:
            entry = self._pending.get(key)
            return copy.deepcopy(entry[2]) if entry is not None else None

    def pending_keys(self):
        with self._lock:
            return list(self._pending)

    def flush(self):
        """Run every pending write now. Returns {key: status}."""
        with self._lock:
            entries = list(self._pending.items())
            self._pending.clear()

        results = {}
        for key, (timer, func, _) in entries:
            timer.cancel()
            results[key] = self._run(key, func)
        return results

    def _fire(self, key):
        # Runs on the timer's own thread; a replaced timer must not take the new entry.
        # The entry stays visible until the write has committed.
        with self._lock:
            entry = self._pending.get(key)
            if entry is None or entry[0] is not threading.current_thread():
                return
        self._run(key, entry[1])
        with self._lock:
            if self._pending.get(key) is entry:
                del self._pending[key]

    def _run(self, key, func):
        try:
            if has_app_context():
                func()
            else:
                with self.app.app_context():
                    func()
        except Exception:
            # The write already reported through its callbacks; log and move on
            logger.exception("Auto-save for %s failed", key)
            return ERROR
        logger.debug("Auto-saved %s", key)
        return SAVED
