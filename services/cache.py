"""
History Cache

Per-user, in-process copy of what the pages read most: current plan
snapshots, dated workout/diet/macro records and the exercise log.

The database stays the source of truth. Reads go through the cache and fall
back to a loader; writes update the cache and are then persisted by the
caller. Anything that rewrites the store wholesale (import, delete, reset,
clear) must invalidate the matching section.
"""

import copy
import logging
import threading
from datetime import timedelta

from cachetools import LRUCache

logger = logging.getLogger(__name__)

WORKOUT_HISTORY = 'workout_history'
DIET_HISTORY = 'diet_history'
MACRO_HISTORY = 'macro_history'
EXERCISE_LOG = 'exercise_log'
PLANS = 'plans'

DATED_SECTIONS = (WORKOUT_HISTORY, DIET_HISTORY, MACRO_HISTORY)
SECTIONS = DATED_SECTIONS + (EXERCISE_LOG, PLANS)


def cap_entries(entries, limit, today=None):
    """
    Keep the newest `limit` entries, and none older than `limit` days.

    Entries are dicts with a 'date' key (YYYY-MM-DD); the result is sorted
    oldest first.
    """
    entries = sorted(entries, key=lambda entry: entry.get('date') or '')
    if today is not None:
        cutoff = (today - timedelta(days=limit)).strftime('%Y-%m-%d')
        entries = [entry for entry in entries if (entry.get('date') or '') > cutoff]
    if len(entries) > limit:
        entries = entries[-limit:]
    return entries


class HistoryCache:
    """
    Thread-safe per-user cache. Values handed out are deep copies.

    At most `max_users` users are kept; the least recently used one is
    dropped first and reloads from the database on its next request.
    """

    def __init__(self, limit=90, max_users=1000):
        self.limit = limit
        self._users = LRUCache(maxsize=max_users)
        self._lock = threading.RLock()

    def _user(self, user_id):
        return self._users.setdefault(user_id, {})

    # ----- dated records -----

    def get_history(self, user_id, section, loader=None, today=None):
        """
        Records of a dated section, oldest first.

        On a miss, `loader()` is called and its result cached.
        """
        with self._lock:
            cached = self._user(user_id).get(section)
            if cached is not None:
                return copy.deepcopy(sorted(cached.values(), key=lambda entry: entry['date']))

        if loader is None:
            return []

        loaded = loader() or []
        with self._lock:
            entries = cap_entries(loaded, self.limit, today)
            self._user(user_id)[section] = {entry['date']: entry for entry in entries}
            logger.debug("Cached %d %s entries for %s", len(entries), section, user_id)
            return copy.deepcopy(entries)

    def get_day(self, user_id, section, date):
        """Cached record for a date, or None when the section or the date is not cached."""
        with self._lock:
            cached = self._user(user_id).get(section)
            if cached is None or date not in cached:
                return None
            return copy.deepcopy(cached[date])

    def put_day(self, user_id, section, record, today=None):
        """Store one dated record. Only loaded sections are updated."""
        with self._lock:
            cached = self._user(user_id).get(section)
            if cached is None:
                return
            cached[record['date']] = copy.deepcopy(record)
            if len(cached) > self.limit or today is not None:
                entries = cap_entries(cached.values(), self.limit, today)
                self._user(user_id)[section] = {entry['date']: entry for entry in entries}

    def drop_day(self, user_id, section, date):
        with self._lock:
            cached = self._user(user_id).get(section)
            if cached is not None:
                cached.pop(date, None)

    # ----- exercise log -----

    def get_exercise_log(self, user_id, loader=None, today=None):
        """Exercise log entries, oldest first. `loader()` seeds a missing log."""
        with self._lock:
            log = self._user(user_id).get(EXERCISE_LOG)
            if log is not None or loader is None:
                return copy.deepcopy(log or [])

        seeded = cap_entries(loader() or [], self.limit, today)
        with self._lock:
            self._user(user_id).setdefault(EXERCISE_LOG, seeded)
            return copy.deepcopy(self._user(user_id)[EXERCISE_LOG])

    def record_exercises(self, user_id, date, entries, today=None):
        """Replace the exercise log entries of `date` with `entries`."""
        with self._lock:
            log = [entry for entry in self._user(user_id).get(EXERCISE_LOG, [])
                   if entry['date'] != date]
            log.extend(copy.deepcopy(entries))
            self._user(user_id)[EXERCISE_LOG] = cap_entries(log, self.limit, today)

    # ----- plans -----

    def get_plan(self, user_id, domain):
        with self._lock:
            plan = self._user(user_id).get(PLANS, {}).get(domain)
            return copy.deepcopy(plan)

    def put_plan(self, user_id, domain, plan):
        with self._lock:
            self._user(user_id).setdefault(PLANS, {})[domain] = copy.deepcopy(plan)

    # ----- invalidation -----

    def invalidate(self, user_id, *sections):
        """Forget the given sections of a user, or everything when none are named."""
        with self._lock:
            if not sections:
                self._users.pop(user_id, None)
                logger.debug("Invalidated cache for %s", user_id)
                return
            user = self._user(user_id)
            for section in sections:
                user.pop(section, None)
            logger.debug("Invalidated %s for %s", ', '.join(sections), user_id)

    def invalidate_plan(self, user_id, domain):
        with self._lock:
            self._user(user_id).get(PLANS, {}).pop(domain, None)

    def clear(self):
        with self._lock:
            self._users.clear()
