"""
Request Context

Resolves who the current user is and what "today" means for them, and holds
the application-wide state created at start-up.
"""

import logging
import threading
import uuid
from datetime import date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from cachetools import LRUCache
from flask import current_app, session

from constants.validation import DATE_PATTERN

logger = logging.getLogger(__name__)

SESSION_USER_KEY = 'user_id'


class AppState:
    """
    State shared by every request of one application instance.

    Created once in create_app() and kept in app.extensions['tracker'].
    """

    def __init__(self, debouncer=None, cache=None, max_users=1000):
        self.debouncer = debouncer
        self.cache = cache
        self.database_checked = False
        self.database_ready = False
        self.database_status = None
        # Least recently seen users are dropped; their manager is rebuilt on demand
        self._plan_managers = LRUCache(maxsize=max_users)
        self._lock = threading.Lock()

    def record_database_status(self, status):
        """Remember the outcome of a schema check."""
        with self._lock:
            self.database_checked = True
            self.database_ready = bool(status.get('success'))
            self.database_status = status

    def plan_manager_for(self, user_id, factory):
        """Return the user's plan manager, building it with `factory` when absent."""
        with self._lock:
            manager = self._plan_managers.get(user_id)
            if manager is None:
                manager = factory(user_id)
                self._plan_managers[user_id] = manager
            return manager


def get_app_state(app=None):
    app = app or current_app
    return app.extensions['tracker']


def get_user_id():
    """
    Current user id.

    Anonymous visitors get a random id that lives in the session cookie.
    """
    user_id = session.get(SESSION_USER_KEY)
    if not user_id:
        user_id = str(uuid.uuid4())
        session[SESSION_USER_KEY] = user_id
        session.permanent = True
        logger.info("Created anonymous user %s", user_id)
    return user_id


def get_timezone(app=None):
    app = app or current_app
    name = app.config.get('TRACKER_TIMEZONE') or 'UTC'
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, falling back to UTC", name)
        return ZoneInfo('UTC')


def today(app=None):
    """Calendar date in the tracker's timezone."""
    return datetime.now(get_timezone(app)).date()


def format_date(value):
    return value.strftime('%Y-%m-%d')


def parse_date(value):
    """
    Parse a YYYY-MM-DD string.

    Returns a date or None when the value is not a valid calendar date.
    """
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        return None

