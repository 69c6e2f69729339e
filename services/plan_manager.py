"""
Plan Manager

Works out which workout plan and which diet plan a user is following from
three sources: the built-in catalog, the user's custom plan rows and the
current-plan markers in user_settings.

Reconciliation is a small state machine:

    clean --(mismatch seen)--> dirty --(check)--> reconciling --> clean
                                  ^                    |
                                  +---(failure, backoff)+--> error (after N failures)

In `error` the manager stops retrying by itself; emergency_reset() is the
manual way out.
"""

import functools
import logging
import threading
import time

from constants.catalog import (
    DEFAULT_WORKOUT_PLAN_ID, DEFAULT_DIET_PLAN_ID, LEGACY_DEFAULT_IDS,
    WORKOUT_PLANS, DIET_PLANS, EMPTY_WORKOUT_PLAN, EMPTY_DIET_PLAN,
)
from constants.validation import WORKOUT, DIET, VALID_DOMAINS
from models import db
from services import database
from services.cache import (
    WORKOUT_HISTORY, DIET_HISTORY, MACRO_HISTORY, EXERCISE_LOG,
)
from services.database import StoreError
from services.normalize import as_imported_workout_plan, as_imported_diet_plan, clone

logger = logging.getLogger(__name__)

CLEAN = 'clean'
DIRTY = 'dirty'
RECONCILING = 'reconciling'
ERROR = 'error'

_DOMAIN = {
    WORKOUT: {
        'catalog': WORKOUT_PLANS,
        'default_id': DEFAULT_WORKOUT_PLAN_ID,
        'empty': EMPTY_WORKOUT_PLAN,
        'marker': 'current_workout_plan_id',
        'sections': (WORKOUT_HISTORY, EXERCISE_LOG),
        'tables': ('workout_plans', 'workout_history', 'user_settings'),
    },
    DIET: {
        'catalog': DIET_PLANS,
        'default_id': DEFAULT_DIET_PLAN_ID,
        'empty': EMPTY_DIET_PLAN,
        'marker': 'current_diet_plan_id',
        'sections': (DIET_HISTORY, MACRO_HISTORY),
        'tables': ('diet_plans', 'diet_history', 'macro_history', 'user_settings'),
    },
}


def _locked(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)
    return wrapper


def resolve_plan(domain, custom_plans, marker):
    """
    Pick the current plan of a domain.

    A custom plan always wins. With no custom plan, an absent marker, the
    catalog default or a legacy alias gives the catalog default; '' (cleared
    on purpose) or an unknown id gives the empty placeholder plan.
    """
    info = _DOMAIN[domain]

    if custom_plans:
        for plan in custom_plans:
            if plan.get('id') == marker:
                return clone(plan)
        return clone(custom_plans[0])

    if marker is None or marker in LEGACY_DEFAULT_IDS:
        return clone(info['catalog'][0])

    for plan in info['catalog']:
        if plan['id'] == marker:
            return clone(plan)

    return clone(info['empty'])


class PlanManager:
    """Current plans and reconciliation state of one user."""

    def __init__(self, user_id, cache=None, debouncer=None, max_attempts=3,
                 backoff_base=1.0, backoff_max=60.0, clock=time.monotonic):
        self.user_id = user_id
        self.cache = cache
        self.debouncer = debouncer
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.clock = clock

        self.workout_plan = clone(EMPTY_WORKOUT_PLAN)
        self.diet_plan = clone(EMPTY_DIET_PLAN)
        self.loaded = False
        self.state = DIRTY
        self.attempts = 0
        self.next_attempt_at = 0.0
        self.last_error = None
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, user_id, config, cache=None, debouncer=None):
        return cls(
            user_id,
            cache=cache,
            debouncer=debouncer,
            max_attempts=config.get('CONSISTENCY_MAX_ATTEMPTS', 3),
            backoff_base=config.get('RECONCILE_BACKOFF_BASE', 1.0),
            backoff_max=config.get('RECONCILE_BACKOFF_MAX', 60.0),
        )

    # ============================================
    # LOADING
    # ============================================

    def _read_persisted(self):
        """Resolve both plans from the store without touching manager state."""
        settings = database.get_user_settings(self.user_id)
        markers = {
            WORKOUT: settings.get('current_workout_plan_id'),
            DIET: settings.get('current_diet_plan_id'),
        }

        # Older data names the default plan by its legacy alias
        for domain, marker in markers.items():
            if marker in LEGACY_DEFAULT_IDS:
                self._rewrite_legacy_marker(domain)

        return {
            WORKOUT: resolve_plan(WORKOUT, database.get_workout_plans(self.user_id), markers[WORKOUT]),
            DIET: resolve_plan(DIET, database.get_diet_plans(self.user_id), markers[DIET]),
        }

    def _rewrite_legacy_marker(self, domain):
        try:
            if domain == WORKOUT:
                database.set_current_workout_plan(self.user_id, DEFAULT_WORKOUT_PLAN_ID)
            else:
                database.set_current_diet_plan(self.user_id, DEFAULT_DIET_PLAN_ID)
            logger.info("Rewrote legacy %s plan marker for %s", domain, self.user_id)
        except StoreError as e:
            logger.warning("Could not rewrite legacy %s marker: %s", domain, e.message)

    def _apply(self, plans):
        self.workout_plan = plans[WORKOUT]
        self.diet_plan = plans[DIET]
        self.loaded = True
        if self.cache is not None:
            self.cache.put_plan(self.user_id, WORKOUT, self.workout_plan)
            self.cache.put_plan(self.user_id, DIET, self.diet_plan)

    @_locked
    def load(self):
        """
        Reload both plans from the store.

        Returns True on success. On failure the previous plans stay in place
        (catalog defaults if nothing was ever loaded) and the failure counts
        toward the retry limit.
        """
        try:
            plans = self._read_persisted()
        except StoreError as e:
            logger.error("Loading plans for %s failed: %s", self.user_id, e.message)
            if not self.loaded:
                self.workout_plan = clone(WORKOUT_PLANS[0])
                self.diet_plan = clone(DIET_PLANS[0])
            self._record_failure(e)
            return False

        self._apply(plans)
        self._mark_clean()
        logger.debug(
            "Loaded plans for %s: workout=%r diet=%r",
            self.user_id, self.workout_plan['id'], self.diet_plan['id'],
        )
        return True

    @_locked
    def ensure_loaded(self):
        if self.loaded or self.state == ERROR or self.clock() < self.next_attempt_at:
            return self
        if not self._restore_cached():
            self.load()
        return self

    def _restore_cached(self):
        """Take both plans from the cached snapshot of an earlier manager."""
        if self.cache is None:
            return False
        workout = self.cache.get_plan(self.user_id, WORKOUT)
        diet = self.cache.get_plan(self.user_id, DIET)
        if workout is None or diet is None:
            return False
        self.workout_plan = workout
        self.diet_plan = diet
        self.loaded = True
        self._mark_clean()
        logger.debug("Restored cached plans for %s", self.user_id)
        return True

    def get_plan(self, domain):
        self.ensure_loaded()
        return clone(self.workout_plan if domain == WORKOUT else self.diet_plan)

    def plan_ids(self):
        return {WORKOUT: self.workout_plan.get('id', ''), DIET: self.diet_plan.get('id', '')}

    # ============================================
    # RECONCILIATION
    # ============================================

    def _mark_clean(self):
        self.state = CLEAN
        self.attempts = 0
        self.next_attempt_at = 0.0
        self.last_error = None

    def _record_failure(self, error):
        self.attempts += 1
        self.last_error = error.message if isinstance(error, StoreError) else str(error)
        if self.attempts >= self.max_attempts:
            self.state = ERROR
            logger.error(
                "Plan reconciliation for %s gave up after %d attempts", self.user_id, self.attempts
            )
            return
        self.state = DIRTY
        self.next_attempt_at = self.clock() + self.backoff_delay(self.attempts)

    def backoff_delay(self, attempts):
        if attempts <= 0:
            return 0.0
        return min(self.backoff_base * 2 ** (attempts - 1), self.backoff_max)

    @_locked
    def check_consistency(self, view_ids=None):
        """
        Compare plan ids against the store and reload on a mismatch.

        `view_ids` are the ids a client is showing ({'workout': ..., 'diet': ...});
        by default the manager's own loaded ids are checked.

        Returns the status() dict; 'skipped' is set when the check was not
        run because of the backoff deadline or the error state.
        """
        if self.state == ERROR:
            return self.status(skipped=True)
        if self.clock() < self.next_attempt_at:
            return self.status(skipped=True)

        view = dict(self.plan_ids())
        if view_ids:
            view.update({k: v for k, v in view_ids.items() if k in VALID_DOMAINS and v is not None})

        try:
            persisted = self._read_persisted()
        except StoreError as e:
            logger.error("Consistency check for %s failed: %s", self.user_id, e.message)
            self._record_failure(e)
            return self.status()

        persisted_ids = {domain: plan.get('id', '') for domain, plan in persisted.items()}
        if self.loaded and persisted_ids == view and self.state == CLEAN:
            return self.status()

        logger.info("Plan view %s out of sync with store %s, reloading", view, persisted_ids)
        self.state = RECONCILING
        self.load()
        return self.status()

    def status(self, skipped=False):
        remaining = max(0.0, self.next_attempt_at - self.clock()) if self.state == DIRTY else 0.0
        return {
            'state': self.state,
            'attempts': self.attempts,
            'maxAttempts': self.max_attempts,
            'retryIn': round(remaining, 3),
            'lastError': self.last_error,
            'skipped': skipped,
            'workoutPlanId': self.workout_plan.get('id', ''),
            'dietPlanId': self.diet_plan.get('id', ''),
        }

    # ============================================
    # IMPORT / DELETE / RESET
    # ============================================

    def _cancel_pending(self, domains):
        if self.debouncer is None:
            return
        for key in self.debouncer.pending_keys():
            if key[0] == self.user_id and key[1] in domains:
                self.debouncer.cancel(key)

    def _forget(self, domains):
        if self.cache is None:
            return
        for domain in domains:
            self.cache.invalidate(self.user_id, *_DOMAIN[domain]['sections'])
            self.cache.invalidate_plan(self.user_id, domain)

    def _require_tables(self, domains):
        for domain in domains:
            for table_name in _DOMAIN[domain]['tables']:
                database.require_table(table_name)

    def _clear_domain(self, domain):
        """Delete custom plans and progress of a domain inside the open transaction."""
        uid = self.user_id
        if domain == WORKOUT:
            database.delete_workout_history(uid, commit=False)
            database.delete_workout_plans(uid, commit=False)
        else:
            database.delete_diet_history(uid, commit=False)
            database.delete_macro_history(uid, commit=False)
            database.delete_diet_plans(uid, commit=False)

    @_locked
    def import_plan(self, workout_plan=None, diet_plan=None):
        """
        Replace the user's plan(s) with imported ones.

        Progress of each replaced domain is deleted in the same transaction as
        the plan swap.

        Returns:
            dict with 'success', 'message' and the current plans
        """
        imported = {}
        if workout_plan is not None:
            imported[WORKOUT] = as_imported_workout_plan(workout_plan)
        if diet_plan is not None:
            imported[DIET] = as_imported_diet_plan(diet_plan)
        if not imported:
            return self._result(False, 'No plan to import')

        uid = self.user_id
        # No queued write of the old plan may land after the swap
        self._cancel_pending(imported)
        try:
            self._require_tables(imported)
            for domain, plan in imported.items():
                self._clear_domain(domain)
                if domain == WORKOUT:
                    database.save_workout_plan(uid, plan, commit=False)
                    database.set_current_workout_plan(uid, plan['id'], commit=False)
                else:
                    database.save_diet_plan(uid, plan, commit=False)
                    database.set_current_diet_plan(uid, plan['id'], commit=False)
            db.session.commit()
        except StoreError as e:
            db.session.rollback()
            logger.error("Importing plans for %s failed: %s", uid, e.message)
            return self._result(False, f"Import failed: {e.message}", code=e.code)
        except Exception as e:
            db.session.rollback()
            error = database.handle_store_error('Importing plans', e)
            return self._result(False, f"Import failed: {error.message}", code=error.code)

        self._forget(imported)
        self.load()

        # Read the plans back; a miss means the store and the view disagree
        missing = []
        for domain, plan in imported.items():
            getter = database.get_workout_plan if domain == WORKOUT else database.get_diet_plan
            try:
                if getter(uid, plan['id']) is None:
                    missing.append(domain)
            except StoreError:
                missing.append(domain)

        if missing:
            logger.warning("Imported %s plan not found after save for %s", ', '.join(missing), uid)
            self.state = DIRTY
            self.load()
            return self._result(False, 'Plan was not saved correctly. Reloaded from the database.')

        logger.info("Imported %s plan(s) for %s", ', '.join(imported), uid)
        return self._result(True, 'Plan imported successfully')

    @_locked
    def delete_all(self, domain, reset_to_default=True):
        """
        Remove every custom plan and all progress of `domain`.

        The view then shows the catalog default, or the empty placeholder
        plan when reset_to_default is False.
        """
        if domain not in VALID_DOMAINS:
            raise ValueError(f"Unknown plan domain: {domain}")

        info = _DOMAIN[domain]
        marker = info['default_id'] if reset_to_default else ''
        uid = self.user_id
        self._cancel_pending([domain])
        try:
            self._require_tables([domain])
            self._clear_domain(domain)
            if domain == WORKOUT:
                database.set_current_workout_plan(uid, marker, commit=False)
            else:
                database.set_current_diet_plan(uid, marker, commit=False)
            db.session.commit()
        except StoreError as e:
            db.session.rollback()
            logger.error("Deleting %s plans for %s failed: %s", domain, uid, e.message)
            return False
        except Exception as e:
            db.session.rollback()
            database.handle_store_error(f"Deleting {domain} plans", e)
            return False

        self._forget([domain])
        self.load()
        logger.info("Deleted all %s plans for %s", domain, uid)
        return True

    @_locked
    def emergency_reset(self):
        """
        Wipe every plan and progress row of the user and start from the catalog.

        Always leaves the manager clean with catalog defaults in view. Returns
        whether the store part succeeded.
        """
        uid = self.user_id
        stored = True
        self._cancel_pending(VALID_DOMAINS)
        try:
            for domain in (WORKOUT, DIET):
                self._clear_domain(domain)
            database.set_current_workout_plan(uid, DEFAULT_WORKOUT_PLAN_ID, commit=False)
            database.set_current_diet_plan(uid, DEFAULT_DIET_PLAN_ID, commit=False)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            database.handle_store_error('Emergency reset', e)
            stored = False

        if self.cache is not None:
            self.cache.invalidate(uid)

        self._apply({WORKOUT: clone(WORKOUT_PLANS[0]), DIET: clone(DIET_PLANS[0])})
        self._mark_clean()
        logger.warning("Emergency reset for %s (store cleared: %s)", uid, stored)
        return stored

    def _result(self, success, message, **extra):
        result = {
            'success': success,
            'message': message,
            'workoutPlan': clone(self.workout_plan),
            'dietPlan': clone(self.diet_plan),
            'status': self.status(),
        }
        result.update(extra)
        return result
