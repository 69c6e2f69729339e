"""
Services Package

Business logic modules for the fitness tracker.
"""

from .normalize import (
    PlanImportError,
    classify_meal,
    normalize_meal,
    normalize_workout_plan,
    normalize_diet_plan,
    parse_import_document,
    export_plans,
    export_plans_to_json,
)

from .database import (
    StoreError,
    SaveCallbacks,
    handle_store_error,
    table_exists,
    check_connection,
    clear_all_progress,
)

from .cache import HistoryCache

from .autosave import Debouncer

from .plan_manager import PlanManager

from .progress import (
    WorkoutProgress,
    DietProgress,
)

from .setup import (
    SetupScriptError,
    check_database_status,
    run_setup_script,
)

__all__ = [
    # Normalization
    'PlanImportError',
    'classify_meal',
    'normalize_meal',
    'normalize_workout_plan',
    'normalize_diet_plan',
    'parse_import_document',
    'export_plans',
    'export_plans_to_json',
    # Data access
    'StoreError',
    'SaveCallbacks',
    'handle_store_error',
    'table_exists',
    'check_connection',
    'clear_all_progress',
    # Cache / auto-save
    'HistoryCache',
    'Debouncer',
    # Plans and progress
    'PlanManager',
    'WorkoutProgress',
    'DietProgress',
    # Setup
    'SetupScriptError',
    'check_database_status',
    'run_setup_script',
]
