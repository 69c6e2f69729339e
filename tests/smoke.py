"""
Smoke tests for the fitness tracker.
Run with: python tests/smoke.py
"""

import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

def test_app_imports():
    """Verify app can be imported without errors."""
    from app import app, db
    assert app is not None
    assert db is not None
    print("OK: App imports successfully")

def test_models_import():
    """Verify models can be imported."""
    from models import WorkoutPlan, DietPlan, WorkoutHistory, DietHistory, MacroHistory, UserSettings
    assert WorkoutHistory.__tablename__ == 'workout_history'
    assert MacroHistory.__tablename__ == 'macro_history'
    assert UserSettings is not None
    print("OK: Models import successfully")

def test_utils_import():
    """Verify sanitizing helpers can be imported."""
    from utils import sanitize_text, safe_int, safe_float
    assert callable(sanitize_text)
    assert safe_int('12.6') == 13
    assert safe_float('abc', 0) == 0
    print("OK: Utils import successfully")

def test_catalog_unchanged():
    """Verify the built-in plans have their expected shape."""
    from constants import WORKOUT_PLANS, DIET_PLANS

    # These values must not change
    assert len(WORKOUT_PLANS[0]['days']) == 7
    assert DIET_PLANS[0]['targetCalories'] == 2200
    assert DIET_PLANS[0]['targetProtein'] == 170
    assert DIET_PLANS[0]['meals'][0]['items'][0]['name'] == 'Banana'
    print("OK: Catalog unchanged")

def test_app_runs():
    """Verify app can create test client."""
    from app import create_app
    from models import db
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        with app.test_client() as client:
            response = client.get('/')
            assert response.status_code == 200
            assert response.get_json()['success'] is True
        print("OK: App serves dashboard")

if __name__ == '__main__':
    print("Running smoke tests...\n")

    tests = [
        test_app_imports,
        test_models_import,
        test_utils_import,
        test_catalog_unchanged,
        test_app_runs,
    ]

    failed = 0
    for test in tests:
        try:
            test()
        except Exception as e:
            print(f"FAIL: {test.__name__} - {e}")
            failed += 1

    print(f"\n{'='*40}")
    if failed:
        print(f"FAILED: {failed}/{len(tests)} tests")
        sys.exit(1)
    else:
        print(f"PASSED: {len(tests)}/{len(tests)} tests")
        sys.exit(0)
