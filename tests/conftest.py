import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app
from models import db
from utils.context import today as tracker_today


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        app.extensions['tracker'].debouncer.flush()
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def state(app):
    return app.extensions['tracker']


@pytest.fixture
def user_id():
    return 'user-1'


@pytest.fixture
def today(app):
    return tracker_today()


def workout_day(*exercises):
    """Workout payload with the given (name, completed, reps) exercises."""
    return {
        'name': 'Test Day',
        'exercises': [
            {'name': name, 'sets': '3x10', 'completed': completed, 'reps': reps}
            for name, completed, reps in exercises
        ],
    }


def diet_meals(*items):
    """One meal holding the given (name, completed, calories) items."""
    return [{
        'name': 'Lunch',
        'time': '1:00 PM',
        'items': [
            {'name': name, 'completed': completed, 'calories': calories,
             'protein': 10, 'carbs': 5, 'fats': 2}
            for name, completed, calories in items
        ],
    }]
