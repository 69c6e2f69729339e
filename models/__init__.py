"""
Models Package

Exports all database models and the db instance for use throughout the application.
"""

from .base import db, new_id

from .plans import WorkoutPlan, DietPlan
from .history import WorkoutHistory, DietHistory, MacroHistory
from .settings import UserSettings

# Table name -> model, in the order the setup report lists them
TABLE_MODELS = {
    'workout_plans': WorkoutPlan,
    'workout_history': WorkoutHistory,
    'diet_plans': DietPlan,
    'diet_history': DietHistory,
    'macro_history': MacroHistory,
    'user_settings': UserSettings,
}

__all__ = [
    'db',
    'new_id',
    'WorkoutPlan',
    'DietPlan',
    'WorkoutHistory',
    'DietHistory',
    'MacroHistory',
    'UserSettings',
    'TABLE_MODELS',
]
