"""
Plan Models

Contains the WorkoutPlan and DietPlan models. A row here is a user's custom
plan; the built-in catalog plans never touch the database.
"""

from .base import db, TimestampMixin


class WorkoutPlan(TimestampMixin, db.Model):
    """Custom workout plan. `days` holds the ordered list of workout days."""
    __tablename__ = 'workout_plans'

    # Imported plans share a fixed id, so the key is scoped by user
    id = db.Column(db.String(64), primary_key=True)
    user_id = db.Column(db.String(64), primary_key=True, index=True)
    name = db.Column(db.String(200), nullable=False, default='')
    description = db.Column(db.Text, default='')
    days = db.Column(db.JSON, nullable=False, default=list)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name or '',
            'description': self.description or '',
            'days': self.days or [],
        }


class DietPlan(TimestampMixin, db.Model):
    """Custom diet plan with daily macro targets and an ordered list of meals."""
    __tablename__ = 'diet_plans'

    id = db.Column(db.String(64), primary_key=True)
    user_id = db.Column(db.String(64), primary_key=True, index=True)
    name = db.Column(db.String(200), nullable=False, default='')
    description = db.Column(db.Text, default='')
    target_calories = db.Column(db.Integer, default=0)
    target_protein = db.Column(db.Integer, default=0)
    target_carbs = db.Column(db.Integer, default=0)
    target_fats = db.Column(db.Integer, default=0)
    meals = db.Column(db.JSON, nullable=False, default=list)

    def to_dict(self):
        # Plan payloads keep the camelCase keys of the import/export format
        return {
            'id': self.id,
            'name': self.name or '',
            'description': self.description or '',
            'targetCalories': self.target_calories or 0,
            'targetProtein': self.target_protein or 0,
            'targetCarbs': self.target_carbs or 0,
            'targetFats': self.target_fats or 0,
            'meals': self.meals or [],
        }
