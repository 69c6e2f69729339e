"""
History Models

Contains the per-day progress records: WorkoutHistory (one dated workout),
DietHistory (one dated diet day) and MacroHistory (macro totals for a day).
Each is unique per (date, user_id).
"""

from .base import db, new_id, TimestampMixin


class WorkoutHistory(TimestampMixin, db.Model):
    """A workout day as performed on a calendar date."""
    __tablename__ = 'workout_history'
    __table_args__ = (db.UniqueConstraint('date', 'user_id', name='uq_workout_history_date_user'),)

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    date = db.Column(db.String(10), nullable=False, index=True)  # YYYY-MM-DD
    workout = db.Column(db.JSON, nullable=False)
    completed = db.Column(db.Boolean, default=False)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'date': self.date,
            'workout': self.workout or {'name': '', 'exercises': []},
            'completed': bool(self.completed),
        }


class DietHistory(TimestampMixin, db.Model):
    """A diet day: the plan's meals with each item's completed flag."""
    __tablename__ = 'diet_history'
    __table_args__ = (db.UniqueConstraint('date', 'user_id', name='uq_diet_history_date_user'),)

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    date = db.Column(db.String(10), nullable=False, index=True)
    meals = db.Column(db.JSON, nullable=False, default=list)
    completed = db.Column(db.Boolean, default=False)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'date': self.date,
            'meals': self.meals if isinstance(self.meals, list) else [],
            'completed': bool(self.completed),
        }


class MacroHistory(TimestampMixin, db.Model):
    """Macros consumed on a date, summed over completed meal items."""
    __tablename__ = 'macro_history'
    __table_args__ = (db.UniqueConstraint('date', 'user_id', name='uq_macro_history_date_user'),)

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    date = db.Column(db.String(10), nullable=False, index=True)
    calories = db.Column(db.Integer, default=0)
    protein = db.Column(db.Integer, default=0)
    carbs = db.Column(db.Integer, default=0)
    fats = db.Column(db.Integer, default=0)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'date': self.date,
            'calories': self.calories or 0,
            'protein': self.protein or 0,
            'carbs': self.carbs or 0,
            'fats': self.fats or 0,
        }
