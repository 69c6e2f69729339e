"""
Settings Model

Contains the UserSettings model: one row per user holding the current plan
markers, the storage preference and the last database status report.
"""

from .base import db, new_id, TimestampMixin


class UserSettings(TimestampMixin, db.Model):
    """Per-user settings row."""
    __tablename__ = 'user_settings'

    id = db.Column(db.String(64), primary_key=True, default=new_id)
    user_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    # None = never chosen, '' = explicitly cleared
    current_workout_plan_id = db.Column(db.String(64), nullable=True)
    current_diet_plan_id = db.Column(db.String(64), nullable=True)
    storage_preference = db.Column(db.String(20), default='database')
    database_status = db.Column(db.JSON, nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'current_workout_plan_id': self.current_workout_plan_id,
            'current_diet_plan_id': self.current_diet_plan_id,
            'storage_preference': self.storage_preference or 'database',
            'database_status': self.database_status,
        }
