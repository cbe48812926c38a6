from gathermemorials.extensions import db
from .base import BaseModel

# Column name -> value used when a user has never saved preferences
DEFAULT_PREFERENCES = {
    "email_notifications": True,
    "sms_notifications": False,
    "reminder_time": "09:00:00",
    "timezone": "America/New_York",
    "remind_day_before": True,
    "remind_day_of": True,
    "remind_week_before": False,
    "all_souls_day": True,
    "all_saints_day": True,
    "good_friday": True,
    "easter": True,
    "christmas": True,
    "divine_mercy_sunday": False,
    "assumption_of_mary": False,
    "daily_digest": False,
    "weekly_digest": True,
    "digest_day": 0,  # Sunday
    "default_birthday_reminder": True,
    "default_death_anniversary_reminder": True,
}


class ReminderPreferences(BaseModel):
    __tablename__ = "prayer_reminder_preferences"

    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, unique=True, index=True)

    email_notifications = db.Column(db.Boolean, nullable=False, default=True)
    sms_notifications = db.Column(db.Boolean, nullable=False, default=False)
    reminder_time = db.Column(db.String(8), nullable=False, default="09:00:00")
    timezone = db.Column(db.String(64), nullable=False, default="America/New_York")

    remind_day_before = db.Column(db.Boolean, nullable=False, default=True)
    remind_day_of = db.Column(db.Boolean, nullable=False, default=True)
    remind_week_before = db.Column(db.Boolean, nullable=False, default=False)

    # Feast days
    all_souls_day = db.Column(db.Boolean, nullable=False, default=True)
    all_saints_day = db.Column(db.Boolean, nullable=False, default=True)
    good_friday = db.Column(db.Boolean, nullable=False, default=True)
    easter = db.Column(db.Boolean, nullable=False, default=True)
    christmas = db.Column(db.Boolean, nullable=False, default=True)
    divine_mercy_sunday = db.Column(db.Boolean, nullable=False, default=False)
    assumption_of_mary = db.Column(db.Boolean, nullable=False, default=False)

    daily_digest = db.Column(db.Boolean, nullable=False, default=False)
    weekly_digest = db.Column(db.Boolean, nullable=False, default=True)
    digest_day = db.Column(db.Integer, nullable=False, default=0)

    # Applied to prayer list entries as they are added
    default_birthday_reminder = db.Column(db.Boolean, nullable=False, default=True)
    default_death_anniversary_reminder = db.Column(db.Boolean, nullable=False, default=True)
