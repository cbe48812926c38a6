from gathermemorials.extensions import db
from .base import BaseModel, utcnow


class PrayerListEntry(BaseModel):
    __tablename__ = "prayer_list_entries"

    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    memorial_id = db.Column(db.String(36), db.ForeignKey("memorials.id"), nullable=False, index=True)
    notes = db.Column(db.String(500), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    added_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    removed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    remind_on_birthday = db.Column(db.Boolean, default=True, nullable=False)
    remind_on_death_anniversary = db.Column(db.Boolean, default=True, nullable=False)

    memorial = db.relationship("Memorial")

    __table_args__ = (
        db.UniqueConstraint("user_id", "memorial_id", name="uq_prayer_list_user_memorial"),
    )
