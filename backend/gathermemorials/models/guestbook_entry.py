from gathermemorials.extensions import db
from .base import BaseModel


class GuestbookEntry(BaseModel):
    __tablename__ = "guestbook_entries"

    __table_args__ = (
        db.Index("ix_guestbook_memorial_status", "memorial_id", "status"),
        db.Index("ix_guestbook_user_status", "user_id", "status"),
    )

    memorial_id = db.Column(db.String(36), db.ForeignKey("memorials.id"), nullable=False, index=True)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)

    author_name = db.Column(db.String(200), nullable=False)
    author_email = db.Column(db.String(120), nullable=True)
    message = db.Column(db.Text, nullable=False)
    photo_url = db.Column(db.String(512), nullable=True)

    status = db.Column(db.String(20), nullable=False, default="pending")  # pending | approved | rejected
    moderated_by = db.Column(db.String(36), nullable=True)
    moderated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    moderation_reason = db.Column(db.String(500), nullable=True)

    memorial = db.relationship("Memorial")
