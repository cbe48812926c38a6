from gathermemorials.extensions import db
from .base import BaseModel


class BlockedUser(BaseModel):
    __tablename__ = "blocked_users"

    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    blocked_by = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    reason = db.Column(db.String(500), nullable=True)

    user = db.relationship("User", foreign_keys=[user_id])

    __table_args__ = (
        db.UniqueConstraint("user_id", "blocked_by", name="uq_blocked_user_per_owner"),
    )
