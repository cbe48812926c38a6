from gathermemorials.extensions import db
from .base import BaseModel


class MemorialCollaborator(BaseModel):
    __tablename__ = "memorial_collaborators"

    memorial_id = db.Column(db.String(36), db.ForeignKey("memorials.id"), nullable=False, index=True)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    role = db.Column(db.String(20), nullable=False, default="moderator")  # editor | moderator
    invited_by = db.Column(db.String(36), nullable=False)

    user = db.relationship("User")

    __table_args__ = (
        db.UniqueConstraint("memorial_id", "user_id", name="uq_memorial_collaborator"),
    )
