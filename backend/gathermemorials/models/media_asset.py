from gathermemorials.extensions import db
from .base import BaseModel


class MediaAsset(BaseModel):
    __tablename__ = "media_assets"

    memorial_id = db.Column(db.String(36), db.ForeignKey("memorials.id"), nullable=False, index=True)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)
    media_type = db.Column(db.String(10), nullable=False)  # photo | video

    # Mirrors the CDN asset
    url = db.Column(db.String(512), nullable=False)
    public_id = db.Column(db.String(255), nullable=False, index=True)
    thumbnail_url = db.Column(db.String(512), nullable=True)
    format = db.Column(db.String(20), nullable=True)
    size_bytes = db.Column(db.Integer, nullable=True)
    width = db.Column(db.Integer, nullable=True)
    height = db.Column(db.Integer, nullable=True)
    duration = db.Column(db.Float, nullable=True)

    caption = db.Column(db.String(500), nullable=True)
    is_primary = db.Column(db.Boolean, default=False, nullable=False)

    memorial = db.relationship("Memorial", back_populates="media")
