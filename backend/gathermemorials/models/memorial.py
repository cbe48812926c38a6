from werkzeug.security import generate_password_hash, check_password_hash
from gathermemorials.extensions import db
from .base import BaseModel
from .soft_delete_mixin import SoftDeleteMixin


class Memorial(BaseModel, SoftDeleteMixin):
    __tablename__ = "memorials"

    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)

    # Basic info
    first_name = db.Column(db.String(100), nullable=True)
    middle_name = db.Column(db.String(100), nullable=True)
    last_name = db.Column(db.String(100), nullable=True)
    nickname = db.Column(db.String(100), nullable=True)
    date_of_birth = db.Column(db.Date, nullable=True)
    date_of_death = db.Column(db.Date, nullable=True)
    featured_photo_url = db.Column(db.String(512), nullable=True)
    cover_photo_url = db.Column(db.String(512), nullable=True)

    headline = db.Column(db.String(200), nullable=True)
    obituary = db.Column(db.Text, nullable=True)

    # Donation
    donation_enabled = db.Column(db.Boolean, default=False, nullable=False)
    donation_type = db.Column(db.String(20), nullable=True)
    donation_url = db.Column(db.String(512), nullable=True)
    donation_description = db.Column(db.Text, nullable=True)

    # Guestbook
    guestbook_enabled = db.Column(db.Boolean, default=False, nullable=False)
    guestbook_moderated = db.Column(db.Boolean, default=True, nullable=False)
    guestbook_notify_email = db.Column(db.String(120), nullable=True)
    guestbook_notify_frequency = db.Column(db.String(20), default="instant", nullable=False)

    # Privacy & sharing
    privacy = db.Column(db.String(20), default="private", nullable=False)
    password_hash = db.Column(db.String(256), nullable=True)
    custom_url = db.Column(db.String(50), unique=True, nullable=True, index=True)
    seo_enabled = db.Column(db.Boolean, default=False, nullable=False)

    # Lifecycle
    status = db.Column(db.String(20), default="draft", nullable=False, index=True)
    published_at = db.Column(db.DateTime(timezone=True), nullable=True)
    archived_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Payment
    payment_status = db.Column(db.String(20), default="unpaid", nullable=False)
    stripe_session_id = db.Column(db.String(255), nullable=True)

    # Wizard progress
    current_step = db.Column(db.Integer, default=1, nullable=False)
    completed_steps = db.Column(db.JSON, default=list, nullable=False)
    last_saved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    view_count = db.Column(db.Integer, default=0, nullable=False)

    owner = db.relationship("User")

    services = db.relationship(
        "MemorialService",
        back_populates="memorial",
        order_by="MemorialService.date",
        cascade="all, delete-orphan"
    )

    media = db.relationship(
        "MediaAsset",
        back_populates="memorial",
        order_by="MediaAsset.created_at",
        cascade="all, delete-orphan"
    )

    def set_password(self, password):
        self.password_hash = generate_password_hash(password) if password else None

    def check_password(self, password):
        if not self.password_hash or not password:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def full_name(self):
        return " ".join(p for p in (self.first_name, self.last_name) if p)
