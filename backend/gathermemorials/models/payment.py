from gathermemorials.extensions import db
from .base import BaseModel


class Payment(BaseModel):
    __tablename__ = "payments"

    memorial_id = db.Column(db.String(36), db.ForeignKey("memorials.id"), nullable=False, index=True)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)

    stripe_session_id = db.Column(db.String(255), unique=True, nullable=False)
    stripe_payment_intent = db.Column(db.String(255), nullable=True)
    amount = db.Column(db.Integer, nullable=False)  # cents
    currency = db.Column(db.String(10), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="completed")
    customer_email = db.Column(db.String(120), nullable=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
