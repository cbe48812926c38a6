from gathermemorials.extensions import db
from .base import BaseModel


class MemorialService(BaseModel):
    __tablename__ = "memorial_services"

    memorial_id = db.Column(db.String(36), db.ForeignKey("memorials.id"), nullable=False, index=True)
    service_type = db.Column(db.String(20), nullable=False)  # visitation, funeral, burial, celebration
    date = db.Column(db.Date, nullable=True)
    time = db.Column(db.String(20), nullable=True)
    location = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(512), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    memorial = db.relationship("Memorial", back_populates="services")
