# gathermemorials/models/soft_delete_mixin.py
from gathermemorials.extensions import db
from .base import utcnow


class SoftDeleteMixin:
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def soft_delete(self):
        self.deleted_at = utcnow()

    @property
    def is_deleted(self):
        return self.deleted_at is not None
