import uuid

from django.db import models

from .domain import Status, format_timestamp


def _new_order_id() -> str:
    return uuid.uuid4().hex


class Order(models.Model):
    STATUS_CHOICES = [(status.value, status.value.title()) for status in Status]

    id = models.CharField(primary_key=True, max_length=64, default=_new_order_id, editable=False)
    customer_name = models.CharField(max_length=50)
    phone = models.CharField(max_length=10)
    notes = models.CharField(max_length=200, blank=True, default="")
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=Status.NEW.value, db_index=True)
    created_at = models.DateTimeField(db_index=True)
    updated_at = models.DateTimeField()
    created_by = models.CharField(max_length=128)
    history = models.JSONField(default=list)
    version = models.IntegerField(default=0)  # control optimista

    class Meta:
        ordering = ["-created_at", "id"]

    def __str__(self):
        return f"{self.id}:{self.status}:{self.version}"

    def to_document(self) -> dict:
        return {
            "id": self.id,
            "customerName": self.customer_name,
            "phone": self.phone,
            "notes": self.notes,
            "status": self.status,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
            "createdBy": self.created_by,
            "history": list(self.history),
            "version": self.version,
        }
