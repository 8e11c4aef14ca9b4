from django.db import models

from .utils import generate_order_id


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class Order(models.Model):
    # Sent to PayU as txnid, so it must stay stable for the order's lifetime.
    id = models.CharField(primary_key=True, max_length=25, default=generate_order_id, editable=False)
    user_id = models.CharField(max_length=64, blank=True, default="", db_index=True)

    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=8, default="INR")
    product_info = models.CharField(max_length=255)

    customer_name = models.CharField(max_length=128)
    customer_email = models.EmailField()
    customer_phone = models.CharField(max_length=16)

    status = models.CharField(
        max_length=16, choices=PaymentStatus.choices, default=PaymentStatus.PENDING, db_index=True
    )
    payment_status = models.CharField(
        max_length=16, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )
    payment_details = models.JSONField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    @property
    def is_pending(self) -> bool:
        return self.status == PaymentStatus.PENDING

    @property
    def is_paid(self) -> bool:
        return self.status == PaymentStatus.COMPLETED

    def __str__(self):
        return f"{self.id} ({self.status})"


class Transaction(models.Model):
    """Audit record of a verified PayU result. Written once, never updated."""

    order = models.ForeignKey(Order, on_delete=models.PROTECT, related_name="transactions")
    transaction_id = models.CharField(max_length=64, unique=True)
    payment_id = models.CharField(max_length=64, blank=True, default="", db_index=True)
    user_id = models.CharField(max_length=64, blank=True, default="")

    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=8, default="INR")
    status = models.CharField(max_length=16, choices=PaymentStatus.choices)

    product_info = models.CharField(max_length=255, blank=True, default="")
    customer_name = models.CharField(max_length=128, blank=True, default="")
    customer_email = models.EmailField(blank=True, default="")
    customer_phone = models.CharField(max_length=16, blank=True, default="")

    payu_response = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Transaction records are append-only")
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.transaction_id} {self.status} ₹{self.amount}"
