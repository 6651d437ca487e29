"""
User subscription model.
"""
from django.db import models
from django.conf import settings
from .plan import Plan


class Subscription(models.Model):
    """A user's enrollment in a plan for one billing period."""

    STATUS_ACTIVE = "Active"
    STATUS_PENDING_DOWNGRADE = "Pending Downgrade"
    STATUS_CANCELED = "Canceled"

    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_PENDING_DOWNGRADE, "Pending Downgrade"),
        (STATUS_CANCELED, "Canceled"),
    ]

    # Statuses that still grant plan benefits
    OPEN_STATUSES = (STATUS_ACTIVE, STATUS_PENDING_DOWNGRADE)

    PAYMENT_PAID = "Paid"
    PAYMENT_FREE = "Free"
    PAYMENT_FAILED = "Failed"

    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_PAID, "Paid"),
        (PAYMENT_FREE, "Free"),
        (PAYMENT_FAILED, "Failed"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='subscriptions'
    )
    plan = models.ForeignKey(Plan, on_delete=models.PROTECT, related_name='subscriptions')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField(
        help_text="End of the current period; effective date of a pending downgrade"
    )
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_PAID)
    provider_ref = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Stripe subscription id, or the free tier marker",
    )
    provider_info = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'subscriptions'
        ordering = ['-created_at']
        verbose_name = 'Subscription'
        verbose_name_plural = 'Subscriptions'
        indexes = [
            models.Index(fields=['user', 'status'], name='subscriptio_user_id_5e2a41_idx'),
            models.Index(fields=['provider_ref'], name='subscriptio_provide_9a7c10_idx'),
        ]

    def __str__(self):
        return f"{self.user.email} - {self.plan.name} ({self.status})"
