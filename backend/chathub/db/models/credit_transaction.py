"""
Credit transaction model.
"""
from decimal import Decimal
from django.db import models
from django.conf import settings
from .subscription import Subscription


class CreditTransaction(models.Model):
    """Audit row for a plan-driven change of a user's credit balance."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='credit_transactions'
    )
    subscription = models.ForeignKey(
        Subscription,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='credit_transactions'
    )
    credits_deducted = models.DecimalField(max_digits=14, decimal_places=6, default=Decimal("0"))
    credits_added = models.DecimalField(max_digits=14, decimal_places=6, default=Decimal("0"))
    payment_method = models.CharField(max_length=50, blank=True, default="")
    description = models.CharField(max_length=255, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'credit_transactions'
        ordering = ['-created_at']
        verbose_name = 'Credit Transaction'
        verbose_name_plural = 'Credit Transactions'

    def __str__(self):
        return f"{self.user_id}: -{self.credits_deducted} +{self.credits_added}"
