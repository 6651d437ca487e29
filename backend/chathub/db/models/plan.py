"""
Subscription plan model.
"""
from decimal import Decimal
from django.db import models


class Plan(models.Model):
    """A purchasable plan granting a monthly credit allowance."""

    name = models.CharField(max_length=100, unique=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0"))
    credits_per_month = models.DecimalField(max_digits=14, decimal_places=6, default=Decimal("0"))
    stripe_product_id = models.CharField(max_length=255, blank=True, default="")
    stripe_price_id = models.CharField(max_length=255, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'plans'
        ordering = ['price']
        verbose_name = 'Plan'
        verbose_name_plural = 'Plans'

    @property
    def is_free(self) -> bool:
        return self.price == 0

    def __str__(self):
        return f"{self.name} ({self.price})"
