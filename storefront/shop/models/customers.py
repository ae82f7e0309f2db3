# storefront/shop/models/customers.py
from django.db import models

from storefront.shop.managers import CustomerManager
from storefront.shop.models.base import TimeStampedModel


class Customer(TimeStampedModel):
    class Tier(models.TextChoices):
        BRONZE = "bronze", "Bronze"
        SILVER = "silver", "Silver"
        GOLD = "gold", "Gold"

    first_name = models.CharField(max_length=60)
    last_name = models.CharField(max_length=60)
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=30, blank=True, default="")
    city = models.CharField(max_length=80, blank=True, default="")
    country = models.CharField(max_length=60, blank=True, default="")
    tier = models.CharField(max_length=10, choices=Tier.choices, default=Tier.BRONZE)
    is_active = models.BooleanField(default=True)

    objects = CustomerManager()

    class Meta:
        ordering = ["last_name", "first_name"]

    def __str__(self):
        return self.full_name

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def clean(self):
        if self.email:
            self.email = self.email.strip().lower()
