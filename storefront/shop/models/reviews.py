# storefront/shop/models/reviews.py
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from storefront.shop.models.base import TimeStampedModel


class Review(TimeStampedModel):
    product = models.ForeignKey("shop.Product", on_delete=models.CASCADE, related_name="reviews")
    customer = models.ForeignKey("shop.Customer", on_delete=models.CASCADE, related_name="reviews")
    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    title = models.CharField(max_length=200, blank=True, default="")
    body = models.TextField(blank=True, default="")
    is_verified = models.BooleanField(default=False)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["product", "customer"], name="one_review_per_customer"),
            models.CheckConstraint(
                condition=models.Q(rating__gte=1) & models.Q(rating__lte=5),
                name="review_rating_range",
            ),
        ]

    def __str__(self):
        return f"{self.rating}/5 for {self.product_id} by {self.customer_id}"
