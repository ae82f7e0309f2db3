# Adds Review.is_verified and backfills it from existing orders.

from django.db import migrations, models


def mark_verified_reviews(apps, schema_editor):
    """A review is verified when its author bought the product in a non-cancelled order."""
    Review = apps.get_model("shop", "Review")
    OrderItem = apps.get_model("shop", "OrderItem")

    purchases = OrderItem.objects.exclude(order__status="cancelled").filter(
        order__customer_id=models.OuterRef("customer_id"),
        product_id=models.OuterRef("product_id"),
    )
    Review.objects.filter(models.Exists(purchases)).update(is_verified=True)


class Migration(migrations.Migration):

    dependencies = [
        ("shop", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="review",
            name="is_verified",
            field=models.BooleanField(default=False),
        ),
        migrations.RunPython(mark_verified_reviews, migrations.RunPython.noop),
    ]
