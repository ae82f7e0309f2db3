"""
The classic django.test.TestCase style: fixtures in setUpTestData, one
transaction per test, assertions through unittest methods.
"""
from decimal import Decimal

from django.test import TestCase

from storefront.shop.models import Category, Product, Supplier, Tag


class ProductModelTest(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.category = Category.objects.create(name="Cameras")
        cls.supplier = Supplier.objects.create(name="Optika", country="JP")
        cls.tag = Tag.objects.create(name="Mirrorless")
        cls.product = Product.objects.create(
            sku="CAM-001",
            name="Compact Camera",
            price=Decimal("499.00"),
            stock=7,
            category=cls.category,
            supplier=cls.supplier,
            attributes={"megapixels": 24},
        )
        cls.product.tags.add(cls.tag)

    def test_str(self):
        self.assertEqual(str(self.product), "Compact Camera (CAM-001)")

    def test_slug_generated(self):
        self.assertEqual(self.product.slug, "compact-camera")

    def test_default_ordering_by_name(self):
        Product.objects.create(sku="CAM-000", name="Action Camera", price=Decimal("199.00"), category=self.category)
        self.assertEqual(
            list(Product.objects.values_list("sku", flat=True)),
            ["CAM-000", "CAM-001"],
        )

    def test_reverse_relations(self):
        self.assertQuerySetEqual(self.category.products.all(), [self.product])
        self.assertQuerySetEqual(self.supplier.products.all(), [self.product])
        self.assertQuerySetEqual(self.tag.products.all(), [self.product])

    def test_supplier_delete_sets_null(self):
        self.supplier.delete()
        self.product.refresh_from_db()
        self.assertIsNone(self.product.supplier)

    def test_json_attributes_lookup(self):
        self.assertTrue(Product.objects.filter(attributes__megapixels__gte=20).exists())
        self.assertFalse(Product.objects.filter(attributes__megapixels__gte=30).exists())

    def test_get_missing_raises_does_not_exist(self):
        with self.assertRaises(Product.DoesNotExist):
            Product.objects.get(sku="NOPE-1")
