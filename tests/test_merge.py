import unittest

from productlens.merge import merge_records
from productlens.models import DeliveryInfo, ProductRecord, Variants


class TestMergeRecords(unittest.TestCase):
    def test_empty_primary_scalar_takes_secondary(self):
        merged = merge_records(ProductRecord(title="Kurta", price=None), ProductRecord(price="₹999"))
        self.assertEqual(merged.title, "Kurta")
        self.assertEqual(merged.price, "₹999")

    def test_primary_scalar_wins(self):
        merged = merge_records(ProductRecord(price="₹1,099"), ProductRecord(price="₹999"))
        self.assertEqual(merged.price, "₹1,099")

    def test_images_and_features_are_unioned_in_order(self):
        merged = merge_records(
            ProductRecord(images=["a.jpg", "b.jpg"], features=["Cotton"]),
            ProductRecord(images=["b.jpg", "c.jpg"], features=["Cotton", "Machine wash"]),
        )
        self.assertEqual(merged.images, ["a.jpg", "b.jpg", "c.jpg"])
        self.assertEqual(merged.features, ["Cotton", "Machine wash"])

    def test_variants_merge_per_key(self):
        merged = merge_records(
            ProductRecord(variants=Variants(sizes=["S", "M"])),
            ProductRecord(variants=Variants(sizes=["XL"], colors=["Blue"])),
        )
        self.assertEqual(merged.variants.sizes, ["S", "M"])
        self.assertEqual(merged.variants.colors, ["Blue"])

    def test_unresolved_delivery_takes_resolved_one(self):
        merged = merge_records(
            ProductRecord(delivery=DeliveryInfo(location_code="110001")),
            ProductRecord(delivery=DeliveryInfo(available=True, estimated_date="Tomorrow")),
        )
        self.assertTrue(merged.delivery.available)
        self.assertEqual(merged.delivery.estimated_date, "Tomorrow")
        self.assertEqual(merged.delivery.location_code, "110001")

    def test_none_sides(self):
        record = ProductRecord(title="Only")
        self.assertEqual(merge_records(record, None).title, "Only")
        self.assertEqual(merge_records(None, record).title, "Only")
        self.assertEqual(merge_records(None, None), ProductRecord())

    def test_inputs_are_not_mutated(self):
        primary = ProductRecord(images=["a.jpg"])
        merge_records(primary, ProductRecord(images=["b.jpg"], title="T"))
        self.assertEqual(primary.images, ["a.jpg"])
        self.assertIsNone(primary.title)


if __name__ == "__main__":
    unittest.main()
