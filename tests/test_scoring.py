import json
import unittest

from fakes import el, snapshot_from_tree

from productlens.indexer import build_index
from productlens.models import Candidate
from productlens.scoring import FieldScorers, PageView, rank
from productlens.strategies.index_strategy import extract_from_snapshot

DESCRIPTION = (
    "A lightweight trail running shoe with a grippy outsole, a breathable mesh upper "
    "and a responsive foam midsole that keeps you comfortable on long runs over rough ground."
)


def product_page(**kwargs):
    return snapshot_from_tree(
        el("header", el("nav", el("a", text="Home"), el("h2", text="Shop by category"))),
        el(
            "div",
            el("a", text="Home"),
            el("a", text="Footwear"),
            el("a", text="Running Shoes"),
            cls="breadcrumbs",
        ),
        el(
            "div",
            el(
                "div",
                el("img", src="https://cdn.example.com/product/zoom/shoe-1.jpg", rect=(0, 100, 500, 500)),
                el("img", src="https://cdn.example.com/product/shoe-2.jpg", rect=(0, 600, 400, 400)),
                el("img", src="https://cdn.example.com/icons/cart-icon.png", rect=(0, 0, 60, 60)),
                cls="product-gallery",
            ),
            el("h1", text="Trail Runner 2 Running Shoes for Men", font=28, rect=(520, 100, 600, 40)),
            el(
                "div",
                el("span", text="Price:"),
                el("span", text="₹2,499", cls="selling-price"),
                el("del", text="₹3,999"),
                cls="price-box",
            ),
            el("div", el("h3", text="Product Description"), el("p", text=DESCRIPTION), cls="product-desc"),
            el(
                "ul",
                el("li", text="Breathable mesh upper"),
                el("li", text="Cushioned midsole for comfort"),
                cls="key-features",
            ),
            el("table", el("tr", el("td", text="Item Weight"), el("td", text="350 g"))),
            el("div", el("span", text="Size"), el("button", text="7"), el("button", text="8"), el("button", text="9")),
            cls="product-main",
        ),
        el("footer", el("p", text="Copyright and legal text " * 10)),
        **kwargs,
    )


def scorers_for(snapshot, with_index=True):
    index = build_index(snapshot) if with_index else None
    return FieldScorers(PageView(snapshot, index))


class TestRank(unittest.TestCase):
    def test_ties_go_to_document_order(self):
        order = {"a": 0, "b": 1, "c": 2}
        ranked = rank([Candidate("b", 5), Candidate("a", 5), Candidate("c", 7)], order)
        self.assertEqual([c.location for c in ranked], ["c", "a", "b"])


class TestFieldScorers(unittest.TestCase):
    def setUp(self):
        self.snapshot = product_page()
        self.scorers = scorers_for(self.snapshot)

    def test_title_prefers_h1_outside_navigation(self):
        best = self.scorers.best(self.scorers.title_candidates())
        self.assertEqual(best.text, "Trail Runner 2 Running Shoes for Men")
        self.assertNotIn("Shop by category", [c.text for c in self.scorers.title_candidates()])

    def test_price_and_struck_original_price(self):
        prices = self.scorers.price_candidates()
        best = self.scorers.best(prices)
        self.assertEqual(best.text, "₹2,499")
        self.assertEqual(self.scorers.original_price(best, prices), "₹3,999")

    def test_description_near_label(self):
        best = self.scorers.best(self.scorers.description_candidates())
        self.assertEqual(best.text, DESCRIPTION)

    def test_images_rank_large_product_images_and_drop_icons(self):
        self.assertEqual(
            self.scorers.best_images(),
            [
                "https://cdn.example.com/product/zoom/shoe-1.jpg",
                "https://cdn.example.com/product/shoe-2.jpg",
            ],
        )

    def test_weight_from_table_row(self):
        best = self.scorers.best(self.scorers.weight_candidates())
        self.assertEqual(best.text, "350 g")
        self.assertEqual(best.score, 7)

    def test_category_is_second_breadcrumb(self):
        self.assertEqual(self.scorers.breadcrumbs(), ["Home", "Footwear", "Running Shoes"])
        self.assertEqual(self.scorers.best(self.scorers.category_candidates()).text, "Footwear")

    def test_features_from_list_items(self):
        self.assertEqual(self.scorers.features(), ["Breathable mesh upper", "Cushioned midsole for comfort"])

    def test_available_sizes(self):
        variants = self.scorers.available_variants()
        self.assertEqual(variants.sizes, ["7", "8", "9"])
        self.assertEqual(variants.colors, [])

    def test_direct_scan_matches_index(self):
        scan = scorers_for(self.snapshot, with_index=False)
        self.assertEqual(scan.best(scan.title_candidates()).text, "Trail Runner 2 Running Shoes for Men")
        self.assertEqual(scan.best(scan.price_candidates()).text, "₹2,499")
        self.assertEqual(scan.best_images(), self.scorers.best_images())


class TestScorerEdgeCases(unittest.TestCase):
    def test_equal_headings_first_in_document_wins(self):
        snapshot = snapshot_from_tree(el("h1", text="First product name"), el("h1", text="Second product name"))
        scorers = scorers_for(snapshot)
        self.assertEqual(scorers.best(scorers.title_candidates()).text, "First product name")

    def test_weight_from_definition_list(self):
        snapshot = snapshot_from_tree(el("dl", el("dt", text="Weight"), el("dd", text="1.2 kg")))
        scorers = scorers_for(snapshot)
        best = scorers.best(scorers.weight_candidates())
        self.assertEqual(best.text, "1.2 kg")

    def test_unresolved_fields_are_none_not_errors(self):
        snapshot = snapshot_from_tree(el("div", text="nothing useful here"))
        scorers = scorers_for(snapshot)
        self.assertIsNone(scorers.best(scorers.title_candidates()))
        self.assertIsNone(scorers.best(scorers.price_candidates()))
        self.assertEqual(scorers.best_images(), [])

    def test_srcset_picks_largest(self):
        snapshot = snapshot_from_tree(
            el(
                "img",
                attrs={"srcset": "https://img.example.com/p-200.jpg 200w, https://img.example.com/p-1200.jpg 1200w"},
                src="https://img.example.com/p-200.jpg",
                rect=(0, 0, 400, 400),
            )
        )
        self.assertEqual(scorers_for(snapshot).best_images(), ["https://img.example.com/p-1200.jpg"])


class TestExtractFromSnapshot(unittest.TestCase):
    def test_full_record(self):
        record = extract_from_snapshot(product_page(), None)
        self.assertEqual(record.title, "Trail Runner 2 Running Shoes for Men")
        self.assertEqual(record.price, "₹2,499")
        self.assertEqual(record.original_price, "₹3,999")
        self.assertEqual(record.category, "Footwear")
        self.assertEqual(record.weight, "350 g")
        self.assertTrue(record.is_complete())

    def test_json_ld_fills_gaps(self):
        ld = json.dumps(
            {
                "@context": "https://schema.org",
                "@type": "Product",
                "name": "Ignored Because Heading Exists",
                "description": "From structured data",
                "image": ["https://img.example.com/a.jpg"],
                "offers": {"@type": "Offer", "price": "999", "priceCurrency": "INR"},
            }
        )
        snapshot = snapshot_from_tree(el("h1", text="Cotton Kurta Blue"), structured_data=[ld])
        record = extract_from_snapshot(snapshot, build_index(snapshot))
        self.assertEqual(record.title, "Cotton Kurta Blue")
        self.assertEqual(record.price, "₹999")
        self.assertEqual(record.description, "From structured data")
        self.assertEqual(record.images, ["https://img.example.com/a.jpg"])


if __name__ == "__main__":
    unittest.main()
