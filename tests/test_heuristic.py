import json
import unittest

from fakes import FakeSession, el, raw_snapshot, snapshot_from_tree

from productlens.config import Settings
from productlens.platforms import get_platform
from productlens.strategies import ExtractionContext, HeuristicStrategy
from productlens.strategies.heuristic import heuristic_from_html, heuristic_from_snapshot

SAREE_TEXT = (
    "Handwoven on traditional pit looms, this cotton saree has a soft drape, a contrast zari border "
    "and a richly patterned pallu that suits festive occasions as well as everyday office wear."
)


def saree_page():
    return snapshot_from_tree(
        el("div", text="Free shipping on all orders", font=12, rect=(0, 0, 800, 20)),
        el("span", text="Handloom Cotton Saree", font=30, rect=(0, 120, 600, 40)),
        el("div", text="₹1,499", font=22, rect=(0, 170, 120, 30)),
        el("div", text="₹2,999", font=14, rect=(130, 170, 120, 20)),
        el("img", src="https://img.example.com/saree-main.jpg", rect=(0, 220, 600, 800)),
        el("img", src="https://img.example.com/brand-logo.png", rect=(0, 0, 100, 40)),
        el("img", src="https://img.example.com/saree-2.jpg", rect=(620, 220, 300, 400)),
        el("p", text=SAREE_TEXT, rect=(0, 1100, 800, 80)),
        url="https://www.myntra.com/sarees/brand/saree/123/buy",
    )


class TestHeuristicFromSnapshot(unittest.TestCase):
    def test_visual_fallbacks(self):
        record = heuristic_from_snapshot(saree_page())
        self.assertEqual(record.title, "Handloom Cotton Saree")
        self.assertEqual(record.price, "₹1,499")
        self.assertEqual(
            record.images,
            ["https://img.example.com/saree-main.jpg", "https://img.example.com/saree-2.jpg"],
        )
        self.assertEqual(record.description, SAREE_TEXT)


class TestHeuristicFromHtml(unittest.TestCase):
    def test_json_ld_wins_over_dom(self):
        ld = {
            "@context": "https://schema.org",
            "@graph": [
                {"@type": "BreadcrumbList"},
                {
                    "@type": "Product",
                    "name": "Silk Saree (Maroon)",
                    "image": "https://img.example.com/ld.jpg",
                    "category": "Home > Sarees > Silk",
                    "offers": {"@type": "Offer", "price": 2499, "priceCurrency": "INR"},
                },
            ],
        }
        html = (
            "<html><head>"
            f'<script type="application/ld+json">{json.dumps(ld)}</script>'
            "</head><body><h1>Silk Saree</h1>"
            '<img src="/media/front.jpg" width="500" height="700">'
            '<img src="/static/icons/wishlist.svg" width="24" height="24">'
            "</body></html>"
        )
        record = heuristic_from_html(html, "https://www.snapdeal.com/product/silk-saree/123")
        self.assertEqual(record.title, "Silk Saree (Maroon)")
        self.assertEqual(record.price, "₹2499")
        self.assertEqual(record.category, "Sarees")
        self.assertEqual(
            record.images,
            ["https://img.example.com/ld.jpg", "https://www.snapdeal.com/media/front.jpg"],
        )

    def test_meta_and_title_tag(self):
        html = (
            "<html><head><title>Blue Denim Jacket | Shop</title>"
            '<meta name="description" content="Classic fit denim jacket."></head>'
            '<body><p class="product-price">MRP: ₹ 1,999</p></body></html>'
        )
        record = heuristic_from_html(html, "https://www.flipkart.com/x/p/itm1")
        self.assertEqual(record.title, "Blue Denim Jacket | Shop")
        self.assertEqual(record.description, "Classic fit denim jacket.")
        self.assertEqual(record.price, "₹ 1,999")


class TestHeuristicStrategy(unittest.IsolatedAsyncioTestCase):
    def context(self, url, session=None, snapshot=None):
        return ExtractionContext(
            url=url, platform=get_platform("myntra"), settings=Settings(), session=session, snapshot=snapshot
        )

    async def test_resnapshots_live_session(self):
        session = FakeSession(raw_snapshot(el("h1", text="Linen Shirt", font=26)))
        record = await HeuristicStrategy().extract(self.context("https://www.myntra.com/shirts/1/buy", session))
        self.assertEqual(record.title, "Linen Shirt")

    async def test_title_from_url_when_nothing_else(self):
        async def fetch_nothing(url, settings):
            return None

        strategy = HeuristicStrategy(fetch_nothing)
        record = await strategy.extract(self.context("https://www.myntra.com/linen-shirt-for-men/123/buy"))
        self.assertEqual(record.title, "Linen Shirt For Men")
        self.assertIsNone(record.price)


if __name__ == "__main__":
    unittest.main()
