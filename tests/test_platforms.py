import unittest

from productlens.errors import UnsupportedSourceError
from productlens.platforms import detect_platform, get_platform, list_platforms


class TestPlatforms(unittest.TestCase):
    def test_detect_by_host(self):
        cases = {
            "https://www.amazon.in/dp/B0ABC12345": "amazon",
            "https://amzn.in/d/abc": "amazon",
            "https://dl.flipkart.com/s/xyz": "flipkart",
            "https://www.myntra.com/kurtas/brand/123/buy": "myntra",
            "https://m.snapdeal.com/product/x/123": "snapdeal",
        }
        for url, name in cases.items():
            with self.subTest(url=url):
                self.assertEqual(detect_platform(url).name, name)

    def test_lookalike_host_is_unsupported(self):
        with self.assertRaises(UnsupportedSourceError) as ctx:
            detect_platform("https://www.notamazon.in/dp/B0ABC12345")
        self.assertIn("Supported:", str(ctx.exception))

    def test_invalid_url(self):
        with self.assertRaises(UnsupportedSourceError):
            detect_platform("not a url")

    def test_get_platform(self):
        self.assertEqual(get_platform("myntra").display_name, "Myntra")
        with self.assertRaises(ValueError) as ctx:
            get_platform("ebay")
        self.assertIn("Available:", str(ctx.exception))

    def test_list_platforms(self):
        self.assertEqual(list_platforms(), ["amazon", "flipkart", "myntra", "snapdeal"])

    def test_only_amazon_uses_stealth(self):
        self.assertEqual([n for n in list_platforms() if get_platform(n).stealth], ["amazon"])


if __name__ == "__main__":
    unittest.main()
