import json
import tempfile
import unittest
from pathlib import Path

from productlens.cache import ResultCache, url_hash
from productlens.models import ProductRecord

URL = "https://www.myntra.com/kurtas/brand/kurta/12345/buy"


class Clock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestResultCache(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.clock = Clock()
        self.cache = ResultCache(Path(self._tmp.name), ttl_hours=24, clock=self.clock)

    def test_file_named_by_md5_of_url(self):
        self.assertEqual(self.cache.path_for(URL).name, f"{url_hash(URL)}.json")
        self.assertEqual(len(url_hash(URL)), 32)

    def test_put_then_get(self):
        record = ProductRecord(title="Kurta", price="₹799", images=["https://x/a.jpg"])
        path = self.cache.put(URL, record)

        payload = json.loads(path.read_text(encoding="utf-8"))
        self.assertEqual(payload["timestamp"], 1_700_000_000_000)
        self.assertEqual(payload["url"], URL)
        self.assertEqual(payload["data"]["title"], "Kurta")
        self.assertEqual(self.cache.get(URL), record)

    def test_expires_after_ttl(self):
        self.cache.put(URL, ProductRecord(title="Kurta"))
        self.clock.now += 23 * 3600
        self.assertIsNotNone(self.cache.get(URL))
        self.clock.now += 3600
        self.assertIsNone(self.cache.get(URL))

    def test_miss(self):
        self.assertIsNone(self.cache.get(URL))

    def test_corrupt_entry_is_a_miss(self):
        path = self.cache.path_for(URL)
        path.write_text("{not json", encoding="utf-8")
        self.assertIsNone(self.cache.get(URL))

    def test_no_temp_files_left_behind(self):
        self.cache.put(URL, ProductRecord(title="Kurta"))
        self.cache.put(URL, ProductRecord(title="Kurta v2"))
        names = [p.name for p in Path(self._tmp.name).iterdir()]
        self.assertEqual(names, [f"{url_hash(URL)}.json"])
        self.assertEqual(self.cache.get(URL).title, "Kurta v2")


if __name__ == "__main__":
    unittest.main()
