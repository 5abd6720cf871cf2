import unittest

from fakes import FakeSession, el, raw_snapshot, snapshot_from_tree

from productlens.indexer import build_index, index_page, take_snapshot
from productlens.models import DocumentSnapshot, NodeInfo


class TestSnapshotLocations(unittest.TestCase):
    def test_sibling_index_counts_same_tag_only(self):
        snapshot = snapshot_from_tree(el("div", el("p", text="a"), el("span", text="b"), el("p", text="c")))
        locations = [n.location for n in snapshot.nodes]
        self.assertEqual(
            locations,
            [
                "/html/body",
                "/html/body/div[1]",
                "/html/body/div[1]/p[1]",
                "/html/body/div[1]/span[1]",
                "/html/body/div[1]/p[2]",
            ],
        )


class TestBuildIndex(unittest.TestCase):
    def setUp(self):
        self.snapshot = snapshot_from_tree(
            el(
                "div",
                el("h1", text="Running Shoe X"),
                el("span", text="₹1,299", cls="Price-Box"),
                el("input", attrs={"id": "pincodeInputId", "placeholder": "Enter pincode", "type": "tel"}),
            ),
            el("p", text="word " * 50),
        )
        self.index = build_index(self.snapshot)

    def test_indexes_tags_and_text(self):
        self.assertEqual(self.index.with_tag("h1"), ["/html/body/div[1]/h1[1]"])
        self.assertIn("running shoe x", self.index.text_content)
        self.assertIn("/html/body/div[1]/h1[1]", self.index.find_text("running shoe"))

    def test_long_text_gets_fuzzy_windows(self):
        self.assertIn("running sh", self.index.text_content)
        self.assertIn("ng shoe x", self.index.text_content)

    def test_text_of_200_chars_or_more_is_not_indexed(self):
        long_location = "/html/body/p[1]"
        for locations in self.index.text_content.values():
            self.assertNotIn(long_location, locations)

    def test_classes_are_lower_cased(self):
        self.assertEqual(self.index.with_class("price-box"), ["/html/body/div[1]/span[1]"])

    def test_identifying_attributes_get_bare_value_entries(self):
        loc = "/html/body/div[1]/input[1]"
        self.assertEqual(self.index.with_attribute("id=pincodeinputid"), [loc])
        self.assertEqual(self.index.with_attribute("pincodeinputid"), [loc])
        self.assertEqual(self.index.with_attribute("enter pincode"), [loc])
        # type is not an identifying attribute
        self.assertEqual(self.index.with_attribute("type=tel"), [loc])
        self.assertEqual(self.index.with_attribute("tel"), [])

    def test_hierarchy(self):
        self.assertEqual(self.index.children("/html/body"), ["/html/body/div[1]", "/html/body/p[1]"])
        self.assertEqual(len(self.index.children("/html/body/div[1]")), 3)

    def test_none_snapshot_gives_none(self):
        self.assertIsNone(build_index(None))

    def test_traversal_failure_gives_none(self):
        broken = DocumentSnapshot(
            url="https://www.myntra.com/x",
            nodes=[NodeInfo(location="/html/body", parent=None, tag="body", attributes={"id": None})],
        )
        self.assertIsNone(build_index(broken))


class TestIndexPage(unittest.IsolatedAsyncioTestCase):
    async def test_index_page_from_session(self):
        session = FakeSession(raw_snapshot(el("h1", text="Hello product")))
        snapshot, index = await index_page(session)
        self.assertEqual(len(snapshot.nodes), 2)
        self.assertEqual(index.with_tag("h1"), ["/html/body/h1[1]"])

    async def test_script_failure_means_no_snapshot(self):
        session = FakeSession(RuntimeError("page crashed"))
        self.assertIsNone(await take_snapshot(session))
        snapshot, index = await index_page(session)
        self.assertIsNone(snapshot)
        self.assertIsNone(index)

    async def test_empty_document_means_no_snapshot(self):
        session = FakeSession({"url": "https://www.myntra.com/x", "nodes": []})
        self.assertIsNone(await take_snapshot(session))


if __name__ == "__main__":
    unittest.main()
