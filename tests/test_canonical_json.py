import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from headless.canonical_json import CanonicalJsonTypeError, canonical_bytes, canonical_dumps
from headless.etag import body_etag


class TestCanonicalJson(unittest.TestCase):
    def test_key_order_does_not_matter(self) -> None:
        a = {"source": "defaults", "view_mode": "full", "sections": []}
        b = {"sections": [], "view_mode": "full", "source": "defaults"}
        self.assertEqual(canonical_dumps(a), canonical_dumps(b))

    def test_section_order_preserved(self) -> None:
        obj = {"sections": [{"layout_id": "b"}, {"layout_id": "a"}]}
        self.assertEqual(canonical_dumps(obj), '{"sections":[{"layout_id":"b"},{"layout_id":"a"}]}')

    def test_tuples_encode_as_lists(self) -> None:
        self.assertEqual(canonical_dumps({"tags": ("a", "b")}), '{"tags":["a","b"]}')

    def test_non_ascii_preserved_in_bytes(self) -> None:
        out = canonical_bytes({"label": "À propos"})
        self.assertEqual(out, '{"label":"À propos"}'.encode("utf-8"))

    def test_unsupported_type_raises(self) -> None:
        with self.assertRaises(CanonicalJsonTypeError):
            canonical_dumps({"bad": {1, 2}})
        with self.assertRaises(CanonicalJsonTypeError):
            canonical_dumps({1: "int key"})

    def test_error_names_the_json_pointer(self) -> None:
        payload = {"layout": {"sections": [{"components": [{"settings": {"a/b": object()}}]}]}}
        with self.assertRaises(CanonicalJsonTypeError) as ctx:
            canonical_dumps(payload)
        self.assertIn("/layout/sections/0/components/0/settings/a~1b", str(ctx.exception))

    def test_reject_non_finite(self) -> None:
        for value in (float("nan"), float("inf"), float("-inf")):
            with self.assertRaises(ValueError):
                canonical_dumps({"bad": value})


class TestBodyEtag(unittest.TestCase):
    def test_etag_is_quoted_and_stable(self) -> None:
        a = body_etag({"resolved": True, "kind": "entity"})
        b = body_etag({"kind": "entity", "resolved": True})
        self.assertEqual(a, b)
        self.assertTrue(a.startswith('"sha256:'))
        self.assertTrue(a.endswith('"'))

    def test_etag_changes_with_content(self) -> None:
        self.assertNotEqual(body_etag({"layout": None}), body_etag({"layout": {}}))


if __name__ == "__main__":
    unittest.main()
