from __future__ import annotations

import unittest

from fakes import T0, T1, counter_ids, entry, v2_item

from tab_snooze.domain.documents import DocumentVersion, count_entries
from tab_snooze.domain.migration import merge_documents, migrate_v1_to_v2, tag_document
from tab_snooze.domain.sanitize import sanitize_document, sanitize_snoozed_tabs, sanitize_snoozed_tabs_v2
from tab_snooze.domain.validation import (
    validate_snoozed_tabs,
    validate_snoozed_tabs_v2,
    validate_tab_entry,
)

# int() rejects this digit although str.isdigit() accepts it.
UNICODE_DIGIT_KEY = "\N{SUPERSCRIPT TWO}"


class LegacyValidationTests(unittest.TestCase):
    def test_well_formed_document_is_valid(self) -> None:
        result = validate_snoozed_tabs({"tabCount": 2, str(T0): [entry(T0), entry(T0, url="https://b")]})

        self.assertTrue(result.valid)
        self.assertEqual(result.errors, [])

    def test_non_object_document_is_not_repairable(self) -> None:
        for document in ([], "text", 3, None):
            with self.subTest(document=document):
                result = validate_snoozed_tabs(document)
                self.assertFalse(result.valid)
                self.assertFalse(result.repairable)
                self.assertEqual(result.errors, ["Data must be an object"])

    def test_string_bucket_is_not_repairable(self) -> None:
        result = validate_snoozed_tabs({"tabCount": 0, str(T0): "oops"})

        self.assertFalse(result.valid)
        self.assertFalse(result.repairable)

    def test_wrong_tab_count_is_repairable(self) -> None:
        result = validate_snoozed_tabs({"tabCount": 999, str(T0): [entry(T0)]})

        self.assertFalse(result.valid)
        self.assertTrue(result.repairable)
        self.assertIn("tabCount mismatch: stored 999, actual 1", result.errors)

    def test_missing_and_invalid_tab_count(self) -> None:
        missing = validate_snoozed_tabs({str(T0): [entry(T0)]})
        negative = validate_snoozed_tabs({"tabCount": -1, str(T0): [entry(T0)]})
        boolean = validate_snoozed_tabs({"tabCount": True, str(T0): [entry(T0)]})

        self.assertIn("Missing tabCount key", missing.errors)
        self.assertTrue(any(error.startswith("Invalid tabCount") for error in negative.errors))
        self.assertTrue(any(error.startswith("Invalid tabCount") for error in boolean.errors))
        self.assertTrue(missing.repairable and negative.repairable and boolean.repairable)

    def test_invalid_key_and_empty_bucket_are_repairable(self) -> None:
        result = validate_snoozed_tabs({"tabCount": 0, "later": [], str(T0): []})

        self.assertFalse(result.valid)
        self.assertTrue(result.repairable)
        self.assertTrue(any(error.startswith("Invalid timestamp key") for error in result.errors))
        self.assertTrue(any(error.startswith("Empty bucket") for error in result.errors))

    def test_entry_field_errors(self) -> None:
        missing_url = validate_tab_entry({"creationTime": 1, "popTime": 2})
        wrong_type = validate_tab_entry({"url": 5, "creationTime": 1, "popTime": 2})
        boolean_time = validate_tab_entry({"url": "u", "creationTime": 1, "popTime": True})

        self.assertEqual(missing_url.errors, ["Missing required field: url"])
        self.assertEqual(wrong_type.errors, ["url must be a string"])
        self.assertEqual(boolean_time.errors, ["popTime must be a number"])
        self.assertTrue(validate_tab_entry(entry()).valid)


class CurrentValidationTests(unittest.TestCase):
    def test_well_formed_document_is_valid(self) -> None:
        document = {
            "items": {"a": v2_item("a", T0), "b": v2_item("b", T1)},
            "schedule": {str(T0): ["a"], str(T1): ["b"]},
        }

        result = validate_snoozed_tabs_v2(document)

        self.assertTrue(result.valid, result.errors)

    def test_missing_items_is_not_repairable(self) -> None:
        result = validate_snoozed_tabs_v2({"schedule": {}})

        self.assertFalse(result.repairable)
        self.assertEqual(result.errors, ["Missing items object"])

    def test_missing_schedule_is_repairable(self) -> None:
        result = validate_snoozed_tabs_v2({"items": {"a": v2_item("a")}})

        self.assertFalse(result.valid)
        self.assertTrue(result.repairable)
        self.assertIn("Missing schedule object", result.errors)

    def test_orphan_reference_is_repairable(self) -> None:
        result = validate_snoozed_tabs_v2(
            {"items": {"a": v2_item("a")}, "schedule": {str(T0): ["a", "missing"]}}
        )

        self.assertTrue(result.repairable)
        self.assertTrue(any("references missing item ID" in error for error in result.errors))

    def test_id_mismatch_is_repairable(self) -> None:
        result = validate_snoozed_tabs_v2(
            {"items": {"a": v2_item("b")}, "schedule": {str(T0): ["a"]}}
        )

        self.assertTrue(result.repairable)
        self.assertTrue(any(error.startswith("ID Validation Mismatch") for error in result.errors))

    def test_non_ascii_digit_keys_are_reported_not_raised(self) -> None:
        legacy = validate_snoozed_tabs({"tabCount": 0, UNICODE_DIGIT_KEY: []})
        current = validate_snoozed_tabs_v2({"items": {}, "schedule": {UNICODE_DIGIT_KEY: []}})

        for result in (legacy, current):
            self.assertFalse(result.valid)
            self.assertTrue(result.repairable)
        self.assertEqual(sanitize_snoozed_tabs({"tabCount": 0, UNICODE_DIGIT_KEY: []}), {"tabCount": 0})
        self.assertEqual(
            sanitize_snoozed_tabs_v2({"items": {}, "schedule": {UNICODE_DIGIT_KEY: []}}),
            {"items": {}, "schedule": {}},
        )

    def test_non_array_schedule_bucket_is_not_repairable(self) -> None:
        result = validate_snoozed_tabs_v2({"items": {"a": v2_item("a")}, "schedule": {str(T0): "a"}})

        self.assertFalse(result.repairable)

    def test_duplicate_and_misplaced_ids_are_reported(self) -> None:
        result = validate_snoozed_tabs_v2(
            {"items": {"a": v2_item("a", T0)}, "schedule": {str(T0): ["a"], str(T1): ["a"]}}
        )

        self.assertTrue(result.repairable)
        self.assertTrue(any("more than one schedule slot" in error for error in result.errors))


class SanitizeTests(unittest.TestCase):
    def test_tab_count_is_recomputed(self) -> None:
        cleaned = sanitize_snoozed_tabs({"tabCount": 999, str(T0): [entry(T0)]})

        self.assertEqual(cleaned["tabCount"], 1)
        self.assertEqual(len(cleaned[str(T0)]), 1)

    def test_legacy_sanitize_drops_bad_keys_entries_and_empty_buckets(self) -> None:
        cleaned = sanitize_snoozed_tabs(
            {
                "tabCount": 7,
                "later": [entry(T0)],
                str(T0): [entry(T0, note="kept"), {"url": 3}],
                str(T1): [{"popTime": T1}],
                "1700000999999": "broken",
            }
        )

        self.assertEqual(set(cleaned), {"tabCount", str(T0)})
        self.assertEqual(cleaned["tabCount"], 1)
        self.assertEqual(cleaned[str(T0)][0]["note"], "kept")

    def test_orphans_are_pruned(self) -> None:
        cleaned = sanitize_snoozed_tabs_v2(
            {"items": {"a": v2_item("a", T0)}, "schedule": {str(T0): ["a", "missing"]}}
        )

        self.assertEqual(cleaned["schedule"][str(T0)], ["a"])

    def test_schedule_is_rebuilt_from_pop_times(self) -> None:
        cleaned = sanitize_snoozed_tabs_v2(
            {
                "items": {"a": v2_item("a", T0), "b": v2_item("b", T1), "c": v2_item("x", T1)},
                "schedule": {str(T1): ["a", "a"], "junk": ["b"], str(T0): []},
            }
        )

        self.assertEqual(set(cleaned["items"]), {"a", "b"})
        self.assertEqual(cleaned["schedule"], {str(T0): ["a"], str(T1): ["b"]})
        self.assertTrue(validate_snoozed_tabs_v2(cleaned).valid)

    def test_unknown_fields_survive(self) -> None:
        cleaned = sanitize_snoozed_tabs_v2(
            {"items": {"a": v2_item("a", title="Docs", groupId="g", custom={"k": 1})}, "schedule": {}}
        )

        self.assertEqual(cleaned["items"]["a"]["custom"], {"k": 1})
        self.assertEqual(cleaned["items"]["a"]["groupId"], "g")

    def test_non_object_input_gives_empty_document(self) -> None:
        self.assertEqual(sanitize_snoozed_tabs([1, 2]), {"tabCount": 0})
        self.assertEqual(sanitize_snoozed_tabs_v2("nope"), {"items": {}, "schedule": {}})
        self.assertEqual(sanitize_snoozed_tabs_v2({"schedule": {}}), {"items": {}, "schedule": {}})

    def test_sanitize_is_idempotent(self) -> None:
        samples = [
            (DocumentVersion.V1, {"tabCount": 3, str(T0): [entry(T0), {"bad": 1}], "x": []}),
            (DocumentVersion.V1, {"tabCount": 1, str(T0): [entry(T0)]}),
            (DocumentVersion.V1, None),
            (
                DocumentVersion.V2,
                {
                    "items": {"a": v2_item("a", T0), "b": v2_item("b", T1), "z": {"id": "z"}},
                    "schedule": {str(T0): ["b", "ghost"], str(T1): ["a"]},
                },
            ),
            (DocumentVersion.V2, {"items": {"a": v2_item("a")}, "schedule": {str(T0): ["a"]}}),
            (DocumentVersion.V1, {"tabCount": 0, UNICODE_DIGIT_KEY: [entry(T0)]}),
            (DocumentVersion.V2, {"items": {"a": v2_item("a", T0)}, "schedule": {UNICODE_DIGIT_KEY: ["a"]}}),
        ]
        for version, document in samples:
            with self.subTest(version=version, document=document):
                once = sanitize_document(document, version)
                self.assertEqual(sanitize_document(once, version), once)

    def test_count_entries_is_best_effort(self) -> None:
        self.assertEqual(count_entries({"tabCount": 4, str(T0): "x"}, DocumentVersion.V1), 4)
        self.assertEqual(count_entries({"items": {"a": {}, "b": {}}}, DocumentVersion.V2), 2)
        self.assertEqual(count_entries("junk", DocumentVersion.V2), 0)


class MigrationTests(unittest.TestCase):
    def test_v1_to_v2_assigns_fresh_ids(self) -> None:
        legacy = {
            "tabCount": 2,
            str(T1): [entry(T1, url="https://b")],
            str(T0): [entry(T0, title="A", favIconUrl="icon.png")],
        }

        document = migrate_v1_to_v2(legacy, id_factory=counter_ids())

        self.assertEqual(set(document["items"]), {"id-1", "id-2"})
        self.assertEqual(document["schedule"], {str(T0): ["id-1"], str(T1): ["id-2"]})
        self.assertEqual(document["items"]["id-1"]["title"], "A")
        self.assertEqual(document["items"]["id-1"]["favIconUrl"], "icon.png")
        self.assertTrue(validate_snoozed_tabs_v2(document).valid)

    def test_import_tagging(self) -> None:
        tagged_v2 = tag_document({"version": 2, "items": {}, "schedule": {}})
        tagged_v1 = tag_document({"tabCount": 0})

        self.assertIs(tagged_v2.version, DocumentVersion.V2)
        self.assertNotIn("version", tagged_v2.data)
        self.assertIs(tagged_v1.version, DocumentVersion.V1)
        with self.assertRaises(ValueError):
            tag_document({"version": 3, "items": {}})

    def test_explicit_legacy_marker_is_stripped(self) -> None:
        tagged = tag_document({"version": 1, "tabCount": 0})

        self.assertIs(tagged.version, DocumentVersion.V1)
        self.assertEqual(tagged.data, {"tabCount": 0})

    def test_unmarked_current_shape_is_rejected(self) -> None:
        for raw in ({"items": {}, "schedule": {}}, {"schedule": {}}):
            with self.subTest(raw=raw):
                with self.assertRaisesRegex(ValueError, "^Missing version marker"):
                    tag_document(raw)

    def test_merge_rekeys_colliding_ids(self) -> None:
        current = {"items": {"a": v2_item("a", T0)}, "schedule": {str(T0): ["a"]}}
        imported = {
            "items": {"a": v2_item("a", T1, url="https://other"), "b": v2_item("b", T1)},
            "schedule": {str(T1): ["a", "b"]},
        }

        merged, added = merge_documents(current, imported, id_factory=counter_ids("new"))

        self.assertEqual(added, 2)
        self.assertEqual(len(merged["items"]), 3)
        self.assertEqual(merged["items"]["a"]["url"], "https://example.com/a")
        self.assertEqual(merged["schedule"][str(T1)], ["new-1", "b"])
        self.assertTrue(validate_snoozed_tabs_v2(merged).valid)


if __name__ == "__main__":
    unittest.main()
