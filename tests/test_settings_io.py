import shutil
import unittest
import xml.etree.ElementTree as ET
from pathlib import Path

from portable_settings.core.codecs import STRING_LIST
from portable_settings.core.document import SettingsStore
from portable_settings.core.models import (
    Found,
    Missing,
    SerializeAs,
    SettingChange,
    SettingDeclaration,
    SettingType,
)
from portable_settings.core.settings_io import lookup, read, write
from portable_settings.utils.identity import resolve_identity

LANG = SettingDeclaration("Lang")
RECENT = SettingDeclaration("Recent", SettingType.STRING_LIST)


class StoreTestCase(unittest.TestCase):
    def setUp(self):
        self.base = Path(__file__).parent / "_tmp_settings_io"
        if self.base.exists():
            shutil.rmtree(self.base)
        self.base.mkdir(parents=True)
        self.ident = resolve_identity(vendor="Acme", product="Viewer", application="MsgViewer", executable="x.py")
        self.store = SettingsStore(self.ident, root=self.base)

    def tearDown(self):
        if self.base.exists():
            shutil.rmtree(self.base)

    def fresh_store(self) -> SettingsStore:
        return SettingsStore(self.ident, root=self.base)


class TestDocumentCache(StoreTestCase):
    def test_bootstrap_does_not_touch_disk(self):
        doc = self.store.document
        self.assertTrue(self.store.load_outcome.bootstrapped)
        self.assertFalse(self.store.path.exists())
        self.assertEqual(doc.getroot().tag, "configuration")
        self.assertIsNotNone(self.store.section())
        section_decl = doc.getroot().find("configSections/sectionGroup/section")
        self.assertEqual(section_decl.get("name"), "MsgViewer.Properties.Settings")

    def test_document_is_memoized(self):
        self.assertIs(self.store.document, self.store.document)

    def test_corrupt_file_bootstraps(self):
        self.store.directory.mkdir(parents=True, exist_ok=True)
        self.store.path.write_text("<configuration><oops>", encoding="utf-8")
        self.assertIsNone(self.store.load_outcome)
        self.store.document
        self.assertTrue(self.store.load_outcome.bootstrapped)
        self.assertIsNotNone(self.store.load_outcome.error)


class TestReadPath(StoreTestCase):
    def test_missing_without_default_is_empty(self):
        self.assertIsInstance(lookup(self.store, LANG), Missing)
        self.assertEqual(read(self.store, [LANG]), {"Lang": ""})

    def test_missing_with_default_decodes_default(self):
        decl = SettingDeclaration("Lang", default_value="en")
        self.assertEqual(read(self.store, [decl]), {"Lang": "en"})

        frag = STRING_LIST.encode(["a", "b", "c"])
        decl = SettingDeclaration("Recent", SettingType.STRING_LIST, default_value=frag)
        self.assertEqual(read(self.store, [decl]), {"Recent": ["a", "b", "c"]})

    def test_bad_default_is_empty(self):
        decl = SettingDeclaration("Recent", SettingType.STRING_LIST, default_value="<broken")
        self.assertEqual(read(self.store, [decl]), {"Recent": ""})

    def test_corrupt_entry_does_not_block_batch(self):
        write(self.store, {"Lang": ("fr", "String")})
        node = ET.SubElement(self.store.section(), "setting", {"name": "Recent", "serializeAs": "Xml"})
        ET.SubElement(node, "value").text = "garbage"
        default = STRING_LIST.encode(["x"])
        decl = SettingDeclaration("Recent", SettingType.STRING_LIST, default_value=default)
        self.assertIsInstance(lookup(self.store, decl), Missing)
        self.assertEqual(read(self.store, [LANG, decl]), {"Lang": "fr", "Recent": ["x"]})


class TestWritePath(StoreTestCase):
    def test_set_then_get(self):
        result = write(self.store, {"Lang": SettingChange("fr")})
        self.assertTrue(result.ok)
        self.assertEqual(result.written, 1)
        self.assertEqual(read(self.store, [LANG]), {"Lang": "fr"})

        write(self.store, {"Lang": SettingChange("de")})
        self.assertEqual(lookup(self.store, LANG), Found("de"))
        self.assertEqual(len(list(self.store.iter_settings())), 1)

    def test_fresh_file_has_scaffold_plus_one_setting(self):
        write(self.store, {"Lang": ("fr", SerializeAs.STRING)})
        text = self.store.path.read_text(encoding="utf-8")
        self.assertTrue(text.startswith('<?xml version="1.0" encoding="utf-8"?>'))
        self.assertEqual(text.count("<?xml"), 1)

        reopened = self.fresh_store()
        self.assertIsNone(reopened.load_outcome)
        reopened.document
        self.assertFalse(reopened.load_outcome.bootstrapped)
        settings = list(reopened.iter_settings())
        self.assertEqual(len(settings), 1)
        self.assertEqual(settings[0].get("serializeAs"), "String")
        self.assertEqual(read(reopened, [LANG]), {"Lang": "fr"})

    def test_string_list_roundtrip_through_disk(self):
        write(self.store, {"Recent": SettingChange(["b", "a", ""], SerializeAs.XML)})
        reopened = self.fresh_store()
        self.assertEqual(read(reopened, [RECENT]), {"Recent": ["b", "a", ""]})

    def test_preserialized_fragment_loses_its_declaration(self):
        frag = '<?xml version="1.0" encoding="utf-16"?>' + STRING_LIST.encode(["one"])
        write(self.store, {"Recent": (frag, "Xml")})
        text = self.store.path.read_text(encoding="utf-8")
        self.assertEqual(text.count("<?xml"), 1)
        self.assertNotIn("utf-16", text)
        self.assertEqual(read(self.fresh_store(), [RECENT]), {"Recent": ["one"]})

    def test_write_is_idempotent(self):
        changes = {"Lang": SettingChange("fr"), "Recent": SettingChange(["a"], SerializeAs.XML)}
        write(self.store, changes)
        first = read(self.fresh_store(), [LANG, RECENT])
        write(self.store, changes)
        second = read(self.fresh_store(), [LANG, RECENT])
        self.assertEqual(first, second)
        self.assertEqual(len(list(self.fresh_store().iter_settings())), 2)

    def test_existing_values_survive_other_writes(self):
        write(self.store, {"Lang": SettingChange("fr")})
        write(self.store, {"Recent": SettingChange(["a"], SerializeAs.XML)})
        self.assertEqual(read(self.fresh_store(), [LANG, RECENT]), {"Lang": "fr", "Recent": ["a"]})

    def test_bad_value_is_skipped_not_raised(self):
        result = write(self.store, {"Recent": SettingChange("<nope", SerializeAs.XML), "Lang": SettingChange("fr")})
        self.assertFalse(result.ok)
        self.assertTrue(result.saved)
        self.assertIn("Recent", result.error)
        self.assertEqual(result.skipped, ("Recent",))
        self.assertIsNone(self.store.find_setting("Recent"))
        self.assertEqual(read(self.store, [LANG]), {"Lang": "fr"})

    def test_missing_section_is_repaired(self):
        self.store.directory.mkdir(parents=True, exist_ok=True)
        self.store.path.write_text(
            '<?xml version="1.0" encoding="utf-8"?><configuration><startup/></configuration>',
            encoding="utf-8",
        )
        self.assertEqual(read(self.store, [LANG]), {"Lang": ""})
        self.assertTrue(write(self.store, {"Lang": SettingChange("fr")}).ok)

        reopened = self.fresh_store()
        self.assertEqual(read(reopened, [LANG]), {"Lang": "fr"})
        root = reopened.document.getroot()
        self.assertIsNotNone(root.find("startup"))
        self.assertIsNotNone(root.find("configSections/sectionGroup/section"))

    def test_persist_failure_is_reported(self):
        blocker = self.base / "blocker"
        blocker.write_text("x", encoding="utf-8")
        store = SettingsStore(self.ident, root=blocker)
        with self.assertLogs("Portable Settings", level="ERROR"):
            result = write(store, {"Lang": SettingChange("fr")})
        self.assertFalse(result.ok)
        self.assertIn("Error writing configuration file", result.error)
        # in-memory value is still there for the rest of the run
        self.assertEqual(read(store, [LANG]), {"Lang": "fr"})
        self.assertFalse(result.saved)

    def test_bare_values_and_strategy_names(self):
        result = write(self.store, {
            "Lang": "fr",
            "Theme": ("dark", "Scalar"),
            "Zoom": ("150", SettingType.SCALAR),
            "Recent": (["a", "b"], "StructuredList"),
            "Pinned": (["p"], SettingType.STRING_LIST),
            "Open": ["x.msg"],
        })
        self.assertTrue(result.ok)
        self.assertEqual(result.written, 6)
        reopened = self.fresh_store()
        got = read(reopened, [
            LANG,
            SettingDeclaration("Theme"),
            SettingDeclaration("Zoom"),
            RECENT,
            SettingDeclaration("Pinned", SettingType.STRING_LIST),
            SettingDeclaration("Open", SettingType.STRING_LIST),
        ])
        self.assertEqual(got, {
            "Lang": "fr",
            "Theme": "dark",
            "Zoom": "150",
            "Recent": ["a", "b"],
            "Pinned": ["p"],
            "Open": ["x.msg"],
        })

    def test_unknown_strategy_is_skipped(self):
        result = write(self.store, {"Lang": ("fr", "Binary"), "Zoom": ("1", 42), "Theme": "dark"})
        self.assertFalse(result.ok)
        self.assertEqual(result.skipped, ("Lang", "Zoom"))
        self.assertEqual(read(self.fresh_store(), [SettingDeclaration("Theme")]), {"Theme": "dark"})

    def test_characters_xml_cannot_hold_do_not_corrupt_the_file(self):
        write(self.store, {"Lang": "fr"})
        result = write(self.store, {
            "Path": "a\x01b",
            "Recent": (["ok", "bad\x02"], "Xml"),
            "Bad\x03Name": "x",
        })
        self.assertFalse(result.ok)
        self.assertTrue(result.saved)
        self.assertEqual(set(result.skipped), {"Path", "Recent", "Bad\x03Name"})

        reopened = self.fresh_store()
        self.assertEqual(read(reopened, [LANG, SettingDeclaration("Path"), RECENT]),
                         {"Lang": "fr", "Path": "", "Recent": ""})
        self.assertFalse(reopened.load_outcome.bootstrapped)

    def test_special_character_scalars_roundtrip_through_disk(self):
        values = ["<a & b>", 'say "hi"', "tab\there", "  padded  ", "ünïcødé ✓", "line1\nline2"]
        write(self.store, {f"V{i}": v for i, v in enumerate(values)})
        got = read(self.fresh_store(), [SettingDeclaration(f"V{i}") for i in range(len(values))])
        self.assertEqual(list(got.values()), values)

    def test_strategy_change_updates_serialize_as(self):
        write(self.store, {"Recent": ("one", "String")})
        write(self.store, {"Recent": (["a"], "Xml")})
        node = self.fresh_store().find_setting("Recent")
        self.assertEqual(node.get("serializeAs"), "Xml")
        self.assertEqual(len(node.findall("value")), 1)
        self.assertEqual(read(self.fresh_store(), [RECENT]), {"Recent": ["a"]})

    def test_comments_in_hand_edited_file_survive_save(self):
        self.store.directory.mkdir(parents=True, exist_ok=True)
        self.store.path.write_text(
            '<?xml version="1.0" encoding="utf-8"?>'
            "<configuration><!-- edited by hand --><userSettings>"
            "<MsgViewer.Properties.Settings>"
            '<setting name="Recent" serializeAs="Xml"><value><!-- keep -->'
            "<ArrayOfString><string>a</string></ArrayOfString></value></setting>"
            "</MsgViewer.Properties.Settings></userSettings></configuration>",
            encoding="utf-8",
        )
        self.assertEqual(read(self.store, [RECENT]), {"Recent": ["a"]})
        write(self.store, {"Lang": "fr"})
        text = self.store.path.read_text(encoding="utf-8")
        self.assertIn("<!-- edited by hand -->", text)
        self.assertEqual(read(self.fresh_store(), [LANG, RECENT]), {"Lang": "fr", "Recent": ["a"]})

    def test_product_name_starting_with_digit_persists(self):
        ident = resolve_identity(vendor="Acme", product="7Zip", executable="x.py")
        self.assertEqual(ident.section_key, "_7Zip.Properties.Settings")
        store = SettingsStore(ident, root=self.base)
        self.assertTrue(write(store, {"Lang": "fr"}).ok)
        reopened = SettingsStore(ident, root=self.base)
        self.assertEqual(read(reopened, [LANG]), {"Lang": "fr"})
        self.assertFalse(reopened.load_outcome.bootstrapped)


if __name__ == "__main__":
    unittest.main()
