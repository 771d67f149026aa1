"""Tests for template discovery under provider directories."""

import json
import tempfile
import unittest
from pathlib import Path

from zypin.registry.catalog import ProviderRegistry
from zypin.registry.models import ProviderRecord
from zypin.registry.templates import scan_templates

PROVIDER_SOURCE = """name = "selenium"
version = "1.0.0"

def start(options):
    return {"pid": 1}
"""


def _make_template(provider_dir: Path, name: str, *, descriptor=None, runner: bool = True) -> Path:
    path = provider_dir / "templates" / name
    path.mkdir(parents=True, exist_ok=True)
    if descriptor is not None:
        text = descriptor if isinstance(descriptor, str) else json.dumps(descriptor)
        (path / "template.json").write_text(text, encoding="utf-8")
    if runner:
        (path / "runner.py").write_text("def run(files, params):\n    return None\n", encoding="utf-8")
    return path


class TemplateScannerTests(unittest.TestCase):
    """Validate required files, namespacing and metadata fallbacks."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.provider_dir = Path(self._tmp.name) / "selenium"
        self.provider_dir.mkdir()
        self.provider = ProviderRecord(
            name="selenium",
            full_name="@zypin/selenium",
            path=self.provider_dir,
            version="1.0.0",
            capabilities=frozenset({"start"}),
        )

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_valid_template_uses_descriptor_description(self) -> None:
        _make_template(
            self.provider_dir,
            "basic-webdriver",
            descriptor={"name": "basic", "description": "Plain WebDriver tests"},
        )

        templates = scan_templates(self.provider)

        self.assertEqual(len(templates), 1)
        template = templates[0]
        self.assertEqual(template.namespaced_name, "selenium/basic-webdriver")
        self.assertEqual(template.provider, "selenium")
        self.assertEqual(template.description, "Plain WebDriver tests")
        self.assertTrue(template.has_runner)
        self.assertEqual(template.metadata["name"], "basic")

    def test_template_without_runner_is_excluded(self) -> None:
        _make_template(self.provider_dir, "no-runner", descriptor={}, runner=False)
        self.assertEqual(scan_templates(self.provider), [])

    def test_template_without_descriptor_is_excluded(self) -> None:
        _make_template(self.provider_dir, "no-descriptor", descriptor=None)
        self.assertEqual(scan_templates(self.provider), [])

    def test_malformed_descriptor_defaults_metadata(self) -> None:
        _make_template(self.provider_dir, "cucumber-bdd", descriptor="{not json")

        with self.assertLogs("zypin.registry.templates", level="WARNING"):
            templates = scan_templates(self.provider)

        self.assertEqual(len(templates), 1)
        self.assertEqual(dict(templates[0].metadata), {})
        self.assertEqual(templates[0].description, "selenium cucumber-bdd template")

    def test_non_object_descriptor_defaults_metadata(self) -> None:
        _make_template(self.provider_dir, "listy", descriptor=["a", "b"])
        templates = scan_templates(self.provider)
        self.assertEqual(dict(templates[0].metadata), {})

    def test_provider_without_templates_dir(self) -> None:
        self.assertEqual(scan_templates(self.provider), [])

    def test_stray_files_in_templates_dir_are_ignored(self) -> None:
        _make_template(self.provider_dir, "basic", descriptor={})
        (self.provider_dir / "templates" / "notes.txt").write_text("x", encoding="utf-8")
        self.assertEqual([t.name for t in scan_templates(self.provider)], ["basic"])


class RegistryTemplateLookupTests(unittest.TestCase):
    """Validate templates are cataloged per provider by the registry."""

    def test_lookup_template_and_filter_by_provider(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            provider_dir = root / "selenium"
            provider_dir.mkdir()
            (provider_dir / "provider.py").write_text(PROVIDER_SOURCE, encoding="utf-8")
            _make_template(provider_dir, "basic-webdriver", descriptor={"description": "basic"})
            _make_template(provider_dir, "cucumber-bdd", descriptor={})

            registry = ProviderRegistry([root])

            template = registry.lookup_template("selenium/cucumber-bdd")
            assert template is not None
            self.assertEqual(template.description, "selenium cucumber-bdd template")
            self.assertEqual(
                sorted(registry.template_identifiers()),
                ["selenium/basic-webdriver", "selenium/cucumber-bdd"],
            )
            self.assertEqual(len(registry.templates_for("selenium")), 2)
            self.assertEqual(registry.templates_for("appium"), [])
            self.assertIsNone(registry.lookup_template("selenium/missing"))


if __name__ == "__main__":
    unittest.main()
