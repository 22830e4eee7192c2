import json
import tempfile
import unittest
from dataclasses import FrozenInstanceError
from pathlib import Path

from appiq.request import (
    BROWNFIELD,
    GREENFIELD,
    InstallationRequest,
    detect_project_type,
    detect_tech_stack,
)


class DetectionTest(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_empty_directory_is_greenfield(self):
        self.assertEqual(detect_project_type(self.root)[0], GREENFIELD)

    def test_empty_src_dir_does_not_count(self):
        (self.root / "src").mkdir()
        self.assertEqual(detect_project_type(self.root)[0], GREENFIELD)

    def test_source_code_means_brownfield(self):
        (self.root / "lib").mkdir()
        (self.root / "lib" / "main.dart").write_text("void main() {}", encoding="utf-8")
        self.assertEqual(detect_project_type(self.root)[0], BROWNFIELD)

    def test_readme_means_brownfield(self):
        (self.root / "README.md").write_text("# hi", encoding="utf-8")
        self.assertEqual(detect_project_type(self.root)[0], BROWNFIELD)

    def test_pubspec_means_flutter(self):
        (self.root / "pubspec.yaml").write_text("name: app\n", encoding="utf-8")
        stack = detect_tech_stack(self.root)
        self.assertTrue(stack.is_flutter)
        self.assertEqual(stack.platform, "flutter")
        self.assertTrue(stack.has_ui)

    def test_package_json_framework(self):
        (self.root / "package.json").write_text(
            json.dumps({"dependencies": {"react": "^18", "next": "14"}}), encoding="utf-8"
        )
        stack = detect_tech_stack(self.root)
        self.assertEqual((stack.platform, stack.web_framework), ("web", "next.js"))

    def test_broken_package_json_is_ignored(self):
        (self.root / "package.json").write_text("{not json", encoding="utf-8")
        with self.assertLogs("appiq.request", level="WARNING"):
            stack = detect_tech_stack(self.root)
        self.assertIsNone(stack.platform)


class InstallationRequestTest(unittest.TestCase):
    def test_request_is_immutable(self):
        request = InstallationRequest(project_root=Path("/tmp/x"), project_name="x")
        with self.assertRaises(FrozenInstanceError):
            request.project_name = "y"

    def test_rejects_unknown_project_type(self):
        with self.assertRaises(ValueError):
            InstallationRequest(project_root=Path("/tmp/x"), project_name="x", project_type="bluefield")

    def test_solution_dir(self):
        request = InstallationRequest(project_root=Path("/tmp/x"), project_name="x")
        self.assertEqual(request.solution_dir, Path("/tmp/x/appiq-solution"))
        self.assertTrue(request.created_iso.endswith("Z"))


if __name__ == "__main__":
    unittest.main()
