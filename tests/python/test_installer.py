import tempfile
import unittest
from pathlib import Path

import yaml

from appiq import installer, verify
from appiq.registry import (
    DEFAULT_COMMAND_PROFILES,
    DEFAULT_IDE_PROFILES,
    DEFAULT_INTEGRATIONS,
    ConfigurationError,
)
from appiq.request import InstallationRequest, TechStack


def tree(root: Path) -> dict:
    return {
        str(p.relative_to(root)): p.read_bytes() for p in sorted(root.rglob("*")) if p.is_file()
    }


class InstallerTest(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def _request(self, **overrides):
        fields = dict(
            project_root=self.root,
            project_name="Demo",
            ide_ids=("cursor", "claude-code"),
            plan_approved=True,
            project_idea="A todo app",
        )
        fields.update(overrides)
        return InstallationRequest(**fields)

    def _install(self, request):
        return installer.install(
            request, DEFAULT_INTEGRATIONS, DEFAULT_IDE_PROFILES, DEFAULT_COMMAND_PROFILES
        )

    def test_writes_solution_tree_and_ide_copies(self):
        report = self._install(self._request())
        self.assertTrue(report.ok)

        solution = self.root / "appiq-solution"
        for rel in verify.REQUIRED_FILES:
            self.assertTrue((solution / rel).exists(), rel)
        self.assertTrue((self.root / "docs" / "prd.md").exists())
        self.assertTrue((self.root / "docs" / "stories").is_dir())

        agents = sorted(p.name for p in (solution / "agents").iterdir())
        self.assertIn("architect.md", agents)
        self.assertEqual(len(agents), 6)

        cursor_dir = self.root / ".cursor" / "rules"
        self.assertEqual(
            (cursor_dir / "architect.mdc").read_bytes(),
            (solution / "agents" / "architect.md").read_bytes(),
        )
        self.assertTrue((self.root / ".claude" / "commands" / "Appiq" / "qa-expert.md").exists())
        self.assertTrue((self.root / ".cursor" / "commands" / "appiq.md").exists())
        self.assertTrue((self.root / ".claude" / "commands" / "story.md").exists())

    def test_agents_carry_matched_integrations(self):
        report = self._install(self._request())
        self.assertIn("puppeteer", report.agent_integrations["qa-expert"])
        self.assertNotIn("puppeteer", report.agent_integrations["architect"])

        body = (self.root / "appiq-solution" / "agents" / "qa-expert.md").read_text(encoding="utf-8")
        self.assertIn("## BMAD Dependencies", body)
        self.assertIn("## MCP Server Integration", body)
        self.assertIn("Puppeteer MCP Server", body)
        self.assertTrue(body.rstrip().endswith("based on the BMAD method*"))

        setup = (self.root / "appiq-solution" / "mcp-setup-instructions.md").read_text(encoding="utf-8")
        self.assertIn('"puppeteer"', setup)
        self.assertNotIn('"dart"', setup)

    def test_flutter_stack_adds_flutter_agents(self):
        stack = TechStack(platform="flutter", is_flutter=True, has_ui=True)
        report = self._install(self._request(tech_stack=stack))
        self.assertEqual(report.agent_integrations["flutter-ui-agent"][0], "sequential-thinking")
        self.assertIn("dart", report.agent_integrations["flutter-ui-agent"])
        self.assertIn("dart", report.agent_integrations["flutter-cubit-agent"])
        self.assertTrue((self.root / ".cursor" / "rules" / "flutter-ui-agent.mdc").exists())

    def test_project_config_lists_selected_ides(self):
        self._install(self._request())
        cfg = yaml.safe_load(
            (self.root / "appiq-solution" / "project-config.yaml").read_text(encoding="utf-8")
        )
        self.assertEqual(
            [(i["name"], i["config_path"], i["file_format"]) for i in cfg["ides"]],
            [("Cursor", ".cursor/rules", ".mdc"), ("Claude Code CLI", ".claude/commands/Appiq", ".md")],
        )
        self.assertEqual(cfg["workflows"]["greenfield"]["start_command"], "/start")

    def test_reinstall_is_byte_identical(self):
        request = self._request()
        self._install(request)
        first = tree(self.root)
        report = self._install(request)
        self.assertEqual(tree(self.root), first)
        self.assertIn(self.root / "docs" / "prd.md", report.skipped)

    def test_project_plan_and_requested_changes(self):
        self._install(self._request(project_type="brownfield", plan_changes="Add a mobile app"))
        plan = (self.root / "appiq-solution" / "project-plan.md").read_text(encoding="utf-8")
        self.assertIn("Brownfield", plan)
        self.assertIn("## Requested Changes\n\nAdd a mobile app", plan)
        prd = (self.root / "docs" / "prd.md").read_text(encoding="utf-8")
        self.assertIn("### Requested Plan Changes\n\nAdd a mobile app", prd)

    def test_manual_selection_writes_no_ide_folders(self):
        report = self._install(self._request(ide_ids=("manual",)))
        self.assertEqual(report.ide_report.profiles, [])
        self.assertFalse((self.root / ".cursor").exists())
        self.assertFalse((self.root / ".claude").exists())

    def test_unknown_ide_fails_before_writing(self):
        with self.assertRaises(ConfigurationError):
            self._install(self._request(ide_ids=("notepad",)))
        self.assertFalse((self.root / "appiq-solution").exists())

    def test_verify_passes_after_install(self):
        self._install(self._request())
        results = verify.run_checks(self.root)
        self.assertTrue(all(r.passed for r in results), [r.to_dict() for r in results])


class VerifyTest(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_missing_install(self):
        results = verify.run_checks(self.root)
        self.assertEqual([(r.name, r.passed) for r in results], [("solution-dir", False)])
        self.assertEqual(verify.main(["--root", str(self.root), "--format", "json"]), 1)

    def test_deleted_ide_copy_is_reported(self):
        request = InstallationRequest(project_root=self.root, project_name="Demo", ide_ids=("windsurf",))
        installer.install(request, DEFAULT_INTEGRATIONS, DEFAULT_IDE_PROFILES)
        (self.root / ".windsurf" / "rules" / "developer.md").unlink()

        results = {r.name: r for r in verify.run_checks(self.root)}
        self.assertFalse(results["ide-copies"].passed)
        self.assertIn("developer.md", results["ide-copies"].details[0])


if __name__ == "__main__":
    unittest.main()
