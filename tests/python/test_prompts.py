import io
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path

from appiq.prompts import build_request, parse_ide_selection
from appiq.registry import DEFAULT_IDE_PROFILES, ConfigurationError


IDS = [p.id for p in DEFAULT_IDE_PROFILES] + ["manual"]


def scripted(*answers):
    queue = list(answers)

    def ask(_question):
        return queue.pop(0)

    return ask


class ParseSelectionTest(unittest.TestCase):
    def test_numbers_and_ids(self):
        self.assertEqual(parse_ide_selection("1, windsurf,1", IDS), ["cursor", "windsurf"])

    def test_rejects_empty_and_unknown(self):
        for raw in ["", " , ", "42", "notepad"]:
            with self.assertRaises(ConfigurationError, msg=raw):
                parse_ide_selection(raw, IDS)


class BuildRequestTest(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name) / "shop-app"
        self.root.mkdir()

    def tearDown(self):
        self._tmp.cleanup()

    def test_non_interactive_uses_detection_and_defaults(self):
        request = build_request(self.root, DEFAULT_IDE_PROFILES, interactive=False)
        self.assertEqual(request.project_name, "shop-app")
        self.assertEqual(request.project_type, "greenfield")
        self.assertEqual(request.ide_ids, ("manual",))
        self.assertFalse(request.plan_approved)

    def test_flags_win(self):
        request = build_request(
            self.root,
            DEFAULT_IDE_PROFILES,
            name="Shop",
            project_type="brownfield",
            ide_ids=["cursor", "cursor", "gemini"],
            approve_plan=True,
            interactive=False,
        )
        self.assertEqual(request.project_type, "brownfield")
        self.assertEqual(request.ide_ids, ("cursor", "gemini"))
        self.assertTrue(request.plan_approved)

    def test_unknown_ide_flag(self):
        with self.assertRaises(ConfigurationError):
            build_request(self.root, DEFAULT_IDE_PROFILES, ide_ids=["vim"], interactive=False)

    def test_interactive_answers(self):
        ask = scripted("maybe", "b", "", "Sell socks", "Sock lovers", "42", "9", "n", "")
        with redirect_stdout(io.StringIO()):
            request = build_request(self.root, DEFAULT_IDE_PROFILES, ask=ask)
        self.assertEqual(request.project_type, "brownfield")
        self.assertEqual(request.project_name, "shop-app")
        self.assertEqual(request.project_idea, "Sell socks")
        self.assertEqual(request.target_users, "Sock lovers")
        self.assertEqual(request.ide_ids, ("manual",))
        self.assertFalse(request.plan_approved)
        self.assertEqual(request.plan_changes, "")

    def test_plan_is_shown_before_approval(self):
        out = io.StringIO()
        ask = scripted("g", "Shop", "Sell socks", "Sock lovers", "cursor", "")
        with redirect_stdout(out):
            request = build_request(self.root, DEFAULT_IDE_PROFILES, ask=ask)
        shown = out.getvalue()
        self.assertIn("# Project Plan: Shop", shown)
        self.assertIn("Sock lovers", shown)
        self.assertIn("1. PO (Product Owner) -> create the PRD", shown)
        self.assertTrue(request.plan_approved)

    def test_declined_plan_records_changes(self):
        ask = scripted("b", "Shop", "Sell socks", "Sock lovers", "9", "n", "Add a mobile app")
        with redirect_stdout(io.StringIO()) as out:
            request = build_request(self.root, DEFAULT_IDE_PROFILES, ask=ask)
        self.assertIn("QA Expert -> regression testing", out.getvalue())
        self.assertTrue(request.plan_approved)
        self.assertEqual(request.plan_changes, "Add a mobile app")

    def test_approve_flag_skips_plan_review(self):
        out = io.StringIO()
        with redirect_stdout(out):
            request = build_request(
                self.root,
                DEFAULT_IDE_PROFILES,
                name="Shop",
                project_type="greenfield",
                ide_ids=["cursor"],
                idea="x",
                users="y",
                approve_plan=True,
                ask=scripted(),
            )
        self.assertNotIn("Project Plan", out.getvalue())
        self.assertTrue(request.plan_approved)


if __name__ == "__main__":
    unittest.main()
