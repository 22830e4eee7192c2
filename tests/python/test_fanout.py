import tempfile
import unittest
from pathlib import Path
from unittest import mock

from appiq.fanout import GeneratedDocument, fan_out
from appiq.registry import DestinationProfile


DOCS = [
    GeneratedDocument("architect", "# Architect\r\nline two\n"),
    GeneratedDocument("qa-expert", "# QA\n"),
]
CURSOR = DestinationProfile("cursor", "Cursor", ".cursor/rules", ".mdc")
WINDSURF = DestinationProfile("windsurf", "Windsurf", ".windsurf/rules", ".md")


def snapshot(root: Path) -> dict:
    return {
        str(p.relative_to(root)): p.read_bytes() for p in sorted(root.rglob("*")) if p.is_file()
    }


class FanOutWriterTest(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_extension_substitution_and_verbatim_body(self):
        report = fan_out(DOCS[:1], [CURSOR], self.root)
        target = self.root / ".cursor" / "rules" / "architect.mdc"
        self.assertTrue(target.exists())
        self.assertEqual(target.read_bytes(), DOCS[0].body.encode("utf-8"))
        self.assertEqual(report.result_for("cursor").written, [target])

    def test_every_document_lands_in_every_profile(self):
        report = fan_out(DOCS, [CURSOR, WINDSURF], self.root)
        self.assertTrue(report.ok)
        self.assertEqual(report.written_count, 4)
        self.assertEqual([p.profile_id for p in report.profiles], ["cursor", "windsurf"])
        self.assertEqual(
            sorted(snapshot(self.root)),
            sorted(
                [
                    ".cursor/rules/architect.mdc",
                    ".cursor/rules/qa-expert.mdc",
                    ".windsurf/rules/architect.md",
                    ".windsurf/rules/qa-expert.md",
                ]
            ),
        )

    def test_running_twice_gives_identical_tree(self):
        fan_out(DOCS, [CURSOR, WINDSURF], self.root)
        first = snapshot(self.root)
        fan_out(DOCS, [CURSOR, WINDSURF], self.root)
        self.assertEqual(snapshot(self.root), first)

    def test_existing_files_are_overwritten(self):
        target_dir = self.root / ".windsurf" / "rules"
        target_dir.mkdir(parents=True)
        (target_dir / "qa-expert.md").write_text("stale", encoding="utf-8")
        fan_out(DOCS, [WINDSURF], self.root)
        self.assertEqual((target_dir / "qa-expert.md").read_text(encoding="utf-8"), "# QA\n")

    def test_no_profiles_is_a_no_op(self):
        report = fan_out(DOCS, [], self.root)
        self.assertEqual(report.profiles, [])
        self.assertTrue(report.ok)
        self.assertEqual(list(self.root.iterdir()), [])

    def test_duplicate_logical_names_rejected_before_writing(self):
        docs = [GeneratedDocument("dev", "a"), GeneratedDocument("dev", "b")]
        with self.assertRaises(ValueError):
            fan_out(docs, [CURSOR], self.root)
        self.assertFalse((self.root / ".cursor").exists())

    def test_blocked_profile_does_not_stop_others(self):
        (self.root / "blocked").write_text("a file, not a directory", encoding="utf-8")
        blocked = DestinationProfile("blocked", "Blocked", "blocked/rules", ".md")

        report = fan_out(DOCS, [CURSOR, blocked, WINDSURF], self.root)

        self.assertFalse(report.ok)
        self.assertEqual(len(report.result_for("blocked").errors), 1)
        for pid in ("cursor", "windsurf"):
            result = report.result_for(pid)
            self.assertTrue(result.ok)
            self.assertEqual(len(result.written), len(DOCS))

    def test_permission_denied_directory_is_isolated(self):
        original_mkdir = Path.mkdir
        denied = DestinationProfile("denied", "Denied", ".denied", ".md")

        def fake_mkdir(path, *args, **kwargs):
            if path.name == ".denied":
                raise PermissionError("permission denied")
            return original_mkdir(path, *args, **kwargs)

        with mock.patch.object(Path, "mkdir", fake_mkdir):
            report = fan_out(DOCS, [denied, CURSOR], self.root)

        self.assertEqual(report.failures[0].message, "permission denied")
        self.assertEqual(report.result_for("denied").written, [])
        self.assertTrue(report.result_for("cursor").ok)
        self.assertEqual(len(report.result_for("cursor").written), 2)

    def test_single_file_failure_is_recorded_and_skipped(self):
        # a directory squatting on the target name makes that one write fail
        squat = self.root / ".cursor" / "rules" / "architect.mdc"
        squat.mkdir(parents=True)

        report = fan_out(DOCS, [CURSOR], self.root)

        result = report.result_for("cursor")
        self.assertEqual([e.path for e in result.errors], [squat])
        self.assertEqual(result.written, [self.root / ".cursor" / "rules" / "qa-expert.mdc"])
        self.assertEqual(report.to_dict()["status"], "fail")


if __name__ == "__main__":
    unittest.main()
