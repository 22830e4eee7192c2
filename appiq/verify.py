"""Post-install activation checks for an appiq-solution project."""

from __future__ import annotations

import argparse
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

import yaml


REQUIRED_FILES = [
    "project-config.yaml",
    ".bmad-core/core-config.yaml",
    "bmad-orchestration.yaml",
    "mcp-setup-instructions.md",
    "commands/quick-start.md",
    "templates/prd-template.md",
    "templates/architecture-template.md",
    "templates/story-template.md",
    "tasks/create-doc.md",
    "tasks/shard-doc.md",
    "tasks/validate-story.md",
    "data/bmad-kb.md",
]
LAUNCHER = "smart-launcher.md"


@dataclass
class CheckResult:
    name: str
    passed: bool
    details: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"name": self.name, "passed": self.passed, "details": self.details}


def _agent_stems(agents_dir: Path) -> List[str]:
    return sorted(p.stem for p in agents_dir.glob("*.md"))


def _check_ide_copies(project_root: Path, ides: list, agents: List[str]) -> CheckResult:
    details: List[str] = []
    for entry in ides:
        if not isinstance(entry, dict):
            details.append(f"Malformed IDE entry: {entry!r}")
            continue
        directory = project_root / str(entry.get("config_path", ""))
        suffix = str(entry.get("file_format", ".md"))
        for stem in agents:
            if not (directory / f"{stem}{suffix}").exists():
                details.append(f"Missing {entry.get('name', '?')} copy: {directory / (stem + suffix)}")
    return CheckResult(name="ide-copies", passed=not details, details=details)


def run_checks(project_root: Path) -> List[CheckResult]:
    solution = project_root / "appiq-solution"
    results: List[CheckResult] = []

    if not solution.is_dir():
        results.append(
            CheckResult(
                name="solution-dir",
                passed=False,
                details=[f"appiq-solution not found in {project_root}. Run `appiq install` first."],
            )
        )
        # Nothing else to check without the install.
        return results
    results.append(CheckResult(name="solution-dir", passed=True))

    missing = [rel for rel in REQUIRED_FILES if not (solution / rel).exists()]
    results.append(
        CheckResult(
            name="required-files",
            passed=not missing,
            details=[f"Missing required file: {rel}" for rel in missing],
        )
    )

    agents = _agent_stems(solution / "agents")
    agent_errors: List[str] = []
    if not agents:
        agent_errors.append("No agents installed.")
    elif not (solution / "agents" / LAUNCHER).exists():
        agent_errors.append(f"Smart launcher agent missing: agents/{LAUNCHER}")
    results.append(CheckResult(name="agents", passed=not agent_errors, details=agent_errors))

    config_path = solution / "project-config.yaml"
    ides: list = []
    try:
        cfg = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        if not isinstance(cfg, dict):
            raise ValueError("project-config.yaml must be a mapping")
        ides = cfg.get("ides") or []
        if not isinstance(ides, list):
            raise ValueError("'ides' must be a list")
        results.append(
            CheckResult(
                name="project-config",
                passed=True,
                details=[f"{len(ides)} IDE integration(s) configured"],
            )
        )
    except (OSError, ValueError, yaml.YAMLError) as exc:
        results.append(
            CheckResult(
                name="project-config",
                passed=False,
                details=[f"Could not read project-config.yaml: {exc}"],
            )
        )
        return results

    results.append(_check_ide_copies(project_root, ides, agents))
    return results


def _format_text(results: Iterable[CheckResult]) -> str:
    lines: List[str] = []
    for result in results:
        status = "PASS" if result.passed else "FAIL"
        lines.append(f"[{status}] {result.name}")
        for detail in result.details:
            lines.append(f"    - {detail}")
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Check an appiq-solution installation.")
    parser.add_argument("--root", default=None, help="Project root (default: cwd).")
    parser.add_argument(
        "--format", choices=("text", "json"), default="text", help="Output format."
    )
    args = parser.parse_args(argv)

    root = Path(args.root or os.getenv("APPIQ_PROJECT_ROOT") or Path.cwd()).resolve()
    results = run_checks(root)
    all_passed = all(result.passed for result in results)

    if args.format == "json":
        payload = {
            "status": "pass" if all_passed else "fail",
            "results": [result.to_dict() for result in results],
        }
        print(json.dumps(payload, indent=2))
    else:
        print(_format_text(results))

    return 0 if all_passed else 1


if __name__ == "__main__":
    raise SystemExit(main())
