from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from . import installer
from .prompts import build_request
from .registry import CONFIG_FILENAME, ConfigurationError, load_registry_config
from .request import PROJECT_TYPES


log = logging.getLogger(__name__)

LOG_FORMAT = "[%(levelname)s] %(message)s"


# ----------------------------
# Root resolution
# ----------------------------
def resolve_root(explicit: Optional[str]) -> Path:
    """
    Determine the project root in this priority:
    1) --root argument
    2) APPIQ_PROJECT_ROOT env var
    3) the current working directory
    """
    if explicit:
        return Path(explicit).resolve()
    env_root = os.getenv("APPIQ_PROJECT_ROOT")
    if env_root:
        return Path(env_root).resolve()
    return Path.cwd().resolve()


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def configure_logging(level: Optional[str]) -> None:
    level = (level or os.getenv("APPIQ_LOG_LEVEL") or "WARNING").upper()
    if level not in LOG_LEVELS:
        level = "WARNING"
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)


def _config_path(repo_root: Path, explicit: Optional[str]) -> Optional[Path]:
    if explicit:
        return Path(explicit)
    candidate = repo_root / CONFIG_FILENAME
    return candidate if candidate.exists() else None


# ----------------------------
# Commands
# ----------------------------
def cmd_install(args: argparse.Namespace) -> int:
    project_root = resolve_root(args.root)
    if not project_root.is_dir():
        print(f"[install] Project root does not exist: {project_root}", file=sys.stderr)
        return 1

    print("[install] Appiq Solution Smart Installer")
    try:
        registry = load_registry_config(_config_path(project_root, args.config))
        interactive = not args.yes and sys.stdin.isatty()
        request = build_request(
            project_root,
            registry.ide_profiles,
            name=args.name,
            project_type=args.type,
            ide_ids=args.ide,
            idea=args.idea,
            users=args.users,
            approve_plan=True if args.approve_plan else None,
            interactive=interactive,
        )
        report = installer.install(
            request,
            registry.integrations,
            registry.ide_profiles,
            registry.command_profiles,
            progress=lambda msg: print(f"[install] {msg}"),
        )
    except ConfigurationError as exc:
        log.error("Configuration error: %s", exc)
        print(f"[install] Configuration error: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        log.error("Installation failed: %s", exc)
        print(f"[install] Installation failed: {exc}", file=sys.stderr)
        return 1
    except (EOFError, KeyboardInterrupt):
        print("\n[install] Aborted.", file=sys.stderr)
        return 1

    if args.format == "json":
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(f"[install] Wrote {len(report.files)} files under {report.solution_dir}")
        for result in report.ide_report.profiles + report.command_report.profiles:
            status = "OK" if result.ok else "FAIL"
            print(f"[install] [{status}] {result.profile_id}: {len(result.written)} files -> {result.directory}")
            for err in result.errors:
                print(f"    - {err.path}: {err.message}")
        if not report.ide_report.profiles:
            print("[install] No IDE integration selected; agents are in appiq-solution/agents/")
        print("[install] Next: open your IDE and start with @smart-launcher (or /appiq).")

    if args.strict and not report.ok:
        return 1
    return 0


# ----------------------------
# CLI
# ----------------------------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="appiq", description="Appiq Solution installer")
    parser.add_argument(
        "--root",
        help="Project root (falls back to APPIQ_PROJECT_ROOT env or the current directory).",
        default=None,
    )
    parser.add_argument(
        "--log-level",
        default=None,
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging level (falls back to APPIQ_LOG_LEVEL, default WARNING).",
    )
    sub = parser.add_subparsers(dest="command")

    p_install = sub.add_parser("install", help="Install agents, templates and IDE files.")
    p_install.add_argument("--name", default=None, help="Project name.")
    p_install.add_argument("--type", choices=PROJECT_TYPES, default=None, help="Project type.")
    p_install.add_argument(
        "--ide",
        action="append",
        default=None,
        help="IDE id to configure (repeatable), e.g. cursor, claude-code, manual.",
    )
    p_install.add_argument("--idea", default=None, help="Short project idea.")
    p_install.add_argument("--users", default=None, help="Target users.")
    p_install.add_argument(
        "--approve-plan", action="store_true", help="Approve the plan and create docs/prd.md."
    )
    p_install.add_argument(
        "--config", default=None, help=f"YAML registry overrides (default: ./{CONFIG_FILENAME})."
    )
    p_install.add_argument(
        "--yes", "-y", action="store_true", help="Never prompt; use detection and defaults."
    )
    p_install.add_argument("--format", choices=("text", "json"), default="text")
    p_install.add_argument(
        "--strict", action="store_true", help="Exit non-zero if any IDE copy failed."
    )
    p_install.set_defaults(func=cmd_install)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        # bare `appiq` means install
        args = parser.parse_args(argv + ["install"])

    configure_logging(args.log_level)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
