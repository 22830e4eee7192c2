"""Collect installer choices from flags and line prompts."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from . import templates
from .registry import MANUAL_IDE, ConfigurationError, DestinationProfile
from .request import (
    BROWNFIELD,
    GREENFIELD,
    PROJECT_TYPES,
    InstallationRequest,
    detect_project_type,
    detect_tech_stack,
)


log = logging.getLogger(__name__)

Ask = Callable[[str], str]


def _ask_text(ask: Ask, question: str, default: str = "") -> str:
    suffix = f" [{default}]" if default else ""
    answer = ask(f"{question}{suffix}: ").strip()
    return answer or default


def _ask_yes_no(ask: Ask, question: str, default: bool = False) -> bool:
    hint = "Y/n" if default else "y/N"
    answer = ask(f"{question} ({hint}): ").strip().lower()
    if not answer:
        return default
    return answer in {"y", "yes", "j", "ja"}


def _ask_project_type(ask: Ask, suggested: str, reason: str) -> str:
    print(f"[install] Analysis: {reason}")
    while True:
        answer = _ask_text(ask, f"Project type ({GREENFIELD}/{BROWNFIELD})", suggested).lower()
        if answer in PROJECT_TYPES:
            return answer
        if answer in {"g", "b"}:
            return GREENFIELD if answer == "g" else BROWNFIELD
        print(f"[install] Please answer {GREENFIELD} or {BROWNFIELD}.")


def _ask_ides(ask: Ask, profiles: Sequence[DestinationProfile]) -> List[str]:
    ids = [p.id for p in profiles] + [MANUAL_IDE]
    print("[install] Available IDEs:")
    for i, profile in enumerate(profiles, start=1):
        print(f"  {i}. {profile.display_name} ({profile.id})")
    print(f"  {len(profiles) + 1}. Manual / none ({MANUAL_IDE})")
    while True:
        raw = ask("Select all IDEs you use (comma-separated numbers or ids): ")
        try:
            return parse_ide_selection(raw, ids)
        except ConfigurationError as exc:
            print(f"[install] {exc}")


def parse_ide_selection(raw: str, ids: Sequence[str]) -> List[str]:
    """Parse '1,3' or 'cursor, windsurf' into ids, in the order given."""
    chosen: List[str] = []
    for token in raw.replace(" ", ",").split(","):
        token = token.strip()
        if not token:
            continue
        if token.isdigit():
            index = int(token) - 1
            if not 0 <= index < len(ids):
                raise ConfigurationError(f"No IDE with number {token}.")
            ide = ids[index]
        elif token in ids:
            ide = token
        else:
            raise ConfigurationError(f"Unknown IDE '{token}'.")
        if ide not in chosen:
            chosen.append(ide)
    if not chosen:
        raise ConfigurationError("Select at least one IDE.")
    return chosen


def validate_ide_ids(ide_ids: Sequence[str], profiles: Sequence[DestinationProfile]) -> List[str]:
    known = {p.id for p in profiles} | {MANUAL_IDE}
    unknown = [i for i in ide_ids if i not in known]
    if unknown:
        raise ConfigurationError(
            f"Unknown IDE(s): {', '.join(unknown)}. Known IDEs: {', '.join(sorted(known))}"
        )
    deduped: List[str] = []
    for ide in ide_ids:
        if ide not in deduped:
            deduped.append(ide)
    return deduped


def build_request(
    project_root: Path,
    profiles: Sequence[DestinationProfile],
    name: Optional[str] = None,
    project_type: Optional[str] = None,
    ide_ids: Optional[Sequence[str]] = None,
    idea: Optional[str] = None,
    users: Optional[str] = None,
    approve_plan: Optional[bool] = None,
    interactive: bool = True,
    ask: Ask = input,
) -> InstallationRequest:
    """
    Build the immutable request for one run.

    Values passed in win; anything missing is asked for when interactive,
    otherwise taken from detection and defaults.
    """
    suggested_type, reason = detect_project_type(project_root)
    stack = detect_tech_stack(project_root)
    if stack.platform:
        log.info("Detected platform %s (%s)", stack.platform, stack.web_framework or "-")

    if project_type is None:
        project_type = _ask_project_type(ask, suggested_type, reason) if interactive else suggested_type

    if name is None:
        default_name = project_root.resolve().name
        name = _ask_text(ask, "Project name", default_name) if interactive else default_name

    if idea is None:
        idea = _ask_text(ask, "Describe your project idea") if interactive else ""
    if users is None:
        users = _ask_text(ask, "Who are the target users") if interactive else ""

    if ide_ids:
        ides = validate_ide_ids(ide_ids, profiles)
    elif interactive:
        ides = _ask_ides(ask, profiles)
    else:
        ides = [MANUAL_IDE]

    request = InstallationRequest(
        project_root=project_root,
        project_name=name,
        project_type=project_type,
        tech_stack=stack,
        ide_ids=tuple(ides),
        project_idea=idea,
        target_users=users,
        plan_approved=bool(approve_plan),
    )
    if approve_plan is None and interactive:
        request = _review_plan(ask, request)
    return request


def _review_plan(ask: Ask, request: InstallationRequest) -> InstallationRequest:
    """Show the project plan, then record approval or the requested changes."""
    rule = "-" * 50
    print("[install] Your project plan:")
    print(rule)
    print(templates.project_plan(request).rstrip("\n"))
    print(rule)

    if _ask_yes_no(ask, "Approve the project plan and create docs/prd.md", True):
        return replace(request, plan_approved=True)
    changes = _ask_text(ask, "What should change (Enter for none)")
    if not changes:
        return request
    print("[install] Changes recorded in the plan.")
    return replace(request, plan_approved=True, plan_changes=changes)
