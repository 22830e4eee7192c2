"""Installation request and project detection."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple


log = logging.getLogger(__name__)

GREENFIELD = "greenfield"
BROWNFIELD = "brownfield"
PROJECT_TYPES = (GREENFIELD, BROWNFIELD)

SOURCE_DIRS = ("src", "lib", "app", "components", "pages")
DOC_MARKERS = ("README.md", "docs", "documentation")

# package.json dependency -> framework label; first hit wins
WEB_FRAMEWORKS = (
    ("next", "next.js"),
    ("react", "react"),
    ("vue", "vue"),
    ("@nuxt/core", "nuxt.js"),
    ("@angular/core", "angular"),
)


@dataclass(frozen=True)
class TechStack:
    platform: Optional[str] = None  # flutter | web | fullstack | api
    web_framework: Optional[str] = None
    is_flutter: bool = False
    has_ui: bool = False


@dataclass(frozen=True)
class InstallationRequest:
    """Everything one installer run needs. Built once, never mutated."""

    project_root: Path
    project_name: str
    project_type: str = GREENFIELD
    tech_stack: TechStack = field(default_factory=TechStack)
    ide_ids: Tuple[str, ...] = ()
    project_idea: str = ""
    target_users: str = ""
    plan_approved: bool = False
    plan_changes: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if self.project_type not in PROJECT_TYPES:
            raise ValueError(f"project_type must be one of {PROJECT_TYPES}")

    @property
    def solution_dir(self) -> Path:
        return self.project_root / "appiq-solution"

    @property
    def is_greenfield(self) -> bool:
        return self.project_type == GREENFIELD

    @property
    def created_iso(self) -> str:
        return self.created_at.isoformat().replace("+00:00", "Z")


# ----------------------------
# Detection
# ----------------------------
def has_existing_source_code(root: Path) -> bool:
    for name in SOURCE_DIRS:
        path = root / name
        if path.is_dir() and any(path.iterdir()):
            return True
    return False


def has_existing_documentation(root: Path) -> bool:
    return any((root / name).exists() for name in DOC_MARKERS)


def detect_project_type(root: Path) -> Tuple[str, str]:
    """Return (suggested type, reason)."""
    if has_existing_source_code(root) or has_existing_documentation(root):
        return BROWNFIELD, "existing code or documentation found"
    return GREENFIELD, "new project detected"


def detect_web_framework(root: Path) -> Optional[str]:
    package_json = root / "package.json"
    if not package_json.exists():
        return None
    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        log.warning("Ignoring unreadable %s: %s", package_json, exc)
        return None
    deps = data.get("dependencies") if isinstance(data, dict) else None
    if not isinstance(deps, dict):
        return None
    for dep, label in WEB_FRAMEWORKS:
        if dep in deps:
            return label
    return None


def detect_tech_stack(root: Path) -> TechStack:
    if (root / "pubspec.yaml").exists():
        return TechStack(platform="flutter", is_flutter=True, has_ui=True)
    framework = detect_web_framework(root)
    if framework:
        return TechStack(platform="web", web_framework=framework, has_ui=True)
    return TechStack()
