"""Installation pipeline: render, enrich, write, fan out."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from . import templates
from .fanout import FanOutReport, GeneratedDocument, fan_out
from .matcher import match_all
from .registry import DestinationProfile, IntegrationDescriptor, select_profiles
from .request import InstallationRequest


log = logging.getLogger(__name__)


@dataclass
class InstallReport:
    solution_dir: Path
    files: List[Path] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    agent_integrations: Dict[str, List[str]] = field(default_factory=dict)
    ide_report: FanOutReport = field(default_factory=FanOutReport)
    command_report: FanOutReport = field(default_factory=FanOutReport)

    @property
    def ok(self) -> bool:
        return self.ide_report.ok and self.command_report.ok

    def to_dict(self) -> dict:
        return {
            "status": "pass" if self.ok else "fail",
            "solution_dir": str(self.solution_dir),
            "files_written": len(self.files),
            "skipped": [str(p) for p in self.skipped],
            "agents": self.agent_integrations,
            "ides": self.ide_report.to_dict()["profiles"],
            "commands": self.command_report.to_dict()["profiles"],
        }


class _TreeWriter:
    """Writes files below a root and remembers what it wrote."""

    def __init__(self, root: Path, report: InstallReport):
        self.root = root
        self.report = report

    def write(self, rel: str, text: str) -> Path:
        path = self.root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        self.report.files.append(path)
        log.debug("Wrote %s", path)
        return path


def build_agent_documents(
    request: InstallationRequest, integrations: Sequence[IntegrationDescriptor]
) -> Dict[str, tuple]:
    """Render each agent and enrich it with the integrations that apply to it."""
    docs: Dict[str, tuple] = {}
    for name, matched in match_all(templates.agent_names(request), integrations).items():
        body = templates.enrich_agent(templates.render_agent(name, request), name, matched)
        docs[name] = (GeneratedDocument(logical_name=name, body=body), matched)
    return docs


def build_command_documents() -> List[GeneratedDocument]:
    return [
        GeneratedDocument(logical_name=name, body=templates.command_document(name))
        for name in templates.COMMANDS
    ]


def _write_solution_tree(
    request: InstallationRequest,
    profiles: Sequence[DestinationProfile],
    out: _TreeWriter,
) -> None:
    out.write("project-config.yaml", templates.project_config(request, profiles))
    out.write("project-plan.md", templates.project_plan(request))

    out.write(".bmad-core/core-config.yaml", templates.core_config(request))
    out.write(
        ".bmad-core/data/technical-preferences.md", templates.technical_preferences(request)
    )

    out.write("templates/prd-template.md", templates.prd_template())
    out.write("templates/architecture-template.md", templates.architecture_template())
    out.write("templates/story-template.md", templates.story_template())

    out.write("data/bmad-kb.md", templates.knowledge_base())
    out.write("data/technical-preferences.md", templates.technical_preferences(request))
    out.write("tasks/create-doc.md", templates.create_doc_task())
    out.write("tasks/shard-doc.md", templates.shard_doc_task())
    out.write("tasks/validate-story.md", templates.validate_story_task())

    out.write("bmad-orchestration.yaml", templates.orchestration(request, profiles))
    out.write("workflows/planning-workflow.md", templates.planning_workflow())
    out.write("workflows/development-cycle.md", templates.development_cycle())
    out.write("workflows/document-sharding.md", templates.document_sharding())

    out.write("commands/quick-start.md", templates.quick_start(request))
    for doc in build_command_documents():
        out.write(f"commands/{doc.filename}", doc.body)


def _setup_docs(request: InstallationRequest, report: InstallReport) -> None:
    docs_dir = request.project_root / "docs"
    for d in (docs_dir, docs_dir / "architecture", docs_dir / "stories"):
        d.mkdir(parents=True, exist_ok=True)

    if not request.plan_approved:
        return
    prd_path = docs_dir / "prd.md"
    if prd_path.exists():
        log.info("Keeping existing %s", prd_path)
        report.skipped.append(prd_path)
        return
    prd_path.write_text(templates.initial_prd(request), encoding="utf-8")
    report.files.append(prd_path)


def install(
    request: InstallationRequest,
    integrations: Sequence[IntegrationDescriptor],
    ide_profiles: Sequence[DestinationProfile],
    command_profiles: Sequence[DestinationProfile] = (),
    progress: Optional[Callable[[str], None]] = None,
) -> InstallReport:
    """
    Install the appiq-solution tree into request.project_root.

    Raises ConfigurationError for unknown IDE ids and OSError when the solution
    tree itself cannot be written. Failures while copying into IDE folders are
    collected in the returned report instead.
    """
    say = progress or (lambda msg: None)

    selected = select_profiles(request.ide_ids, ide_profiles)
    selected_commands = select_profiles(request.ide_ids, command_profiles, strict=False)

    report = InstallReport(solution_dir=request.solution_dir)
    out = _TreeWriter(request.solution_dir, report)

    say(f"Writing {request.solution_dir}")
    request.solution_dir.mkdir(parents=True, exist_ok=True)
    _write_solution_tree(request, selected, out)
    _setup_docs(request, report)

    say("Installing agents")
    agent_docs = build_agent_documents(request, integrations)
    used: List[IntegrationDescriptor] = []
    for name, (doc, matched) in agent_docs.items():
        out.write(f"agents/{doc.filename}", doc.body)
        report.agent_integrations[name] = [i.key for i in matched]
        for integration in matched:
            if integration not in used:
                used.append(integration)
        log.info("Agent %s: %d integrations", name, len(matched))

    # keep registry order in the setup file
    used_in_order = [i for i in integrations if i in used]
    out.write("mcp-setup-instructions.md", templates.mcp_setup_instructions(used_in_order))

    documents = [doc for doc, _ in agent_docs.values()]
    if selected:
        say("Copying agents to " + ", ".join(p.display_name for p in selected))
    report.ide_report = fan_out(documents, selected, request.project_root)
    report.command_report = fan_out(
        build_command_documents(), selected_commands, request.project_root
    )

    log.info(
        "Install finished: %d files, %d IDE copies, %d failures",
        len(report.files),
        report.ide_report.written_count + report.command_report.written_count,
        len(report.ide_report.failures) + len(report.command_report.failures),
    )
    return report
