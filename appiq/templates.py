# appiq/templates.py
"""
Renderers for every document the installer writes.

All functions are pure: they take the installation request (and, for agents,
the matched integrations) and return text. Files are written elsewhere.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Sequence

import yaml

from .registry import DestinationProfile, IntegrationDescriptor
from .request import InstallationRequest


FOOTER = "*Powered by Appiq Solution - based on the BMAD method*"

CORE_AGENTS = [
    "smart-launcher",
    "project-manager",
    "architect",
    "story-master",
    "developer",
    "qa-expert",
]
FLUTTER_AGENTS = ["flutter-ui-agent", "flutter-cubit-agent"]

AGENT_PROFILES: Dict[str, Dict[str, Any]] = {
    "smart-launcher": {
        "name": "Appiq Launcher",
        "role": "Smart project starter",
        "commands": ["/start", "/quick-setup", "/help"],
        "description": "Starts the best workflow for your project type.",
    },
    "project-manager": {
        "name": "Project Manager",
        "role": "PRD & project planning",
        "commands": ["/prd", "/plan", "/epic"],
        "description": "Writes the PRD and project documentation.",
    },
    "architect": {
        "name": "System Architect",
        "role": "Technical architecture",
        "commands": ["/architecture", "/tech-stack", "/design"],
        "description": "Designs the system architecture and tech stack.",
    },
    "story-master": {
        "name": "Story Master",
        "role": "User stories & sprint planning",
        "commands": ["/story", "/sprint", "/tasks"],
        "description": "Drafts user stories from sharded epics.",
    },
    "developer": {
        "name": "Senior Developer",
        "role": "Code implementation",
        "commands": ["/code", "/implement", "/fix"],
        "description": "Implements features and fixes bugs.",
    },
    "qa-expert": {
        "name": "QA Expert",
        "role": "Testing & quality",
        "commands": ["/test", "/review", "/validate"],
        "description": "Reviews code and validates quality.",
    },
    "flutter-ui-agent": {
        "name": "Flutter UI Agent",
        "role": "Flutter widgets & responsive mobile UI",
        "commands": ["/widget", "/screen", "/theme"],
        "description": "Builds accessible, responsive Flutter UI components.",
    },
    "flutter-cubit-agent": {
        "name": "Flutter Cubit Agent",
        "role": "State management with Cubit/BLoC",
        "commands": ["/cubit", "/state", "/usecase"],
        "description": "Designs state and business logic following Clean Architecture.",
    },
}

TEMPLATE_FILES = ["prd-template.md", "architecture-template.md", "story-template.md"]
TASK_FILES = ["create-doc.md", "shard-doc.md", "validate-story.md"]
DATA_FILES = ["bmad-kb.md", "technical-preferences.md"]
DEV_ALWAYS_FILES = [
    "docs/architecture/coding-standards.md",
    "docs/architecture/tech-stack.md",
    "docs/architecture/project-structure.md",
]
PLANNING_AGENTS = ["analyst", "pm", "ux-expert", "architect", "po"]
DEVELOPMENT_AGENTS = ["sm", "po", "dev", "qa"]
COMMIT_POINTS = ["before-next-story", "after-qa-approval"]

GREENFIELD_PIPELINE = [
    "PO (Product Owner) -> create the PRD",
    "Architect -> design the system architecture",
    "UX Expert -> UI/UX design",
    "Story Master -> break the work into user stories",
    "Developer -> implement features",
    "QA Expert -> testing and validation",
    "SM (Scrum Master) -> sprint coordination",
]
BROWNFIELD_PIPELINE = [
    "PO -> analyse the existing documentation",
    "Architect -> architecture review",
    "Story Master -> plan new features",
    "Developer -> integrate features into the existing code base",
    "QA Expert -> regression testing",
    "SM -> change management",
]
PLAN_COMMANDS = [
    ("/start", "run the whole workflow"),
    ("/plan", "detailed planning"),
    ("/develop", "start development"),
    ("/review", "code review"),
    ("/deploy", "prepare deployment"),
]


def _type_label(request: InstallationRequest) -> str:
    return "Greenfield (new project)" if request.is_greenfield else "Brownfield (existing project)"


def _yaml(header: str, payload: Dict[str, Any]) -> str:
    return header + "\n" + yaml.safe_dump(payload, sort_keys=False, allow_unicode=True)


def agent_names(request: InstallationRequest) -> List[str]:
    names = list(CORE_AGENTS)
    if request.tech_stack.is_flutter:
        names.extend(FLUTTER_AGENTS)
    return names


# ----------------------------
# Agents
# ----------------------------
def render_agent(agent_name: str, request: InstallationRequest) -> str:
    profile = AGENT_PROFILES[agent_name]
    commands = "\n".join(f"- `{c}`" for c in profile["commands"])
    start = "/start" if request.is_greenfield else "/analyze"
    stack = request.tech_stack.platform or "not detected"
    return (
        f"# {profile['name']}\n\n"
        f"**Role:** {profile['role']}\n\n"
        f"{profile['description']}\n\n"
        "## Project Context\n\n"
        f"- Project: {request.project_name}\n"
        f"- Type: {_type_label(request)}\n"
        f"- Platform: {stack}\n"
        f"- Entry command: `{start}`\n\n"
        "## Commands\n\n"
        f"{commands}\n\n"
        "## Working Rules\n\n"
        "- Read `appiq-solution/project-config.yaml` before starting.\n"
        "- Keep documents in `docs/` up to date.\n"
        "- Hand over to the next agent in the workflow when done.\n\n"
        "---\n"
        f"{FOOTER}\n"
    )


def dependencies_section() -> str:
    templates = "\n".join(f"- {t}" for t in TEMPLATE_FILES)
    tasks = "\n".join(f"- {t}" for t in TASK_FILES)
    data = "\n".join(f"- {d}" for d in DATA_FILES)
    return (
        "\n## BMAD Dependencies\n\n"
        f"### Templates\n{templates}\n\n"
        f"### Tasks\n{tasks}\n\n"
        f"### Data\n{data}\n\n"
        "### Configuration\n- core-config.yaml (devLoadAlwaysFiles)\n\n"
        "## BMAD Workflow Integration\n\n"
        "**Planning Phase:** Web UI -> IDE Transition -> Document Sharding\n"
        "**Development Phase:** SM -> PO -> Dev -> QA -> Loop\n"
        "**Critical Points:** Commit before proceeding, verify tests passing\n"
    )


def _usage_examples(agent_name: str) -> List[str]:
    name = agent_name.lower()
    if "flutter" in name:
        return [
            "Use the Dart MCP to analyse my Flutter widget.",
            "Use the 21st.dev Magic MCP to build a new UI component.",
        ]
    if "architect" in name:
        return [
            "Use the Context7 MCP to find the latest docs for React hooks.",
            "Use Sequential Thinking for complex architecture planning.",
        ]
    if "qa" in name:
        return ["Use the Puppeteer MCP to write automated browser tests."]
    if "dev" in name:
        return [
            "Use the Firebase MCP to read Firestore data.",
            "Use the Supabase MCP for database operations.",
        ]
    return [
        "Use the Context7 MCP for current documentation.",
        "Use Sequential Thinking for complex problem solving.",
    ]


def mcp_section(agent_name: str, integrations: Sequence[IntegrationDescriptor]) -> str:
    """Markdown block advertising the integrations matched for an agent ('' when none)."""
    if not integrations:
        return ""
    servers = "\n".join(f"- **{i.display_name}:** {i.description}" for i in integrations)
    examples = "\n".join(f'- "{e}"' for e in _usage_examples(agent_name))
    return (
        "\n## MCP Server Integration\n\n"
        "You have access to these MCP servers:\n\n"
        f"{servers}\n\n"
        "**Example usage:**\n"
        f"{examples}\n\n"
        "**Important:** the MCP servers must be configured in your IDE. "
        "See mcp-setup-instructions.md.\n"
    )


def enrich_agent(
    body: str, agent_name: str, integrations: Sequence[IntegrationDescriptor]
) -> str:
    """Insert the dependency and MCP sections before the agent's last line."""
    lines = body.rstrip("\n").split("\n")
    last = lines.pop()
    lines.append(dependencies_section())
    lines.append(mcp_section(agent_name, integrations))
    lines.append(last)
    return "\n".join(lines) + "\n"


# ----------------------------
# Core config & data
# ----------------------------
def core_config(request: InstallationRequest) -> str:
    cfg = {
        "project": {
            "name": request.project_name,
            "type": request.project_type,
            "created": request.created_iso,
        },
        "devLoadAlwaysFiles": list(DEV_ALWAYS_FILES),
        "documentPaths": {
            "prd": "docs/prd.md",
            "architecture": "docs/architecture.md",
            "stories": "docs/stories/",
            "templates": "appiq-solution/templates/",
        },
        "dependencies": {
            "templates": list(TEMPLATE_FILES),
            "tasks": list(TASK_FILES),
            "data": list(DATA_FILES),
        },
    }
    return _yaml("# BMAD Core Configuration", cfg)


def technical_preferences(request: InstallationRequest) -> str:
    stack = request.tech_stack
    if stack.is_flutter:
        prefs = (
            "- Flutter with Clean Architecture (presentation / domain / data)\n"
            "- State management: Cubit (flutter_bloc)\n"
            "- Dependency injection: get_it + injectable\n"
            "- Tests: flutter_test, bloc_test, mocktail\n"
        )
    elif stack.platform == "web":
        prefs = (
            f"- Framework: {stack.web_framework or 'to be decided'}\n"
            "- TypeScript first\n"
            "- Component tests plus end-to-end tests\n"
        )
    else:
        prefs = "- To be defined with the architect\n"
    return (
        "# Technical Preferences\n\n"
        "*Helps the PM and architect respect your preferred patterns and technologies.*\n\n"
        f"## Project: {request.project_name}\n"
        f"**Platform:** {stack.platform or 'not defined'}\n\n"
        "### Preferred Technologies\n\n"
        f"{prefs}\n"
        "### Conventions\n\n"
        "- Small, reviewable stories\n"
        "- Every story ships with tests\n"
    )


def knowledge_base() -> str:
    return (
        "# BMAD Knowledge Base\n\n"
        "## Phases\n\n"
        "1. **Planning** (web UI or IDE): analyst -> pm -> ux-expert -> architect -> po\n"
        "2. **Transition**: copy PRD and architecture into `docs/`, then shard them\n"
        "3. **Development** (IDE): sm -> po -> dev -> qa, one story at a time\n\n"
        "## Rules\n\n"
        "- The dev agent always loads the files listed in `devLoadAlwaysFiles`.\n"
        "- Stories are drafted from sharded epics, never from the full PRD.\n"
        "- Commit after every approved story.\n"
    )


# ----------------------------
# Document templates
# ----------------------------
def prd_template() -> str:
    return (
        "# {{project_name}} Product Requirements Document (PRD)\n\n"
        "## Goals and Background Context\n\n"
        "### Goals\n\n- {{goal}}\n\n"
        "### Background Context\n\n{{background}}\n\n"
        "## Requirements\n\n"
        "### Functional\n\n- FR1: {{requirement}}\n\n"
        "### Non Functional\n\n- NFR1: {{requirement}}\n\n"
        "## User Interface Design Goals\n\n{{ui_goals}}\n\n"
        "## Technical Assumptions\n\n{{assumptions}}\n\n"
        "## Epics\n\n"
        "### Epic 1: {{epic_title}}\n\n"
        "#### Story 1.1: {{story_title}}\n\n"
        "As a {{user}}, I want {{action}}, so that {{benefit}}.\n\n"
        "##### Acceptance Criteria\n\n1. {{criterion}}\n"
    )


def architecture_template() -> str:
    return (
        "# {{project_name}} Architecture Document\n\n"
        "## Introduction\n\n{{introduction}}\n\n"
        "## High Level Architecture\n\n{{overview}}\n\n"
        "## Tech Stack\n\n"
        "| Category | Technology | Version | Purpose |\n"
        "|---|---|---|---|\n"
        "| {{category}} | {{technology}} | {{version}} | {{purpose}} |\n\n"
        "## Data Models\n\n{{models}}\n\n"
        "## Components\n\n{{components}}\n\n"
        "## Source Tree\n\n```\n{{tree}}\n```\n\n"
        "## Coding Standards\n\n{{standards}}\n\n"
        "## Test Strategy\n\n{{tests}}\n\n"
        "## Security\n\n{{security}}\n"
    )


def story_template() -> str:
    return (
        "# Story {{epic_num}}.{{story_num}}: {{story_title}}\n\n"
        "## Status\n\nDraft\n\n"
        "## Story\n\n"
        "**As a** {{role}},\n**I want** {{action}},\n**so that** {{benefit}}\n\n"
        "## Acceptance Criteria\n\n1. {{criterion}}\n\n"
        "## Tasks / Subtasks\n\n- [ ] Task 1 (AC: 1)\n  - [ ] Subtask 1.1\n\n"
        "## Dev Notes\n\n{{dev_notes}}\n\n"
        "### Testing\n\n{{testing}}\n\n"
        "## Dev Agent Record\n\n"
        "### Agent Model Used\n\n### Completion Notes\n\n### File List\n\n"
        "## QA Results\n"
    )


def pipeline_steps(request: InstallationRequest) -> List[str]:
    return list(GREENFIELD_PIPELINE if request.is_greenfield else BROWNFIELD_PIPELINE)


def project_plan(request: InstallationRequest) -> str:
    """The plan shown before approval; also kept in the solution tree and the PRD."""
    steps = "\n".join(f"{i}. {step}" for i, step in enumerate(pipeline_steps(request), start=1))
    commands = "\n".join(f"- `{cmd}` - {what}" for cmd, what in PLAN_COMMANDS)
    text = (
        f"# Project Plan: {request.project_name}\n\n"
        f"**Project type:** {_type_label(request)}\n"
        f"**Target users:** {request.target_users or '(to be refined)'}\n\n"
        f"## Project Idea\n\n{request.project_idea or '(to be refined)'}\n\n"
        f"## Development Pipeline\n\n{steps}\n\n"
        f"## One-Click Commands\n\n{commands}\n"
    )
    if request.plan_changes:
        text += f"\n## Requested Changes\n\n{request.plan_changes}\n"
    return text


def initial_prd(request: InstallationRequest) -> str:
    changes = (
        f"### Requested Plan Changes\n\n{request.plan_changes}\n\n" if request.plan_changes else ""
    )
    return (
        f"# {request.project_name} Product Requirements Document (PRD)\n\n"
        f"*Created: {request.created_iso}*\n\n"
        "## Goals and Background Context\n\n"
        f"### Project Idea\n\n{request.project_idea or '(to be refined)'}\n\n"
        f"### Target Users\n\n{request.target_users or '(to be refined)'}\n\n"
        f"### Project Type\n\n{_type_label(request)}\n\n"
        f"### Platform\n\n{request.tech_stack.platform or 'to be decided'}\n\n"
        f"{changes}"
        "## Requirements\n\n"
        "*To be completed by the PM agent using prd-template.md.*\n\n"
        "## Next Steps\n\n"
        "1. `@architect` creates docs/architecture.md\n"
        "2. `@po` shards PRD and architecture\n"
        "3. `@sm` drafts the first story\n"
    )


# ----------------------------
# Tasks
# ----------------------------
def create_doc_task() -> str:
    return (
        "# Create Document from Template\n\n"
        "## Purpose\n\nCreate a project document from one of the templates in "
        "`appiq-solution/templates/`.\n\n"
        "## Steps\n\n"
        "1. Pick the template (PRD, architecture or story).\n"
        "2. Fill every `{{placeholder}}` section, asking the user when unclear.\n"
        "3. Save the result under `docs/`.\n"
        "4. Present the document for review before moving on.\n"
    )


def shard_doc_task() -> str:
    return (
        "# Shard Document\n\n"
        "## Purpose\n\nSplit a large document (PRD or architecture) into focused files "
        "that agents can load cheaply.\n\n"
        "## Steps\n\n"
        "1. Read `docs/prd.md` or `docs/architecture.md`.\n"
        "2. Create one file per level-2 section: `docs/prd/` or `docs/architecture/`.\n"
        "3. Write an `index.md` linking every shard.\n"
        "4. Update `devLoadAlwaysFiles` in core-config.yaml if needed.\n"
    )


def validate_story_task() -> str:
    return (
        "# Validate Story\n\n"
        "## Purpose\n\nCheck a drafted story before development starts.\n\n"
        "## Checklist\n\n"
        "- [ ] Story follows story-template.md\n"
        "- [ ] Acceptance criteria are testable\n"
        "- [ ] Tasks reference acceptance criteria\n"
        "- [ ] Dev notes point at the relevant architecture shards\n"
        "- [ ] No requirements invented beyond the epic\n\n"
        "## Outcome\n\nGO / NO-GO with a short justification.\n"
    )


# ----------------------------
# Orchestration & workflows
# ----------------------------
def _ide_entries(profiles: Sequence[DestinationProfile]) -> List[Dict[str, str]]:
    return [
        {"name": p.display_name, "config_path": p.directory, "file_format": p.extension}
        for p in profiles
    ]


def orchestration(request: InstallationRequest, profiles: Sequence[DestinationProfile]) -> str:
    planning_workflow = "greenfield-planning" if request.is_greenfield else "brownfield-planning"
    cfg = {
        "project": {
            "name": request.project_name,
            "type": request.project_type,
            "plan_approved": request.plan_approved,
            "created": request.created_iso,
        },
        "planning_phase": {
            "workflow": planning_workflow,
            "agents": list(PLANNING_AGENTS),
            "flow": [
                "analyst -> research & project brief (optional)",
                "pm -> create PRD from brief",
                "ux-expert -> create frontend spec (optional)",
                "architect -> create architecture from PRD + UX",
                "po -> run master checklist & validate alignment",
            ],
        },
        "transition": {
            "type": "document-sharding",
            "requirements": [
                "Copy docs/prd.md and docs/architecture.md to project",
                "Switch to IDE",
                "PO: Shard documents (CRITICAL)",
                "Update core-config.yaml devLoadAlwaysFiles",
            ],
        },
        "development_phase": {
            "workflow": "core-development-cycle",
            "agents": list(DEVELOPMENT_AGENTS),
            "cycle": [
                "sm -> review previous story dev/QA notes",
                "sm -> draft next story from sharded epic + architecture",
                "po -> validate story draft (optional)",
                "user -> approve story",
                "dev -> sequential task execution + implementation",
                "dev -> run all validations, mark ready for review",
                "user -> verify (request QA or approve)",
                "qa -> senior dev review + active refactoring (if requested)",
                "verify regression tests + linting pass",
                "commit changes before proceeding",
                "mark story done -> loop back to sm",
            ],
        },
        "commit_points": list(COMMIT_POINTS),
        "ides": _ide_entries(profiles),
        "context": {
            "dev_always_files": list(DEV_ALWAYS_FILES),
            "agent_dependencies": {
                "templates": list(TEMPLATE_FILES),
                "tasks": list(TASK_FILES),
                "data": list(DATA_FILES),
            },
        },
    }
    return _yaml("# BMAD Full Orchestration", cfg)


def planning_workflow() -> str:
    return (
        "# BMAD Planning Workflow\n\n"
        "Planning happens before any code, ideally in a web UI to save cost.\n\n"
        "1. **Project idea**: the problem and the core concept.\n"
        "2. **Analyst** (optional): market research, competitor analysis, project brief.\n"
        "3. **PM**: turns the brief into `docs/prd.md`.\n"
        "4. **UX Expert** (optional): frontend spec.\n"
        "5. **Architect**: `docs/architecture.md` from PRD and UX spec.\n"
        "6. **PO**: master checklist, then document sharding.\n\n"
        f"---\n{FOOTER}\n"
    )


def development_cycle() -> str:
    return (
        "# BMAD Development Cycle\n\n"
        "1. `@sm` reviews the previous story notes and drafts the next story.\n"
        "2. `@po` validates the draft (optional).\n"
        "3. You approve the story.\n"
        "4. `@dev` implements tasks in order and runs all validations.\n"
        "5. `@qa` reviews and refactors (optional).\n"
        "6. Verify regression tests and linting pass.\n"
        "7. **Commit before proceeding**, then loop back to `@sm`.\n\n"
        f"---\n{FOOTER}\n"
    )


def document_sharding() -> str:
    return (
        "# Document Sharding\n\n"
        "Sharding splits the PRD and architecture into small files so the IDE agents\n"
        "only load what a story needs.\n\n"
        "## How\n\n"
        "Tell your IDE: `@po please shard the PRD and architecture documents`.\n\n"
        "## Result\n\n"
        "```\n"
        "docs/\n"
        "├── prd/\n"
        "│   ├── index.md\n"
        "│   └── epic-1.md\n"
        "└── architecture/\n"
        "    ├── index.md\n"
        "    ├── coding-standards.md\n"
        "    ├── tech-stack.md\n"
        "    └── project-structure.md\n"
        "```\n\n"
        f"---\n{FOOTER}\n"
    )


def quick_start(request: InstallationRequest) -> str:
    status = (
        "Planning complete - your initial PRD is in docs/prd.md.\n"
        if request.plan_approved
        else "Start with `/plan` (web UI) or `@pm` directly in your IDE.\n"
    )
    return (
        "# Appiq Solution - Quick Start\n\n"
        f"## Project: {request.project_name}\n"
        f"**Type:** {_type_label(request)}\n\n"
        f"{status}\n"
        "## Commands\n\n"
        "- `/plan` - start planning\n"
        "- `/shard` - document sharding\n"
        "- `/story` - next story\n"
        "- `/dev` - development\n"
        "- `/qa` - quality review\n\n"
        "Details: `appiq-solution/workflows/`.\n"
    )


def project_config(request: InstallationRequest, profiles: Sequence[DestinationProfile]) -> str:
    workflow = "greenfield" if request.is_greenfield else "brownfield"
    cfg = {
        "version": "1.0.0",
        "project": {
            "type": request.project_type,
            "created": request.created_iso,
            "name": request.project_name,
            "plan_approved": request.plan_approved,
            "platform": request.tech_stack.platform,
        },
        "paths": {
            "prd": "docs/prd.md",
            "architecture": "docs/architecture.md",
            "stories": "docs/stories/",
            "agents": "appiq-solution/agents/",
            "orchestration": "appiq-solution/bmad-orchestration.yaml",
        },
        "workflows": {
            workflow: {
                "start_command": "/start" if request.is_greenfield else "/analyze",
                "agents_sequence": list(CORE_AGENTS),
            }
        },
        "ides": _ide_entries(profiles),
    }
    return _yaml("# Appiq Solution Project Configuration", cfg)


def mcp_setup_instructions(integrations: Sequence[IntegrationDescriptor]) -> str:
    servers = {i.key: i.to_server_config() for i in integrations}
    block = json.dumps({"mcpServers": servers}, indent=2, ensure_ascii=False)
    listing = "\n".join(f"- **{i.display_name}** (`{i.key}`): {i.description}" for i in integrations)
    return (
        "# MCP Setup Instructions\n\n"
        "Your agents reference the MCP servers below. Add them to your IDE's MCP\n"
        "configuration (for example `.cursor/mcp.json` or Claude's settings).\n\n"
        f"{listing or '- (no MCP servers selected)'}\n\n"
        "## Configuration\n\n"
        f"```json\n{block}\n```\n"
    )


# ----------------------------
# Slash commands
# ----------------------------
COMMANDS: Dict[str, Dict[str, str]] = {
    "appiq": {
        "description": "Start intelligent project creation",
        "agent": "smart-launcher",
        "action": "Detect the project type and launch the matching workflow.",
    },
    "story": {
        "description": "Create a new development story",
        "agent": "story-master",
        "action": "Draft the next story from the sharded epics.",
    },
    "analyze": {
        "description": "Analyze current project",
        "agent": "architect",
        "action": "Document the existing code base before planning changes.",
    },
    "help": {
        "description": "Get context-aware help",
        "agent": "smart-launcher",
        "action": "Explain the next sensible step for the current project state.",
    },
}


def command_document(name: str) -> str:
    cmd = COMMANDS[name]
    return (
        f"# /{name}\n\n"
        f"{cmd['description']}.\n\n"
        "## Instructions\n\n"
        f"Act as the agent defined in `appiq-solution/agents/{cmd['agent']}.md`.\n"
        f"{cmd['action']}\n"
    )
