"""Static registries: MCP integrations and IDE destination profiles."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import yaml


log = logging.getLogger(__name__)

ALL_TAG = "all"
MANUAL_IDE = "manual"
CONFIG_FILENAME = "appiq.yaml"


class ConfigurationError(ValueError):
    """Raised when a registry or profile table is malformed."""


@dataclass(frozen=True)
class IntegrationDescriptor:
    """One optional integration (an MCP server manifest)."""

    key: str
    display_name: str
    description: str
    command: str
    args: Tuple[str, ...] = ()
    tags: frozenset = frozenset()
    env: Mapping[str, str] = field(default_factory=dict, hash=False)

    @property
    def invocation(self) -> List[str]:
        return [self.command, *self.args]

    def to_server_config(self) -> Dict[str, Any]:
        cfg: Dict[str, Any] = {"command": self.command, "args": list(self.args)}
        if self.env:
            cfg["env"] = dict(self.env)
        return cfg


@dataclass(frozen=True)
class DestinationProfile:
    """Where an IDE expects agent files and how it names them."""

    id: str
    display_name: str
    directory: str
    extension: str


def _integration(key, name, description, command, args, tags, env=None):
    return IntegrationDescriptor(
        key=key,
        display_name=name,
        description=description,
        command=command,
        args=tuple(args),
        tags=frozenset(tags),
        env=dict(env or {}),
    )


DEFAULT_INTEGRATIONS: List[IntegrationDescriptor] = [
    # global
    _integration(
        "sequential-thinking",
        "Sequential Thinking",
        "Structured thinking for complex problem solving",
        "npx",
        ["-y", "@modelcontextprotocol/server-sequential-thinking"],
        ["all", "planning", "architect", "pm"],
    ),
    _integration(
        "puppeteer",
        "Puppeteer MCP Server",
        "Browser automation and web scraping",
        "npx",
        ["-y", "puppeteer-mcp-server"],
        ["web", "qa", "automation"],
    ),
    _integration(
        "claude-continuity",
        "Claude Thread Continuity",
        "Enhanced thread continuity for Claude",
        "python3",
        ["~/.mcp-servers/claude-continuity/server.py"],
        ["all", "ide-enhancement"],
    ),
    # local
    _integration(
        "extended-memory",
        "Extended Memory MCP",
        "Enhanced memory capabilities for AI assistants",
        "python3",
        ["-m", "extended_memory_mcp.server"],
        ["all", "ide-enhancement"],
        env={"LOG_LEVEL": "INFO"},
    ),
    _integration(
        "@21st-dev/magic",
        "21st.dev Magic MCP",
        "UI builder for MCP - like v0 but in your IDE",
        "npx",
        ["-y", "@21st-dev/magic@latest"],
        ["web", "flutter", "ui", "ux-expert", "flutter-ui-agent"],
    ),
    _integration(
        "dart",
        "Dart MCP Server",
        "Dart SDK integration for Flutter/Dart projects",
        "dart",
        ["mcp-server", "--force-roots-fallback"],
        ["flutter", "flutter-ui-agent", "flutter-cubit-agent", "flutter-data-agent"],
    ),
    _integration(
        "firebase",
        "Firebase MCP Server",
        "Firebase services - Auth, Firestore, Functions",
        "npx",
        ["-y", "firebase-tools@latest", "experimental:mcp"],
        ["backend", "fullstack", "flutter", "web", "dev"],
    ),
    _integration(
        "supabase",
        "Supabase MCP Server",
        "Supabase integration - database, auth, storage",
        "npx",
        ["-y", "@supabase/mcp-server-supabase@latest", "--read-only"],
        ["backend", "fullstack", "flutter", "web", "dev"],
    ),
    _integration(
        "context7",
        "Context7 MCP (Upstash)",
        "Up-to-date code documentation for any library",
        "npx",
        ["-y", "@upstash/context7-mcp"],
        ["all", "research", "dev", "architect"],
    ),
    _integration(
        "stripe",
        "Stripe MCP Server",
        "Stripe payment integration",
        "npx",
        ["-y", "@stripe/mcp", "--tools=all"],
        ["backend", "fullstack", "web", "payment", "dev"],
    ),
]


DEFAULT_IDE_PROFILES: List[DestinationProfile] = [
    DestinationProfile("cursor", "Cursor", ".cursor/rules", ".mdc"),
    DestinationProfile("claude-code", "Claude Code CLI", ".claude/commands/Appiq", ".md"),
    DestinationProfile("windsurf", "Windsurf", ".windsurf/rules", ".md"),
    DestinationProfile("cline", "VS Code + Cline", ".clinerules", ".md"),
    DestinationProfile("trae", "Trae", ".trae/rules", ".md"),
    DestinationProfile("roo", "Roo Code", ".roo/agents", ".md"),
    DestinationProfile("gemini", "Gemini CLI", ".gemini/commands", ".md"),
    DestinationProfile("github-copilot", "GitHub Copilot", ".github/copilot", ".md"),
]

# Slash-command folders for the IDEs that read them.
DEFAULT_COMMAND_PROFILES: List[DestinationProfile] = [
    DestinationProfile("cursor", "Cursor", ".cursor/commands", ".md"),
    DestinationProfile("claude-code", "Claude Code CLI", ".claude/commands", ".md"),
]


# ----------------------------
# Validation
# ----------------------------
def validate_integrations(entries: Sequence[IntegrationDescriptor]) -> List[str]:
    errors: List[str] = []
    seen = set()
    for entry in entries:
        if not entry.key:
            errors.append("Integration with empty key.")
            continue
        if entry.key in seen:
            errors.append(f"Duplicate integration key detected: {entry.key}")
        else:
            seen.add(entry.key)
        if not entry.tags:
            errors.append(f"Integration {entry.key} has no tags.")
        if not entry.command:
            errors.append(f"Integration {entry.key} has no command.")
    return errors


def validate_profiles(profiles: Sequence[DestinationProfile]) -> List[str]:
    errors: List[str] = []
    seen_ids = set()
    seen_dirs = set()
    for profile in profiles:
        if profile.id in seen_ids:
            errors.append(f"Duplicate profile id detected: {profile.id}")
        seen_ids.add(profile.id)

        raw = profile.directory.strip()
        directory = Path(raw).as_posix().strip("/") if raw else ""
        if directory == ".":
            directory = ""
        if not directory:
            errors.append(f"Profile {profile.id} has an empty directory.")
        elif Path(raw).is_absolute() or ".." in Path(directory).parts:
            errors.append(
                f"Profile {profile.id} directory must stay inside the project: {profile.directory}"
            )
        elif directory in seen_dirs:
            errors.append(f"Profile {profile.id} reuses directory {profile.directory}")
        else:
            seen_dirs.add(directory)

        if not profile.extension.startswith("."):
            errors.append(
                f"Profile {profile.id} extension must begin with '.': {profile.extension!r}"
            )
    return errors


def build_integration_registry(
    entries: Iterable[IntegrationDescriptor],
) -> List[IntegrationDescriptor]:
    registry = list(entries)
    errors = validate_integrations(registry)
    if errors:
        raise ConfigurationError("; ".join(errors))
    return registry


def build_profile_table(profiles: Iterable[DestinationProfile]) -> List[DestinationProfile]:
    table = list(profiles)
    errors = validate_profiles(table)
    if errors:
        raise ConfigurationError("; ".join(errors))
    return table


def select_profiles(
    ide_ids: Iterable[str], table: Sequence[DestinationProfile], strict: bool = True
) -> List[DestinationProfile]:
    """
    Resolve selected IDE ids against a profile table, keeping selection order.

    `manual` selects nothing. With strict=False, ids missing from the table are
    skipped (used for the optional slash-command table).
    """
    by_id = {p.id: p for p in table}
    selected: List[DestinationProfile] = []
    for ide in ide_ids:
        if ide == MANUAL_IDE:
            continue
        profile = by_id.get(ide)
        if profile is None:
            if strict:
                known = ", ".join(sorted(by_id)) or "(none)"
                raise ConfigurationError(f"Unknown IDE '{ide}'. Known IDEs: {known}")
            continue
        if profile not in selected:
            selected.append(profile)
    return selected


# ----------------------------
# YAML overrides
# ----------------------------
def _integration_from_mapping(key: str, payload: Any) -> IntegrationDescriptor:
    if not isinstance(payload, dict):
        raise ConfigurationError(f"Integration '{key}' must be a mapping.")
    tags = payload.get("tags") or []
    if isinstance(tags, str):
        tags = [tags]
    if not isinstance(tags, list):
        raise ConfigurationError(f"Integration '{key}' tags must be a list or a string.")
    args = payload.get("args") or []
    if not isinstance(args, list):
        raise ConfigurationError(f"Integration '{key}' args must be a list.")
    env = payload.get("env") or {}
    if not isinstance(env, dict):
        raise ConfigurationError(f"Integration '{key}' env must be a mapping.")
    return _integration(
        key,
        str(payload.get("name") or key),
        str(payload.get("description") or ""),
        str(payload.get("command") or ""),
        [str(a) for a in args],
        [str(t) for t in tags],
        env={str(k): str(v) for k, v in env.items()},
    )


def _profile_from_mapping(ide_id: str, payload: Any) -> DestinationProfile:
    if not isinstance(payload, dict):
        raise ConfigurationError(f"IDE '{ide_id}' must be a mapping.")
    return DestinationProfile(
        id=ide_id,
        display_name=str(payload.get("name") or ide_id),
        directory=str(payload.get("directory") or ""),
        extension=str(payload.get("extension") or ".md"),
    )


def _merge(defaults: Sequence[Any], overrides: Dict[str, Any], key_attr: str) -> List[Any]:
    merged = []
    for item in defaults:
        ident = getattr(item, key_attr)
        merged.append(overrides.pop(ident, item))
    merged.extend(overrides.values())
    return merged


@dataclass
class RegistryConfig:
    integrations: List[IntegrationDescriptor]
    ide_profiles: List[DestinationProfile]
    command_profiles: List[DestinationProfile]
    source: Optional[Path] = None


def load_registry_config(path: Optional[Path] = None) -> RegistryConfig:
    """
    Build the validated registries, merging an optional YAML override file.

    Override format:

        integrations:
          my-server: {name: ..., command: npx, args: [...], tags: [dev]}
        ides:
          zed: {name: Zed, directory: .zed/rules, extension: .md}
    """
    integration_overrides: Dict[str, IntegrationDescriptor] = {}
    ide_overrides: Dict[str, DestinationProfile] = {}

    if path is not None:
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except FileNotFoundError:
            raise ConfigurationError(f"Config file not found: {path}")
        except OSError as exc:
            raise ConfigurationError(f"Config file {path} cannot be read: {exc}")
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Config file {path} is not valid YAML: {exc}")
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping.")

        raw_integrations = data.get("integrations") or {}
        raw_ides = data.get("ides") or {}
        if not isinstance(raw_integrations, dict):
            raise ConfigurationError("'integrations' must be a mapping of key -> fields.")
        if not isinstance(raw_ides, dict):
            raise ConfigurationError("'ides' must be a mapping of id -> fields.")

        for key, payload in raw_integrations.items():
            integration_overrides[str(key)] = _integration_from_mapping(str(key), payload)
        for ide_id, payload in raw_ides.items():
            ide_overrides[str(ide_id)] = _profile_from_mapping(str(ide_id), payload)
        log.info(
            "Loaded %d integration and %d IDE overrides from %s",
            len(integration_overrides),
            len(ide_overrides),
            path,
        )

    return RegistryConfig(
        integrations=build_integration_registry(
            _merge(DEFAULT_INTEGRATIONS, integration_overrides, "key")
        ),
        ide_profiles=build_profile_table(_merge(DEFAULT_IDE_PROFILES, ide_overrides, "id")),
        command_profiles=build_profile_table(DEFAULT_COMMAND_PROFILES),
        source=path,
    )
