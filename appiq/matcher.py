"""Capability matching: which integrations apply to which agent."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .registry import ALL_TAG, IntegrationDescriptor


# Fragment of an agent name -> tag it implies.
KEYWORD_ALIASES: Tuple[Tuple[str, str], ...] = (
    ("architect", "architect"),
    ("pm", "pm"),
    ("qa", "qa"),
    ("dev", "dev"),
    ("ux", "ux-expert"),
    ("flutter", "flutter"),
    ("web", "ui"),
    ("ui", "ui"),
)


@dataclass(frozen=True)
class TargetEntity:
    name: str

    @property
    def normalized(self) -> str:
        return self.name.strip().lower()


def implied_tags(name: str) -> List[str]:
    """Tags implied by the alias table for an already lower-cased name."""
    tags: List[str] = []
    for fragment, tag in KEYWORD_ALIASES:
        if fragment in name and tag not in tags:
            tags.append(tag)
    return tags


def applies(descriptor: IntegrationDescriptor, name: str, aliases: Sequence[str]) -> bool:
    tags = {t.lower() for t in descriptor.tags}
    if ALL_TAG in tags:
        return True
    if any(tag in name for tag in tags):
        return True
    return any(tag in tags for tag in aliases)


def match(
    entity: TargetEntity, registry: Sequence[IntegrationDescriptor]
) -> List[IntegrationDescriptor]:
    """
    Return the integrations that apply to `entity`, in registry order.

    A descriptor applies when it is tagged "all", when one of its tags is a
    substring of the entity name, or when the alias table maps a fragment of
    the name to one of its tags. Matching is case-insensitive.
    """
    name = entity.normalized
    if not name:
        raise ValueError("entity name must be non-empty")

    aliases = implied_tags(name)
    result: List[IntegrationDescriptor] = []
    seen = set()
    for descriptor in registry:
        if descriptor.key in seen:
            continue
        if applies(descriptor, name, aliases):
            result.append(descriptor)
            seen.add(descriptor.key)
    return result


def match_keys(entity: TargetEntity, registry: Sequence[IntegrationDescriptor]) -> List[str]:
    return [d.key for d in match(entity, registry)]


def match_all(
    names: Sequence[str], registry: Sequence[IntegrationDescriptor]
) -> Dict[str, List[IntegrationDescriptor]]:
    return {name: match(TargetEntity(name), registry) for name in names}
