"""Replicate generated documents into every selected destination profile."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Sequence

from .registry import DestinationProfile


log = logging.getLogger(__name__)

SOURCE_FORMAT = ".md"


@dataclass(frozen=True)
class GeneratedDocument:
    logical_name: str
    body: str
    source_format: str = SOURCE_FORMAT

    @property
    def filename(self) -> str:
        return self.logical_name + self.source_format

    def filename_for(self, extension: str) -> str:
        return self.logical_name + extension


@dataclass
class FanOutError:
    path: Path
    message: str

    def to_dict(self) -> dict:
        return {"path": str(self.path), "message": self.message}


@dataclass
class ProfileResult:
    profile_id: str
    directory: Path
    written: List[Path] = field(default_factory=list)
    errors: List[FanOutError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            "profile": self.profile_id,
            "directory": str(self.directory),
            "written": len(self.written),
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass
class FanOutReport:
    profiles: List[ProfileResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(p.ok for p in self.profiles)

    @property
    def written_count(self) -> int:
        return sum(len(p.written) for p in self.profiles)

    @property
    def failures(self) -> List[FanOutError]:
        return [e for p in self.profiles for e in p.errors]

    def result_for(self, profile_id: str) -> ProfileResult:
        for result in self.profiles:
            if result.profile_id == profile_id:
                return result
        raise KeyError(profile_id)

    def to_dict(self) -> dict:
        return {
            "status": "pass" if self.ok else "fail",
            "profiles": [p.to_dict() for p in self.profiles],
        }


def _check_unique(documents: Sequence[GeneratedDocument]) -> None:
    seen = set()
    for doc in documents:
        if doc.logical_name in seen:
            raise ValueError(f"Duplicate document name: {doc.logical_name}")
        seen.add(doc.logical_name)


def _write_profile(
    documents: Sequence[GeneratedDocument], profile: DestinationProfile, project_root: Path
) -> ProfileResult:
    target_dir = project_root / profile.directory
    result = ProfileResult(profile_id=profile.id, directory=target_dir)

    try:
        target_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        log.warning("Could not create %s for %s: %s", target_dir, profile.id, exc)
        result.errors.append(FanOutError(path=target_dir, message=str(exc)))
        return result

    for doc in documents:
        dest = target_dir / doc.filename_for(profile.extension)
        try:
            # newline="" keeps the body byte-for-byte on every platform
            with dest.open("w", encoding="utf-8", newline="") as f:
                f.write(doc.body)
        except OSError as exc:
            log.warning("Failed to write %s: %s", dest, exc)
            result.errors.append(FanOutError(path=dest, message=str(exc)))
            continue
        log.debug("Wrote %s", dest)
        result.written.append(dest)
    return result


def fan_out(
    documents: Iterable[GeneratedDocument],
    profiles: Iterable[DestinationProfile],
    project_root: Path,
) -> FanOutReport:
    """
    Write every document into every profile's directory under project_root.

    Profiles and documents are processed in the order given. Existing files
    are overwritten. A failing directory or file is recorded in the report and
    the remaining work continues; nothing is raised for I/O errors.
    """
    docs = list(documents)
    _check_unique(docs)

    report = FanOutReport()
    for profile in profiles:
        result = _write_profile(docs, profile, project_root)
        report.profiles.append(result)
        if result.ok:
            log.info("%s: %d files in %s", profile.id, len(result.written), profile.directory)
        else:
            log.warning(
                "%s: %d files written, %d failed",
                profile.id,
                len(result.written),
                len(result.errors),
            )
    return report
