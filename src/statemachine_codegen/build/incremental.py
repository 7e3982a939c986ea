"""
Incremental Build Manager - content-hash manifest for diagram sources

Decides whether a generation run can be skipped by comparing the current
diagram sources against the manifest written by the previous successful run.

MANIFEST FORMAT (JSON):
    {
      "version": "1.0.0",
      "lastUpdate": <epoch ms>,
      "sourceFiles": {"<path>": {"path", "hash", "mtime", "size"}},
      "generatedFiles": {"<path>": {"path", "hash", "mtime", "size"}}
    }

A missing or unreadable manifest is treated as empty; failing to save it is
logged and never fatal.
"""

import hashlib
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List

logger = logging.getLogger(__name__)

MANIFEST_VERSION = '1.0.0'


def now_ms() -> int:
    return int(time.time() * 1000)


def file_hash(path) -> str:
    """SHA-256 hex digest of a file's bytes."""
    return hashlib.sha256(Path(path).read_bytes()).hexdigest()


@dataclass
class FileRecord:
    path: str
    hash: str
    mtime: int  # epoch ms
    size: int

    @classmethod
    def from_path(cls, path) -> 'FileRecord':
        stat = Path(path).stat()
        return cls(
            path=str(path),
            hash=file_hash(path),
            mtime=int(stat.st_mtime * 1000),
            size=stat.st_size,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FileRecord':
        return cls(
            path=str(data.get('path', '')),
            hash=str(data.get('hash', '')),
            mtime=int(data.get('mtime', 0)),
            size=int(data.get('size', 0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'path': self.path, 'hash': self.hash, 'mtime': self.mtime, 'size': self.size}


@dataclass
class BuildManifest:
    version: str = MANIFEST_VERSION
    last_update: int = 0
    source_files: Dict[str, FileRecord] = field(default_factory=dict)
    generated_files: Dict[str, FileRecord] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BuildManifest':
        return cls(
            version=str(data.get('version', MANIFEST_VERSION)),
            last_update=int(data.get('lastUpdate', 0)),
            source_files={p: FileRecord.from_dict(r) for p, r in (data.get('sourceFiles') or {}).items()},
            generated_files={p: FileRecord.from_dict(r) for p, r in (data.get('generatedFiles') or {}).items()},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': self.version,
            'lastUpdate': self.last_update,
            'sourceFiles': {p: r.to_dict() for p, r in self.source_files.items()},
            'generatedFiles': {p: r.to_dict() for p, r in self.generated_files.items()},
        }


@dataclass
class ChangeDetectionResult:
    has_changes: bool = False
    changed: List[str] = field(default_factory=list)
    new: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    unreadable: List[str] = field(default_factory=list)


class IncrementalBuildManager:
    """Tracks source and generated file fingerprints between runs"""

    def __init__(self, manifest_path):
        self.manifest_path = Path(manifest_path)
        self.manifest = self._load()

    def _load(self) -> BuildManifest:
        if not self.manifest_path.exists():
            return BuildManifest()
        try:
            data = json.loads(self.manifest_path.read_text(encoding='utf-8'))
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            return BuildManifest.from_dict(data)
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Failed to load manifest {self.manifest_path}, starting fresh: {e}")
            return BuildManifest()

    def _save(self) -> None:
        try:
            self.manifest_path.parent.mkdir(parents=True, exist_ok=True)
            self.manifest_path.write_text(json.dumps(self.manifest.to_dict(), indent=2),
                                          encoding='utf-8')
        except OSError as e:
            logger.warning(f"Failed to save manifest {self.manifest_path}: {e}")

    def detect_changes(self, source_paths: Iterable) -> ChangeDetectionResult:
        """Compare sources with the manifest. Unreadable paths count as changed."""
        result = ChangeDetectionResult()
        current = [str(p) for p in source_paths]

        for path in current:
            if not Path(path).is_file():
                result.unreadable.append(path)
                result.changed.append(path)
                continue
            try:
                record = FileRecord.from_path(path)
            except OSError as e:
                logger.warning(f"Cannot fingerprint {path}: {e}")
                result.unreadable.append(path)
                result.changed.append(path)
                continue
            previous = self.manifest.source_files.get(path)
            if previous is None:
                result.new.append(path)
                result.changed.append(path)
            elif record.hash != previous.hash or record.mtime > previous.mtime:
                result.modified.append(path)
                result.changed.append(path)

        current_set = set(current)
        result.deleted = [p for p in self.manifest.source_files if p not in current_set]
        result.has_changes = bool(result.changed or result.deleted)
        return result

    def is_up_to_date(self, source_paths: Iterable) -> bool:
        for path in source_paths:
            path = Path(path)
            if not path.is_file():
                return False
            if int(path.stat().st_mtime * 1000) > self.manifest.last_update:
                return False
        return all(Path(p).exists() for p in self.manifest.generated_files)

    def files_needing_regeneration(self, source_paths: Iterable) -> List[str]:
        return self.detect_changes(source_paths).changed

    def commit(self, source_paths: Iterable, generated_paths: Iterable = ()) -> None:
        """Record the sources and outputs of a successful run and persist."""
        self.manifest.source_files = {
            str(p): FileRecord.from_path(p) for p in source_paths if Path(p).is_file()
        }
        for path in generated_paths:
            if Path(path).is_file():
                self.manifest.generated_files[str(path)] = FileRecord.from_path(path)
        self.manifest.last_update = now_ms()
        self._save()
        logger.debug(f"Manifest updated: {len(self.manifest.source_files)} sources, "
                     f"{len(self.manifest.generated_files)} generated files")

    def statistics(self) -> Dict[str, Any]:
        return {
            'source_files': len(self.manifest.source_files),
            'generated_files': len(self.manifest.generated_files),
            'last_update': self.manifest.last_update,
            'manifest_size': len(json.dumps(self.manifest.to_dict())),
        }

    def reset(self) -> None:
        """Forget everything so the next run regenerates all files."""
        self.manifest = BuildManifest()
        self._save()

    def export_manifest(self) -> Dict[str, Any]:
        return self.manifest.to_dict()


def check_for_updates(source_paths: Iterable, manifest_path) -> ChangeDetectionResult:
    return IncrementalBuildManager(manifest_path).detect_changes(source_paths)
