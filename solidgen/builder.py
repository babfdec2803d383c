"""Build driver: mirror a source tree into the output tree."""

from __future__ import annotations

import hashlib
import os
import shutil
import threading
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .config import SolidgenConfig
from .dart.parser import DartSyntaxError
from .formatter import DartFormatter
from .logging import get_logger
from .transform.orchestrator import MemberReport, Transformer

_EXCLUDED_DIRS = {
    ".git",
    ".dart_tool",
    ".idea",
    "build",
    ".pub-cache",
}

_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
}

DART_SUFFIX = ".dart"

TRANSFORMED = "transformed"
COPIED = "copied"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class FileResult:
    """Outcome for one source file."""

    path: str
    status: str
    message: Optional[str] = None
    members: Tuple[MemberReport, ...] = ()

    def to_dict(self) -> Dict[str, object]:
        return {
            "path": self.path,
            "status": self.status,
            "message": self.message,
            "members": [member.to_dict() for member in self.members],
        }


@dataclass
class BuildReport:
    source: Path
    output: Path
    files: List[FileResult] = field(default_factory=list)
    formatted: bool = False
    cancelled: bool = False

    def _with_status(self, status: str) -> List[FileResult]:
        return [result for result in self.files if result.status == status]

    @property
    def transformed(self) -> List[FileResult]:
        return self._with_status(TRANSFORMED)

    @property
    def copied(self) -> List[FileResult]:
        return self._with_status(COPIED)

    @property
    def skipped(self) -> List[FileResult]:
        return self._with_status(SKIPPED)

    @property
    def failed(self) -> List[FileResult]:
        return self._with_status(FAILED)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.skipped

    def summary(self) -> str:
        text = (
            f"{len(self.transformed)} transformed, {len(self.copied)} copied, "
            f"{len(self.skipped)} skipped, {len(self.failed)} failed"
        )
        if self.cancelled:
            text += " (cancelled)"
        return text

    def to_dict(self) -> Dict[str, object]:
        return {
            "source": str(self.source),
            "output": str(self.output),
            "summary": self.summary(),
            "formatted": self.formatted,
            "cancelled": self.cancelled,
            "files": [result.to_dict() for result in self.files],
        }


def hash_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _excluded(rel_path: str, patterns: Sequence[str]) -> bool:
    for pattern in patterns:
        pattern = pattern.strip().strip("/")
        if not pattern:
            continue
        if fnmatchcase(rel_path, pattern) or rel_path.startswith(f"{pattern}/"):
            return True
        if "/" not in pattern and any(fnmatchcase(part, pattern) for part in rel_path.split("/")):
            return True
    return False


class Builder:
    """Transforms ``.dart`` files and copies everything else."""

    def __init__(
        self,
        config: SolidgenConfig,
        *,
        transformer: Optional[Transformer] = None,
        formatter: Optional[DartFormatter] = None,
    ) -> None:
        self.config = config
        self.transformer = transformer or Transformer(
            runtime_import=config.imports.runtime,
            annotations_import=config.imports.annotations,
        )
        self.formatter = formatter or DartFormatter(
            command=config.format.command, enabled=config.format.enabled
        )
        self.logger = get_logger("builder")

    @property
    def source_dir(self) -> Path:
        return self.config.source_dir

    @property
    def output_dir(self) -> Path:
        return self.config.output_dir

    def iter_sources(self) -> Iterator[Path]:
        root = self.source_dir
        for dirpath, dirnames, filenames in os.walk(root):
            current_dir = Path(dirpath)
            rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""
            dirnames[:] = sorted(
                name
                for name in dirnames
                if name not in _EXCLUDED_DIRS
                and (current_dir / name).resolve() != self.output_dir
                and not _excluded(f"{rel_dir}/{name}" if rel_dir else name, self.config.exclude_paths)
            )
            for filename in sorted(filenames):
                if filename in _EXCLUDED_FILES:
                    continue
                rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
                if _excluded(rel_path, self.config.exclude_paths):
                    continue
                yield current_dir / filename

    def is_source(self, path: Path) -> bool:
        """Whether ``iter_sources`` would yield ``path``; the file need not exist."""
        try:
            relative = path.relative_to(self.source_dir)
        except ValueError:
            return False
        parts = relative.parts
        if not parts or parts[-1] in _EXCLUDED_FILES:
            return False
        current = self.source_dir
        for part in parts[:-1]:
            current = current / part
            if part in _EXCLUDED_DIRS or current.resolve() == self.output_dir:
                return False
        rel_path = relative.as_posix()
        return not _excluded(rel_path, self.config.exclude_paths)

    def output_path(self, source_path: Path) -> Path:
        relative = source_path.resolve().relative_to(self.source_dir)
        return self.output_dir / relative

    def build(self, cancel: Optional[threading.Event] = None) -> BuildReport:
        """Build the whole tree; stops early when ``cancel`` is set."""
        if not self.source_dir.is_dir():
            raise FileNotFoundError(f"Source directory not found: {self.source_dir}")
        self.logger.info("Building %s -> %s", self.source_dir, self.output_dir)
        report = BuildReport(source=self.source_dir, output=self.output_dir)
        for path in self.iter_sources():
            if cancel is not None and cancel.is_set():
                report.cancelled = True
                self.logger.info("Build cancelled")
                break
            report.files.append(self.build_file(path))
        report.formatted = self.format_results(report.files)
        self.logger.info("Build finished: %s", report.summary())
        return report

    def build_files(self, paths: Sequence[Path], cancel: Optional[threading.Event] = None) -> BuildReport:
        report = BuildReport(source=self.source_dir, output=self.output_dir)
        for path in paths:
            if cancel is not None and cancel.is_set():
                report.cancelled = True
                break
            report.files.append(self.build_file(path))
        report.formatted = self.format_results(report.files)
        return report

    def build_file(self, path: Path) -> FileResult:
        rel_path = path.resolve().relative_to(self.source_dir).as_posix()
        target = self.output_path(path)
        if path.suffix != DART_SUFFIX:
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(path, target)
            except OSError as exc:
                self.logger.error("Failed to copy %s: %s", rel_path, exc)
                return FileResult(rel_path, FAILED, str(exc))
            return FileResult(rel_path, COPIED)

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            self.logger.error("Failed to read %s: %s", rel_path, exc)
            return FileResult(rel_path, FAILED, str(exc))

        try:
            outcome = self.transformer.transform(text, rel_path)
        except DartSyntaxError as exc:
            self.logger.warning("Skipping %s: %s", rel_path, exc)
            return FileResult(rel_path, SKIPPED, str(exc))

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(outcome.source, encoding="utf-8")
        except OSError as exc:
            self.logger.error("Failed to write %s: %s", target, exc)
            return FileResult(rel_path, FAILED, str(exc), outcome.members)

        status = TRANSFORMED if outcome.changed else COPIED
        failures = len(outcome.failures)
        message = f"{failures} member(s) left untouched" if failures else None
        self.logger.info("%s %s", status.capitalize(), rel_path)
        return FileResult(rel_path, status, message, outcome.members)

    def remove_output(self, source_path: Path) -> bool:
        """Delete the output mirror of a source file that no longer exists."""
        target = self.output_dir / source_path.relative_to(self.source_dir)
        if not target.is_file():
            return False
        target.unlink()
        self.logger.info("Removed %s", target)
        return True

    def clean(self) -> List[Path]:
        """Delete generated files that mirror source files; return them."""
        removed: List[Path] = []
        if not self.source_dir.is_dir():
            raise FileNotFoundError(f"Source directory not found: {self.source_dir}")
        for path in self.iter_sources():
            target = self.output_path(path)
            if target.is_file():
                target.unlink()
                removed.append(target)
        self._prune_empty_dirs()
        self.logger.info("Removed %d generated file(s)", len(removed))
        return removed

    def format_results(self, results: Sequence[FileResult]) -> bool:
        paths = [
            self.output_dir / result.path
            for result in results
            if result.status in (TRANSFORMED, COPIED) and result.path.endswith(DART_SUFFIX)
        ]
        return self.formatter.format(paths)

    def _prune_empty_dirs(self) -> None:
        if not self.output_dir.is_dir():
            return
        for dirpath, _dirnames, _filenames in os.walk(self.output_dir, topdown=False):
            current = Path(dirpath)
            if current != self.output_dir and not any(current.iterdir()):
                current.rmdir()


__all__ = [
    "BuildReport",
    "Builder",
    "COPIED",
    "FAILED",
    "FileResult",
    "SKIPPED",
    "TRANSFORMED",
    "hash_file",
]
