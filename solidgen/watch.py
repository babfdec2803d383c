"""Watch loop that rebuilds changed sources on file-system events."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from watchfiles import Change, DefaultFilter, watch

from .builder import BuildReport, Builder, hash_file
from .config import WatchConfig
from .logging import get_logger

_LOGGER = get_logger("watch")

# Pause before restarting a watcher that exited on an error.
_RESTART_DELAY = 0.5


@dataclass(frozen=True)
class FileSnapshot:
    size: int
    mtime_ns: int

    @classmethod
    def of(cls, path: Path) -> "FileSnapshot":
        stat_result = path.stat()
        return cls(stat_result.st_size, stat_result.st_mtime_ns)


class SourceFilter(DefaultFilter):
    """Passes events for files the builder mirrors into the output tree."""

    def __init__(self, builder: Builder) -> None:
        super().__init__()
        self.builder = builder

    def __call__(self, change: Change, path: str) -> bool:
        return super().__call__(change, path) and self.builder.is_source(Path(path))


def changed_paths(changes: Iterable[Tuple[Change, str]]) -> Set[Path]:
    return {Path(path) for _change, path in changes}


class SourceWatcher:
    """Rebuilds files whose content changed, driven by ``watchfiles``.

    ``watchfiles`` yields a batch once no event has arrived for
    ``debounce_ms`` (or after ``max_batch_ms`` of continuous events). Each
    batch rebuilds on its own thread. A batch that arrives while a rebuild
    is running sets that rebuild's cancel event; the rebuild stops before
    its next file and its paths are folded into the new batch.
    """

    def __init__(
        self,
        builder: Builder,
        config: Optional[WatchConfig] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        on_build: Optional[Callable[[BuildReport], None]] = None,
        watcher: Callable[..., Iterable[Any]] = watch,
    ) -> None:
        self.builder = builder
        self.config = config or WatchConfig()
        self._sleep = sleep
        self._on_build = on_build
        self._watch = watcher
        self._hashes: Dict[Path, str] = {}
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._rebuild_thread: Optional[threading.Thread] = None
        self._rebuild_cancel: Optional[threading.Event] = None
        self._rebuild_paths: Set[Path] = set()
        self._lock = threading.Lock()

    def prime(self) -> None:
        """Record the current tree as already built."""
        self._hashes = {}
        for path in self.builder.iter_sources():
            try:
                self._hashes[path] = hash_file(path)
            except FileNotFoundError:
                continue

    def wait_until_stable(self, path: Path) -> bool:
        """Poll until size, mtime and content stop changing between checks."""
        previous = None
        for _ in range(self.config.stable_attempts):
            try:
                state = (FileSnapshot.of(path), hash_file(path))
            except FileNotFoundError:
                return False
            if state == previous:
                return True
            previous = state
            self._sleep(self.config.stable_interval_ms / 1000)
        _LOGGER.debug("%s still changing after %d checks", path, self.config.stable_attempts)
        return previous is not None

    # ------------------------------------------------------------
    # rebuilding

    def rebuild(self, paths: Set[Path], cancel: Optional[threading.Event] = None) -> Optional[BuildReport]:
        """Rebuild ``paths`` whose content hash changed; ``None`` if nothing did."""
        to_build: List[Path] = []
        removed = False
        for path in sorted(paths):
            if cancel is not None and cancel.is_set():
                return None
            if not path.exists():
                self._hashes.pop(path, None)
                removed = self.builder.remove_output(path) or removed
                continue
            if not self.wait_until_stable(path):
                continue
            digest = hash_file(path)
            if self._hashes.get(path) == digest:
                _LOGGER.debug("Unchanged content: %s", path)
                continue
            self._hashes[path] = digest
            to_build.append(path)
        if not to_build:
            return None if not removed else BuildReport(self.builder.source_dir, self.builder.output_dir)
        report = self.builder.build_files(to_build, cancel)
        if report.cancelled:
            # let the next batch pick these files up again
            built = {self.builder.source_dir / result.path for result in report.files}
            for path in to_build:
                if path not in built:
                    self._hashes.pop(path, None)
        _LOGGER.info("Rebuilt %d file(s): %s", len(report.files), report.summary())
        if self._on_build is not None:
            self._on_build(report)
        return report

    def handle_changes(self, paths: Set[Path]) -> None:
        """Cancel a running rebuild and start one for ``paths``."""
        if not paths:
            return
        with self._lock:
            batch = set(paths)
            if self._rebuild_thread is not None and self._rebuild_thread.is_alive():
                assert self._rebuild_cancel is not None
                _LOGGER.debug("Newer change detected; cancelling rebuild")
                self._rebuild_cancel.set()
                self._rebuild_thread.join()
                batch |= self._rebuild_paths
            cancel = threading.Event()
            self._rebuild_cancel = cancel
            self._rebuild_paths = batch
            thread = threading.Thread(
                target=self.rebuild, args=(batch, cancel), name="solidgen-rebuild", daemon=True
            )
            self._rebuild_thread = thread
            thread.start()

    # ------------------------------------------------------------
    # lifecycle

    def run(self) -> None:
        """Consume ``watchfiles`` batches until ``stop`` is called."""
        while not self._stop.is_set():
            try:
                for changes in self._watch(
                    self.builder.source_dir,
                    watch_filter=SourceFilter(self.builder),
                    debounce=self.config.max_batch_ms,
                    step=self.config.debounce_ms,
                    stop_event=self._stop,
                ):
                    paths = changed_paths(changes)
                    _LOGGER.debug("Detected %d change(s)", len(paths))
                    self.handle_changes(paths)
            except Exception:
                if self._stop.is_set():
                    return
                _LOGGER.exception("Watcher crashed; restarting")
            if not self._stop.is_set():
                self._sleep(_RESTART_DELAY)

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self.prime()
        self._stop.clear()
        self._thread = threading.Thread(target=self.run, name="solidgen-watch", daemon=True)
        self._thread.start()
        _LOGGER.info("Watching %s", self.builder.source_dir)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        with self._lock:
            if self._rebuild_cancel is not None:
                self._rebuild_cancel.set()
        if self._thread is not None:
            self._thread.join(timeout)
        with self._lock:
            if self._rebuild_thread is not None:
                self._rebuild_thread.join(timeout)

    def wait(self) -> None:
        """Block until ``stop`` is called or the loop thread exits."""
        while self._thread is not None and self._thread.is_alive():
            self._thread.join(0.5)


__all__ = ["FileSnapshot", "SourceFilter", "SourceWatcher", "changed_paths"]
