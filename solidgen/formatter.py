"""``dart format`` integration for generated files."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Callable, Optional, Sequence

from .logging import get_logger

_LOGGER = get_logger("formatter")

Runner = Callable[[Sequence[str]], "subprocess.CompletedProcess[str]"]


class DartFormatter:
    """Runs ``dart format`` over written files.

    Formatting is best effort: a missing executable or a non-zero exit is
    logged and reported as ``False``, never raised.
    """

    def __init__(
        self,
        *,
        command: str = "dart",
        enabled: bool = True,
        runner: Optional[Runner] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        self.command = command
        self._runner = runner or self._default_runner
        self._enabled = enabled and (runner is not None or which(command) is not None)
        if enabled and not self._enabled:
            _LOGGER.info("'%s' not found on PATH; output will not be formatted", command)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def format(self, paths: Sequence[Path]) -> bool:
        if not self._enabled or not paths:
            return False
        args = [self.command, "format", *(str(path) for path in paths)]
        try:
            completed = self._runner(args)
        except (OSError, subprocess.SubprocessError) as exc:
            _LOGGER.warning("dart format failed to start: %s", exc)
            return False
        if completed.returncode != 0:
            message = (completed.stderr or completed.stdout or "").strip()
            _LOGGER.warning("dart format exited with %s: %s", completed.returncode, message)
            return False
        _LOGGER.debug("Formatted %d file(s)", len(paths))
        return True

    @staticmethod
    def _default_runner(args: Sequence[str]) -> "subprocess.CompletedProcess[str]":
        return subprocess.run(list(args), capture_output=True, text=True, check=False)


__all__ = ["DartFormatter"]
