"""Configuration loading for solidgen (.solidgen.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

try:  # pragma: no cover - optional dependency
    import yaml as _yaml  # type: ignore
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    _yaml = None

from .transform.orchestrator import ANNOTATIONS_IMPORT, RUNTIME_IMPORT

CONFIG_FILE_NAME = ".solidgen.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class FormatConfig:
    """``dart format`` invocation for written files."""

    enabled: bool = True
    command: str = "dart"


@dataclass
class WatchConfig:
    """Timings for the watch loop, in milliseconds.

    ``debounce_ms`` is the quiet period that closes a batch of events;
    ``max_batch_ms`` caps how long a stream of events is grouped.
    """

    debounce_ms: int = 1500
    max_batch_ms: int = 10000
    stable_attempts: int = 5
    stable_interval_ms: int = 100


@dataclass
class ImportsConfig:
    runtime: str = RUNTIME_IMPORT
    annotations: str = ANNOTATIONS_IMPORT


@dataclass
class SolidgenConfig:
    """Represents the settings defined in .solidgen.yml."""

    root: Path
    source: str = "source"
    output: str = "lib"
    exclude_paths: List[str] = field(default_factory=list)
    format: FormatConfig = field(default_factory=FormatConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    imports: ImportsConfig = field(default_factory=ImportsConfig)

    @property
    def source_dir(self) -> Path:
        return (self.root / self.source).resolve()

    @property
    def output_dir(self) -> Path:
        return (self.root / self.output).resolve()


def load_config(config_path: Path) -> SolidgenConfig:
    """Load configuration from disk; a missing file yields the defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return SolidgenConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILE_NAME} must contain a mapping at the root")

    config = SolidgenConfig(root=root)
    config.source = _as_str(data.get("source")) or config.source
    config.output = _as_str(data.get("output")) or config.output
    config.exclude_paths = _as_str_list(data.get("exclude_paths"))
    if Path(config.source) == Path(config.output):
        raise ConfigError("source and output directories must differ")

    format_data = _as_dict(data.get("format"))
    if format_data:
        enabled = _as_bool(format_data.get("enabled"))
        config.format = FormatConfig(
            enabled=config.format.enabled if enabled is None else enabled,
            command=_as_str(format_data.get("command")) or config.format.command,
        )

    watch_data = _as_dict(data.get("watch"))
    if watch_data:
        defaults = WatchConfig()
        config.watch = WatchConfig(
            debounce_ms=_as_positive_int(watch_data.get("debounce_ms"), "watch.debounce_ms", defaults.debounce_ms),
            max_batch_ms=_as_positive_int(
                watch_data.get("max_batch_ms"), "watch.max_batch_ms", defaults.max_batch_ms
            ),
            stable_attempts=_as_positive_int(
                watch_data.get("stable_attempts"), "watch.stable_attempts", defaults.stable_attempts
            ),
            stable_interval_ms=_as_positive_int(
                watch_data.get("stable_interval_ms"), "watch.stable_interval_ms", defaults.stable_interval_ms
            ),
        )

    imports_data = _as_dict(data.get("imports"))
    if imports_data:
        config.imports = ImportsConfig(
            runtime=_as_str(imports_data.get("runtime")) or RUNTIME_IMPORT,
            annotations=_as_str(imports_data.get("annotations")) or ANNOTATIONS_IMPORT,
        )

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILE_NAME).resolve()
    if config_path.name != CONFIG_FILE_NAME:
        return (config_path.parent / CONFIG_FILE_NAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}

    if _yaml is not None:
        try:
            loaded = _yaml.safe_load(text)  # type: ignore[no-untyped-call]
        except _yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
        return loaded or {}

    return _parse_simple_yaml(text)


def _parse_simple_yaml(text: str) -> Dict[str, Any]:
    """Block mappings, block sequences, inline ``[a, b]`` lists and scalars."""
    lines = text.splitlines()
    mapping, index = _parse_mapping(lines, 0, 0)
    for remainder in lines[index:]:
        if remainder.strip() and not remainder.lstrip().startswith("#"):
            raise ConfigError("Unsupported YAML syntax encountered")
    return mapping


def _indent_of(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def _parse_value(lines: Sequence[str], index: int, parent_indent: int) -> tuple[Any, int]:
    """Parse the block that follows a ``key:`` or ``-`` with no inline value."""
    while index < len(lines) and (not lines[index].strip() or lines[index].lstrip().startswith("#")):
        index += 1
    if index >= len(lines) or _indent_of(lines[index]) <= parent_indent:
        return None, index
    child_indent = _indent_of(lines[index])
    if lines[index].strip().startswith("- "):
        return _parse_sequence(lines, index, child_indent)
    return _parse_mapping(lines, index, child_indent)


def _parse_mapping(lines: Sequence[str], start: int, indent: int) -> tuple[Dict[str, Any], int]:
    result: Dict[str, Any] = {}
    index = start
    while index < len(lines):
        raw = lines[index]
        stripped = raw.strip()
        if not stripped or stripped.startswith("#"):
            index += 1
            continue
        current_indent = _indent_of(raw)
        if current_indent < indent:
            break
        if current_indent > indent:
            raise ConfigError("Invalid indentation in YAML mapping")
        if ":" not in stripped:
            raise ConfigError("Expected key-value pair in YAML mapping")
        key_part, value_part = stripped.split(":", 1)
        key = key_part.strip()
        value_part = _strip_comment(value_part.strip())
        index += 1
        if value_part:
            result[key] = _parse_inline(value_part)
        else:
            result[key], index = _parse_value(lines, index, current_indent)
    return result, index


def _parse_sequence(lines: Sequence[str], start: int, indent: int) -> tuple[List[Any], int]:
    items: List[Any] = []
    index = start
    while index < len(lines):
        raw = lines[index]
        stripped = raw.strip()
        if not stripped or stripped.startswith("#"):
            index += 1
            continue
        current_indent = _indent_of(raw)
        if current_indent < indent or not stripped.startswith("-"):
            break
        if current_indent > indent:
            raise ConfigError("Invalid indentation in YAML sequence")
        value_part = _strip_comment(stripped[1:].strip())
        index += 1
        if value_part:
            items.append(_parse_inline(value_part))
        else:
            value, index = _parse_value(lines, index, current_indent)
            items.append(value)
    return items, index


def _strip_comment(value: str) -> str:
    if value.startswith(("'", '"')):
        return value
    marker = value.find(" #")
    return value[:marker].rstrip() if marker != -1 else value


def _parse_inline(value: str) -> Any:
    if value.startswith("[") and value.endswith("]"):
        return _parse_inline_sequence(value)
    return _parse_scalar(value)


def _parse_inline_sequence(value: str) -> List[Any]:
    inner = value[1:-1].strip()
    if not inner:
        return []
    parts: List[str] = []
    current: List[str] = []
    in_quote: Optional[str] = None
    for char in inner:
        if char in {'"', "'"}:
            if in_quote == char:
                in_quote = None
            elif in_quote is None:
                in_quote = char
        elif char == "," and in_quote is None:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    parts.append("".join(current).strip())
    return [_parse_scalar(part) for part in parts if part]


def _parse_scalar(value: str) -> Any:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    lower = value.lower()
    if lower in {"null", "~"}:
        return None
    if lower == "true":
        return True
    if lower == "false":
        return False
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_positive_int(value: Any, key: str, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ConfigError(f"{key} must be an integer")
    try:
        number = int(value)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from exc
    if number <= 0:
        raise ConfigError(f"{key} must be positive")
    return number


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "CONFIG_FILE_NAME",
    "ConfigError",
    "FormatConfig",
    "ImportsConfig",
    "SolidgenConfig",
    "WatchConfig",
    "load_config",
]
