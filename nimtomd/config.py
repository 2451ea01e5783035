"""Configuration loading and management."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
import tomllib


@dataclass
class RenderConfig:
    """Configuration for rendering Nim documentation as Markdown.

    Attributes:
        only_public: Omit declarations that do not carry the export marker.
        include_headings: Emit a ``### name`` heading before each fenced block.
        include_imports_section: Emit the ``Imports`` and ``Includes`` sections.
        include_types_section: Emit the ``Types`` umbrella heading and the
            per-kind subsection headings.
        include_line_numbers: Append ``Line: N`` under each declaration.
        include_const_section: Emit declarations from ``const`` sections.
        include_let_section: Emit declarations from ``let`` sections.
        include_var_section: Emit declarations from ``var`` sections.
        include_examples: Emit captured ``runnableExamples`` blocks.
        max_file_size: Maximum file size in bytes that will be processed.
        max_line_length: Maximum line length allowed when reading a file.

    Examples:
        RenderConfig(only_public=True, include_line_numbers=True)
    """

    # Filtering
    only_public: bool = False

    # Output sections
    include_headings: bool = True
    include_imports_section: bool = True
    include_types_section: bool = True
    include_line_numbers: bool = False
    include_const_section: bool = True
    include_let_section: bool = True
    include_var_section: bool = True
    include_examples: bool = True

    # Limits
    max_file_size: int = 10 * 1024 * 1024
    max_line_length: int = 10_000


_BOOLEAN_FIELDS = tuple(
    field.name for field in fields(RenderConfig) if field.name.startswith(("only_", "include_"))
)


class ConfigError(ValueError):
    """Exception raised when configuration values are invalid.

    Examples:
        raise ConfigError("`max_line_length` must be a positive integer")
    """


def load_config(search_path: Path) -> RenderConfig:
    """Load configuration from the nearest config file.

    Walks parent directories from `search_path` to the filesystem root, reading
    the ``[tool.nimtomd]`` table from `pyproject.toml` and the ``[nimtomd]`` or
    ``[tool.nimtomd]`` table from `.nimtomd.toml` when present. Returns default
    values when no configuration is found. TOML files that cannot be read or
    decoded are skipped.

    Args:
        search_path: Directory used as the starting point for configuration lookup.

    Returns:
        RenderConfig: Loaded configuration with defaults applied when necessary.

    Raises:
        ConfigError: If the table is present but not a mapping or contains
            unsupported keys.

    Examples:
        load_config(Path("src"))
    """
    current = search_path.resolve()

    while True:
        pyproject_config = _load_from_file(
            current / "pyproject.toml", table_paths=[("tool", "nimtomd")]
        )
        if pyproject_config is not None:
            return pyproject_config

        dotfile_config = _load_from_file(
            current / ".nimtomd.toml",
            table_paths=[("nimtomd",), ("tool", "nimtomd")],
        )
        if dotfile_config is not None:
            return dotfile_config

        parent = current.parent
        if parent == current:
            break
        current = parent

    return RenderConfig()


_MISSING = object()


def _load_from_file(config_file: Path, table_paths: list[tuple[str, ...]]) -> RenderConfig | None:
    if not config_file.exists():
        return None

    try:
        with open(config_file, "rb") as stream:
            data = tomllib.load(stream)
    except (OSError, tomllib.TOMLDecodeError):
        return None

    for table_path in table_paths:
        raw_config = _extract_table(data, table_path)
        if raw_config is _MISSING:
            continue
        return _build_config_from_raw(raw_config, config_file, table_path)

    return None


def _extract_table(data: object, table_path: tuple[str, ...]) -> object:
    current = data
    for key in table_path:
        if not isinstance(current, dict) or key not in current:
            return _MISSING
        current = current[key]
    return current


def _build_config_from_raw(
    raw_config: object, config_file: Path, table_path: tuple[str, ...]
) -> RenderConfig:
    table_display = ".".join(table_path)

    if raw_config is None:
        return RenderConfig()

    if not isinstance(raw_config, dict):
        raise ConfigError(f"Invalid `[{table_display}]` settings in {config_file}")

    if not raw_config:
        return RenderConfig()

    # TOML keys may use dashes, e.g. `only-public = true`
    normalized = {key.replace("-", "_"): value for key, value in raw_config.items()}
    try:
        return RenderConfig(**normalized)
    except TypeError as error:
        raise ConfigError(f"Invalid `[{table_display}]` settings in {config_file}") from error


def validate_config(config: RenderConfig) -> None:
    """Validate a `RenderConfig` instance.

    Args:
        config: Configuration to validate.

    Returns:
        None.

    Raises:
        ConfigError: If a toggle is not a boolean or a numeric limit is not a
            positive integer.

    Examples:
        validate_config(RenderConfig(only_public=True))
    """
    for name in _BOOLEAN_FIELDS:
        if not isinstance(getattr(config, name), bool):
            raise ConfigError(f"`{name}` must be a boolean")

    limits = {
        "max_file_size": config.max_file_size,
        "max_line_length": config.max_line_length,
    }
    _ensure_integers(limits)
    _ensure_positive(limits)


def apply_overrides(config: RenderConfig, **overrides: object) -> RenderConfig:
    """Apply override values to a `RenderConfig`.

    Args:
        config: Base configuration to update.
        overrides: Override values keyed by configuration field name; values set to
            None are ignored.

    Returns:
        RenderConfig: New configuration with the provided overrides applied. The
        original configuration is returned when no changes are supplied.

    Raises:
        TypeError: If an override name is not defined on `RenderConfig`.

    Examples:
        updated = apply_overrides(config, only_public=True, include_headings=None)
    """
    changes = {key: value for key, value in overrides.items() if value is not None}
    if not changes:
        return config
    return replace(config, **changes)


def build_config(search_path: Path, **overrides: object) -> RenderConfig:
    """Load, override, and validate configuration.

    Args:
        search_path: Directory where configuration files are resolved.
        overrides: Override values keyed by configuration attributes; None values
            are ignored.

    Returns:
        RenderConfig: Validated configuration ready for rendering.

    Raises:
        ConfigError: If configuration loading or validation fails.

    Examples:
        config = build_config(Path.cwd(), only_public=True)
    """
    config = load_config(search_path)
    config = apply_overrides(config, **overrides)
    validate_config(config)
    return config


def _ensure_positive(values: dict[str, int]) -> None:
    for key, value in values.items():
        if value <= 0:
            raise ConfigError(f"`{key}` must be a positive integer")


def _ensure_integers(values: dict[str, object]) -> None:
    for key, value in values.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"`{key}` must be an integer")
