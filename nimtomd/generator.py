"""Markdown generation from parsed Nim buffers."""

from __future__ import annotations

import logging
from pathlib import Path

from .config import RenderConfig, validate_config
from .constants import (
    EXAMPLE_LABEL,
    FENCE,
    IMPORTS_HEADING,
    INCLUDES_HEADING,
    SOURCE_FENCE,
    TYPES_HEADING,
)
from .models import Category, Declaration, Document, OutputBuffers
from .parser import parse_file, parse_nim

logger = logging.getLogger(__name__)


def _trim_blank_edges(lines: list[str]) -> list[str]:
    start = 0
    end = len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return lines[start:end]


def _append_chunk(lines: list[str], chunk: list[str]) -> None:
    """Append `chunk`, separated from existing content by one blank line."""
    if not chunk:
        return
    if lines:
        lines.append("")
    lines.extend(chunk)


def _category_enabled(category: Category, config: RenderConfig) -> bool:
    if category is Category.CONST:
        return config.include_const_section
    if category is Category.LET:
        return config.include_let_section
    if category is Category.VAR:
        return config.include_var_section
    return True


def render_declaration(declaration: Declaration, config: RenderConfig | None = None) -> list[str]:
    """Render one declaration block.

    Args:
        declaration: Declaration to render.
        config: Configuration for headings, line numbers and examples.

    Returns:
        list[str]: Heading, fenced signature, optional line number, comment
            lines and optional example block.

    Examples:
        render_declaration(Declaration(1, True, Category.PROC, "proc a*", ["proc a*() ="]))
        # ["### proc a*", "```nim", "proc a*() =", "```"]
    """
    config = config or RenderConfig()
    lines: list[str] = []

    if declaration.heading is not None:
        if config.include_headings:
            lines.append(f"### {declaration.heading}")
        lines.append(SOURCE_FENCE)
        lines.extend(declaration.code)
        lines.append(FENCE)
        if config.include_line_numbers:
            lines.append(f"Line: {declaration.line_number}")

    comment = _trim_blank_edges(declaration.comment)
    if comment and declaration.heading is not None and config.include_line_numbers:
        lines.append("")
    lines.extend(comment)

    example = _trim_blank_edges(declaration.example)
    if config.include_examples and example:
        _append_chunk(lines, [EXAMPLE_LABEL, "", SOURCE_FENCE, *example, FENCE])

    return lines


def generate_markdown(buffers: OutputBuffers, config: RenderConfig | None = None) -> Document:
    """Assemble parsed buffers into a Markdown document.

    Sections appear in a fixed order regardless of source order: top matter,
    ``Imports``, ``Includes``, then the ``Types`` umbrella with one subsection
    per declaration category. Empty sections are omitted.

    Args:
        buffers: Buffers produced by `parse_nim` or `parse_file`.
        config: Configuration selecting sections and decorations. Defaults to
            a new `RenderConfig` when omitted.

    Returns:
        Document: Rendered Markdown.

    Raises:
        ConfigError: If the configuration fails validation.

    Examples:
        generate_markdown(parse_nim(source)).as_string()
    """
    config = config or RenderConfig()
    validate_config(config)

    lines: list[str] = []
    _append_chunk(lines, _trim_blank_edges(buffers.top_matter))

    if config.include_imports_section:
        if buffers.imports:
            _append_chunk(lines, [IMPORTS_HEADING, "", *buffers.imports])
        if buffers.includes:
            _append_chunk(lines, [INCLUDES_HEADING, "", *buffers.includes])

    categories = [
        category
        for category in Category
        if _category_enabled(category, config) and buffers.declarations[category]
    ]
    if categories and config.include_types_section:
        _append_chunk(lines, [TYPES_HEADING])

    for category in categories:
        if config.include_types_section:
            _append_chunk(lines, [f"## {category.title}"])
        for declaration in buffers.declarations[category]:
            _append_chunk(lines, render_declaration(declaration, config))

    logger.debug(
        "Rendered %d lines from %d declarations",
        len(lines),
        sum(buffers.count(category) for category in categories),
    )
    return Document(tuple(lines))


def render_from_text(content: str, config: RenderConfig | None = None) -> Document:
    """Render Nim source text as Markdown.

    Args:
        content: Nim source text, split on newlines.
        config: Rendering configuration; defaults to a new `RenderConfig`.

    Returns:
        Document: Rendered Markdown.

    Examples:
        render_from_text("## Tool\\n## ----\\nproc run*() =\\n  ## Runs\\n").as_lines()
    """
    config = config or RenderConfig()
    return generate_markdown(parse_nim(content, config), config)


def render_from_file(filepath: Path | str, config: RenderConfig | None = None) -> Document:
    """Render a Nim file as Markdown.

    Args:
        filepath: Path to the Nim file.
        config: Rendering configuration; defaults to a new `RenderConfig`.

    Returns:
        Document: Rendered Markdown.

    Raises:
        SourceFileError: If the file cannot be read or violates the limits.

    Examples:
        render_from_file("src/nimtomd.nim", RenderConfig(only_public=True)).as_string()
    """
    config = config or RenderConfig()
    return generate_markdown(parse_file(Path(filepath), config), config)
