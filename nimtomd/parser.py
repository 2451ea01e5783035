"""Nim source parsing utilities.

The parser walks the source once. While the module doc block is open, lines
go through the top-matter formatter; the first blank or code line after it
switches permanently to the code-body path, where declarations are
accumulated and their doc comments attached.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .classifier import (
    classify,
    comment_text,
    declaration_heading,
    doc_text,
    is_code_block_directive,
    is_copyright,
    is_doc_comment,
    is_global,
    is_main_module_guard,
    is_plain_directive,
    is_section_entry,
    is_signature_end,
    is_single_comment,
    is_todo,
    parse_import,
    parse_include,
    section_keyword,
    split_inline_doc,
    starts_runnable_examples,
    underline_level,
)
from .config import ConfigError, RenderConfig, validate_config
from .constants import COMMENT_HEADING_OFFSET, FENCE, SOURCE_FENCE
from .exceptions import LineTooLongError
from .filesystem import safe_read
from .models import Category, Declaration, OutputBuffers, ParseState

logger = logging.getLogger(__name__)


def _indent_of(line: str) -> int:
    return len(line) - len(line.lstrip())


# ---------------------------------------------------------------------------
# Fenced examples (shared by top matter and declaration comments)
# ---------------------------------------------------------------------------


def _open_example(state: ParseState, target: list[str], text: str) -> None:
    """Open a fenced block in `target` for a ``.. code-block::`` directive."""
    target.append(FENCE if is_plain_directive(text) else SOURCE_FENCE)
    state.code_block_open = True
    state.code_block_is_first_line = True
    state.code_block_indent = None
    state.code_block_blank_pending = False
    state.code_block_target = target


def _close_example(state: ParseState) -> None:
    """Close the open fenced block.

    A blank body line held back before the close becomes a paragraph break
    after the fence.
    """
    if not state.code_block_open or state.code_block_target is None:
        return

    target = state.code_block_target
    target.append(FENCE)
    if state.code_block_blank_pending:
        target.append("")

    state.code_block_open = False
    state.code_block_is_first_line = False
    state.code_block_indent = None
    state.code_block_blank_pending = False
    state.code_block_target = None


def _feed_example_line(state: ParseState, text: str) -> bool:
    """Append a doc line to the open fenced block.

    Args:
        state: Parse state with an open fence.
        text: Doc-comment content with the marker removed.

    Returns:
        bool: True when the line was consumed by the fence; False when the
            fence was closed and the line still needs normal processing.
    """
    if is_code_block_directive(text):
        _close_example(state)
        return False

    if not text.strip():
        if state.code_block_is_first_line:
            return True
        if state.code_block_blank_pending:
            # Two blank lines in a row end the example
            state.code_block_blank_pending = False
            _close_example(state)
            return False
        state.code_block_blank_pending = True
        return True

    if not text[0].isspace():
        _close_example(state)
        return False

    target = state.code_block_target
    if state.code_block_indent is None:
        state.code_block_indent = _indent_of(text)
    if state.code_block_blank_pending:
        target.append("")
        state.code_block_blank_pending = False

    strip_width = min(state.code_block_indent, _indent_of(text))
    target.append(text[strip_width:].rstrip())
    state.code_block_is_first_line = False
    return True


# ---------------------------------------------------------------------------
# Top-matter formatter
# ---------------------------------------------------------------------------


def _commit_previous_line(state: ParseState, target: list[str]) -> None:
    if state.previous_formatted_line is not None:
        target.append(state.previous_formatted_line)
        state.previous_formatted_line = None


def _format_top_line(state: ParseState, buffers: OutputBuffers, text: str) -> None:
    """Render one module doc line into the top-matter buffer.

    Plain lines are held in a one-slot buffer until the next line shows
    whether they are a heading (an underline follows) or plain text.
    """
    target = buffers.top_matter

    if state.code_block_open and _feed_example_line(state, text):
        return

    if is_code_block_directive(text):
        _commit_previous_line(state, target)
        _open_example(state, target, text)
        return

    level = underline_level(text)
    if level and state.previous_formatted_line and state.previous_formatted_line.strip():
        target.append(f"{'#' * level} {state.previous_formatted_line.strip()}")
        state.previous_formatted_line = None
        return

    _commit_previous_line(state, target)
    state.previous_formatted_line = text


def _consume_top_matter(state: ParseState, buffers: OutputBuffers, line: str) -> bool:
    """Feed a line to the top-matter formatter.

    Returns:
        bool: True when the line belongs to the top matter; False when it is
            the first line of the code body and must be reprocessed as code.
    """
    stripped = line.strip()

    if not state.first_comment_seen:
        if line.startswith("##"):
            state.first_comment_seen = True
        elif is_single_comment(line):
            if is_copyright(line):
                if not state.copyright_emitted:
                    buffers.top_matter.extend([f"*{comment_text(line)}*", ""])
                    state.copyright_emitted = True
                else:
                    _format_top_line(state, buffers, comment_text(line))
            return True
        elif not stripped:
            return True
        else:
            state.first_comment_seen = True
            return False

    if line.startswith("##"):
        _format_top_line(state, buffers, doc_text(line))
        return True

    if not stripped or (stripped[0].isascii() and stripped[0].isalpha()):
        return False

    # Pragmas and single comments between doc lines are ignored
    return True


def _enter_code_body(state: ParseState, buffers: OutputBuffers, line_number: int) -> None:
    _commit_previous_line(state, buffers.top_matter)
    _close_example(state)
    state.code_body_reached = True
    logger.debug("Code body reached at line %d", line_number)


# ---------------------------------------------------------------------------
# Declaration accumulator
# ---------------------------------------------------------------------------


def _register(state: ParseState, buffers: OutputBuffers, declaration: Declaration) -> None:
    """Add a finished signature to its buffer unless the export filter drops it."""
    if state.global_only and not declaration.is_global:
        logger.debug(
            "Discarded non-exported declaration %r at line %d",
            declaration.heading,
            declaration.line_number,
        )
        state.current = None
        state.global_element_active = False
        return

    buffers.add(declaration)
    state.current = declaration
    state.global_element_active = True
    state.active_category = declaration.category


def _flush_pending(state: ParseState, buffers: OutputBuffers) -> None:
    """Emit the accumulated multi-line signature, if any."""
    lines = state.pending_declaration_lines
    if not lines:
        return

    state.pending_declaration_lines = []

    first_line = lines[0]
    declaration = Declaration(
        line_number=state.pending_line_number,
        is_global=any(is_global(line) for line in lines),
        category=Category.for_kind(classify(first_line)),
        heading=declaration_heading(first_line),
        code=[first_line.strip(), *(line.rstrip() for line in lines[1:])],
    )
    _register(state, buffers, declaration)


def _end_declaration(state: ParseState) -> None:
    """Stop attaching doc lines to the current declaration.

    A filtered declaration stays filtered: its later doc paragraphs are still
    dropped until a column-0 line, an import or the next declaration.
    """
    state.current = None
    state.narrative_target = None


def _start_declaration(
    state: ParseState, buffers: OutputBuffers, line: str, line_number: int
) -> None:
    _flush_pending(state, buffers)
    _end_declaration(state)
    state.pending_declaration_lines = [line]
    state.pending_line_number = line_number
    if is_signature_end(line):
        _flush_pending(state, buffers)


def _emit_single_line(
    state: ParseState,
    buffers: OutputBuffers,
    code: str,
    comment: str,
    line_number: int,
    category: Category,
) -> None:
    """Register a declaration that is complete on one line."""
    _end_declaration(state)
    declaration = Declaration(
        line_number=line_number,
        is_global=is_global(code),
        category=category,
        heading=declaration_heading(code),
        code=[code.strip()],
    )
    if comment and not is_todo(comment):
        declaration.comment.append(comment)
    _register(state, buffers, declaration)


def _single_line_category(state: ParseState, code: str) -> Category:
    kind = classify(code)
    if kind is not None:
        return Category.for_kind(kind)
    if _indent_of(code) == 0:
        keyword = section_keyword(code.strip())
        if keyword is not None:
            return keyword[0]
    if state.section is not None:
        return state.section
    return Category.OTHER


# ---------------------------------------------------------------------------
# Inline comment formatter
# ---------------------------------------------------------------------------


def _comment_target(state: ParseState, buffers: OutputBuffers) -> list[str]:
    """Buffer receiving the next doc line outside a declaration signature.

    Doc lines without a declaration to attach to form a narrative block: in
    the top matter before any declaration, otherwise a heading-less block in
    the most recently active category.
    """
    if state.current is not None:
        return state.current.comment
    if state.narrative_target is None:
        if state.active_category is None:
            if buffers.top_matter and buffers.top_matter[-1]:
                buffers.top_matter.append("")
            state.narrative_target = buffers.top_matter
        else:
            narrative = Declaration(
                line_number=0, is_global=True, category=state.active_category, heading=None
            )
            buffers.add(narrative)
            state.narrative_target = narrative.comment
    return state.narrative_target


def _handle_doc_line(state: ParseState, buffers: OutputBuffers, line: str) -> None:
    text = doc_text(line)
    if is_todo(text):
        return

    # A doc comment ends an unterminated signature
    _flush_pending(state, buffers)

    if not state.global_element_active:
        return

    target = _comment_target(state, buffers)
    if is_code_block_directive(text):
        _open_example(state, target, text)
        return
    if not text.strip() and not target:
        return

    level = underline_level(text)
    if level and target and target[-1].strip() and not target[-1].startswith(FENCE):
        # Headings inside a declaration nest below its `###` heading
        if target is not buffers.top_matter:
            level += COMMENT_HEADING_OFFSET
        target[-1] = f"{'#' * level} {target[-1].strip()}"
        return
    target.append(text)


def _handle_inline_doc(
    state: ParseState, buffers: OutputBuffers, code: str, comment: str, line_number: int
) -> None:
    if state.pending_declaration_lines:
        logger.debug(
            "Single-line declaration at line %d replaces pending signature from line %d",
            line_number,
            state.pending_line_number,
        )
        state.pending_declaration_lines = []

    category = _single_line_category(state, code)
    indent = _indent_of(code)
    if indent == 0:
        state.section = None
        state.section_indent = None
    elif state.section is not None and state.section_indent is None:
        # First entry of a section fixes the entry indent
        state.section_indent = indent
    _emit_single_line(state, buffers, code, comment, line_number, category)


def _handle_import(state: ParseState, buffers: OutputBuffers, stripped: str) -> bool:
    bullet = parse_import(stripped)
    target = buffers.imports
    if bullet is None:
        bullet = parse_include(stripped)
        target = buffers.includes
    if bullet is None:
        return False

    _flush_pending(state, buffers)
    _end_declaration(state)
    state.global_element_active = True
    target.append(bullet)
    return True


def _handle_section(
    state: ParseState, buffers: OutputBuffers, line: str, stripped: str, line_number: int
) -> bool:
    """Track ``const``/``let``/``var``/``type`` sections and emit their entries."""
    indent = _indent_of(line)

    if indent == 0:
        keyword = section_keyword(stripped)
        state.section = None
        state.section_indent = None
        if keyword is None:
            return False

        category, remainder = keyword
        _end_declaration(state)
        if not remainder:
            state.section = category
            return True
        if is_section_entry(remainder):
            _emit_single_line(state, buffers, stripped, "", line_number, category)
        return True

    if state.section is None:
        return False
    if state.section_indent is None:
        state.section_indent = indent
    if indent != state.section_indent or not is_section_entry(stripped):
        return False

    _emit_single_line(state, buffers, stripped, "", line_number, state.section)
    return True


def _capture_example(state: ParseState, line: str, stripped: str) -> bool:
    """Consume a line of the ``runnableExamples`` block being captured.

    Lines are kept only when the block belongs to an emitted declaration.
    """
    if stripped and _indent_of(line) <= state.example_indent:
        state.example_capture = False
        state.example_body_indent = None
        return False

    if state.current is None:
        return True

    example = state.current.example
    if not stripped:
        if example:
            example.append("")
        return True
    if state.example_body_indent is None:
        state.example_body_indent = _indent_of(line)
    width = min(state.example_body_indent, _indent_of(line))
    example.append(line[width:].rstrip())
    return True


def _process_code_line(
    state: ParseState, buffers: OutputBuffers, line: str, line_number: int
) -> None:
    stripped = line.strip()

    if state.example_capture and _capture_example(state, line, stripped):
        return

    if state.code_block_open:
        if is_doc_comment(line) and _feed_example_line(state, doc_text(line)):
            return
        _close_example(state)

    if not stripped:
        _flush_pending(state, buffers)
        _end_declaration(state)
        return

    if _indent_of(line) == 0:
        state.global_element_active = True

    if is_doc_comment(line):
        _handle_doc_line(state, buffers, line)
        return

    inline = split_inline_doc(line)
    if inline is not None:
        _handle_inline_doc(state, buffers, inline[0], inline[1], line_number)
        return

    if _handle_import(state, buffers, stripped):
        return

    if classify(line) is not None:
        state.section = None
        _start_declaration(state, buffers, line, line_number)
        return

    if state.pending_declaration_lines:
        state.pending_declaration_lines.append(line)
        if is_signature_end(line):
            _flush_pending(state, buffers)
        return

    if _handle_section(state, buffers, line, stripped, line_number):
        return

    if starts_runnable_examples(stripped):
        state.example_capture = True
        state.example_indent = _indent_of(line)
        state.example_body_indent = None


def _finish(state: ParseState, buffers: OutputBuffers) -> None:
    """Flush whatever is still open at end of input."""
    if not state.code_body_reached:
        _commit_previous_line(state, buffers.top_matter)
    _close_example(state)
    _flush_pending(state, buffers)
    _end_declaration(state)


def parse_nim(content: str, config: RenderConfig | None = None) -> OutputBuffers:
    """Parse Nim source text into per-category Markdown buffers.

    Never raises for malformed Nim: unknown lines are skipped and an
    unterminated signature is flushed at end of input.

    Args:
        content: Nim source text.
        config: Configuration controlling the export filter. Defaults to a new
            `RenderConfig` when omitted.

    Returns:
        OutputBuffers: Top matter, import bullets, and declarations by category.

    Raises:
        ConfigError: If the configuration fails validation.

    Examples:
        buffers = parse_nim("proc hello*() =\\n  ## Greets\\n")
        buffers.count(Category.PROC)  # 1
    """
    config = config or RenderConfig()
    validate_config(config)

    state = ParseState(global_only=config.only_public)
    buffers = OutputBuffers()

    for line_number, raw_line in enumerate(content.split("\n"), start=1):
        line = raw_line.rstrip("\r")

        if is_main_module_guard(line):
            continue

        if not state.code_body_reached:
            if _consume_top_matter(state, buffers, line):
                continue
            _enter_code_body(state, buffers, line_number)

        _process_code_line(state, buffers, line, line_number)

    _finish(state, buffers)
    return buffers


class SourceFileError(Exception):
    """Raised when reading or parsing a Nim file fails."""


def parse_file(filepath: Path, config: RenderConfig | None = None) -> OutputBuffers:
    """Parse a Nim file into per-category Markdown buffers.

    Args:
        filepath: Path to the Nim file to parse.
        config: Configuration controlling parsing behavior; defaults to a new
            `RenderConfig` when omitted.

    Returns:
        OutputBuffers: Parsed buffers for the file.

    Raises:
        SourceFileError: If configuration is invalid, a line exceeds the
            configured length, or the file cannot be read or decoded.

    Examples:
        buffers = parse_file(Path("src/nimtomd.nim"), RenderConfig(only_public=True))
    """
    config = config or RenderConfig()
    try:
        validate_config(config)
    except ConfigError as error:
        raise SourceFileError(str(error)) from error

    try:
        with safe_read(filepath) as file:
            content = file.read()
    except UnicodeDecodeError as error:
        error_message = f"Invalid UTF-8 sequence in {filepath}: {error}"
        raise SourceFileError(error_message) from error
    except IOError as error:
        raise SourceFileError(str(error)) from error

    try:
        _enforce_line_length(content, config.max_line_length)
    except LineTooLongError as error:
        error_message = (
            f"{filepath} contains a line at line {error.line_number} "
            f"exceeding the maximum allowed length of {error.max_line_length} characters."
        )
        raise SourceFileError(error_message) from error

    return parse_nim(content, config)


def _enforce_line_length(content: str, max_line_length: int) -> None:
    for line_number, line in enumerate(content.split("\n"), start=1):
        if len(line.rstrip("\r")) > max_line_length:
            raise LineTooLongError(line_number, max_line_length)
