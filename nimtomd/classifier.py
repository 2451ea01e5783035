"""Line classification for Nim source.

Every function here is a pure predicate or extractor over a single line. The
signature-end checks are permissive pattern tests, not bracket balancing: a
multi-line signature with nested generic brackets may end early or late.
"""

from __future__ import annotations

import re

from .constants import (
    CODE_BLOCK_DIRECTIVE,
    COMMENT_MARKER,
    COPYRIGHT_WORD,
    DOC_MARKER,
    EXPORT_MARKER_PATTERN,
    FROM_KEYWORD,
    FUNC_KEYWORD,
    IMPORT_KEYWORD,
    INCLUDE_KEYWORD,
    ITERATOR_KEYWORD,
    LEADING_WORD_PATTERN,
    MACRO_KEYWORD,
    MAIN_MODULE_GUARD,
    ROUTINE_KEYWORDS,
    RUNNABLE_EXAMPLES,
    SECTION_ENTRY_PATTERN,
    SECTION_KEYWORDS,
    TEMPLATE_KEYWORD,
    TODO_MARKER,
    UNDERLINE_H1_PATTERN,
    UNDERLINE_H2_PATTERN,
)
from .models import Category, DeclKind

_KEYWORD_KINDS = {
    **{keyword: DeclKind.PROC for keyword in ROUTINE_KEYWORDS},
    FUNC_KEYWORD: DeclKind.FUNC,
    TEMPLATE_KEYWORD: DeclKind.TEMPLATE,
    MACRO_KEYWORD: DeclKind.MACRO,
    ITERATOR_KEYWORD: DeclKind.ITERATOR,
}

_SECTION_CATEGORIES = {
    "const": Category.CONST,
    "let": Category.LET,
    "var": Category.VAR,
    "type": Category.OTHER,
}

_PARAMS_WITH_RETURN_TYPE = re.compile(r"\)\s*:.*=")
_PARAMS_THEN_ASSIGN = re.compile(r"\).*=")
_PRAGMA_THEN_ASSIGN = re.compile(r"\{.*\}.*=")
_ADJACENT_GROUPS = re.compile(
    r"[\])}]\s*(?::[^\[\](){}]*)?[\[({][^\[\](){}]*[\])}]\s*$"
)
_HEADING_STOP_CHARS = "(:={"


def leading_word(line: str) -> str | None:
    """Return the first identifier of the left-trimmed line, if any."""
    match = LEADING_WORD_PATTERN.match(line.lstrip())
    return match.group(1) if match else None


def classify(line: str) -> DeclKind | None:
    """Classify a line as the start of a declaration.

    Lines containing a comment marker are never declaration starts, so
    commented-out code stays inert.

    Args:
        line: Raw source line.

    Returns:
        DeclKind | None: Kind of declaration the line opens, or None.

    Examples:
        classify("proc foo*(x: int) =")  # DeclKind.PROC
        classify("# proc foo() =")  # None
        classify("functional = 1")  # None
    """
    if COMMENT_MARKER in line:
        return None
    return _KEYWORD_KINDS.get(leading_word(line) or "")


def is_global(line: str) -> bool:
    """Check whether a line carries the export marker.

    Matches an identifier (or backticked operator) followed by ``*`` glued to
    ``(``, ``:``, ``[`` or ``{``, or followed by ``=`` as in ``Foo* = object``.

    Examples:
        is_global("proc foo*(x: int) =")  # True
        is_global("proc foo(x: int) =")  # False
    """
    return EXPORT_MARKER_PATTERN.search(line) is not None


def ends_with_assignment(line: str) -> bool:
    """``proc foo() =``"""
    return line.rstrip().endswith("=")


def closes_params_with_return_type(line: str) -> bool:
    """``...): int =``, possibly with trailing code after ``=``."""
    return _PARAMS_WITH_RETURN_TYPE.search(line) is not None


def closes_params_then_assigns(line: str) -> bool:
    """``proc foo() = discard``: a closing paren followed later by ``=``."""
    return _PARAMS_THEN_ASSIGN.search(line) is not None


def pragma_then_assigns(line: str) -> bool:
    """``... {.inline.} =``"""
    return _PRAGMA_THEN_ASSIGN.search(line) is not None


def ends_with_adjacent_groups(line: str) -> bool:
    """Two closed groups in sequence ending the line.

    Covers bodiless forward declarations such as
    ``proc foo*(x: cint): cint {.importc.}`` and ``proc foo*[T](x: T)``.
    """
    return _ADJACENT_GROUPS.search(line) is not None


def is_signature_end(line: str) -> bool:
    """Check whether a line terminates a declaration signature."""
    return (
        ends_with_assignment(line)
        or closes_params_with_return_type(line)
        or closes_params_then_assigns(line)
        or pragma_then_assigns(line)
        or ends_with_adjacent_groups(line)
    )


def declaration_heading(line: str) -> str:
    """Extract the heading text of a declaration line.

    Cuts the line at the first ``(``, ``:``, ``=`` or ``{`` that is not inside
    a backticked operator name.

    Examples:
        declaration_heading("proc markdownShow() =")  # "proc markdownShow"
        declaration_heading("var globalVar*: string")  # "var globalVar*"
        declaration_heading("proc `==`*(a, b: Foo): bool")  # "proc `==`*"
    """
    text = line.strip()
    in_backticks = False
    for index, character in enumerate(text):
        if character == "`":
            in_backticks = not in_backticks
        elif not in_backticks and character in _HEADING_STOP_CHARS:
            return text[:index].rstrip()
    return text


def is_doc_comment(line: str) -> bool:
    return line.lstrip().startswith(DOC_MARKER)


def doc_text(line: str) -> str:
    """Strip the doc marker and one following space.

    Examples:
        doc_text("  ## Echo markdown")  # "Echo markdown"
        doc_text("##    indented")  # "   indented"
    """
    text = line.lstrip()[len(DOC_MARKER) :]
    if text.startswith(" "):
        text = text[1:]
    return text


def is_single_comment(line: str) -> bool:
    return line.startswith(COMMENT_MARKER) and not line.startswith(DOC_MARKER)


def comment_text(line: str) -> str:
    return line.lstrip().lstrip(COMMENT_MARKER).strip()


def is_copyright(line: str) -> bool:
    return is_single_comment(line) and COPYRIGHT_WORD in line.lower()


def is_todo(text: str) -> bool:
    return text.lstrip().startswith(TODO_MARKER)


def is_code_block_directive(text: str) -> bool:
    """``.. code-block::`` in any case and spacing."""
    return CODE_BLOCK_DIRECTIVE in text.replace(" ", "").lower()


def is_plain_directive(text: str) -> bool:
    return "plain" in text.lower()


def underline_level(text: str) -> int:
    """Heading level announced by an underline, or 0.

    A run of three or more ``-`` announces level 1; ``=`` or ``^`` level 2.
    """
    stripped = text.strip()
    if UNDERLINE_H1_PATTERN.match(stripped):
        return 1
    if UNDERLINE_H2_PATTERN.match(stripped):
        return 2
    return 0


def split_inline_doc(line: str) -> tuple[str, str] | None:
    """Split ``code ## comment`` into its code and comment parts.

    Returns None when the line has no code before the doc marker.

    Examples:
        split_inline_doc("var x*: int ## Counter")  # ("var x*: int", "Counter")
        split_inline_doc("  ## Only a comment")  # None
    """
    code, marker, comment = line.partition(DOC_MARKER)
    if not marker or not code.strip():
        return None
    if comment.startswith(" "):
        comment = comment[1:]
    return code.rstrip(), comment


def parse_import(stripped: str) -> str | None:
    """Format an import line as a bullet, or return None.

    Examples:
        parse_import("import os, strutils")  # "- os, strutils"
        parse_import("from math import pow, floor")  # "- math: pow, floor"
    """
    stripped = _strip_trailing_comment(stripped)
    word = leading_word(stripped)
    if word == IMPORT_KEYWORD:
        modules = stripped[len(IMPORT_KEYWORD) :].strip()
        return f"- {modules}" if modules else None
    if word == FROM_KEYWORD:
        module, separator, names = stripped[len(FROM_KEYWORD) :].partition(f" {IMPORT_KEYWORD} ")
        if not separator:
            return None
        return f"- {module.strip()}: {names.strip()}"
    return None


def parse_include(stripped: str) -> str | None:
    """Format an include line as a bullet, or return None.

    Examples:
        parse_include('include "system/inclrtl"')  # "- system/inclrtl"
    """
    stripped = _strip_trailing_comment(stripped)
    if leading_word(stripped) != INCLUDE_KEYWORD:
        return None
    target = stripped[len(INCLUDE_KEYWORD) :].strip().strip('"')
    return f"- {target}" if target else None


def section_keyword(stripped: str) -> tuple[Category, str] | None:
    """Detect a ``const``/``let``/``var``/``type`` line.

    Returns the section category and the text after the keyword (empty when
    the keyword opens a multi-line section).

    Examples:
        section_keyword("const")  # (Category.CONST, "")
        section_keyword("var x*: int")  # (Category.VAR, "x*: int")
    """
    word = leading_word(stripped)
    if word not in SECTION_KEYWORDS:
        return None
    return _SECTION_CATEGORIES[word], stripped[len(word) :].strip()


def is_section_entry(stripped: str) -> bool:
    """``Name* = value``, ``name*: T`` or ``Foo*[T] = object``."""
    return COMMENT_MARKER not in stripped and SECTION_ENTRY_PATTERN.match(stripped) is not None


def is_main_module_guard(line: str) -> bool:
    return line.strip() == MAIN_MODULE_GUARD


def starts_runnable_examples(stripped: str) -> bool:
    return leading_word(stripped) == RUNNABLE_EXAMPLES


def _strip_trailing_comment(stripped: str) -> str:
    return stripped.split(COMMENT_MARKER, 1)[0].rstrip()
