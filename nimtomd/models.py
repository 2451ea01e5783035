"""Data models for nimtomd."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto


class DeclKind(Enum):
    """Declaration kinds recognised by the line classifier.

    Attributes:
        PROC: ``proc``, ``method`` and ``converter`` routines.
        FUNC: ``func`` routines.
        TEMPLATE: ``template`` definitions.
        MACRO: ``macro`` definitions.
        ITERATOR: ``iterator`` definitions.
    """

    PROC = auto()
    FUNC = auto()
    TEMPLATE = auto()
    MACRO = auto()
    ITERATOR = auto()


class Category(Enum):
    """Output buffers for declarations, in rendering order.

    The value is the subsection title used under the ``Types`` heading.
    """

    PROC = "Procs"
    FUNC = "Funcs"
    TEMPLATE = "Templates"
    MACRO = "Macros"
    ITERATOR = "Iterators"
    CONST = "Consts"
    LET = "Lets"
    VAR = "Vars"
    OTHER = "Other"

    @property
    def title(self) -> str:
        return self.value

    @classmethod
    def for_kind(cls, kind: DeclKind | None) -> Category:
        if kind is None:
            return cls.OTHER
        return cls[kind.name]


@dataclass
class Declaration:
    """One documented element of the source.

    Attributes:
        line_number: One-based source line where the declaration starts.
        is_global: Whether any signature line carries the export marker.
        category: Output buffer the declaration belongs to.
        heading: Heading text, or None for a heading-less narrative block.
        code: Signature lines rendered inside the fenced block.
        comment: Rendered doc-comment lines, possibly containing fences.
        example: Dedented lines of an attached ``runnableExamples`` block.
    """

    line_number: int
    is_global: bool
    category: Category
    heading: str | None
    code: list[str] = field(default_factory=list)
    comment: list[str] = field(default_factory=list)
    example: list[str] = field(default_factory=list)


@dataclass
class OutputBuffers:
    """Markdown fragments collected during a parse, one buffer per category.

    Attributes:
        top_matter: Rendered module doc block.
        imports: Bullet lines for ``import`` and ``from ... import`` lines.
        includes: Bullet lines for ``include`` lines.
        declarations: Declarations per category, in source order.
    """

    top_matter: list[str] = field(default_factory=list)
    imports: list[str] = field(default_factory=list)
    includes: list[str] = field(default_factory=list)
    declarations: dict[Category, list[Declaration]] = field(
        default_factory=lambda: {category: [] for category in Category}
    )

    def add(self, declaration: Declaration) -> None:
        self.declarations[declaration.category].append(declaration)

    def count(self, category: Category) -> int:
        return len(self.declarations[category])


@dataclass
class ParseState:
    """Mutable state for a single parse run.

    A new instance is created by every call to ``parse_nim``; nothing is
    shared between runs.

    Attributes:
        previous_formatted_line: Top-matter line held back until the next line
            shows whether it is a heading.
        first_comment_seen: Whether the module doc block (or code) has started.
        copyright_emitted: Whether the copyright line has been rendered.
        code_body_reached: One-way latch set when the top matter ends.
        global_only: Whether non-exported declarations are discarded.
        global_element_active: Whether the current declaration passed the
            export filter; doc lines are dropped while False.
        pending_declaration_lines: Signature lines of an open declaration.
        pending_line_number: Source line of the first pending signature line.
        code_block_open: Whether a fenced example is open.
        code_block_is_first_line: Whether the next fence line is its first body line.
        code_block_indent: Indent removed from every fence body line.
        code_block_blank_pending: Whether a blank body line is held back.
        code_block_target: Buffer receiving the open fence's lines.
        current: Declaration receiving continuation doc lines.
        narrative_target: Buffer receiving floating doc lines.
        active_category: Category of the most recent declaration.
        section: Category of the open ``const``/``let``/``var``/``type`` section.
        section_indent: Indent of entries in the open section.
        example_capture: Whether a ``runnableExamples`` block is being captured.
        example_indent: Indent of the ``runnableExamples`` line.
        example_body_indent: Indent removed from every captured example line.
    """

    global_only: bool = False
    previous_formatted_line: str | None = None
    first_comment_seen: bool = False
    copyright_emitted: bool = False
    code_body_reached: bool = False
    global_element_active: bool = True
    pending_declaration_lines: list[str] = field(default_factory=list)
    pending_line_number: int = 0
    code_block_open: bool = False
    code_block_is_first_line: bool = False
    code_block_indent: int | None = None
    code_block_blank_pending: bool = False
    code_block_target: list[str] | None = None
    current: Declaration | None = None
    narrative_target: list[str] | None = None
    active_category: Category | None = None
    section: Category | None = None
    section_indent: int | None = None
    example_capture: bool = False
    example_indent: int = 0
    example_body_indent: int | None = None


@dataclass(frozen=True)
class Document:
    """Rendered Markdown document.

    Attributes:
        lines: Markdown lines without trailing newlines.
    """

    lines: tuple[str, ...] = ()

    def as_string(self) -> str:
        return "\n".join(self.lines)

    def as_lines(self) -> list[str]:
        return list(self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def __str__(self) -> str:
        return self.as_string()
