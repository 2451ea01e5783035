from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from nimtomd.config import RenderConfig
from nimtomd.models import Category
from nimtomd.parser import SourceFileError, parse_file, parse_nim


def _source(content: str) -> str:
    return textwrap.dedent(content).lstrip("\n")


def _write(tmp_path: Path, name: str, content: str) -> Path:
    path = tmp_path / name
    path.write_text(_source(content), encoding="utf-8")
    return path


def _headings(buffers, category: Category) -> list[str | None]:
    return [declaration.heading for declaration in buffers.declarations[category]]


def test_top_matter_underline_becomes_heading():
    buffers = parse_nim(
        _source(
            """
            ## My Program
            ## ----------
            ## Important test
            ## and more
            proc markdownShow() =
              ## Echo markdown
            """
        )
    )

    assert buffers.top_matter == ["# My Program", "Important test", "and more"]
    (declaration,) = buffers.declarations[Category.PROC]
    assert declaration.heading == "proc markdownShow"
    assert declaration.code == ["proc markdownShow() ="]
    assert declaration.comment == ["Echo markdown"]
    assert declaration.line_number == 5
    assert declaration.is_global is False


def test_top_matter_code_blocks_are_dedented():
    buffers = parse_nim(
        _source(
            """
            ## Usage:
            ## =====
            ## .. code-block::plain
            ##    nimtomd [options] <filename>
            ##
            ## Options:
            ## ========
            ## ..code-block:: nim
            ##    filename.nim    File to output in Markdown
            ##    help            Shows the help menu
            ##

            var globalVar*: string ## Important global
            """
        )
    )

    assert buffers.top_matter == [
        "## Usage:",
        "```",
        "nimtomd [options] <filename>",
        "```",
        "",
        "## Options:",
        "```nim",
        "filename.nim    File to output in Markdown",
        "help            Shows the help menu",
        "```",
        "",
    ]


def test_top_matter_ends_at_first_blank_line():
    buffers = parse_nim(
        _source(
            """
            ## Module docs

            ## Floating docs
            proc a*() =
              ## Does a
            """
        )
    )

    assert buffers.top_matter == ["Module docs", "", "Floating docs"]
    assert buffers.declarations[Category.PROC][0].comment == ["Does a"]


def test_copyright_is_emitted_once():
    buffers = parse_nim(
        _source(
            """
            # Copyright 2018 - Someone
            # copyright again
            ## Title
            """
        )
    )

    assert buffers.top_matter == ["*Copyright 2018 - Someone*", "", "copyright again", "Title"]
    emphasised = [line for line in buffers.top_matter if line.startswith("*")]
    assert len(emphasised) == 1


def test_single_comments_before_module_docs_are_skipped():
    buffers = parse_nim(
        _source(
            """
            # nim c -r tool.nim

            ## Tool docs
            """
        )
    )

    assert buffers.top_matter == ["Tool docs"]


def test_doc_block_without_code_is_flushed_at_end():
    buffers = parse_nim("## Only docs\n## -------\n## Trailing line")

    assert buffers.top_matter == ["# Only docs", "Trailing line"]


def test_carriage_returns_are_ignored():
    buffers = parse_nim("## Title\r\nproc a*() =\r\n  ## Does a\r\n")

    assert buffers.top_matter == ["Title"]
    assert buffers.declarations[Category.PROC][0].code == ["proc a*() ="]


def test_categories_follow_declaration_keywords():
    buffers = parse_nim(
        _source(
            """
            proc globalProc*() =
              ## Echo markdown
              echo "proc"

            func pure*(x: int): int =
              x

            template nothing(): string =
              "nimtomd"

            macro donothing(): untyped =
              discard

            iterator items*(x: Foo): int =
              yield 1

            method draw*(s: Shape) {.base.} =
              discard
            """
        )
    )

    assert _headings(buffers, Category.PROC) == ["proc globalProc*", "method draw*"]
    assert _headings(buffers, Category.FUNC) == ["func pure*"]
    assert _headings(buffers, Category.TEMPLATE) == ["template nothing"]
    assert _headings(buffers, Category.MACRO) == ["macro donothing"]
    assert _headings(buffers, Category.ITERATOR) == ["iterator items*"]


def test_multi_line_signature_is_accumulated():
    buffers = parse_nim(
        _source(
            """
            proc isAlphaAscii*(c: char): bool {.noSideEffect, procvar,
              rtl, extern: "nsuIsAlphaAsciiChar".} =
              ## Checks whether or not character `c` is alphabetical.
              return c in Letters
            """
        )
    )

    (declaration,) = buffers.declarations[Category.PROC]
    assert declaration.heading == "proc isAlphaAscii*"
    assert declaration.code == [
        "proc isAlphaAscii*(c: char): bool {.noSideEffect, procvar,",
        '  rtl, extern: "nsuIsAlphaAsciiChar".} =',
    ]
    assert declaration.comment == ["Checks whether or not character `c` is alphabetical."]
    assert declaration.is_global is True


def test_unterminated_signature_is_flushed_at_end_of_input():
    buffers = parse_nim("proc dangling*(a: int,")

    (declaration,) = buffers.declarations[Category.PROC]
    assert declaration.code == ["proc dangling*(a: int,"]


def test_single_line_declaration_replaces_pending_signature():
    buffers = parse_nim(
        _source(
            """
            proc broken*(a: int,
            var counter*: int ## Number of calls
            """
        )
    )

    assert buffers.count(Category.PROC) == 0
    (declaration,) = buffers.declarations[Category.VAR]
    assert declaration.heading == "var counter*"
    assert declaration.code == ["var counter*: int"]
    assert declaration.comment == ["Number of calls"]


def test_todo_comments_are_dropped():
    buffers = parse_nim(
        _source(
            """
            proc foo*() =
              ## Does foo
              ## TODO: make it faster
              discard

            proc bar*() = ## TODO remove
            """
        )
    )

    foo, bar = buffers.declarations[Category.PROC]
    assert foo.comment == ["Does foo"]
    assert bar.code == ["proc bar*() ="]
    assert bar.comment == []


def test_commented_out_declarations_are_inert():
    buffers = parse_nim(
        _source(
            """
            proc a*() =
              discard

            # proc hidden*() =
            #   discard
            """
        )
    )

    assert _headings(buffers, Category.PROC) == ["proc a*"]


def test_only_public_discards_unexported_declarations_and_their_docs():
    source = _source(
        """
        proc a*() =
          ## Public a
          discard

        proc b() =
          ## Secret b
          discard

        template t*(): int =
          1

        template u(): int =
          2

        iterator it*(): int =
          yield 1
        """
    )

    buffers = parse_nim(source, RenderConfig(only_public=True))

    assert buffers.count(Category.PROC) == 1
    assert buffers.count(Category.TEMPLATE) == 1
    assert buffers.count(Category.ITERATOR) == 1
    assert _headings(buffers, Category.TEMPLATE) == ["template t*"]
    comments = [line for decls in buffers.declarations.values() for d in decls for line in d.comment]
    assert comments == ["Public a"]

    everything = parse_nim(source)
    assert everything.count(Category.PROC) == 2
    assert everything.count(Category.TEMPLATE) == 2


def test_only_public_filter_spans_blank_lines_inside_a_routine():
    source = _source(
        """
        proc pub*() =
          ## Public
          discard

        proc secret() =
          ## Secret summary

          ## Secret details
          discard
        """
    )

    buffers = parse_nim(source, RenderConfig(only_public=True))

    assert _headings(buffers, Category.PROC) == ["proc pub*"]
    comments = [line for decls in buffers.declarations.values() for d in decls for line in d.comment]
    assert comments == ["Public"]
    assert buffers.top_matter == []


def test_doc_comment_code_block_inside_declaration():
    buffers = parse_nim(
        _source(
            """
            proc a*() =
              ## Example:
              ##
              ## .. code-block:: nim
              ##   let x = a()
              ##   echo x
              ##
              ## Done.
            """
        )
    )

    assert buffers.declarations[Category.PROC][0].comment == [
        "Example:",
        "",
        "```nim",
        "let x = a()",
        "echo x",
        "```",
        "",
        "Done.",
    ]


def test_underlines_inside_declaration_comments_become_subheadings():
    buffers = parse_nim(
        _source(
            """
            proc a*() =
              ## Notes
              ## -----
              ## Body
              ## Details
              ## =======
              ## More
            """
        )
    )

    assert buffers.declarations[Category.PROC][0].comment == [
        "#### Notes",
        "Body",
        "##### Details",
        "More",
    ]


def test_code_block_closed_by_blank_source_line():
    buffers = parse_nim(
        _source(
            """
            proc a*() =
              ## .. code-block::
              ##   a()

            proc b*() =
            """
        )
    )

    assert buffers.declarations[Category.PROC][0].comment == ["```nim", "a()", "```"]
    assert buffers.count(Category.PROC) == 2


def test_section_entries_become_declarations():
    buffers = parse_nim(
        _source(
            """
            const
              Whitespace* = {' ', ','}
                ## All the whitespace characters

              Letters = {'A'..'Z'}
                ## the set of letters

            let answer* = 42 ## The answer

            type
              Color* = enum
                ## Supported colors
                red, green
            """
        )
    )

    assert _headings(buffers, Category.CONST) == ["Whitespace*", "Letters"]
    assert buffers.declarations[Category.CONST][0].comment == ["All the whitespace characters"]
    assert buffers.declarations[Category.CONST][1].comment == ["the set of letters"]
    assert _headings(buffers, Category.LET) == ["let answer*"]
    assert _headings(buffers, Category.OTHER) == ["Color*"]
    assert buffers.declarations[Category.OTHER][0].comment == ["Supported colors"]


def test_inline_doc_on_first_section_entry_fixes_entry_indent():
    buffers = parse_nim(
        _source(
            """
            type
              Foo* = object ## A foo
                x: int
              Bar* = ref Foo
            """
        )
    )

    assert _headings(buffers, Category.OTHER) == ["Foo*", "Bar*"]
    assert buffers.declarations[Category.OTHER][0].comment == ["A foo"]


def test_section_without_doc_on_one_line():
    buffers = parse_nim("var counter*: int\nvar hidden: int\n")

    assert _headings(buffers, Category.VAR) == ["var counter*", "var hidden"]


def test_runnable_examples_are_captured():
    buffers = parse_nim(
        _source(
            """
            proc isAlphaAscii*(c: char): bool =
              ## Checks whether or not character `c` is alphabetical.
              runnableExamples:
                doAssert isAlphaAscii('e') == true

                doAssert isAlphaAscii('8') == false
              return c in Letters
            """
        )
    )

    (declaration,) = buffers.declarations[Category.PROC]
    assert declaration.example == [
        "doAssert isAlphaAscii('e') == true",
        "",
        "doAssert isAlphaAscii('8') == false",
    ]


def test_runnable_examples_of_filtered_declaration_are_dropped():
    buffers = parse_nim(
        _source(
            """
            proc hidden() =
              runnableExamples:
                proc inner*() = discard
              discard
            """
        ),
        RenderConfig(only_public=True),
    )

    assert all(not declarations for declarations in buffers.declarations.values())


def test_imports_and_includes():
    buffers = parse_nim(
        _source(
            """
            import os, strutils
            from math import pow, floor
            include "system/inclrtl"
            """
        )
    )

    assert buffers.imports == ["- os, strutils", "- math: pow, floor"]
    assert buffers.includes == ["- system/inclrtl"]


def test_main_module_guard_is_skipped():
    buffers = parse_nim(
        _source(
            """
            proc a*() =
              discard

            when isMainModule:
              echo a()
            """
        )
    )

    assert _headings(buffers, Category.PROC) == ["proc a*"]


def test_floating_docs_after_declarations_form_narrative_block():
    buffers = parse_nim(
        _source(
            """
            proc a*() =
              discard

            ## Helpers below are internal.

            proc b*() =
            """
        )
    )

    narrative, b = buffers.declarations[Category.PROC][1:]
    assert narrative.heading is None
    assert narrative.comment == ["Helpers below are internal."]
    assert b.heading == "proc b*"


def test_parse_is_repeatable():
    source = _source(
        """
        ## Title
        ## -----
        proc a*() =
          ## Does a
        """
    )

    assert parse_nim(source) == parse_nim(source)


def test_parse_file_reads_source(tmp_path: Path):
    path = _write(
        tmp_path,
        "tool.nim",
        """
        ## Tool
        proc run*() =
          ## Runs
        """,
    )

    buffers = parse_file(path)

    assert buffers.top_matter == ["Tool"]
    assert _headings(buffers, Category.PROC) == ["proc run*"]


def test_parse_file_reports_long_lines(tmp_path: Path):
    path = tmp_path / "long.nim"
    path.write_text("proc a*() =\n  ## " + "x" * 50 + "\n", encoding="utf-8")

    with pytest.raises(SourceFileError, match="line 2"):
        parse_file(path, RenderConfig(max_line_length=20))


def test_parse_file_reports_invalid_utf8(tmp_path: Path):
    path = tmp_path / "binary.nim"
    path.write_bytes(b"proc a*() =\n  ## \xff\xfe\n")

    with pytest.raises(SourceFileError, match="Invalid UTF-8"):
        parse_file(path)


def test_parse_file_reports_invalid_config(tmp_path: Path):
    path = _write(tmp_path, "tool.nim", "proc a*() =\n")

    with pytest.raises(SourceFileError, match="max_line_length"):
        parse_file(path, RenderConfig(max_line_length=0))


def test_parse_file_on_bundled_sample():
    sample = Path(__file__).parent / "data" / "complex.nim"

    buffers = parse_file(sample)

    assert buffers.top_matter[0] == "# My Program"
    assert "## Usage:" in buffers.top_matter
    assert "## Options:" in buffers.top_matter
    assert _headings(buffers, Category.VAR) == ["var globalVar*"]
    assert "proc globalProc*" in _headings(buffers, Category.PROC)
    assert buffers.count(Category.TEMPLATE) >= 1
    assert buffers.count(Category.MACRO) >= 1
