"""Constants used across the nimtomd package."""

from __future__ import annotations

import re

from .config import RenderConfig

DEFAULT_CONFIG = RenderConfig()
DEFAULT_MAX_FILE_SIZE = DEFAULT_CONFIG.max_file_size
DEFAULT_MAX_LINE_LENGTH = DEFAULT_CONFIG.max_line_length

NIM_EXTENSIONS = (".nim", ".nims", ".nimble")

# Comment markers
COMMENT_MARKER = "#"
DOC_MARKER = "##"
TODO_MARKER = "TODO"
COPYRIGHT_WORD = "copyright"
MAIN_MODULE_GUARD = "when isMainModule:"
RUNNABLE_EXAMPLES = "runnableExamples"

# Markdown output
FENCE = "```"
SOURCE_LANGUAGE = "nim"
SOURCE_FENCE = f"{FENCE}{SOURCE_LANGUAGE}"
TYPES_HEADING = "# Types"
IMPORTS_HEADING = "# Imports"
INCLUDES_HEADING = "# Includes"
EXAMPLE_LABEL = "**Example:**"
COMMENT_HEADING_OFFSET = 3

# Declaration keywords. Matched against the first whole word of a line, so a
# short keyword never shadows a longer one sharing its prefix.
ROUTINE_KEYWORDS = ("proc", "method", "converter")
FUNC_KEYWORD = "func"
TEMPLATE_KEYWORD = "template"
MACRO_KEYWORD = "macro"
ITERATOR_KEYWORD = "iterator"
IMPORT_KEYWORD = "import"
FROM_KEYWORD = "from"
INCLUDE_KEYWORD = "include"
SECTION_KEYWORDS = ("const", "let", "var", "type")

# Line patterns
LEADING_WORD_PATTERN = re.compile(r"^([A-Za-z_]\w*)")
CODE_BLOCK_DIRECTIVE = "..code-block::"
EXPORT_MARKER_PATTERN = re.compile(r"(?<!\w)(?:[A-Za-z_]\w*|`[^`]+`)\*(?:[(:\[{]|\s*=)")
SECTION_ENTRY_PATTERN = re.compile(
    r"^(?:`[^`]+`|[A-Za-z_]\w*)\*?\s*(?:\[[^\]]*\])?\s*(?:\{\..*?\.\})?\s*[:=]"
)
UNDERLINE_H1_PATTERN = re.compile(r"^-{3,}$")
UNDERLINE_H2_PATTERN = re.compile(r"^(?:={3,}|\^{3,})$")
