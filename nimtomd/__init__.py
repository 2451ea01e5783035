"""
nimtomd: Convert the doc comments of Nim source files to Markdown.

This package can be used both as a CLI tool and as a library.

CLI Usage:
    nimtomd -o:README.md -ow -g src/nimtomd.nim

Library Usage:
    from nimtomd import RenderConfig, render_from_file, render_from_text

    document = render_from_file("src/nimtomd.nim", RenderConfig(only_public=True))
    print(document.as_string())

    for line in render_from_text(nim_code).as_lines():
        print(line)
"""

from .classifier import classify, is_global
from .config import ConfigError, RenderConfig
from .exceptions import LineTooLongError, RenderError
from .generator import generate_markdown, render_declaration, render_from_file, render_from_text
from .models import Category, Declaration, DeclKind, Document, OutputBuffers, ParseState
from .parser import SourceFileError, parse_file, parse_nim

__version__ = "0.1.0"

__all__ = [
    # Core functionality
    "render_from_text",
    "render_from_file",
    "parse_nim",
    "parse_file",
    "generate_markdown",
    "render_declaration",
    # Line classification
    "classify",
    "is_global",
    # Data models
    "Category",
    "Declaration",
    "DeclKind",
    "Document",
    "OutputBuffers",
    "ParseState",
    # Configuration
    "RenderConfig",
    # Exceptions
    "ConfigError",
    "LineTooLongError",
    "RenderError",
    "SourceFileError",
    # Version
    "__version__",
]
