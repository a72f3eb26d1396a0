"""Shared types for table renderers."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from balancetable.models import HeaderSpan, TableBody

__all__ = [
    "Backend",
    "BackendSpec",
    "OutputFormat",
    "RenderOptions",
    "column_alignment",
    "header_levels",
]


class Backend(str, Enum):
    """Closed set of rendering backends."""

    DATAFRAME = "dataframe"
    TYPESET = "typeset"
    STYLER = "styler"
    TABULATE = "tabulate"
    OFFICE = "office"


class OutputFormat(str, Enum):
    """Serialization formats a backend can produce."""

    DATAFRAME = "dataframe"
    HTML = "html"
    LATEX = "latex"
    MARKDOWN = "markdown"
    TEXT = "text"
    WORD = "word"
    POWERPOINT = "powerpoint"
    IMAGE = "image"


@dataclass(frozen=True)
class RenderOptions:
    """Per-call rendering options handed to a backend."""

    output_format: OutputFormat
    output_file: Path | None = None
    title: str | None = None
    notes: tuple[str, ...] = ()
    align: str | None = None


@dataclass(frozen=True)
class BackendSpec:
    """Capabilities and entry points of one backend.

    Attributes:
        backend: Backend identifier
        render: Builds the table artifact from a body
        save: Writes an artifact to a file, or None for in-memory only backends
        formats: Output formats the backend can produce
        default_format: Format used when the backend is requested by keyword
        supports_spans: Whether two-level spanning headers can be shown

    """

    backend: Backend
    render: Callable[[TableBody, RenderOptions], Any]
    save: Callable[[Any, Path, RenderOptions], None] | None
    formats: frozenset[OutputFormat]
    default_format: OutputFormat
    supports_spans: bool


def column_alignment(body: TableBody, align: str | None) -> str:
    """Alignment character per column.

    Without an explicit ``align``, blank-named label columns and the first
    column are left aligned and everything else is right aligned.
    """
    if align is not None:
        return align
    return "".join(
        "l" if i == 0 or not name.strip() else "r" for i, name in enumerate(body.columns)
    )


def header_levels(body: TableBody) -> list[tuple[HeaderSpan, ...]]:
    """Span levels that cover the body exactly; inconsistent levels are skipped."""
    if body.meta.spans is None:
        return []
    return [level for level in body.meta.spans if sum(s.width for s in level) == body.n_cols]
