"""Rendering backends and their registry.

Each backend module exposes ``render(body, options)`` and, when it can write
files, ``save(artifact, path, options)``.
"""

from __future__ import annotations

from balancetable.backends import dataframe, grid, office, styler, typeset
from balancetable.backends.base import (
    Backend,
    BackendSpec,
    OutputFormat,
    RenderOptions,
    column_alignment,
    header_levels,
)

__all__ = [
    "BACKENDS",
    "Backend",
    "BackendSpec",
    "OutputFormat",
    "RenderOptions",
    "column_alignment",
    "header_levels",
]

BACKENDS: dict[Backend, BackendSpec] = {
    Backend.DATAFRAME: BackendSpec(
        backend=Backend.DATAFRAME,
        render=dataframe.render,
        save=None,
        formats=frozenset({OutputFormat.DATAFRAME}),
        default_format=OutputFormat.DATAFRAME,
        supports_spans=False,
    ),
    Backend.TYPESET: BackendSpec(
        backend=Backend.TYPESET,
        render=typeset.render,
        save=typeset.save,
        formats=frozenset({OutputFormat.HTML, OutputFormat.LATEX, OutputFormat.MARKDOWN}),
        default_format=OutputFormat.MARKDOWN,
        supports_spans=True,
    ),
    Backend.STYLER: BackendSpec(
        backend=Backend.STYLER,
        render=styler.render,
        save=styler.save,
        formats=frozenset({OutputFormat.HTML, OutputFormat.LATEX, OutputFormat.IMAGE}),
        default_format=OutputFormat.HTML,
        supports_spans=True,
    ),
    Backend.TABULATE: BackendSpec(
        backend=Backend.TABULATE,
        render=grid.render,
        save=grid.save,
        formats=frozenset(
            {OutputFormat.TEXT, OutputFormat.HTML, OutputFormat.LATEX, OutputFormat.MARKDOWN}
        ),
        default_format=OutputFormat.TEXT,
        supports_spans=False,
    ),
    Backend.OFFICE: BackendSpec(
        backend=Backend.OFFICE,
        render=office.render,
        save=office.save,
        formats=frozenset({OutputFormat.WORD, OutputFormat.POWERPOINT}),
        default_format=OutputFormat.WORD,
        supports_spans=False,
    ),
}
