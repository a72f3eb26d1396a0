"""Output resolution and the table factory.

Resolves an output destination to a backend and a format, flattens spanning
headers for backends/formats that cannot show them, applies augmentation and
hands the finished body to the backend.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

from balancetable.augment import add_columns as _add_columns
from balancetable.augment import add_rows as _add_rows
from balancetable.backends import BACKENDS, Backend, OutputFormat, RenderOptions
from balancetable.config import OutputDefaults, config
from balancetable.errors import InvalidArgumentError, UnsupportedOutputError
from balancetable.formatting import Fmt, pad_duplicates, validate_fmt
from balancetable.models import AugmentationSpec, TableBody

logger = logging.getLogger(__name__)

__all__ = [
    "EXTENSION_FORMATS",
    "FLAT_BACKENDS",
    "FLAT_FORMATS",
    "OutputRequest",
    "factory",
    "needs_flat_header",
    "resolve_output",
]

EXTENSION_FORMATS: dict[str, OutputFormat] = {
    ".html": OutputFormat.HTML,
    ".tex": OutputFormat.LATEX,
    ".md": OutputFormat.MARKDOWN,
    ".txt": OutputFormat.MARKDOWN,
    ".rtf": OutputFormat.WORD,
    ".docx": OutputFormat.WORD,
    ".pptx": OutputFormat.POWERPOINT,
    ".png": OutputFormat.IMAGE,
    ".jpg": OutputFormat.IMAGE,
}

# Keywords naming a format; the backend comes from OutputDefaults
_FORMAT_KEYWORDS: dict[str, OutputFormat] = {
    "html": OutputFormat.HTML,
    "latex": OutputFormat.LATEX,
    "markdown": OutputFormat.MARKDOWN,
}

# Keywords naming a backend; the format is the backend's default
_BACKEND_KEYWORDS: dict[str, Backend] = {
    "dataframe": Backend.DATAFRAME,
    "data.frame": Backend.DATAFRAME,
    "typeset": Backend.TYPESET,
    "styler": Backend.STYLER,
    "tabulate": Backend.TABULATE,
    "office": Backend.OFFICE,
}

FLAT_BACKENDS = frozenset({Backend.DATAFRAME, Backend.TABULATE, Backend.OFFICE})
FLAT_FORMATS = frozenset({OutputFormat.MARKDOWN, OutputFormat.WORD, OutputFormat.POWERPOINT})

_ALIGN_CHARS = frozenset("lcr")


@dataclass(frozen=True)
class OutputRequest:
    """Resolved output destination."""

    backend: Backend
    output_format: OutputFormat
    output_file: Path | None = None


def _backend_for_format(output_format: OutputFormat, defaults: OutputDefaults) -> Backend:
    name = defaults.backend_for(output_format.value)
    if name is None:
        raise UnsupportedOutputError(
            f"No backend configured for output format '{output_format.value}'"
        )
    try:
        backend = Backend(name)
    except ValueError as e:
        raise UnsupportedOutputError(
            f"Unknown backend '{name}' configured for format '{output_format.value}'"
        ) from e
    if output_format not in BACKENDS[backend].formats:
        raise UnsupportedOutputError(
            f"Backend '{backend.value}' cannot produce '{output_format.value}' output"
        )
    return backend


def resolve_output(output: Any, defaults: OutputDefaults | None = None) -> OutputRequest:
    """Resolve an output specifier to a backend, a format and an optional file.

    Args:
        output: Backend keyword or file path
        defaults: Output defaults (default from config)

    Returns:
        OutputRequest

    Raises:
        InvalidArgumentError: If ``output`` is not a string or path
        UnsupportedOutputError: If the keyword or extension is unknown, or the
            configured backend cannot produce the format

    """
    if defaults is None:
        defaults = OutputDefaults.from_config()
    if isinstance(output, Path):
        output = str(output)
    if not isinstance(output, str) or not output.strip():
        raise InvalidArgumentError(f"output must be a keyword or file path, got {output!r}")

    keyword = output.strip()
    if keyword == "default":
        keyword = defaults.default_output

    if keyword in _BACKEND_KEYWORDS:
        backend = _BACKEND_KEYWORDS[keyword]
        request = OutputRequest(backend, BACKENDS[backend].default_format)
    elif keyword in _FORMAT_KEYWORDS:
        output_format = _FORMAT_KEYWORDS[keyword]
        request = OutputRequest(_backend_for_format(output_format, defaults), output_format)
    else:
        suffix = Path(keyword).suffix.lower()
        if not suffix:
            raise UnsupportedOutputError(
                f"Unknown output '{keyword}'. Use one of "
                f"{sorted(set(_BACKEND_KEYWORDS) | set(_FORMAT_KEYWORDS))} or a file path "
                f"ending in {sorted(EXTENSION_FORMATS)}"
            )
        if suffix not in EXTENSION_FORMATS:
            raise UnsupportedOutputError(
                f"Unsupported file extension '{suffix}' for output '{keyword}'. "
                f"Supported extensions: {sorted(EXTENSION_FORMATS)}"
            )
        output_format = EXTENSION_FORMATS[suffix]
        request = OutputRequest(
            _backend_for_format(output_format, defaults), output_format, Path(keyword)
        )

    logger.debug(
        "Resolved output %r to backend=%s format=%s",
        output,
        request.backend.value,
        request.output_format.value,
    )
    return request


def needs_flat_header(request: OutputRequest) -> bool:
    """Whether the destination cannot show two-level spanning headers."""
    return request.backend in FLAT_BACKENDS or request.output_format in FLAT_FORMATS


def _validate_title(title: Any) -> None:
    if title is not None and not isinstance(title, str):
        raise InvalidArgumentError(f"title must be a string, got {type(title).__name__}")


def _validate_notes(notes: Any) -> tuple[str, ...]:
    if notes is None:
        return ()
    if isinstance(notes, str):
        return (notes,)
    if isinstance(notes, (list, tuple)) and all(isinstance(n, str) for n in notes):
        return tuple(notes)
    raise InvalidArgumentError("notes must be a string or a list of strings")


def _validate_align(align: Any, body: TableBody) -> str | None:
    if align is None:
        return None
    if not isinstance(align, str) or not set(align) <= _ALIGN_CHARS:
        raise InvalidArgumentError(
            f"align must be a string of 'l', 'c' and 'r' characters, got {align!r}"
        )
    if len(align) != body.n_cols:
        raise InvalidArgumentError(
            f"align has {len(align)} characters but the table has {body.n_cols} columns"
        )
    return align


def factory(
    body: TableBody,
    output: str | Path = "default",
    fmt: Fmt | None = None,
    title: str | None = None,
    notes: str | list[str] | None = None,
    align: str | None = None,
    add_columns: pd.DataFrame | AugmentationSpec | None = None,
    add_rows: pd.DataFrame | AugmentationSpec | None = None,
    defaults: OutputDefaults | None = None,
) -> Any:
    """Finalize a table body and produce the requested output.

    Steps: validate arguments, resolve the destination, flatten the header
    when needed, de-duplicate column names, insert extra columns then extra
    rows, validate ``align`` against the final width, render, and write the
    file when the destination is a path.

    Args:
        body: Table body with metadata
        output: Backend keyword or file path
        fmt: Numeric format for injected cells (default from config)
        title: Table caption
        notes: Note or notes printed under the table
        align: One alignment character per column of the final table
        add_columns: Extra columns
        add_rows: Extra rows
        defaults: Output defaults (default from config)

    Returns:
        The backend's table object, or None when a file was written

    Raises:
        InvalidArgumentError: If fmt, title, notes or align are malformed
        UnsupportedOutputError: If the output cannot be resolved
        AugmentationShapeError: If extra rows or columns do not fit

    """
    fmt = validate_fmt(config.fmt if fmt is None else fmt)
    _validate_title(title)
    note_lines = _validate_notes(notes)
    request = resolve_output(output, defaults)
    spec = BACKENDS[request.backend]

    if body.meta.flat_header is not None and needs_flat_header(request):
        body = body.flattened()
    body = body.with_columns(pad_duplicates(body.columns))

    if add_columns is not None:
        body = _add_columns(body, add_columns, fmt)
        body = body.with_columns(pad_duplicates(body.columns))
    if add_rows is not None:
        body = _add_rows(
            body, add_rows, fmt, keep_provenance=request.output_format == OutputFormat.DATAFRAME
        )

    options = RenderOptions(
        output_format=request.output_format,
        output_file=request.output_file,
        title=title,
        notes=note_lines,
        align=_validate_align(align, body),
    )
    artifact = spec.render(body, options)

    if request.output_file is None:
        return artifact
    if spec.save is None:
        raise UnsupportedOutputError(f"Backend '{request.backend.value}' cannot write files")
    spec.save(artifact, request.output_file, options)
    logger.info("Wrote %s table to %s", request.output_format.value, request.output_file)
    return None
