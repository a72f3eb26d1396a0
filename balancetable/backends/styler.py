"""Styled table backend built on pandas Styler, with matplotlib images.

HTML and LaTeX come from ``pandas.io.formats.style.Styler`` with a
two-level column index for the header spans. Image output draws the table
on a matplotlib figure.
"""

from __future__ import annotations

import html
from pathlib import Path
from typing import Any

import pandas as pd
from matplotlib.figure import Figure
from pandas.io.formats.style import Styler

from balancetable.backends.base import (
    OutputFormat,
    RenderOptions,
    column_alignment,
    header_levels,
)
from balancetable.backends.typeset import latex_escape
from balancetable.models import TableBody

__all__ = ["render", "save", "to_figure", "to_styler"]

# Fixed uuid keeps element ids, and therefore output, deterministic
_UUID = "balancetable"
_ALIGN = {"l": "left", "c": "center", "r": "right"}


def _frame(body: TableBody) -> pd.DataFrame:
    frame = body.data.copy().reset_index(drop=True)
    levels = header_levels(body)
    if not levels:
        frame.columns = body.columns
        return frame
    arrays = []
    for level in levels:
        labels = []
        for span in level:
            labels.extend([span.label] * span.width)
        arrays.append(labels)
    arrays.append(body.columns)
    frame.columns = pd.MultiIndex.from_arrays(arrays)
    return frame


def to_styler(body: TableBody, options: RenderOptions) -> Styler:
    """Build a Styler with caption, alignment and horizontal rules."""
    frame = _frame(body)
    align = column_alignment(body, options.align)
    styler = frame.style.hide(axis="index").set_uuid(_UUID)
    if options.title:
        styler = styler.set_caption(options.title)

    styles = []
    for j, a in enumerate(align):
        styles.append({"selector": f"td.col{j}", "props": [("text-align", _ALIGN[a])]})
    for i in body.meta.hrule:
        styles.append({"selector": f"td.row{i}", "props": [("border-bottom", "1px solid")]})
    return styler.set_table_styles(styles, overwrite=False)


def to_figure(body: TableBody, options: RenderOptions) -> Figure:
    """Draw the table on a matplotlib figure.

    Header span levels are drawn as extra header rows with the span label
    in the first cell of each span.
    """
    header_rows = []
    for level in header_levels(body):
        labels: list[str] = []
        for span in level:
            labels.extend([span.label] + [""] * (span.width - 1))
        header_rows.append(labels)
    header_rows.append([c.strip() for c in body.columns])
    cells = header_rows + body.rows()
    if not body.rows():
        cells.append([""] * body.n_cols)

    fig = Figure(figsize=(max(4.0, 1.4 * body.n_cols), 0.35 * (len(cells) + 2)))
    ax = fig.add_subplot(111)
    ax.axis("off")
    table = ax.table(cellText=cells, loc="center", cellLoc="center", edges="open")
    table.auto_set_font_size(False)
    table.set_fontsize(9)
    for (row, _col), cell in table.get_celld().items():
        if row < len(header_rows):
            cell.set_text_props(weight="bold")
    if options.title:
        ax.set_title(options.title)
    if options.notes:
        fig.text(0.02, 0.02, "\n".join(options.notes), fontsize=8, va="bottom")
    return fig


def render(body: TableBody, options: RenderOptions) -> Any:
    """Render the body as a Styler, or as a matplotlib figure for images.

    Args:
        body: Table body
        options: Rendering options

    Returns:
        ``Styler`` for HTML/LaTeX, ``Figure`` for image output

    """
    if options.output_format == OutputFormat.IMAGE:
        return to_figure(body, options)
    return to_styler(body, options)


def _with_notes_html(text: str, notes: tuple[str, ...]) -> str:
    if not notes:
        return text
    return text + "\n" + "\n".join(f"<p>{html.escape(note)}</p>" for note in notes)


def save(artifact: Any, path: Path, options: RenderOptions) -> None:
    """Write a Styler as HTML/LaTeX or a figure as an image file."""
    path = Path(path)
    if isinstance(artifact, Figure):
        artifact.savefig(path, dpi=200, bbox_inches="tight")
        return
    if options.output_format == OutputFormat.LATEX:
        artifact = artifact.format(escape="latex").format_index(escape="latex", axis=1)
        text = artifact.to_latex(
            hrules=True,
            multicol_align="c",
            caption=latex_escape(options.title) if options.title else None,
        )
        for note in options.notes:
            text += "\n" + rf"{{\footnotesize {latex_escape(note)}}}\par"
    else:
        text = _with_notes_html(artifact.to_html(), options.notes)
    path.write_text(text + "\n", encoding="utf-8")
