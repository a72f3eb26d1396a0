"""Plain-text grid backend built on tabulate.

Headers are always flat; the dispatcher swaps in the flat header fallback
before rendering.
"""

from __future__ import annotations

from pathlib import Path

from tabulate import tabulate

from balancetable.backends.base import OutputFormat, RenderOptions, column_alignment
from balancetable.models import TableBody

__all__ = ["render", "save"]

_TABLEFMT = {
    OutputFormat.TEXT: "grid",
    OutputFormat.MARKDOWN: "pipe",
    OutputFormat.HTML: "html",
    OutputFormat.LATEX: "latex_booktabs",
}
_COLALIGN = {"l": "left", "c": "center", "r": "right"}


def render(body: TableBody, options: RenderOptions) -> str:
    """Render the body with tabulate.

    Args:
        body: Table body
        options: Rendering options; ``output_format`` selects the tablefmt

    Returns:
        Table text with the title above and notes below, when given

    """
    align = column_alignment(body, options.align)
    text = tabulate(
        body.rows(),
        headers=body.columns,
        tablefmt=_TABLEFMT.get(options.output_format, "grid"),
        colalign=[_COLALIGN[a] for a in align],
        disable_numparse=True,
    )
    parts = []
    if options.title:
        parts.append(options.title)
    parts.append(text)
    parts.extend(options.notes)
    return "\n".join(parts)


def save(artifact: str, path: Path, options: RenderOptions) -> None:
    """Write rendered text to a file."""
    Path(path).write_text(artifact + "\n", encoding="utf-8")
