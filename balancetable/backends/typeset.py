"""Typesetting backend: hand-built Markdown, LaTeX and HTML tables.

LaTeX Dependencies:
    - booktabs package (\\toprule, \\midrule, \\cmidrule, \\bottomrule)
"""

from __future__ import annotations

import html
from pathlib import Path

from balancetable.backends.base import (
    OutputFormat,
    RenderOptions,
    column_alignment,
    header_levels,
)
from balancetable.models import HeaderSpan, TableBody

__all__ = ["latex_escape", "render", "save"]

_LATEX_SPECIAL = {
    "\\": r"\textbackslash{}",
    "&": r"\&",
    "%": r"\%",
    "$": r"\$",
    "#": r"\#",
    "_": r"\_",
    "{": r"\{",
    "}": r"\}",
    "~": r"\textasciitilde{}",
    "^": r"\textasciicircum{}",
}

_MD_ALIGN = {"l": ":---", "c": ":---:", "r": "---:"}
_HTML_ALIGN = {"l": "left", "c": "center", "r": "right"}


def latex_escape(text: str) -> str:
    """Escape LaTeX special characters."""
    return "".join(_LATEX_SPECIAL.get(ch, ch) for ch in text)


def _md_cell(text: str) -> str:
    return text.replace("|", r"\|")


def _markdown(body: TableBody, options: RenderOptions) -> str:
    align = column_alignment(body, options.align)
    lines = []
    if options.title:
        lines.extend([f"Table: {options.title}", ""])
    lines.append("| " + " | ".join(_md_cell(c) for c in body.columns) + " |")
    lines.append("|" + "|".join(_MD_ALIGN[a] for a in align) + "|")
    for row in body.rows():
        lines.append("| " + " | ".join(_md_cell(c) for c in row) + " |")
    if options.notes:
        lines.append("")
        for i, note in enumerate(options.notes):
            lines.append(f"__Note:__ {note}" if i == 0 else note)
    return "\n".join(lines)


def _latex_span_rows(levels: list[tuple[HeaderSpan, ...]]) -> list[str]:
    lines = []
    for level in levels:
        cells = []
        rules = []
        start = 1
        for span in level:
            label = latex_escape(span.label.strip())
            if span.width == 1:
                cells.append(label)
            else:
                cells.append(rf"\multicolumn{{{span.width}}}{{c}}{{{label}}}")
            if label:
                rules.append(rf"\cmidrule(lr){{{start}-{start + span.width - 1}}}")
            start += span.width
        lines.append(" & ".join(cells) + r" \\")
        if rules:
            lines.append(" ".join(rules))
    return lines


def _latex(body: TableBody, options: RenderOptions) -> str:
    align = column_alignment(body, options.align)
    lines = [r"\begin{table}[htbp]", r"\centering"]
    if options.title:
        lines.append(rf"\caption{{{latex_escape(options.title)}}}")
    lines.extend([rf"\begin{{tabular}}{{{align}}}", r"\toprule"])
    lines.extend(_latex_span_rows(header_levels(body)))
    lines.append(" & ".join(latex_escape(c.strip()) for c in body.columns) + r" \\")
    lines.append(r"\midrule")

    rules = set(body.meta.hrule)
    last = body.n_rows - 1
    for i, row in enumerate(body.rows()):
        lines.append(" & ".join(latex_escape(c) for c in row) + r" \\")
        if i in rules and i != last:
            lines.append(r"\midrule")

    lines.append(r"\bottomrule")
    for note in options.notes:
        note_cell = rf"\footnotesize {latex_escape(note)}"
        lines.append(rf"\multicolumn{{{body.n_cols}}}{{l}}{{{note_cell}}} \\")
    lines.extend([r"\end{tabular}", r"\end{table}"])
    return "\n".join(lines)


def _html(body: TableBody, options: RenderOptions) -> str:
    align = column_alignment(body, options.align)
    lines = ['<table class="balancetable">']
    if options.title:
        lines.append(f"  <caption>{html.escape(options.title)}</caption>")
    lines.append("  <thead>")
    for level in header_levels(body):
        cells = "".join(
            f'<th colspan="{span.width}" style="text-align: center">'
            f"{html.escape(span.label.strip())}</th>"
            for span in level
        )
        lines.append(f"    <tr>{cells}</tr>")
    cells = "".join(
        f'<th style="text-align: {_HTML_ALIGN[a]}">{html.escape(c.strip())}</th>'
        for c, a in zip(body.columns, align)
    )
    lines.append(f"    <tr>{cells}</tr>")
    lines.extend(["  </thead>", "  <tbody>"])

    rules = set(body.meta.hrule)
    for i, row in enumerate(body.rows()):
        style = ' style="border-bottom: 1px solid"' if i in rules else ""
        cells = "".join(
            f'<td style="text-align: {_HTML_ALIGN[a]}">{html.escape(c)}</td>'
            for c, a in zip(row, align)
        )
        lines.append(f"    <tr{style}>{cells}</tr>")
    lines.append("  </tbody>")
    if options.notes:
        lines.append("  <tfoot>")
        for note in options.notes:
            lines.append(f'    <tr><td colspan="{body.n_cols}">{html.escape(note)}</td></tr>')
        lines.append("  </tfoot>")
    lines.append("</table>")
    return "\n".join(lines)


def render(body: TableBody, options: RenderOptions) -> str:
    """Render the body as a Markdown, LaTeX or HTML string.

    Args:
        body: Table body
        options: Rendering options; ``output_format`` selects the markup

    Returns:
        Table markup

    """
    if options.output_format == OutputFormat.LATEX:
        return _latex(body, options)
    if options.output_format == OutputFormat.HTML:
        return _html(body, options)
    return _markdown(body, options)


def save(artifact: str, path: Path, options: RenderOptions) -> None:
    """Write rendered markup to a file."""
    Path(path).write_text(artifact + "\n", encoding="utf-8")
