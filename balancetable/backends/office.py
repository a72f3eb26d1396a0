"""Office document backend: Word (python-docx), PowerPoint (python-pptx) and RTF.

Headers are flat for these formats. ``.rtf`` destinations are written as
RTF text since python-docx only produces ``.docx``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from docx import Document
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from pptx import Presentation
from pptx.enum.text import PP_ALIGN
from pptx.util import Inches, Pt

from balancetable.backends.base import OutputFormat, RenderOptions, column_alignment
from balancetable.models import TableBody

logger = logging.getLogger(__name__)

__all__ = ["render", "save", "to_docx", "to_pptx", "to_rtf"]

_DOCX_ALIGN = {
    "l": WD_ALIGN_PARAGRAPH.LEFT,
    "c": WD_ALIGN_PARAGRAPH.CENTER,
    "r": WD_ALIGN_PARAGRAPH.RIGHT,
}
_PPTX_ALIGN = {"l": PP_ALIGN.LEFT, "c": PP_ALIGN.CENTER, "r": PP_ALIGN.RIGHT}
_RTF_ALIGN = {"l": r"\ql", "c": r"\qc", "r": r"\qr"}

# Column width in twips (1/1440 inch)
_RTF_CELL_WIDTH = 1400


def to_docx(body: TableBody, options: RenderOptions) -> Any:
    """Build a python-docx Document holding the table."""
    document = Document()
    if options.title:
        document.add_heading(options.title, level=2)

    align = column_alignment(body, options.align)
    table = document.add_table(rows=body.n_rows + 1, cols=body.n_cols)
    table.alignment = WD_TABLE_ALIGNMENT.CENTER

    for j, name in enumerate(body.columns):
        cell = table.cell(0, j)
        cell.text = name.strip()
        paragraph = cell.paragraphs[0]
        paragraph.alignment = _DOCX_ALIGN[align[j]]
        for run in paragraph.runs:
            run.bold = True

    for i, row in enumerate(body.rows(), start=1):
        for j, value in enumerate(row):
            cell = table.cell(i, j)
            cell.text = value
            cell.paragraphs[0].alignment = _DOCX_ALIGN[align[j]]

    for note in options.notes:
        document.add_paragraph(note)
    return document


def to_pptx(body: TableBody, options: RenderOptions) -> Any:
    """Build a python-pptx Presentation with the table on one slide."""
    prs = Presentation()
    slide = prs.slides.add_slide(prs.slide_layouts[5])  # Title Only
    if options.title:
        slide.shapes.title.text = options.title

    align = column_alignment(body, options.align)
    rows = body.n_rows + 1
    cols = body.n_cols
    left = Inches(0.3)
    top = Inches(1.5)
    width = Inches(min(9.4, 1.2 * cols))
    height = Inches(min(5.0, 0.3 * rows))
    table = slide.shapes.add_table(rows, cols, left, top, width, height).table

    cells = [[c.strip() for c in body.columns]] + body.rows()
    for i, row in enumerate(cells):
        for j, value in enumerate(row):
            frame = table.cell(i, j).text_frame
            frame.text = value
            paragraph = frame.paragraphs[0]
            paragraph.alignment = _PPTX_ALIGN[align[j]]
            for run in paragraph.runs:
                run.font.size = Pt(10)
                run.font.bold = i == 0

    if options.notes:
        box = slide.shapes.add_textbox(left, top + height + Inches(0.2), width, Inches(0.5))
        box.text_frame.text = "\n".join(options.notes)
    return prs


def _rtf_escape(text: str) -> str:
    out = []
    for ch in text:
        if ch in "\\{}":
            out.append("\\" + ch)
        elif ord(ch) > 127:
            code = ord(ch)
            out.append(f"\\u{code if code < 32768 else code - 65536}?")
        else:
            out.append(ch)
    return "".join(out)


def to_rtf(body: TableBody, options: RenderOptions) -> str:
    """Render the table as an RTF document string."""
    align = column_alignment(body, options.align)
    lines = [r"{\rtf1\ansi\deff0 {\fonttbl {\f0 Times New Roman;}}", r"\fs20"]
    if options.title:
        lines.append(rf"{{\pard\qc\b {_rtf_escape(options.title)}\b0\par}}")

    row_def = r"\trowd\trgaph108" + "".join(
        rf"\cellx{_RTF_CELL_WIDTH * (j + 1)}" for j in range(body.n_cols)
    )
    cells = [[c.strip() for c in body.columns]] + body.rows()
    for i, row in enumerate(cells):
        parts = [row_def]
        for j, value in enumerate(row):
            text = _rtf_escape(value)
            if i == 0:
                text = rf"\b {text}\b0"
            parts.append(rf"\pard\intbl{_RTF_ALIGN[align[j]]} {text}\cell")
        parts.append(r"\row")
        lines.append("".join(parts))

    for note in options.notes:
        lines.append(rf"{{\pard {_rtf_escape(note)}\par}}")
    lines.append("}")
    return "\n".join(lines)


def render(body: TableBody, options: RenderOptions) -> Any:
    """Render the body as a Word document, an RTF string or a Presentation.

    Args:
        body: Table body
        options: Rendering options; an ``.rtf`` output file selects RTF

    Returns:
        ``docx.Document``, ``pptx.Presentation`` or RTF text

    """
    if options.output_format == OutputFormat.POWERPOINT:
        return to_pptx(body, options)
    if options.output_file is not None and options.output_file.suffix.lower() == ".rtf":
        return to_rtf(body, options)
    return to_docx(body, options)


def save(artifact: Any, path: Path, options: RenderOptions) -> None:
    """Write a document, presentation or RTF string to a file."""
    path = Path(path)
    if isinstance(artifact, str):
        path.write_text(artifact, encoding="utf-8")
    else:
        artifact.save(str(path))
    logger.debug("Saved %s document to %s", options.output_format.value, path)
