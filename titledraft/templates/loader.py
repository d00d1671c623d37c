"""
Raw text of uploaded templates.

Word templates are flattened to text in document order (body paragraphs and
table cells) so placeholders can be extracted and merged. Anything that is
not a .docx file is read as UTF-8 text.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, List

from docx import Document
from docx.table import Table
from docx.text.paragraph import Paragraph

from titledraft.exceptions import ValidationError

WORD_SUFFIXES = (".docx",)


def _iter_block_text(document) -> Iterator[str]:
    for block in document.iter_inner_content():
        if isinstance(block, Paragraph):
            yield block.text
        elif isinstance(block, Table):
            for row in block.rows:
                cells: List[str] = []
                for cell in row.cells:
                    text = cell.text.strip()
                    if text and (not cells or cells[-1] != text):
                        cells.append(text)
                if cells:
                    yield " | ".join(cells)


def load_template_text(path: Path | str) -> str:
    """Return the template's raw text with one line per paragraph."""
    path = Path(path)
    if not path.exists():
        raise ValidationError(f"Template not found: {path}", field="template")
    if path.suffix.lower() == ".doc":
        raise ValidationError("Legacy .doc templates are not supported; save as .docx", field="template")
    if path.suffix.lower() in WORD_SUFFIXES:
        return "\n".join(_iter_block_text(Document(str(path))))
    return path.read_text(encoding="utf-8")


__all__ = ["load_template_text"]
