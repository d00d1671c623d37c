from titledraft.merge.engine import (
    Blank,
    Block,
    DeedTable,
    DeedTableRow,
    Heading,
    MergeEngine,
    MergeInput,
    Paragraph,
    PropertyEntry,
    PropertySection,
    to_roman,
)
from titledraft.merge.render import render_console, render_text

__all__ = [
    "Blank",
    "Block",
    "DeedTable",
    "DeedTableRow",
    "Heading",
    "MergeEngine",
    "MergeInput",
    "Paragraph",
    "PropertyEntry",
    "PropertySection",
    "render_console",
    "render_text",
    "to_roman",
]
