"""Template catalogs, placeholder extraction and template loading."""

from titledraft.templates.catalog import TemplateCatalog
from titledraft.templates.extractor import (
    dynamic_placeholder_names,
    extract_placeholders,
    format_label,
    template_placeholders,
)
from titledraft.templates.loader import load_template_text

__all__ = [
    "TemplateCatalog",
    "dynamic_placeholder_names",
    "extract_placeholders",
    "format_label",
    "load_template_text",
    "template_placeholders",
]
