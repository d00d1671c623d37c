"""
titledraft - drafting support for legal title-scrutiny reports.

This package keeps the deed tables of a report in sync with a shared record
store and merges them into a document template:

- Deed tables with debounced optimistic edits and a live change feed
- Deed type catalogs driving per-type custom fields and narratives
- Property description records
- A merge engine producing a structured preview of the final report

Store backends are an in-memory store and PostgreSQL (LISTEN/NOTIFY).
"""

from __future__ import annotations

__version__ = "0.1.0"

# Public API exports
from titledraft.config import Settings, SyncTimings, get_settings
from titledraft.deeds import CustomColumnOverlay, DeedCollectionManager
from titledraft.documents import PropertyDocumentManager
from titledraft.domain.models import ChangeEvent, DeedRecord, Draft, PropertyDocument
from titledraft.exceptions import CatalogError, DraftingError, StoreError, ValidationError
from titledraft.infrastructure import InMemoryRecordStore, RecordStore, create_store
from titledraft.merge import MergeEngine, MergeInput, render_console, render_text
from titledraft.templates import TemplateCatalog, extract_placeholders, load_template_text
from titledraft.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    # Configuration
    "Settings",
    "SyncTimings",
    "get_settings",
    # Deed tables
    "CustomColumnOverlay",
    "DeedCollectionManager",
    "PropertyDocumentManager",
    # Domain
    "ChangeEvent",
    "DeedRecord",
    "Draft",
    "PropertyDocument",
    # Errors
    "CatalogError",
    "DraftingError",
    "StoreError",
    "ValidationError",
    # Stores
    "InMemoryRecordStore",
    "RecordStore",
    "create_store",
    # Templates and merging
    "MergeEngine",
    "MergeInput",
    "TemplateCatalog",
    "extract_placeholders",
    "load_template_text",
    "render_console",
    "render_text",
    # Logging
    "configure_logging",
    "get_logger",
]
