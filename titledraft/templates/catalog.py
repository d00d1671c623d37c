"""
Deed type catalogs.

Two independent catalogs share the deed type key space: the deed templates
(particulars phrase plus custom placeholder definitions) and the history of
title narratives. Form shaping looks entries up by exact key; merging looks
them up trimmed and case-insensitively.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from titledraft.domain.models import (
    DEED_TEMPLATES_TABLE,
    HISTORY_TEMPLATES_TABLE,
    DeedTypeTemplate,
    HistoryNarrativeTemplate,
)
from titledraft.exceptions import CatalogError
from titledraft.infrastructure.record_store import RecordStore
from titledraft.templates.extractor import dynamic_placeholder_names
from titledraft.utils.logging import get_logger

log = get_logger(__name__)


def _fold(deed_type: str | None) -> str:
    return (deed_type or "").strip().lower()


class TemplateCatalog:
    """In-memory view of both deed type catalogs."""

    def __init__(
        self,
        deed_templates: Iterable[DeedTypeTemplate] = (),
        history_templates: Iterable[HistoryNarrativeTemplate] = (),
    ) -> None:
        self._deed: Dict[str, DeedTypeTemplate] = {}
        self._deed_folded: Dict[str, DeedTypeTemplate] = {}
        self._history: Dict[str, HistoryNarrativeTemplate] = {}
        self._history_folded: Dict[str, HistoryNarrativeTemplate] = {}
        for entry in deed_templates:
            self._deed[entry.deed_type] = entry
            self._deed_folded.setdefault(_fold(entry.deed_type), entry)
        for entry in history_templates:
            self._history[entry.deed_type] = entry
            self._history_folded.setdefault(_fold(entry.deed_type), entry)

    @classmethod
    async def load(cls, store: RecordStore) -> "TemplateCatalog":
        """Read both catalogs from the record store, ordered by deed type."""
        deed_rows = await store.query(DEED_TEMPLATES_TABLE, order_by="deed_type")
        history_rows = await store.query(HISTORY_TEMPLATES_TABLE, order_by="deed_type")
        catalog = cls(
            [DeedTypeTemplate.model_validate(row) for row in deed_rows],
            [HistoryNarrativeTemplate.model_validate(row) for row in history_rows],
        )
        log.info(
            "Template catalogs loaded",
            extra={"deed_templates": len(deed_rows), "history_templates": len(history_rows)},
        )
        return catalog

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TemplateCatalog":
        """
        Build a catalog from a JSON-style document:

            {"deed_templates": [{"deed_type": ..., "preview_template": ...,
                                 "custom_placeholders": {...}}],
             "history_templates": [{"deed_type": ..., "template_content": ...}]}
        """
        try:
            return cls(
                [DeedTypeTemplate.model_validate(row) for row in data.get("deed_templates", [])],
                [HistoryNarrativeTemplate.model_validate(row) for row in data.get("history_templates", [])],
            )
        except (PydanticValidationError, AttributeError, TypeError) as exc:
            raise CatalogError(f"Invalid template catalog: {exc}") from exc

    @classmethod
    def from_file(cls, path: Path | str) -> "TemplateCatalog":
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise CatalogError(f"Cannot read template catalog {path}: {exc}") from exc
        return cls.from_mapping(data)

    def to_mapping(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "deed_templates": [entry.model_dump() for entry in self._deed.values()],
            "history_templates": [entry.model_dump() for entry in self._history.values()],
        }

    @property
    def deed_types(self) -> List[str]:
        return sorted(self._deed)

    def deed_template(self, deed_type: str) -> Optional[DeedTypeTemplate]:
        return self._deed.get(deed_type)

    def history_template(self, deed_type: str) -> Optional[HistoryNarrativeTemplate]:
        return self._history.get(deed_type)

    def particulars_template(self, deed_type: str | None) -> str:
        """Preview template for merging ("" when the type has none)."""
        entry = self._deed_folded.get(_fold(deed_type))
        return entry.preview_template if entry else ""

    def history_narrative(self, deed_type: str | None) -> Optional[str]:
        """History template for merging, or None when the type has no usable entry."""
        entry = self._history_folded.get(_fold(deed_type))
        if entry is None or not entry.template_content:
            return None
        return entry.template_content

    def custom_field_keys(self, deed_type: str) -> List[str]:
        """Keys a record's custom fields are reset to when it takes this deed type."""
        entry = self._deed.get(deed_type)
        return list(entry.custom_placeholders) if entry else []

    def dynamic_placeholders(self, deed_type: str) -> List[str]:
        """
        Extra inputs a record of `deed_type` needs: the placeholders of its
        preview and history templates, minus fields that have dedicated inputs.
        """
        preview = self._deed.get(deed_type)
        history = self._history.get(deed_type)
        names = dynamic_placeholder_names(
            [
                preview.preview_template if preview else "",
                history.template_content if history else "",
            ]
        )
        return sorted(names)


__all__ = ["TemplateCatalog"]
