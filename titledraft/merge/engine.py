"""
Merge/preview engine.

Turns a document template, the user's placeholder values, up to four deed
tables and the property documents into a list of presentational blocks:

1. every deed gets a "particulars" phrase and a "history of title" fragment
   from the two deed type catalogs;
2. the template's generic placeholders are replaced, then `{$history}`;
3. each line is either expanded into a generated table (`{table}`,
   `{table1}`..`{table4}`) or classified as heading, paragraph or blank.

Rendering the blocks is left to `titledraft.merge.render`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field

from titledraft.deeds.dates import NIL
from titledraft.domain.models import LEGACY_TABLE_TYPE, DeedRecord, Draft, PropertyDocument
from titledraft.templates.catalog import TemplateCatalog
from titledraft.utils.logging import get_logger

log = get_logger(__name__)

EMPTY_TEMPLATE_MESSAGE = "Upload a Word template to see the preview here..."
EMPTY_HISTORY_MESSAGE = "(History of Title will appear here when deeds are added)"
EMPTY_DOCUMENTS_MESSAGE = "Document details will appear here when you add them using the form above"

PROPERTY_TITLE = "Description of Property"
SCRUTINIZED_TITLE = "Description of Documents Scrutinized {n}"

HISTORY_TOKEN = re.compile(r"\{\$history\}", re.IGNORECASE)
HEADING_PATTERN = re.compile(r"^(\d+\.?\s*)?[A-Z\s]+:")

DEED_TABLE_HEADERS = ("Sno", "Date", "D.No", "Particulars of Deed", "Nature of Doc")

# Property rows i..xiv; custom measurements continue from xv.
PROPERTY_ROWS: Tuple[Tuple[str, str], ...] = (
    ("survey_no", "Survey No"),
    ("as_per_revenue_record", "As per Revenue Record"),
    ("total_extent", "Total Extent"),
    ("plot_no", "Plot No"),
    ("location", "Location like name of the place, village, city, registration, sub-district etc."),
    ("north_by", "North By"),
    ("south_by", "South By"),
    ("east_by", "East By"),
    ("west_by", "West By"),
    ("north_measurement", "North - East West"),
    ("south_measurement", "South - East West"),
    ("east_measurement", "East - South North"),
    ("west_measurement", "West - South North"),
    ("total_extent_sq_ft", "Total"),
)

_ROMAN = (
    (1000, "m"), (900, "cm"), (500, "d"), (400, "cd"),
    (100, "c"), (90, "xc"), (50, "l"), (40, "xl"),
    (10, "x"), (9, "ix"), (5, "v"), (4, "iv"), (1, "i"),
)


def to_roman(number: int) -> str:
    """Lower-case roman numeral for a positive integer."""
    result = []
    for value, numeral in _ROMAN:
        while number >= value:
            result.append(numeral)
            number -= value
    return "".join(result)


@dataclass(frozen=True)
class Heading:
    text: str


@dataclass(frozen=True)
class Paragraph:
    text: str


@dataclass(frozen=True)
class Blank:
    pass


@dataclass(frozen=True)
class DeedTableRow:
    serial: int
    date: str
    document_number: str
    particulars: str
    nature_of_doc: str

    def cells(self) -> Tuple[str, ...]:
        return (str(self.serial), self.date, self.document_number, self.particulars, self.nature_of_doc)


@dataclass(frozen=True)
class DeedTable:
    rows: Tuple[DeedTableRow, ...]
    headers: Tuple[str, ...] = DEED_TABLE_HEADERS


@dataclass(frozen=True)
class PropertyEntry:
    heading: str
    rows: Tuple[Tuple[str, str, str], ...]


@dataclass(frozen=True)
class PropertySection:
    title: str
    entries: Tuple[PropertyEntry, ...] = field(default_factory=tuple)


Block = Union[Heading, Paragraph, Blank, DeedTable, PropertySection]


class MergeInput(BaseModel):
    """Everything a preview is built from."""

    template: str = ""
    placeholders: Dict[str, str] = Field(default_factory=dict)
    deeds: List[DeedRecord] = Field(default_factory=list)
    deeds_table2: List[DeedRecord] = Field(default_factory=list)
    deeds_table3: List[DeedRecord] = Field(default_factory=list)
    deeds_table4: List[DeedRecord] = Field(default_factory=list)
    documents: List[PropertyDocument] = Field(default_factory=list)

    @classmethod
    def from_draft(cls, draft: Draft, template: str) -> "MergeInput":
        return cls(
            template=template,
            placeholders=draft.placeholders,
            deeds=draft.deeds_for(LEGACY_TABLE_TYPE),
            deeds_table2=draft.deeds_for("table2"),
            deeds_table3=draft.deeds_for("table3"),
            deeds_table4=draft.deeds_for("table4"),
            documents=draft.documents,
        )


def _legacy_value(deed: DeedRecord, attr: str, custom_key: str) -> str:
    return getattr(deed, attr) or deed.custom_fields.get(custom_key, "")


def _replace_token(text: str, name: str, value: str) -> str:
    pattern = re.compile(r"\{" + re.escape(name) + r"\}", re.IGNORECASE)
    return pattern.sub(lambda _: value, text)


class MergeEngine:
    """Builds preview blocks using the deed type catalogs."""

    def __init__(self, catalog: TemplateCatalog) -> None:
        self.catalog = catalog

    def _fill(self, template: str, deed: DeedRecord) -> str:
        values = {
            "deedType": deed.deed_type,
            "executedBy": _legacy_value(deed, "executed_by", "executedBy"),
            "inFavourOf": _legacy_value(deed, "in_favour_of", "inFavourOf"),
            "date": deed.date or "",
            "documentNumber": deed.document_number,
            "natureOfDoc": deed.nature_of_doc,
        }
        text = template
        for name, value in values.items():
            text = _replace_token(text, name, value)
        for name, value in deed.custom_fields.items():
            text = _replace_token(text, name, value)
        return text

    def particulars(self, deed: DeedRecord) -> str:
        return self._fill(self.catalog.particulars_template(deed.deed_type), deed)

    def history_fragment(self, deed: DeedRecord) -> str:
        template = self.catalog.history_narrative(deed.deed_type)
        if template is not None:
            return self._fill(template, deed).strip()

        text = (
            f"{deed.deed_type.upper()}:\n"
            f"Deed executed by {_legacy_value(deed, 'executed_by', 'executedBy') or '[Executor]'} "
            f"in favour of {_legacy_value(deed, 'in_favour_of', 'inFavourOf') or '[Beneficiary]'} "
            f"dated {deed.date or '[Date]'}, Document No: {deed.document_number or '[Doc No]'}"
        )
        if deed.nature_of_doc:
            text += f", Nature: {deed.nature_of_doc}"
        return text

    def history_of_title(self, deeds: Sequence[DeedRecord]) -> str:
        """History narrative of the primary deed table; deeds without a type are skipped."""
        return "\n\n".join(self.history_fragment(deed) for deed in deeds if deed.deed_type)

    def substitute(self, merge_input: MergeInput) -> str:
        """Template text with placeholders and `{$history}` replaced."""
        if not merge_input.template:
            return EMPTY_TEMPLATE_MESSAGE

        text = merge_input.template
        for name, value in merge_input.placeholders.items():
            text = text.replace("{" + name + "}", value or "")

        history = self.history_of_title(merge_input.deeds) or EMPTY_HISTORY_MESSAGE
        return HISTORY_TOKEN.sub(lambda _: history, text)

    def deed_table(self, deeds: Sequence[DeedRecord]) -> Optional[DeedTable]:
        """Rows for deeds whose type has a non-empty particulars template, or None."""
        listed = [
            deed for deed in deeds
            if deed.deed_type and self.catalog.particulars_template(deed.deed_type).strip()
        ]
        if not listed:
            return None
        rows = tuple(
            DeedTableRow(
                serial=index,
                date=deed.date or NIL,
                document_number=deed.document_number or "-",
                particulars=self.particulars(deed),
                nature_of_doc=deed.nature_of_doc or "-",
            )
            for index, deed in enumerate(listed, start=1)
        )
        return DeedTable(rows=rows)

    @staticmethod
    def property_entry(document: PropertyDocument) -> PropertyEntry:
        rows = [
            (to_roman(index), label, getattr(document, attr) or f"({label})")
            for index, (attr, label) in enumerate(PROPERTY_ROWS, start=1)
        ]
        start = len(PROPERTY_ROWS) + 1
        rows.extend(
            (to_roman(index), label, value)
            for index, (label, value) in enumerate(document.custom_measurements.items(), start=start)
        )
        return PropertyEntry(
            heading=f"As per Doc No : {document.doc_no or '(As per Doc.No)'}",
            rows=tuple(rows),
        )

    def property_section(self, title: str, documents: Sequence[PropertyDocument]) -> PropertySection:
        return PropertySection(title=title, entries=tuple(self.property_entry(doc) for doc in documents))

    def _secondary(self, deeds: Sequence[DeedRecord], documents: Sequence[PropertyDocument], index: int) -> Optional[Block]:
        if deeds:
            return self.deed_table(deeds)
        fallback = list(documents[index:index + 1])
        return self.property_section(SCRUTINIZED_TITLE.format(n=index + 1), fallback)

    def _table_block(self, line: str, merge_input: MergeInput) -> Tuple[bool, Optional[Block]]:
        if "{table}" in line:
            return True, self.deed_table(merge_input.deeds)
        if "{table1}" in line:
            return True, self.property_section(PROPERTY_TITLE, merge_input.documents)
        secondary = (
            ("{table2}", merge_input.deeds_table2, 0),
            ("{table3}", merge_input.deeds_table3, 1),
            ("{table4}", merge_input.deeds_table4, 2),
        )
        for token, deeds, index in secondary:
            if token in line:
                return True, self._secondary(deeds, merge_input.documents, index)
        return False, None

    def render(self, merge_input: MergeInput) -> List[Block]:
        """Merge the template into blocks, one per line or generated table."""
        blocks: List[Block] = []
        for line in self.substitute(merge_input).split("\n"):
            is_table, block = self._table_block(line, merge_input)
            if is_table:
                if block is not None:
                    blocks.append(block)
                continue
            stripped = line.strip()
            if not stripped:
                blocks.append(Blank())
            elif HEADING_PATTERN.match(stripped):
                blocks.append(Heading(line))
            else:
                blocks.append(Paragraph(line))

        log.debug(
            "Preview merged",
            extra={"blocks": len(blocks), "deeds": len(merge_input.deeds), "documents": len(merge_input.documents)},
        )
        return blocks


__all__ = [
    "Block",
    "Blank",
    "DeedTable",
    "DeedTableRow",
    "Heading",
    "MergeEngine",
    "MergeInput",
    "Paragraph",
    "PropertyEntry",
    "PropertySection",
    "EMPTY_DOCUMENTS_MESSAGE",
    "EMPTY_HISTORY_MESSAGE",
    "EMPTY_TEMPLATE_MESSAGE",
    "to_roman",
]
