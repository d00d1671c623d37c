"""
Deed table manager.

One manager owns the ordered rows of one deed table (a `table_type` tag) and
keeps them consistent between three sources of change:

- local optimistic edits, written to the store after a debounce;
- store-confirmed results of inserts, deletes and bulk copies;
- the live change feed, which also echoes this client's own writes.

Echo handling is driven by per-manager state: ids being edited, ids recently
inserted at a position, and a flag raised while a bulk copy runs. Feed events
are queued on an inbox and applied one at a time against current state.

Usage:
    async with DeedCollectionManager(store, catalog, "table2") as deeds:
        await deeds.insert_after(0)
        deeds.update_field(deeds.records[1].id, "executed_by", "A. Kumar")
"""

from __future__ import annotations

import asyncio
import contextlib
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Set

from pydantic import ValidationError as PydanticValidationError

from titledraft.config import SyncTimings, get_settings
from titledraft.deeds.dates import parse_date_input
from titledraft.domain.models import (
    DEEDS_TABLE,
    EDITABLE_DEED_FIELDS,
    LEGACY_TABLE_TYPE,
    ChangeEvent,
    ChangeType,
    DeedRecord,
    table_type_matches,
)
from titledraft.exceptions import StoreError, ValidationError
from titledraft.infrastructure.record_store import QueryFilter, RecordStore, Unsubscribe, sort_key
from titledraft.notifications import LogNotifier, Notifier
from titledraft.templates.catalog import TemplateCatalog
from titledraft.utils.logging import get_logger
from titledraft.utils.scheduling import Debouncer, call_later

log = get_logger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)

# Legacy flat columns that newer records keep in custom_fields instead.
_LEGACY_CUSTOM_KEYS = {"executedBy": "executed_by", "inFavourOf": "in_favour_of"}

_CUSTOM_FIELDS_KEY = "custom_fields"


def table_filter(table_type: str) -> QueryFilter:
    """Store filter for a deed table; the legacy table also matches untagged rows."""
    null_matches = frozenset({"table_type"}) if table_type == LEGACY_TABLE_TYPE else frozenset()
    return QueryFilter(equals={"table_type": table_type}, null_matches=null_matches)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def midpoint_timestamp(left: datetime, right: datetime) -> datetime:
    """
    Integer-millisecond midpoint of two timestamps.

    Falls back to the exact midpoint when the neighbours are less than two
    milliseconds apart, so the result stays strictly between them whenever
    they differ.
    """
    left, right = _aware(left), _aware(right)
    left_ms = (left - _EPOCH) // _ONE_MS
    right_ms = (right - _EPOCH) // _ONE_MS
    middle = _EPOCH + timedelta(milliseconds=(left_ms + right_ms) // 2)
    if min(left, right) < middle < max(left, right):
        return middle
    return left + (right - left) / 2


class DeedCollectionManager:
    """
    Ordered, live-synced list of DeedRecords for one table type.

    Parameters
    ----------
    store : RecordStore
        System of record; shared with every other table and client.
    catalog : TemplateCatalog
        Deed type catalogs used to shape custom fields.
    table_type : str
        Tag of the table this manager owns.
    notifier : Notifier | None
        Receives one transient message per user-visible outcome.
    timings : SyncTimings | None
        Debounce and suppression delays; defaults come from settings.
    """

    def __init__(
        self,
        store: RecordStore,
        catalog: TemplateCatalog,
        table_type: str = LEGACY_TABLE_TYPE,
        *,
        notifier: Optional[Notifier] = None,
        timings: Optional[SyncTimings] = None,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.table_type = table_type
        self.notifier = notifier or LogNotifier()
        self.timings = timings or SyncTimings.from_settings(get_settings())

        self._records: List[DeedRecord] = []
        self._debouncer = Debouncer(self.timings.debounce)
        self._actively_editing: Set[str] = set()
        self._recently_inserted: Set[str] = set()
        self._copying = False

        self._inbox: asyncio.Queue[ChangeEvent] = asyncio.Queue()
        self._consumer: Optional[asyncio.Task[None]] = None
        self._unsubscribe: Optional[Unsubscribe] = None

    # ------------------------------------------------------------------ state

    @property
    def records(self) -> List[DeedRecord]:
        """Snapshot of the visible rows, in display order."""
        return list(self._records)

    @property
    def is_copying(self) -> bool:
        return self._copying

    def get(self, record_id: str) -> Optional[DeedRecord]:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def index_of(self, record_id: str) -> int:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        return -1

    def is_actively_editing(self, record_id: str) -> bool:
        return record_id in self._actively_editing

    def has_pending_write(self, record_id: str) -> bool:
        return self._debouncer.has_pending(lambda key: key[0] == record_id)

    def _log_extra(self, **extra: Any) -> Dict[str, Any]:
        return {"table_type": self.table_type, **extra}

    def _replace_local(self, record_id: str, changes: Mapping[str, Any]) -> Optional[DeedRecord]:
        updated: Optional[DeedRecord] = None
        records = []
        for record in self._records:
            if record.id == record_id:
                record = record.model_copy(update=dict(changes))
                updated = record
            records.append(record)
        self._records = records
        return updated

    def _append(self, records: List[DeedRecord]) -> None:
        known = {record.id for record in self._records}
        for record in records:
            if record.id not in known:
                self._records.append(record)
                known.add(record.id)

    def _blank_record(self) -> Dict[str, Any]:
        return {
            "deed_type": "",
            "executed_by": "",
            "in_favour_of": "",
            "date": None,
            "document_number": "",
            "nature_of_doc": "",
            "custom_fields": {},
            "table_type": self.table_type,
        }

    # -------------------------------------------------------------- lifecycle

    async def load(self) -> List[DeedRecord]:
        """Replace the local list with the store's rows for this table, oldest first."""
        try:
            rows = await self.store.query(DEEDS_TABLE, table_filter(self.table_type), order_by="created_at")
        except StoreError:
            log.exception("[DEED LOAD FAILED]", extra=self._log_extra())
            self.notifier.error("Failed to load deeds")
            return self.records

        records = [
            DeedRecord.model_validate(row)
            for row in rows
            if table_type_matches(row.get("table_type"), self.table_type)
        ]
        records.sort(key=lambda record: sort_key(record.created_at))
        self._records = records
        log.info("[DEED LOAD] %d deed(s)", len(records), extra=self._log_extra(rows=len(records)))
        return self.records

    async def start(self) -> None:
        """Subscribe to the live feed, load the table, then start applying feed events."""
        if self._unsubscribe is None:
            self._unsubscribe = await self.store.subscribe(DEEDS_TABLE, self._enqueue)
        await self.load()
        if self._consumer is None:
            self._consumer = asyncio.create_task(self._consume(), name=f"deed-feed-{self.table_type}")

    async def close(self) -> None:
        """Send pending writes, stop listening and stop the feed consumer."""
        await self._debouncer.flush()
        if self._unsubscribe is not None:
            await self._unsubscribe()
            self._unsubscribe = None
        if self._consumer is not None:
            self._consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer
            self._consumer = None

    async def __aenter__(self) -> "DeedCollectionManager":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def flush(self) -> None:
        """Send every pending debounced write now and wait for them to finish."""
        await self._debouncer.flush()

    async def drain_feed(self) -> None:
        """Wait until every queued feed event has been applied."""
        if self._consumer is None:
            while not self._inbox.empty():
                event = self._inbox.get_nowait()
                try:
                    self.apply_change(event)
                finally:
                    self._inbox.task_done()
            return
        await self._inbox.join()

    # -------------------------------------------------------------- live feed

    def _enqueue(self, event: ChangeEvent) -> None:
        if event.table != DEEDS_TABLE:
            return
        # Inserts committed while a copy runs are dropped on arrival, not when consumed.
        if event.type is ChangeType.INSERT and self._copying:
            log.debug("[FEED SKIP] insert during copy", extra=self._log_extra(deed_id=event.record_id))
            return
        self._inbox.put_nowait(event)

    async def _consume(self) -> None:
        while True:
            event = await self._inbox.get()
            try:
                self.apply_change(event)
            except Exception:  # noqa: BLE001 - one bad event must not stop the feed
                log.exception("[FEED ERROR]", extra=self._log_extra(event_type=event.type.value))
            finally:
                self._inbox.task_done()

    def apply_change(self, event: ChangeEvent) -> None:
        """Apply one live change notification to the local list."""
        record_id = event.record_id
        if record_id is None:
            log.warning("[FEED SKIP] notification without id", extra=self._log_extra())
            return

        if event.type is ChangeType.DELETE:
            self._records = [record for record in self._records if record.id != record_id]
            return

        try:
            incoming = DeedRecord.model_validate(event.record)
        except PydanticValidationError as exc:
            log.warning("[FEED SKIP] malformed deed", extra=self._log_extra(deed_id=record_id, error=str(exc)))
            return

        if event.type is ChangeType.INSERT:
            if self._copying:
                log.debug("[FEED SKIP] insert during copy", extra=self._log_extra(deed_id=record_id))
                return
            if record_id in self._recently_inserted:
                log.debug("[FEED SKIP] positional insert echo", extra=self._log_extra(deed_id=record_id))
                return
            if incoming.belongs_to(self.table_type):
                self._append([incoming])
            return

        if record_id in self._actively_editing or self.has_pending_write(record_id):
            log.debug("[FEED SKIP] update for deed with active edits", extra=self._log_extra(deed_id=record_id))
            return
        self._records = [
            record
            for record in (incoming if r.id == record_id else r for r in self._records)
            if record.belongs_to(self.table_type)
        ]

    # ------------------------------------------------------------- operations

    async def add_record(self) -> Optional[DeedRecord]:
        """
        Insert a blank deed for this table.

        The local list is not touched: the row appears when its insert
        notification arrives.
        """
        try:
            row = await self.store.insert(DEEDS_TABLE, self._blank_record())
        except StoreError as exc:
            log.exception("[DEED INSERT FAILED]", extra=self._log_extra())
            self.notifier.error(f"Failed to add deed: {exc}")
            return None
        record = DeedRecord.model_validate(row)
        log.info("[DEED INSERT] appended", extra=self._log_extra(deed_id=record.id))
        self.notifier.success("Deed added")
        return record

    def _ordering_key(self, left: Optional[DeedRecord], right: Optional[DeedRecord]) -> datetime:
        gap = timedelta(milliseconds=self.timings.insert_gap_ms)
        left_ts = left.created_at if left is not None else None
        right_ts = right.created_at if right is not None else None
        if left_ts is not None and right_ts is not None:
            return midpoint_timestamp(left_ts, right_ts)
        if left_ts is not None:
            return _aware(left_ts) + gap
        return datetime.now(timezone.utc)

    def _splice_position(self, left: Optional[DeedRecord], right: Optional[DeedRecord]) -> int:
        # Neighbours are looked up again: the list may have changed while the store calls ran.
        if left is not None:
            index = self.index_of(left.id)
            if index >= 0:
                return index + 1
        if right is not None:
            index = self.index_of(right.id)
            if index >= 0:
                return index
        return len(self._records)

    async def insert_after(self, index: int) -> Optional[DeedRecord]:
        """
        Insert a blank deed directly after the row at `index`.

        A negative index, the last index and anything past it append
        instead. The new row is spliced into the local list immediately and
        its own insert echo is suppressed.
        """
        records = self._records
        if not records or index < 0 or index >= len(records) - 1:
            return await self.add_record()

        left, right = records[index], records[index + 1]
        created_at = self._ordering_key(left, right)

        try:
            row = await self.store.insert(DEEDS_TABLE, self._blank_record())
        except StoreError as exc:
            log.exception("[DEED INSERT FAILED]", extra=self._log_extra(after_index=index))
            self.notifier.error(f"Failed to insert deed: {exc}")
            return None

        record_id = str(row["id"])
        self._recently_inserted.add(record_id)
        call_later(self.timings.insert_suppression, self._recently_inserted.discard, record_id)

        try:
            # The insert path does not honour client-supplied timestamps.
            await self.store.update(DEEDS_TABLE, record_id, {"created_at": created_at})
        except StoreError:
            log.exception("[DEED ORDER FAILED] local order kept", extra=self._log_extra(deed_id=record_id))

        record = DeedRecord.model_validate({**row, "created_at": created_at})
        self._records = [existing for existing in self._records if existing.id != record_id]
        self._records.insert(self._splice_position(left, right), record)
        log.info(
            "[DEED INSERT] positional",
            extra=self._log_extra(deed_id=record_id, after_index=index, created_at=created_at.isoformat()),
        )
        self.notifier.success("Deed inserted")
        return record

    async def remove_record(self, record_id: str) -> bool:
        """
        Delete a deed from the store.

        The row leaves the local list when the delete notification arrives.
        """
        try:
            await self.store.delete(DEEDS_TABLE, record_id)
        except StoreError:
            log.exception("[DEED DELETE FAILED]", extra=self._log_extra(deed_id=record_id))
            self.notifier.error("Failed to remove deed")
            return False
        self._debouncer.cancel_matching(lambda key: key[0] == record_id)
        log.info("[DEED DELETE]", extra=self._log_extra(deed_id=record_id))
        return True

    def update_field(self, record_id: str, field: str, value: Optional[str]) -> Optional[DeedRecord]:
        """
        Change a flat field locally and schedule a debounced write.

        Changing `deed_type` also resets `custom_fields` to blank values for
        the new type's catalog keys; both changes are written together.
        `date` takes `dd-mm-yyyy` or ISO input; blank clears it and anything
        else is ignored, returning None.
        Must be called with a running event loop.
        """
        if field not in EDITABLE_DEED_FIELDS:
            raise ValidationError(f"Unknown deed field '{field}'", field=field)
        if self.get(record_id) is None:
            log.warning("[DEED UPDATE SKIP] unknown deed", extra=self._log_extra(deed_id=record_id, field=field))
            return None

        changes: Dict[str, Any]
        if field == "date":
            text = (value or "").strip()
            iso = parse_date_input(text) if text else None
            if text and iso is None:
                log.debug("Ignoring malformed date input", extra=self._log_extra(deed_id=record_id, value=value))
                return None
            changes = {"date": iso}
        else:
            changes = {field: value or ""}
        if field == "deed_type":
            changes[_CUSTOM_FIELDS_KEY] = {key: "" for key in self.catalog.custom_field_keys(value or "")}

        self._actively_editing.add(record_id)
        updated = self._replace_local(record_id, changes)
        self._debouncer.schedule((record_id, field), lambda: self._write(record_id, changes))
        return updated

    def update_custom_field(self, record_id: str, key: str, value: str) -> Optional[DeedRecord]:
        """Change one custom field locally and schedule a debounced write of the whole map."""
        record = self.get(record_id)
        if record is None:
            log.warning("[DEED UPDATE SKIP] unknown deed", extra=self._log_extra(deed_id=record_id, field=key))
            return None
        self._actively_editing.add(record_id)
        updated = self._replace_local(record_id, {_CUSTOM_FIELDS_KEY: {**record.custom_fields, key: value}})
        self._debouncer.schedule(
            (record_id, _CUSTOM_FIELDS_KEY), lambda: self._write_custom_fields(record_id)
        )
        return updated

    def set_date_from_input(self, record_id: str, text: str) -> bool:
        """
        Apply a typed date. Blank input clears the date to Nil; input that is
        not a valid date is ignored and the previous value kept.
        """
        return self.update_field(record_id, "date", text) is not None

    def custom_field_inputs(self, record_id: str) -> Dict[str, str]:
        """Dynamic placeholder inputs for the record's deed type, with current values."""
        record = self.get(record_id)
        if record is None:
            return {}
        inputs: Dict[str, str] = {}
        for name in self.catalog.dynamic_placeholders(record.deed_type):
            value = record.custom_fields.get(name, "")
            if not value and name in _LEGACY_CUSTOM_KEYS:
                value = getattr(record, _LEGACY_CUSTOM_KEYS[name])
            inputs[name] = value
        return inputs

    async def _write_custom_fields(self, record_id: str) -> None:
        # Read at fire time so interleaved edits to other keys are not lost.
        record = self.get(record_id)
        if record is None:
            self._actively_editing.discard(record_id)
            return
        await self._write(record_id, {_CUSTOM_FIELDS_KEY: dict(record.custom_fields)})

    async def _write(self, record_id: str, fields: Mapping[str, Any]) -> None:
        try:
            await self.store.update(DEEDS_TABLE, record_id, fields)
            log.debug("[DEED WRITE]", extra=self._log_extra(deed_id=record_id, fields=sorted(fields)))
        except StoreError:
            log.exception("[DEED WRITE FAILED]", extra=self._log_extra(deed_id=record_id, fields=sorted(fields)))
            self.notifier.error("Failed to update deed")
        finally:
            # Outlive the write long enough to absorb its echo.
            call_later(self.timings.editing_release, self._actively_editing.discard, record_id)

    async def copy_from_table(self, source_table_type: str) -> List[DeedRecord]:
        """
        Copy the source table's deeds that this table does not have yet.

        A deed counts as already copied when (deed_type, executed_by,
        in_favour_of, date, document_number) match an existing row. Copies are
        inserted one by one in source order and appended locally in that same
        order; feed inserts are ignored until the copy ends.
        """
        self._copying = True
        inserted: List[DeedRecord] = []
        completed = False
        log.info("[COPY START]", extra=self._log_extra(source=source_table_type))
        try:
            source_rows = await self.store.query(
                DEEDS_TABLE, table_filter(source_table_type), order_by="created_at"
            )
            source = [
                DeedRecord.model_validate(row)
                for row in source_rows
                if table_type_matches(row.get("table_type"), source_table_type)
            ]
            if not source:
                self.notifier.info("No deeds found in the source table to copy")
                return []

            existing_rows = await self.store.query(
                DEEDS_TABLE, table_filter(self.table_type), order_by="created_at"
            )
            existing_keys = {
                DeedRecord.model_validate(row).duplicate_key()
                for row in existing_rows
                if table_type_matches(row.get("table_type"), self.table_type)
            }
            pending = [deed for deed in source if deed.duplicate_key() not in existing_keys]
            if not pending:
                self.notifier.info("All deeds from source table have already been copied")
                return []

            for deed in pending:
                row = await self.store.insert(
                    DEEDS_TABLE,
                    {
                        "deed_type": deed.deed_type,
                        "executed_by": deed.executed_by,
                        "in_favour_of": deed.in_favour_of,
                        "date": deed.date,
                        "document_number": deed.document_number,
                        "nature_of_doc": deed.nature_of_doc,
                        "custom_fields": dict(deed.custom_fields),
                        "table_type": self.table_type,
                    },
                )
                record = DeedRecord.model_validate(row)
                self._recently_inserted.add(record.id)
                inserted.append(record)
            completed = True
        except StoreError:
            log.exception(
                "[COPY FAILED]",
                extra=self._log_extra(source=source_table_type, copied=len(inserted)),
            )
            self.notifier.error("Failed to copy deeds from previous table")
        finally:
            self._copying = False
            # Rows already written stay visible even when a later insert failed.
            self._append(inserted)
            for record in inserted:
                call_later(self.timings.copy_suppression, self._recently_inserted.discard, record.id)

        if completed:
            log.info("[COPY COMPLETE]", extra=self._log_extra(source=source_table_type, copied=len(inserted)))
            self.notifier.success(f"Copied {len(inserted)} new deed(s) successfully")
        return inserted


__all__ = ["DeedCollectionManager", "midpoint_timestamp", "table_filter"]
