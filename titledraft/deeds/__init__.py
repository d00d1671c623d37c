"""Deed tables: the live-synced manager, client-local columns and date helpers."""

from titledraft.deeds.columns import CustomColumnOverlay
from titledraft.deeds.dates import parse_date_input
from titledraft.deeds.manager import DeedCollectionManager, midpoint_timestamp, table_filter

__all__ = [
    "CustomColumnOverlay",
    "DeedCollectionManager",
    "midpoint_timestamp",
    "parse_date_input",
    "table_filter",
]
