"""Record stores: untrusted rows out, gate-sealed records in."""

from lexispine.store.memory import InMemoryRecordStore
from lexispine.store.protocol import RecordStore, Row
from lexispine.store.sql import SqlRecordStore, create_lexi_engine

__all__ = ["InMemoryRecordStore", "RecordStore", "Row", "SqlRecordStore", "create_lexi_engine"]
