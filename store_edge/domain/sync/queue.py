from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from store_edge.db.schemas import SyncQueueEntry
from store_edge.db.store import LocalStore


@dataclass
class PendingRecord:
    """All queued entries for one record; only the newest snapshot is replayed."""

    table_name: str
    record_id: str
    latest: SyncQueueEntry
    superseded: List[SyncQueueEntry] = field(default_factory=list)

    @property
    def payload(self) -> Dict[str, Any]:
        return self.latest.payload

    @property
    def entry_ids(self) -> List[int]:
        return [entry.id for entry in self.superseded] + [self.latest.id]


class SyncQueue:
    """At-least-once delivery ledger over the local store's ``sync_queue`` table."""

    def __init__(self, store: LocalStore, max_retries: int = 0):
        self._store = store
        self._max_retries = max_retries

    async def pending(self, table_name: str) -> List[PendingRecord]:
        """Records awaiting replay, in the order their first entry was queued.

        A record with several entries in flight resolves last-write-wins by
        creation time. Records that hit the retry ceiling are left out.
        """
        grouped: Dict[str, PendingRecord] = {}
        for entry in await self._store.get_sync_queue(table_name):
            record = grouped.get(entry.record_id)
            if record is None:
                grouped[entry.record_id] = PendingRecord(table_name, entry.record_id, entry)
            else:
                # entries come back ordered by (created_at, id)
                record.superseded.append(record.latest)
                record.latest = entry

        return [record for record in grouped.values() if not self.exhausted(record.latest.retry_count)]

    async def entries_for(self, table_name: str, record_id: str) -> List[SyncQueueEntry]:
        return [entry for entry in await self._store.get_sync_queue(table_name) if entry.record_id == record_id]

    async def acknowledge(self, record: PendingRecord, at: datetime) -> None:
        await self._store.mark_synced(record.table_name, record.record_id, at, record.entry_ids)

    async def fail(self, table_name: str, record_id: str, message: str) -> int:
        """Record a failed replay against the record's newest entry; returns its retry count."""
        entries = await self.entries_for(table_name, record_id)
        if not entries:
            return 0
        return await self._store.record_sync_failure(entries[-1].id, message)

    async def discard_superseded(self, table_name: str, record_id: str, before: datetime) -> int:
        return await self._store.remove_record_from_sync_queue(table_name, record_id, before)

    async def size(self, table_name: Optional[str] = None) -> int:
        return len(await self._store.get_sync_queue(table_name))

    def exhausted(self, retry_count: int) -> bool:
        return bool(self._max_retries) and retry_count >= self._max_retries
