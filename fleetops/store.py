"""
In-memory entity store.

The store owns every Vehicle, Driver, Trip, MaintenanceRecord and
FuelLogEntry. Other components hold ids and resolve them through it.
Entities are frozen dataclasses; a change is a new instance committed in a
batch of Mutations, each carrying the version it was read at. A batch is
applied in full or not at all.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from .driver import Driver
from .errors import ConflictError, NotFoundError
from .fuel_log_entry import FuelLogEntry
from .maintenance_record import MaintenanceRecord
from .trip import Trip, parse_reference
from .vehicle import Vehicle

logger = logging.getLogger(__name__)

KINDS = (Vehicle, Driver, Trip, MaintenanceRecord, FuelLogEntry)


@dataclass(frozen=True)
class Mutation:
    """
    A new entity version to commit.

    expected_version is the version the entity was read at, or None when
    the entity is being inserted.
    """

    entity: Any
    expected_version: Optional[int] = None


@dataclass(frozen=True)
class FleetSnapshot:
    """Consistent read-only view of every entity at one point in time."""

    vehicles: Tuple[Vehicle, ...]
    drivers: Tuple[Driver, ...]
    trips: Tuple[Trip, ...]
    maintenance: Tuple[MaintenanceRecord, ...]
    fuel_logs: Tuple[FuelLogEntry, ...]


class FleetStore:
    """Current-state records for the whole fleet."""

    def __init__(self):
        self._lock = threading.RLock()
        self._records: Dict[type, Dict[int, Any]] = {kind: {} for kind in KINDS}
        self._versions: Dict[Tuple[type, int], int] = {}
        self._last_ids: Dict[type, int] = {kind: 0 for kind in KINDS}
        self._sequence_lock = threading.Lock()
        self._sequences: Dict[int, int] = {}
        # key -> [lock, number of callers holding or waiting on it]
        self._entity_locks: Dict[Tuple[str, str], list] = {}
        self._entity_locks_guard = threading.Lock()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, kind: type, entity_id: int):
        """Look up an entity by id. Raises NotFoundError."""
        return self.get_versioned(kind, entity_id)[0]

    def get_versioned(self, kind: type, entity_id: int) -> Tuple[Any, int]:
        """Look up an entity together with its current version."""
        self._check_kind(kind)
        with self._lock:
            entity = self._records[kind].get(entity_id)
            if entity is None:
                raise NotFoundError(kind.__name__, entity_id)
            return entity, self._versions[(kind, entity_id)]

    def list(
        self, kind: type, predicate: Optional[Callable[[Any], bool]] = None
    ) -> List[Any]:
        """All entities of a kind, ordered by id, optionally filtered."""
        self._check_kind(kind)
        with self._lock:
            entities = sorted(self._records[kind].values(), key=lambda e: e.id)
        if predicate is None:
            return entities
        return [e for e in entities if predicate(e)]

    def count(self, kind: type) -> int:
        self._check_kind(kind)
        with self._lock:
            return len(self._records[kind])

    def snapshot(self) -> FleetSnapshot:
        """Capture every entity under one lock acquisition."""
        with self._lock:
            return FleetSnapshot(
                vehicles=tuple(self.list(Vehicle)),
                drivers=tuple(self.list(Driver)),
                trips=tuple(self.list(Trip)),
                maintenance=tuple(self.list(MaintenanceRecord)),
                fuel_logs=tuple(self.list(FuelLogEntry)),
            )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def commit(self, mutations: Iterable[Mutation]) -> None:
        """
        Apply a batch of mutations atomically.

        Every mutation is checked against the stored version before any is
        written. A stale version, an insert over an existing id, or an
        update of a missing entity raises ConflictError and leaves the
        store untouched.
        """
        batch = list(mutations)
        with self._lock:
            seen = set()
            for mutation in batch:
                kind = type(mutation.entity)
                self._check_kind(kind)
                key = (kind, mutation.entity.id)
                if key in seen:
                    raise ConflictError(
                        f"{kind.__name__} {mutation.entity.id} appears twice in one commit"
                    )
                seen.add(key)
                current = self._versions.get(key)
                if mutation.expected_version is None:
                    if current is not None:
                        raise ConflictError(
                            f"{kind.__name__} {mutation.entity.id} already exists"
                        )
                elif current != mutation.expected_version:
                    raise ConflictError(
                        f"{kind.__name__} {mutation.entity.id} changed since it was read"
                    )

            for mutation in batch:
                kind = type(mutation.entity)
                key = (kind, mutation.entity.id)
                self._records[kind][mutation.entity.id] = mutation.entity
                self._versions[key] = self._versions.get(key, 0) + 1
                if mutation.entity.id > self._last_ids[kind]:
                    self._last_ids[kind] = mutation.entity.id

        logger.debug("Committed %d mutation(s)", len(batch))

    def add(self, entity) -> None:
        """Insert a single new entity."""
        self.commit([Mutation(entity)])

    def next_id(self, kind: type) -> int:
        """Reserve the next integer id for a kind."""
        self._check_kind(kind)
        with self._lock:
            self._last_ids[kind] += 1
            return self._last_ids[kind]

    def next_trip_sequence(self, year: int) -> int:
        """
        Reserve the next trip reference sequence number for a year.

        The counter starts after the highest sequence already used by a
        stored trip for that year, so loaded fleets keep counting upward.
        """
        with self._sequence_lock:
            if year not in self._sequences:
                used = [0]
                for trip in self.list(Trip):
                    parsed = parse_reference(trip.reference)
                    if parsed and parsed[0] == year:
                        used.append(parsed[1])
                self._sequences[year] = max(used)
            self._sequences[year] += 1
            return self._sequences[year]

    # -------------------------------------------------------------------------
    # Per-entity locking
    # -------------------------------------------------------------------------

    @contextmanager
    def locked(self, *keys: Tuple[Any, Any]) -> Iterator[None]:
        """
        Hold the write locks for the given (kind, id) pairs.

        kind is an entity type or, for locks that guard something other
        than one entity (such as a license plate), a plain string.

        Locks are taken in a fixed order so two transitions over the same
        entities cannot deadlock, and are released on every exit path.
        A lock is dropped once no caller holds or waits on it.
        """
        ordered = sorted(
            {(kind if isinstance(kind, str) else kind.__name__, str(key)) for kind, key in keys}
        )
        with self._entity_locks_guard:
            entries = []
            for key in ordered:
                entry = self._entity_locks.setdefault(key, [threading.Lock(), 0])
                entry[1] += 1
                entries.append(entry)
        acquired = []
        try:
            for lock, _ in entries:
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            with self._entity_locks_guard:
                for key, entry in zip(ordered, entries):
                    entry[1] -= 1
                    if entry[1] == 0:
                        del self._entity_locks[key]

    @staticmethod
    def _check_kind(kind: type) -> None:
        if kind not in KINDS:
            raise TypeError(f"Not a fleet entity type: {kind!r}")
