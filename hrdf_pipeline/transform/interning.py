"""Intern native identifiers into dense internal handles."""

import logging
from collections.abc import Callable, Hashable, Iterable
from typing import Generic, TypeVar

from hrdf_pipeline.hrdf.records import Record
from hrdf_pipeline.transform.context import ResolutionContext

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
R = TypeVar("R", bound=Record)


class Interner(Generic[K]):
    """Native id <-> handle mapping for one registry.

    Handles are assigned in sorted id order so they do not depend on the
    order in which files or lines were read.
    """

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self.id_map: dict[K, int] = {}
        self.internal_to_id: list[K] = []

    def __len__(self) -> int:
        return len(self.internal_to_id)

    def __contains__(self, native_id: object) -> bool:
        return native_id in self.id_map

    def get(self, native_id: K) -> int | None:
        return self.id_map.get(native_id)

    def native(self, handle: int) -> K:
        return self.internal_to_id[handle]

    def intern(
        self,
        records: Iterable[R],
        key: Callable[[R], K],
        context: ResolutionContext,
    ) -> list[R]:
        """Register primary records; returns them in handle order.

        When an id appears more than once the earliest record (by file and
        line) wins and each later one is reported as a duplicate key.
        """
        first_seen: dict[K, R] = {}
        for record in sorted(records, key=lambda r: (r.file, r.line)):
            native_id = key(record)
            if native_id in first_seen:
                context.duplicate(record, self.kind, native_id, first_seen[native_id])
                continue
            first_seen[native_id] = record

        ordered = sorted(first_seen.items(), key=lambda item: item[0])
        self.internal_to_id = [native_id for native_id, _ in ordered]
        self.id_map = {native_id: handle for handle, native_id in enumerate(self.internal_to_id)}
        logger.debug(f"Interned {len(self.internal_to_id)} {self.kind} ids")
        return [record for _, record in ordered]
