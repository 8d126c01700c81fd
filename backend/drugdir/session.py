import logging
import random
import time
from typing import Callable, Optional, Tuple

import httpx

from . import clients, config
from .models import (
    DiscoverQuery,
    DrugRecord,
    FetchEmpty,
    FetchFailure,
    FetchOutcome,
    FetchSuccess,
    Query,
    SessionState,
    make_query,
)

logger = logging.getLogger("drug_directory.session")


class ClickCounter:
    """Counts record selections; pass its increment as a session's on_select."""

    def __init__(self):
        self.count = 0

    def increment(self, record: Optional[DrugRecord] = None) -> int:
        self.count += 1
        return self.count


class DirectorySession:
    """
    State behind one directory screen: the loaded records, loading/error flags and
    the record being looked at.

    Loads can overlap; each takes the next sequence number and only the latest one
    issued gets to write its outcome. Late results from superseded loads are dropped.
    """

    def __init__(
        self,
        session: httpx.AsyncClient,
        max_attempts: Optional[int] = None,
        rng: Optional[random.Random] = None,
        on_select: Optional[Callable[[DrugRecord], object]] = None,
        base_delay: Optional[float] = None,
    ):
        self._http = session
        self._max_attempts = config.FETCH_ATTEMPTS if max_attempts is None else max_attempts
        self._base_delay = base_delay
        self._rng = rng
        self._on_select = on_select

        self._records: Tuple[DrugRecord, ...] = ()
        self._loading = True
        self._error: Optional[str] = None
        self._selected: Optional[DrugRecord] = None
        self._seq = 0

    @property
    def state(self) -> SessionState:
        return SessionState(
            records=self._records,
            loading=self._loading,
            error=self._error,
            selected=self._selected,
        )

    async def discover(self) -> SessionState:
        return await self._load(DiscoverQuery())

    async def search(self, term: Optional[str]) -> SessionState:
        return await self._load(make_query(term))

    def select(self, record: DrugRecord) -> None:
        if self._selected != record:
            self._selected = record
        if self._on_select is not None:
            self._on_select(record)

    def dismiss(self) -> None:
        self._selected = None

    async def _load(self, query: Query) -> SessionState:
        self._seq += 1
        seq = self._seq
        self._loading = True
        self._error = None
        start = time.perf_counter()

        try:
            outcome = await clients.fetch_drugs(
                self._http,
                query,
                max_attempts=self._max_attempts,
                base_delay=self._base_delay,
                rng=self._rng,
            )
        finally:
            # only the latest load may clear loading
            if seq == self._seq:
                self._loading = False

        elapsed = time.perf_counter() - start
        if seq != self._seq:
            logger.info(f"discarding stale outcome seq={seq} latest={self._seq} query={query!r}")
            return self.state

        self._apply(outcome)
        logger.info(
            f"query={query!r} outcome={outcome.kind} records={len(self._records)} "
            f"attempts={outcome.attempts} elapsed={elapsed:.2f}s"
        )
        return self.state

    def _apply(self, outcome: FetchOutcome) -> None:
        if isinstance(outcome, FetchSuccess):
            self._records = outcome.records
            self._error = None
        elif isinstance(outcome, FetchEmpty):
            self._records = ()
            self._error = clients.NO_RESULTS_MESSAGE
        elif isinstance(outcome, FetchFailure):
            self._records = ()
            self._error = outcome.message
        self._loading = False
