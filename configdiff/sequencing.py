"""
Request sequencing ("last request wins").

Comparisons may be triggered faster than they finish. Each request is
tagged with an increasing id per client; when an older request completes
after a newer one has started, its result is stale and should be dropped.
There is no cancellation: the pipeline always runs to completion.
"""

import logging
import threading
from collections import OrderedDict
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1024


class RequestSequencer:
    """
    Tracks the newest started request id for each client.

    Bounded: once ``capacity`` clients are tracked, the least recently seen
    one is forgotten (its next request simply starts a fresh sequence).
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        self.capacity = max(1, capacity)
        self._latest: "OrderedDict[str, int]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._latest)

    def _touch(self, client_id: str, request_id: int) -> None:
        self._latest[client_id] = request_id
        self._latest.move_to_end(client_id)
        while len(self._latest) > self.capacity:
            evicted, _ = self._latest.popitem(last=False)
            logger.debug(f"Sequencer evicted client '{evicted}'")

    def next_id(self, client_id: str) -> int:
        """Allocate and register the next request id for ``client_id``."""
        with self._lock:
            request_id = self._latest.get(client_id, 0) + 1
            self._touch(client_id, request_id)
            return request_id

    def begin(self, client_id: str, request_id: Optional[int] = None) -> int:
        """
        Register a started request.

        With an explicit ``request_id`` (supplied by the caller) the newest id
        is kept; an out-of-order older id does not roll the sequence back.
        """
        if request_id is None:
            return self.next_id(client_id)
        with self._lock:
            current = self._latest.get(client_id)
            self._touch(client_id, request_id if current is None else max(current, request_id))
            return request_id

    def latest(self, client_id: str) -> Optional[int]:
        with self._lock:
            return self._latest.get(client_id)

    def is_current(self, client_id: str, request_id: int) -> bool:
        """True when no newer request has been started for ``client_id``."""
        with self._lock:
            latest = self._latest.get(client_id)
        if latest is None:
            return True
        current = request_id >= latest
        if not current:
            logger.debug(f"Discarding stale result {request_id} for client '{client_id}' (latest {latest})")
        return current
