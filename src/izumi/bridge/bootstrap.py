"""
Bootstrap ordering between the two graphs.

    COLLECTING --merge()--> MERGING --first request--> ACTIVE

The ResolutionTable is built once from configuration metadata alone, so a
graph that is still collecting can already be served from it. Activation,
which lets the declarative graph finish its own lifecycle, runs exactly once
no matter how many threads race for the first request.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from enum import Enum

from .dedupe import ResolutionTable
from .errors import BridgeError
from .keys import BindingKey
from .model import Provider

logger = logging.getLogger(__name__)


class BootstrapState(Enum):
    COLLECTING = "collecting"
    MERGING = "merging"
    ACTIVE = "active"


class AtomicFlag:
    """A boolean with compare-and-set semantics."""

    def __init__(self, value: bool = False):
        self._value = value
        self._lock = threading.Lock()

    def get(self) -> bool:
        return self._value

    def compare_and_set(self, expected: bool, new: bool) -> bool:
        with self._lock:
            if self._value != expected:
                return False
            self._value = new
            return True


class BootstrapScheduler:
    """Drives the COLLECTING → MERGING → ACTIVE transitions."""

    def __init__(
        self,
        merge: Callable[[], ResolutionTable],
        on_activate: Callable[[ResolutionTable], None] | None = None,
    ):
        self._merge = merge
        self._on_activate = on_activate
        self._state = BootstrapState.COLLECTING
        self._table: ResolutionTable | None = None
        self._merge_lock = threading.RLock()
        self._merging = False
        self._activated = AtomicFlag()

    @property
    def state(self) -> BootstrapState:
        return self._state

    @property
    def table(self) -> ResolutionTable | None:
        return self._table

    def merge(self) -> ResolutionTable:
        """Build the ResolutionTable once and return it."""
        table = self._table
        if table is not None:
            return table

        with self._merge_lock:
            if self._table is not None:
                return self._table
            if self._merging:
                raise BridgeError("Resolution table requested while it is being merged")
            self._merging = True
            self._state = BootstrapState.MERGING
            logger.info("Merging component graphs")
            try:
                self._table = self._merge()
            except Exception:
                self._state = BootstrapState.COLLECTING
                raise
            finally:
                self._merging = False
            logger.info("Merged %r", self._table)
            return self._table

    def activate(self) -> bool:
        """
        Transition to ACTIVE. Returns True only for the caller that performed it.

        Other callers fall through immediately, without waiting for the
        activation callback to finish.
        """
        table = self.merge()
        if not self._activated.compare_and_set(False, True):
            return False
        self._state = BootstrapState.ACTIVE
        logger.info("Activating component graphs")
        if self._on_activate is not None:
            self._on_activate(table)
        return True

    @property
    def is_active(self) -> bool:
        return self._activated.get()

    def snapshot_provider(self, key: BindingKey) -> Provider:
        """Serve `key` from the merged table without triggering activation."""
        return self.merge().provider_for(key)

    def request(self, key: BindingKey) -> Provider:
        """Serve a real resolution request, activating the graphs on first use."""
        self.activate()
        return self.merge().provider_for(key)
