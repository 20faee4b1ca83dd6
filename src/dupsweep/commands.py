"""
Unified command orchestrator for deduplication.
This is the SINGLE source of truth for business logic used by the CLI and by
library callers. Pure Python, no presentation code.
"""
from typing import Callable, List, Optional, Tuple

from dupsweep.core.deduplicator import DeduplicatorImpl
from dupsweep.core.models import DeduplicationParams, DeduplicationStats, Event


class DeduplicationCommand:
    """
    Runs a scan-and-delete pass and collects its events.

    Usage:
        params = DeduplicationParams(root_dir="/data/photos")
        command = DeduplicationCommand()
        events, stats = command.execute(
            params,
            on_event=print_status_line,
            stopped_flag=signal_handler_check
        )
    """

    def __init__(self, deduplicator: Optional[DeduplicatorImpl] = None):
        self._deduplicator = deduplicator or DeduplicatorImpl()
        self._events: List[Event] = []

    def execute(
            self,
            params: DeduplicationParams,
            on_event: Optional[Callable[[Event], None]] = None,
            stopped_flag: Optional[Callable[[], bool]] = None
    ) -> Tuple[List[Event], DeduplicationStats]:
        """
        Execute a run with given parameters.

        Args:
            params: Validated deduplication parameters
            on_event: (event: Event) -> None, called once per event as it happens
            stopped_flag: () -> bool (returns True if operation should stop)

        Returns:
            Tuple of (events, statistics)

        Raises:
            RootDirectoryError: If the root directory is missing or not a directory
        """
        self._events = []

        def collect(event: Event) -> None:
            self._events.append(event)
            if on_event:
                on_event(event)

        stats = self._deduplicator.run(params, on_event=collect, stopped_flag=stopped_flag)
        return list(self._events), stats

    def get_events(self) -> List[Event]:
        """Get events of the last execution."""
        return self._events.copy()  # Return copy to prevent external mutation
