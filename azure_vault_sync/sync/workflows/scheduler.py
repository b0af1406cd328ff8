"""Daily scheduling of sync passes."""
import logging
import threading
from datetime import datetime, time, timedelta
from typing import Callable, Optional

from ..domains.models import PassSummary, ScheduleState

logger = logging.getLogger(__name__)


def compute_next_run(now: datetime, time_of_day: time) -> datetime:
    """
    Next occurrence of a daily time, strictly after now.

    Uses the naive local wall clock; DST changes and clock adjustments are
    not compensated for.
    """
    today_scheduled = datetime.combine(now.date(), time_of_day)
    if today_scheduled > now:
        return today_scheduled
    return today_scheduled + timedelta(days=1)


class Scheduler:
    """
    Drives sync passes either once or every day at a fixed time.

    The mode is fixed at construction: without a time of day the pass runs
    exactly once. With one, passes repeat until the stop event is set.
    """

    def __init__(
        self,
        run_pass: Callable[[], PassSummary],
        time_of_day: Optional[time] = None,
        clock: Callable[[], datetime] = datetime.now,
        pause_seconds: float = 1.0,
    ):
        self.run_pass = run_pass
        self.time_of_day = time_of_day
        self.clock = clock
        self.pause_seconds = pause_seconds

    @property
    def recurring(self) -> bool:
        return self.time_of_day is not None

    def run(self, stop_event: Optional[threading.Event] = None) -> Optional[PassSummary]:
        """
        Run in the configured mode.

        Returns:
            The pass summary in run-once mode, None in recurring mode
        """
        if stop_event is None:
            stop_event = threading.Event()

        if not self.recurring:
            logger.info("No scheduling time provided. Running the transfer once.")
            return self.run_pass()

        logger.info(f"Scheduling enabled. The transfer will run daily at {self.time_of_day:%H:%M:%S}.")
        self.run_forever(ScheduleState(daily_time=self.time_of_day), stop_event)
        return None

    def run_forever(self, state: ScheduleState, stop_event: threading.Event) -> None:
        """Wait for each next run and execute it until stop_event is set."""
        while not stop_event.is_set():
            now = self.clock()
            state.last_computed_next_run = compute_next_run(now, state.daily_time)
            delay = (state.last_computed_next_run - now).total_seconds()
            logger.info(
                f"Next run scheduled at {state.last_computed_next_run:%Y-%m-%d %H:%M:%S} "
                f"(in {delay / 60:.1f} minutes)."
            )

            if stop_event.wait(delay):
                break

            try:
                self.run_pass()
            except Exception:
                logger.exception("Sync pass failed unexpectedly, waiting for the next run")

            # Guards against re-running within the same scheduled instant
            if stop_event.wait(self.pause_seconds):
                break

        logger.info("Scheduler stopped.")
