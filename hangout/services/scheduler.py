"""
Background timers for the expiry sweep and the nightly auto-checkout.

Each task runs on its own daemon thread. A tick that fires while the
previous one is still running is skipped, and a failing tick is logged and
retried on the next schedule.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from loguru import logger
from sqlalchemy.orm import Session

from hangout.core.checkin_config import AUTO_CHECKOUT_HOUR, AUTO_CHECKOUT_MINUTE, EXPIRY_SWEEP_SECONDS
from hangout.services.broadcaster import PresenceBroadcaster
from hangout.services.lifecycle import GatheringLifecycle


def seconds_until_next(hour: int, minute: int, now: datetime) -> float:
    """
    Seconds from `now` to the next hh:mm on the same clock (strictly in the
    future). For an aware `now` the gap is measured in real elapsed time, so a
    DST change in between shortens or lengthens it by the offset shift.
    """
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if now.tzinfo is None:
        if target <= now:
            target += timedelta(days=1)
        return (target - now).total_seconds()

    # aware datetimes sharing a tzinfo subtract on wall-clock time; go through UTC
    now_utc = now.astimezone(timezone.utc)
    if target.astimezone(timezone.utc) <= now_utc:
        target += timedelta(days=1)
    return (target.astimezone(timezone.utc) - now_utc).total_seconds()


class ScheduledTask:
    def __init__(self, name: str, fn: Callable[[], object], next_delay: Callable[[], float]):
        self.name = name
        self.fn = fn
        self.next_delay = next_delay

        self._running = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def every(cls, name: str, seconds: float, fn: Callable[[], object]) -> "ScheduledTask":
        return cls(name, fn, lambda: seconds)

    @classmethod
    def daily(
        cls,
        name: str,
        hour: int,
        minute: int,
        fn: Callable[[], object],
        tz: Optional[ZoneInfo] = None,
    ) -> "ScheduledTask":
        # tz None -> server local time
        return cls(name, fn, lambda: seconds_until_next(hour, minute, datetime.now(tz)))

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def tick(self) -> bool:
        """Run once now. Returns False when skipped because a run is in flight."""
        if not self._running.acquire(blocking=False):
            logger.warning(f"[{self.name}] previous run still in progress, skipping tick")
            return False

        try:
            self.fn()
        except Exception:
            logger.exception(f"[{self.name}] run failed, retrying on next schedule")
        finally:
            self._running.release()
        return True

    def _loop(self) -> None:
        logger.info(f"[{self.name}] scheduler started")
        while not self._stop.is_set():
            delay = max(0.0, self.next_delay())
            if self._stop.wait(delay):
                break
            self.tick()
        logger.info(f"[{self.name}] scheduler stopped")

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=f"sched-{self.name}", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


class ScheduledSweeper:
    """Owns the two lifecycle timers. Each tick gets a fresh session."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        broadcaster: PresenceBroadcaster,
        sweep_seconds: float = EXPIRY_SWEEP_SECONDS,
        checkout_hour: int = AUTO_CHECKOUT_HOUR,
        checkout_minute: int = AUTO_CHECKOUT_MINUTE,
        tz_name: Optional[str] = None,
    ):
        self.session_factory = session_factory
        self.broadcaster = broadcaster
        self.sweep_seconds = sweep_seconds

        tz = ZoneInfo(tz_name) if tz_name else None
        self.expiry = ScheduledTask.every("expiry-sweep", sweep_seconds, self.run_sweep)
        self.auto_checkout = ScheduledTask.daily(
            "auto-checkout", checkout_hour, checkout_minute, self.run_auto_checkout, tz=tz
        )

    def run_sweep(self) -> None:
        with self.session_factory() as db:
            GatheringLifecycle(db, self.broadcaster).sweep_expired(window_seconds=self.sweep_seconds)

    def run_auto_checkout(self) -> None:
        with self.session_factory() as db:
            GatheringLifecycle(db, self.broadcaster).auto_checkout_all()

    def start(self) -> None:
        self.expiry.start()
        self.auto_checkout.start()

    def stop(self) -> None:
        self.expiry.stop()
        self.auto_checkout.stop()
