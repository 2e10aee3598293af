"""
Background sweep scheduler.

A small polling loop on a daemon thread that:
- runs the expiry sweep every ``expiry_interval`` seconds,
- runs the reminder sweep every ``reminder_interval`` seconds, starting
  ``reminder_offset`` seconds after the scheduler starts,
- never runs two sweeps at once inside this process.

Sweep errors are logged and never escape the loop. To stop the scheduler,
call ``stop()``.
"""
import logging
import threading
import time
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

EXPIRY = 'expiry'
REMINDERS = 'reminders'


class SweepScheduler:

    def __init__(self, service_factory: Callable, expiry_interval: float = 3600,
                 reminder_interval: float = 3600, reminder_offset: float = 1800,
                 tick_seconds: float = 30.0, clock: Callable[[], float] = time.time):
        self.service_factory = service_factory
        self.expiry_interval = max(1.0, float(expiry_interval))
        self.reminder_interval = max(1.0, float(reminder_interval))
        self.reminder_offset = max(0.0, float(reminder_offset))
        self.tick_seconds = max(0.5, float(tick_seconds))
        self.clock = clock

        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._next_run: Dict[str, float] = {}

    def schedule_from(self, start_ts: float) -> None:
        """Expiry runs at start; reminders follow after the configured offset"""
        self._next_run = {
            EXPIRY: start_ts,
            REMINDERS: start_ts + self.reminder_offset,
        }

    def run_sweep(self, name: str) -> Optional[int]:
        """Run one sweep now unless another sweep holds the lock"""
        if not self._lock.acquire(blocking=False):
            logger.warning("Skipping %s sweep: another sweep is still running", name)
            return None
        try:
            service = self.service_factory()
            if name == EXPIRY:
                return service.run_expiry_sweep()
            return service.run_reminder_sweep()
        except Exception:
            logger.exception("%s sweep failed", name.capitalize())
            return None
        finally:
            self._lock.release()

    def run_pending(self, now_ts: float = None) -> Dict[str, Optional[int]]:
        """Run every sweep whose time has come; returns results by sweep name"""
        now_ts = self.clock() if now_ts is None else now_ts
        if not self._next_run:
            self.schedule_from(now_ts)

        results = {}
        for name, interval in ((EXPIRY, self.expiry_interval), (REMINDERS, self.reminder_interval)):
            if now_ts < self._next_run[name]:
                continue
            results[name] = self.run_sweep(name)
            # skip missed slots instead of replaying them back to back
            next_run = self._next_run[name] + interval
            while next_run <= now_ts:
                next_run += interval
            self._next_run[name] = next_run
        return results

    def _loop(self) -> None:
        logger.info("Sweep scheduler started (expiry every %ss, reminders every %ss)",
                    int(self.expiry_interval), int(self.reminder_interval))
        while not self._stop_event.is_set():
            try:
                self.run_pending()
            except Exception:
                logger.exception("Sweep scheduler tick failed")
            self._stop_event.wait(self.tick_seconds)
        logger.info("Sweep scheduler stopped")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name='sweep-scheduler', daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Sweep scheduler did not stop within %ss", timeout)
            else:
                self._thread = None
