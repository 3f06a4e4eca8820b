import logging
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from . import mapper, stats
from .api_client import APIClient
from .constants import DEFAULT_SCRAPE_TIMEOUT
from .errors import AllHostsFailedError, ExporterError, ScrapeTimeoutError
from .metrics import Metrics
from .models import StatsSnapshot

logger = logging.getLogger("pihole_exporter")


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class ScrapeOutcome:
    host: str
    status: OutcomeStatus
    kind: str | None = None
    error: str | None = None
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    @property
    def message(self) -> str:
        return f"{self.host}: {self.error}"


class _ScrapeJob:
    """One host's collect-then-apply unit for a single scrape cycle.

    Exactly one of two things happens under ``_lock``: the job commits its
    snapshot and outcome, or the coordinator abandons it. An abandoned job
    still runs to completion but never writes to the registry.
    """

    def __init__(
        self,
        client: APIClient,
        metrics: Metrics,
        collect_fn: Callable[[APIClient], StatsSnapshot],
        apply_fn: Callable[[Metrics, str, StatsSnapshot], None],
    ) -> None:
        self.client = client
        self.host = client.host
        self.metrics = metrics
        self.collect_fn = collect_fn
        self.apply_fn = apply_fn
        self.done = threading.Event()
        self.outcome: ScrapeOutcome | None = None
        self._abandoned = False
        self._lock = threading.Lock()

    def run(self) -> None:
        start = time.monotonic()
        snapshot = None
        error: Exception | None = None
        try:
            snapshot = self.collect_fn(self.client)
        except ExporterError as e:
            error = e
        except Exception as e:
            logger.exception("Unexpected error while collecting stats from %s", self.host)
            error = e

        with self._lock:
            elapsed = time.monotonic() - start
            if self._abandoned:
                if error is None:
                    logger.warning(
                        "Late result from %s discarded after %.3fs", self.host, elapsed
                    )
                else:
                    logger.warning(
                        "Late failure from %s after %.3fs: %s", self.host, elapsed, error
                    )
                return

            if snapshot is not None:
                try:
                    self.apply_fn(self.metrics, self.host, snapshot)
                except Exception as e:
                    logger.exception("Failed to apply metrics for %s", self.host)
                    error = e

            if error is None:
                self.outcome = ScrapeOutcome(
                    host=self.host, status=OutcomeStatus.SUCCESS, duration=elapsed
                )
            else:
                logger.warning("Scrape of %s failed: %s", self.host, error)
                self.outcome = ScrapeOutcome(
                    host=self.host,
                    status=OutcomeStatus.ERROR,
                    kind=type(error).__name__,
                    error=str(error),
                    duration=elapsed,
                )
            self.metrics.record_scrape(self.host, error is None, elapsed)
        self.done.set()

    def abandon(self) -> bool:
        with self._lock:
            if self.outcome is not None:
                return False
            self._abandoned = True
            return True


class ScrapeCoordinator:
    def __init__(
        self,
        clients: Sequence[APIClient],
        metrics: Metrics,
        timeout: float = DEFAULT_SCRAPE_TIMEOUT,
        collect_fn: Callable[[APIClient], StatsSnapshot] = stats.collect,
        apply_fn: Callable[[Metrics, str, StatsSnapshot], None] = mapper.apply,
    ) -> None:
        self.clients = list(clients)
        self.metrics = metrics
        self.timeout = timeout
        self.collect_fn = collect_fn
        self.apply_fn = apply_fn
        self._last_outcomes: list[ScrapeOutcome] = []
        self._lock = threading.Lock()

    @property
    def last_outcomes(self) -> list[ScrapeOutcome]:
        with self._lock:
            return list(self._last_outcomes)

    def scrape(self) -> list[ScrapeOutcome]:
        """Collect every host concurrently, waiting at most ``timeout`` in total.

        Hosts still running at the deadline are reported as timed out and
        left to finish in the background.
        """
        start = time.monotonic()
        deadline = start + self.timeout
        jobs = [
            _ScrapeJob(client, self.metrics, self.collect_fn, self.apply_fn)
            for client in self.clients
        ]
        for job in jobs:
            thread = threading.Thread(target=job.run, name=f"scrape-{job.host}", daemon=True)
            thread.start()

        outcomes = []
        for job in jobs:
            job.done.wait(max(0.0, deadline - time.monotonic()))
            if job.abandon():
                err = ScrapeTimeoutError(f"scrape timed out after {self.timeout:g}s")
                logger.warning("Scrape of %s timed out after %.3fs", job.host, self.timeout)
                self.metrics.record_scrape(job.host, False, self.timeout)
                outcomes.append(
                    ScrapeOutcome(
                        host=job.host,
                        status=OutcomeStatus.TIMEOUT,
                        kind=type(err).__name__,
                        error=str(err),
                        duration=self.timeout,
                    )
                )
            else:
                outcomes.append(job.outcome)

        succeeded = sum(1 for o in outcomes if o.ok)
        logger.info(
            "Scrape cycle finished hosts=%d succeeded=%d elapsed=%.3fs",
            len(outcomes),
            succeeded,
            time.monotonic() - start,
        )
        with self._lock:
            self._last_outcomes = outcomes
        return outcomes


def raise_for_outcomes(outcomes: Sequence[ScrapeOutcome]) -> None:
    if outcomes and not any(o.ok for o in outcomes):
        raise AllHostsFailedError([o.message for o in outcomes])


def _scrape_loop(
    coordinator: ScrapeCoordinator,
    interval: float,
    stop_event: threading.Event | None = None,
    sleep_fn=time.sleep,
    time_fn=time.time,
) -> None:
    interval = max(1.0, interval)
    while True:
        if stop_event is not None and stop_event.is_set():
            return
        start = time_fn()
        try:
            coordinator.scrape()
        except Exception:
            logger.exception("Background scrape failed")
        elapsed = time_fn() - start
        sleep_fn(max(1.0, interval - elapsed))


def start_background_scrape(
    coordinator: ScrapeCoordinator,
    interval: float,
    stop_event: threading.Event | None = None,
) -> threading.Thread:
    thread = threading.Thread(
        target=_scrape_loop,
        args=(coordinator, interval),
        kwargs={"stop_event": stop_event},
        daemon=True,
    )
    thread.start()
    return thread
