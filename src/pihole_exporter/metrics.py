import threading

from prometheus_client import CollectorRegistry, Gauge

from .gauges import Gauges


class Metrics:
    """Registry plus gauges, built once at startup and passed where needed.

    Label-dimensioned series are tracked per (gauge, host) so each scrape can
    replace one host's series without touching any other host's.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self.gauges = Gauges.create(self.registry)
        self._series: dict[tuple[int, str], set[tuple[str, ...]]] = {}
        self._lock = threading.Lock()

    def set_value(self, gauge: Gauge, host: str, value: float) -> None:
        gauge.labels(host).set(float(value))

    def replace_series(
        self, gauge: Gauge, host: str, values: dict[tuple[str, ...], float]
    ) -> None:
        """Set ``values`` for ``host`` and drop the host's series missing from it."""
        key = (id(gauge), host)
        with self._lock:
            previous = self._series.get(key, set())
            current = set(values)
            for labels in previous - current:
                try:
                    gauge.remove(host, *labels)
                except KeyError:
                    pass
            for labels, value in values.items():
                gauge.labels(host, *labels).set(float(value))
            self._series[key] = current

    def host_series(self, gauge: Gauge, host: str) -> set[tuple[str, ...]]:
        with self._lock:
            return set(self._series.get((id(gauge), host), set()))

    def record_scrape(self, host: str, success: bool, duration: float) -> None:
        self.gauges.scrape_success.labels(host).set(1.0 if success else 0.0)
        self.gauges.scrape_duration_seconds.labels(host).set(duration)
