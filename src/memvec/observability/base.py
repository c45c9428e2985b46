import threading
from collections import defaultdict
from typing import Protocol

Labels = dict[str, str]


class MetricsHook(Protocol):
    def record_latency(
        self,
        name: str,
        value_ms: float,
        labels: Labels | None = None,
    ) -> None: ...

    def increment(
        self,
        name: str,
        value: int = 1,
        labels: Labels | None = None,
    ) -> None: ...

    def record_gauge(
        self,
        name: str,
        value: float,
        labels: Labels | None = None,
    ) -> None: ...


class NoOpMetricsHook:
    def record_latency(
        self, name: str, value_ms: float, labels: Labels | None = None
    ) -> None:
        pass

    def increment(self, name: str, value: int = 1, labels: Labels | None = None) -> None:
        pass

    def record_gauge(
        self, name: str, value: float, labels: Labels | None = None
    ) -> None:
        pass


class InMemoryMetricsHook:
    """Keeps metrics in process memory, keyed by metric name.

    Label values are ignored when aggregating. Latencies keep every
    observation; gauges keep the latest value.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.latencies: dict[str, list[float]] = defaultdict(list)
        self.counters: dict[str, int] = defaultdict(int)
        self.gauges: dict[str, float] = {}

    def record_latency(
        self, name: str, value_ms: float, labels: Labels | None = None
    ) -> None:
        with self._lock:
            self.latencies[name].append(value_ms)

    def increment(self, name: str, value: int = 1, labels: Labels | None = None) -> None:
        with self._lock:
            self.counters[name] += value

    def record_gauge(
        self, name: str, value: float, labels: Labels | None = None
    ) -> None:
        with self._lock:
            self.gauges[name] = value
