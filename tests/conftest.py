import pytest
from fixtures import FakeClock, FakeHTTPSession, pihole_routes
from prometheus_client import generate_latest

from pihole_exporter.api_client import APIClient
from pihole_exporter.metrics import Metrics
from pihole_exporter.settings import HostConfig


@pytest.fixture
def host_config() -> HostConfig:
    return HostConfig(protocol="http", hostname="pihole-a", port=80, password="secret")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_session() -> FakeHTTPSession:
    return FakeHTTPSession(pihole_routes())


@pytest.fixture
def api_client(host_config: HostConfig, fake_session: FakeHTTPSession, clock: FakeClock):
    return APIClient(host_config, session=fake_session, clock=clock)


@pytest.fixture
def metrics() -> Metrics:
    return Metrics()


@pytest.fixture
def metrics_text(metrics: Metrics):
    def _text() -> str:
        return generate_latest(metrics.registry).decode("utf-8")

    return _text


@pytest.fixture
def metric_value():
    def _metric_value(text: str, name: str, labels: dict[str, str] | None = None) -> float:
        for line in text.splitlines():
            if line.startswith("#") or not line.startswith(name):
                continue
            if line[len(name)] not in "{ ":
                continue
            if labels:
                if "{" not in line:
                    continue
                label_part = line.split("{", 1)[1].split("}", 1)[0]
                label_items = {}
                for item in label_part.split(","):
                    if not item:
                        continue
                    key, value = item.split("=", 1)
                    label_items[key] = value.strip('"')
                if any(label_items.get(k) != v for k, v in labels.items()):
                    continue
            return float(line.split()[-1])
        raise AssertionError(f"Metric {name} with labels {labels} not found")

    return _metric_value
