from collections.abc import Iterable
from dataclasses import dataclass, field


@dataclass(frozen=True)
class SummaryStats:
    total: int
    blocked: int
    percent_blocked: float
    unique_domains: int
    forwarded: int
    cached: int
    frequency: float
    active_clients: int
    total_clients: int
    domains_being_blocked: int
    query_types: dict[str, int] = field(default_factory=dict)
    replies: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict) -> "SummaryStats":
        queries = data["queries"]
        clients = data["clients"]
        return cls(
            total=int(queries["total"]),
            blocked=int(queries["blocked"]),
            percent_blocked=float(queries["percent_blocked"]),
            unique_domains=int(queries["unique_domains"]),
            forwarded=int(queries["forwarded"]),
            cached=int(queries["cached"]),
            frequency=float(queries.get("frequency") or 0.0),
            active_clients=int(clients["active"]),
            total_clients=int(clients["total"]),
            domains_being_blocked=int(data["gravity"]["domains_being_blocked"]),
            query_types={str(k): int(v) for k, v in (queries.get("types") or {}).items()},
            replies={str(k): int(v) for k, v in (queries.get("replies") or {}).items()},
        )


@dataclass(frozen=True)
class DomainCount:
    domain: str
    count: int


@dataclass(frozen=True)
class ClientCount:
    ip: str
    name: str
    count: int


@dataclass(frozen=True)
class Upstream:
    ip: str
    name: str
    port: int
    count: int
    response_time: float
    variance: float

    @property
    def destination(self) -> str:
        if self.port > 0:
            return f"{self.ip}#{self.port}"
        return self.ip

    @property
    def destination_name(self) -> str:
        return self.name or self.ip


def parse_top_domains(data: dict) -> tuple[DomainCount, ...]:
    return tuple(
        DomainCount(domain=str(item["domain"]), count=int(item["count"]))
        for item in data["domains"]
    )


def parse_top_clients(data: dict) -> tuple[ClientCount, ...]:
    return tuple(
        ClientCount(ip=str(item["ip"]), name=str(item.get("name") or ""), count=int(item["count"]))
        for item in data["clients"]
    )


def parse_upstreams(data: dict) -> tuple[Upstream, ...]:
    result = []
    for item in data["upstreams"]:
        statistics = item.get("statistics") or {}
        result.append(
            Upstream(
                ip=str(item["ip"]),
                name=str(item.get("name") or ""),
                port=int(item.get("port", -1)),
                count=int(item["count"]),
                response_time=float(statistics.get("response") or 0.0),
                variance=float(statistics.get("variance") or 0.0),
            )
        )
    return tuple(result)


def parse_blocking(data: dict) -> bool:
    return str(data["blocking"]).lower() == "enabled"


def merge_clients(*lists: Iterable[ClientCount]) -> tuple[ClientCount, ...]:
    """Merge client lists by address, summing counts of repeated entries.

    Identity is deduplicated, counts are not: merging a list with itself
    doubles every count. The first non-empty name seen for an address is kept.
    The result is ordered by descending count, then address.
    """
    counts: dict[str, int] = {}
    names: dict[str, str] = {}
    for clients in lists:
        for client in clients:
            counts[client.ip] = counts.get(client.ip, 0) + client.count
            if client.name and not names.get(client.ip):
                names[client.ip] = client.name

    merged = [ClientCount(ip=ip, name=names.get(ip, ""), count=cnt) for ip, cnt in counts.items()]
    merged.sort(key=lambda c: (-c.count, c.ip))
    return tuple(merged)


@dataclass(frozen=True)
class StatsSnapshot:
    summary: SummaryStats
    top_blocked: tuple[DomainCount, ...]
    top_permitted: tuple[DomainCount, ...]
    top_clients: tuple[ClientCount, ...]
    upstreams: tuple[Upstream, ...]
    blocking_enabled: bool
    authenticated: bool = True
