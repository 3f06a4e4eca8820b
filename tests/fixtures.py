import json
import threading


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, body: bytes | None = None) -> None:
        self.status_code = status_code
        if body is None:
            body = json.dumps(payload if payload is not None else {}).encode()
        self.body = body
        self.closed = False

    def iter_content(self, chunk_size: int = 1):
        for idx in range(0, len(self.body), chunk_size):
            yield self.body[idx : idx + chunk_size]

    def close(self) -> None:
        self.closed = True


class FakeHTTPSession:
    """Routes requests by method and path to canned responses.

    A route value may be a response, an exception to raise, a callable
    returning either, or a list consumed one entry per call.
    """

    def __init__(self, routes: dict | None = None) -> None:
        self.routes = dict(routes or {})
        self.calls: list[tuple[str, str, dict]] = []
        self.verify = True
        self.closed = False
        self.close_calls = 0
        self._lock = threading.Lock()

    def _respond(self, key: str):
        with self._lock:
            route = self.routes[key]
            if isinstance(route, list):
                route = route.pop(0) if len(route) > 1 else route[0]
        if callable(route) and not isinstance(route, FakeResponse):
            route = route()
        if isinstance(route, Exception):
            raise route
        return route

    def post(self, url, json=None, timeout=None):
        path = _path(url)
        with self._lock:
            self.calls.append(("POST", path, {"json": json}))
        return self._respond(f"POST {path}")

    def get(self, url, params=None, headers=None, timeout=None, stream=False):
        path = _path(url)
        if params:
            path = path + "?" + "&".join(f"{k}={v}" for k, v in params.items())
        with self._lock:
            self.calls.append(("GET", path, dict(headers or {})))
        return self._respond(f"GET {path}")

    def close(self) -> None:
        self.closed = True
        self.close_calls += 1

    def methods(self) -> list[str]:
        return [method for method, _, _ in self.calls]


def _path(url: str) -> str:
    rest = url.split("://", 1)[-1]
    return "/" + rest.split("/", 1)[1] if "/" in rest else "/"


def auth_payload(sid: str = "sid-1", validity: int = 300, valid: bool = True) -> dict:
    return {"session": {"valid": valid, "sid": sid, "validity": validity}}


def summary_payload(total: int = 100, blocked: int = 25) -> dict:
    return {
        "queries": {
            "total": total,
            "blocked": blocked,
            "percent_blocked": (blocked / total * 100.0) if total else 0.0,
            "unique_domains": 40,
            "forwarded": 50,
            "cached": 25,
            "frequency": 1.5,
            "types": {"A": 60, "AAAA": 30, "HTTPS": 10},
            "replies": {"NODATA": 5, "NXDOMAIN": 3, "CNAME": 10, "IP": 70, "BLOB": 0},
        },
        "clients": {"active": 4, "total": 9},
        "gravity": {"domains_being_blocked": 120000, "last_update": 1725194639},
        "took": 0.001,
    }


def top_domains_payload(domains: list[tuple[str, int]]) -> dict:
    return {
        "domains": [{"domain": d, "count": c} for d, c in domains],
        "total_queries": 100,
        "blocked_queries": 25,
    }


def top_clients_payload(clients: list[tuple[str, str, int]]) -> dict:
    return {"clients": [{"ip": ip, "name": name, "count": c} for ip, name, c in clients]}


def upstreams_payload() -> dict:
    return {
        "upstreams": [
            {
                "ip": "blocklist",
                "name": "blocklist",
                "port": -1,
                "count": 25,
                "statistics": {"response": 0, "variance": 0},
            },
            {
                "ip": "8.8.8.8",
                "name": "dns.google",
                "port": 53,
                "count": 50,
                "statistics": {"response": 0.02, "variance": 0.001},
            },
        ],
        "forwarded_queries": 50,
        "total_queries": 100,
    }


TOP_BLOCKED_DOMAINS = "GET /api/stats/top_domains?blocked=true&count=10"
TOP_PERMITTED_DOMAINS = "GET /api/stats/top_domains?blocked=false&count=10"
TOP_BLOCKED_CLIENTS = "GET /api/stats/top_clients?blocked=true&count=10"
TOP_PERMITTED_CLIENTS = "GET /api/stats/top_clients?blocked=false&count=10"


def pihole_routes(
    *,
    total: int = 100,
    blocked_domains: list[tuple[str, int]] | None = None,
    permitted_domains: list[tuple[str, int]] | None = None,
    blocking: str = "enabled",
) -> dict:
    if blocked_domains is None:
        blocked_domains = [("ads.example.com", 20), ("tracker.example.net", 5)]
    if permitted_domains is None:
        permitted_domains = [("example.com", 40), ("github.com", 12)]
    return {
        "POST /api/auth": FakeResponse(payload=auth_payload()),
        "GET /api/stats/summary": FakeResponse(payload=summary_payload(total=total)),
        TOP_BLOCKED_DOMAINS: FakeResponse(payload=top_domains_payload(blocked_domains)),
        TOP_PERMITTED_DOMAINS: FakeResponse(payload=top_domains_payload(permitted_domains)),
        TOP_BLOCKED_CLIENTS: FakeResponse(
            payload=top_clients_payload([("10.0.0.1", "laptop", 15), ("10.0.0.2", "", 10)])
        ),
        TOP_PERMITTED_CLIENTS: FakeResponse(
            payload=top_clients_payload([("10.0.0.1", "laptop", 30), ("10.0.0.3", "tv", 8)])
        ),
        "GET /api/stats/upstreams": FakeResponse(payload=upstreams_payload()),
        "GET /api/dns/blocking": FakeResponse(payload={"blocking": blocking, "timer": None}),
    }
