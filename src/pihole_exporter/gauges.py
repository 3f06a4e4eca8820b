from dataclasses import dataclass, fields

from prometheus_client import Gauge

HOST = ("hostname",)
DESTINATION = HOST + ("destination", "destination_name")

# attribute -> (help text, label names); the exported name is "pihole_" + attribute
GAUGE_DEFS = {
    "ads_blocked_today": ("Number of ads blocked over the current day", HOST),
    "ads_percentage_today": ("Percentage of queries blocked over the current day", HOST),
    "clients_ever_seen": ("Number of clients ever seen by Pi-hole", HOST),
    "dns_queries_all_types": ("Number of DNS queries made for all types", HOST),
    "dns_queries_today": ("Number of DNS queries made over the current day", HOST),
    "domains_being_blocked": ("Number of domains on the gravity block list", HOST),
    "forward_destinations": (
        "Number of queries Pi-hole forwarded to each upstream destination",
        DESTINATION,
    ),
    "forward_destinations_responsetime": (
        "Average seconds an upstream destination took to answer a forwarded query",
        DESTINATION,
    ),
    "forward_destinations_responsevariance": (
        "Variance of the upstream destination response time",
        DESTINATION,
    ),
    "queries_cached": ("Number of queries answered from the cache", HOST),
    "queries_forwarded": ("Number of queries forwarded upstream", HOST),
    "querytypes": ("Number of queries made to Pi-hole by query type", HOST + ("type",)),
    "reply": ("Number of replies Pi-hole sent by reply type", HOST + ("type",)),
    "request_rate": ("Queries per second as reported by Pi-hole", HOST),
    "status": ("1 if Pi-hole blocking is enabled, 0 otherwise", HOST),
    "top_ads": ("Query count of the most blocked domains", HOST + ("domain",)),
    "top_queries": ("Query count of the most permitted domains", HOST + ("domain",)),
    "top_sources": (
        "Query count of the busiest clients by source address",
        HOST + ("source", "source_name"),
    ),
    "unique_clients": ("Number of clients active recently", HOST),
    "unique_domains": ("Number of unique domains queried", HOST),
    "scrape_duration_seconds": ("Seconds spent collecting statistics from the host", HOST),
    "scrape_success": ("1 if the last scrape of the host succeeded, 0 otherwise", HOST),
}


@dataclass
class Gauges:
    ads_blocked_today: Gauge
    ads_percentage_today: Gauge
    clients_ever_seen: Gauge
    dns_queries_all_types: Gauge
    dns_queries_today: Gauge
    domains_being_blocked: Gauge
    forward_destinations: Gauge
    forward_destinations_responsetime: Gauge
    forward_destinations_responsevariance: Gauge
    queries_cached: Gauge
    queries_forwarded: Gauge
    querytypes: Gauge
    reply: Gauge
    request_rate: Gauge
    status: Gauge
    top_ads: Gauge
    top_queries: Gauge
    top_sources: Gauge
    unique_clients: Gauge
    unique_domains: Gauge
    scrape_duration_seconds: Gauge
    scrape_success: Gauge

    @classmethod
    def create(cls, registry) -> "Gauges":
        gauges = {}
        for f in fields(cls):
            help_text, labels = GAUGE_DEFS[f.name]
            gauges[f.name] = Gauge(f"pihole_{f.name}", help_text, labels, registry=registry)
        return cls(**gauges)


__all__ = ["Gauges", "GAUGE_DEFS"]
