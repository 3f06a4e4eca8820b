import logging

from .constants import REPLY_TYPE_MAP
from .metrics import Metrics
from .models import StatsSnapshot

logger = logging.getLogger("pihole_exporter")


def reply_label(key: str) -> str:
    return REPLY_TYPE_MAP.get(key.upper(), key.lower())


def check_top_domains(host: str, snapshot: StatsSnapshot) -> bool:
    """Warn when empty top-domain lists look like an authentication problem.

    Returns True when a warning was logged.
    """
    if snapshot.top_blocked or snapshot.top_permitted:
        return False
    if not snapshot.authenticated:
        logger.warning(
            "Top domain lists from %s are empty and no password is configured; "
            "the host probably requires authentication",
            host,
        )
        return True
    if snapshot.summary.total > 0:
        logger.warning(
            "Top domain lists from %s are empty although it reports %d queries; "
            "check that the configured password is valid",
            host,
            snapshot.summary.total,
        )
        return True
    logger.debug("Top domain lists from %s are empty; no queries recorded yet", host)
    return False


def apply(metrics: Metrics, host: str, snapshot: StatsSnapshot) -> None:
    """Write one host's snapshot into the registry, replacing its previous values."""
    g = metrics.gauges
    summary = snapshot.summary

    metrics.set_value(g.domains_being_blocked, host, summary.domains_being_blocked)
    metrics.set_value(g.dns_queries_today, host, summary.total)
    metrics.set_value(g.dns_queries_all_types, host, summary.total)
    metrics.set_value(g.ads_blocked_today, host, summary.blocked)
    metrics.set_value(g.ads_percentage_today, host, summary.percent_blocked)
    metrics.set_value(g.unique_domains, host, summary.unique_domains)
    metrics.set_value(g.queries_forwarded, host, summary.forwarded)
    metrics.set_value(g.queries_cached, host, summary.cached)
    metrics.set_value(g.clients_ever_seen, host, summary.total_clients)
    metrics.set_value(g.unique_clients, host, summary.active_clients)
    metrics.set_value(g.request_rate, host, summary.frequency)
    metrics.set_value(g.status, host, 1 if snapshot.blocking_enabled else 0)

    replies: dict[tuple[str, ...], float] = {}
    for key, count in summary.replies.items():
        label = (reply_label(key),)
        replies[label] = replies.get(label, 0) + count
    metrics.replace_series(g.reply, host, replies)

    metrics.replace_series(
        g.querytypes, host, {(qtype,): count for qtype, count in summary.query_types.items()}
    )

    check_top_domains(host, snapshot)
    metrics.replace_series(
        g.top_ads, host, {(d.domain,): d.count for d in snapshot.top_blocked}
    )
    metrics.replace_series(
        g.top_queries, host, {(d.domain,): d.count for d in snapshot.top_permitted}
    )
    metrics.replace_series(
        g.top_sources, host, {(c.ip, c.name): c.count for c in snapshot.top_clients}
    )

    dest_labels = [(u.destination, u.destination_name) for u in snapshot.upstreams]
    metrics.replace_series(
        g.forward_destinations,
        host,
        dict(zip(dest_labels, (u.count for u in snapshot.upstreams))),
    )
    metrics.replace_series(
        g.forward_destinations_responsetime,
        host,
        dict(zip(dest_labels, (u.response_time for u in snapshot.upstreams))),
    )
    metrics.replace_series(
        g.forward_destinations_responsevariance,
        host,
        dict(zip(dest_labels, (u.variance for u in snapshot.upstreams))),
    )

    logger.debug("Applied metrics for %s", host)
