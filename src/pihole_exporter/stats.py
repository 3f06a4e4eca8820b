import logging

from .api_client import APIClient
from .constants import (
    BLOCKING_PATH,
    SUMMARY_PATH,
    TOP_CLIENTS_PATH,
    TOP_COUNT,
    TOP_DOMAINS_PATH,
    UPSTREAMS_PATH,
)
from .errors import ExporterError
from .models import (
    StatsSnapshot,
    SummaryStats,
    merge_clients,
    parse_blocking,
    parse_top_clients,
    parse_top_domains,
    parse_upstreams,
)

logger = logging.getLogger("pihole_exporter")


def _top_params(blocked: bool) -> dict[str, str]:
    return {"blocked": "true" if blocked else "false", "count": str(TOP_COUNT)}


def _fetch(client: APIClient, label: str, path: str, into, params=None):
    try:
        return client.fetch(path, params=params, into=into)
    except ExporterError as e:
        raise e.with_context(label) from e


def collect(client: APIClient) -> StatsSnapshot:
    """Fetch every statistics endpoint of one host, in order, into a snapshot.

    The first failing request aborts the collection; its error is re-raised
    with the failing endpoint named in the message.
    """
    summary = _fetch(client, "summary", SUMMARY_PATH, SummaryStats.from_api)
    top_blocked = _fetch(
        client, "top blocked domains", TOP_DOMAINS_PATH, parse_top_domains, _top_params(True)
    )
    top_permitted = _fetch(
        client, "top permitted domains", TOP_DOMAINS_PATH, parse_top_domains, _top_params(False)
    )
    blocked_clients = _fetch(
        client, "top blocked clients", TOP_CLIENTS_PATH, parse_top_clients, _top_params(True)
    )
    permitted_clients = _fetch(
        client, "top permitted clients", TOP_CLIENTS_PATH, parse_top_clients, _top_params(False)
    )
    upstreams = _fetch(client, "upstreams", UPSTREAMS_PATH, parse_upstreams)
    blocking_enabled = _fetch(client, "blocking status", BLOCKING_PATH, parse_blocking)

    snapshot = StatsSnapshot(
        summary=summary,
        top_blocked=top_blocked,
        top_permitted=top_permitted,
        top_clients=merge_clients(blocked_clients, permitted_clients),
        upstreams=upstreams,
        blocking_enabled=blocking_enabled,
        authenticated=client.config.uses_password,
    )
    logger.debug(
        "Collected stats from %s: queries=%d blocked=%d clients=%d upstreams=%d",
        client.host,
        summary.total,
        summary.blocked,
        len(snapshot.top_clients),
        len(upstreams),
    )
    return snapshot
