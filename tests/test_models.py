import pytest
from fixtures import summary_payload, upstreams_payload

from pihole_exporter.models import (
    ClientCount,
    SummaryStats,
    merge_clients,
    parse_blocking,
    parse_upstreams,
)


def _counts(clients) -> dict[str, int]:
    return {c.ip: c.count for c in clients}


class TestMergeClients:
    def test_sums_counts_of_shared_clients(self) -> None:
        a = [ClientCount("ip1", "", 3)]
        b = [ClientCount("ip1", "", 2), ClientCount("ip2", "", 5)]

        assert _counts(merge_clients(a, b)) == {"ip1": 5, "ip2": 5}

    def test_merging_list_with_itself_doubles_counts(self) -> None:
        a = [ClientCount("ip1", "", 3)]

        assert _counts(merge_clients(a, a)) == {"ip1": 6}

    def test_result_does_not_depend_on_input_order(self) -> None:
        a = [ClientCount("10.0.0.1", "laptop", 15), ClientCount("10.0.0.2", "", 10)]
        b = [ClientCount("10.0.0.3", "tv", 8), ClientCount("10.0.0.1", "laptop", 30)]

        assert merge_clients(a, b) == merge_clients(b, a)
        assert merge_clients(a, b) == merge_clients(list(reversed(a)), list(reversed(b)))

    def test_sorted_by_count_and_keeps_name(self) -> None:
        a = [ClientCount("10.0.0.2", "", 4), ClientCount("10.0.0.1", "", 1)]
        b = [ClientCount("10.0.0.1", "laptop", 9)]

        merged = merge_clients(a, b)

        assert merged == (
            ClientCount("10.0.0.1", "laptop", 10),
            ClientCount("10.0.0.2", "", 4),
        )

    def test_empty_inputs(self) -> None:
        assert merge_clients([], []) == ()


class TestParsing:
    def test_summary_from_api(self) -> None:
        summary = SummaryStats.from_api(summary_payload(total=200, blocked=50))

        assert summary.total == 200
        assert summary.blocked == 50
        assert summary.percent_blocked == pytest.approx(25.0)
        assert summary.total_clients == 9
        assert summary.active_clients == 4
        assert summary.domains_being_blocked == 120000
        assert summary.query_types["AAAA"] == 30
        assert summary.replies["NXDOMAIN"] == 3

    def test_summary_missing_section_raises_key_error(self) -> None:
        payload = summary_payload()
        del payload["gravity"]

        with pytest.raises(KeyError):
            SummaryStats.from_api(payload)

    def test_upstream_destination_labels(self) -> None:
        blocklist, google = parse_upstreams(upstreams_payload())

        assert blocklist.destination == "blocklist"
        assert google.destination == "8.8.8.8#53"
        assert google.destination_name == "dns.google"
        assert google.response_time == pytest.approx(0.02)

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("enabled", True), ("disabled", False), ("failed", False), ("unknown", False)],
    )
    def test_blocking_status(self, value: str, expected: bool) -> None:
        assert parse_blocking({"blocking": value}) is expected
