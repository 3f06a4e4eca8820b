DEFAULT_PROTOCOL = "http"
DEFAULT_HOSTNAME = "127.0.0.1"
DEFAULT_PIHOLE_PORT = 80
DEFAULT_LISTEN_PORT = 9617
DEFAULT_TIMEOUT = 5.0
DEFAULT_SCRAPE_TIMEOUT = 10.0

MAX_RESPONSE_SIZE = 1024 * 1024
TOP_COUNT = 10

SESSION_HEADER = "X-FTL-SID"

AUTH_PATH = "/api/auth"
SUMMARY_PATH = "/api/stats/summary"
TOP_DOMAINS_PATH = "/api/stats/top_domains"
TOP_CLIENTS_PATH = "/api/stats/top_clients"
UPSTREAMS_PATH = "/api/stats/upstreams"
BLOCKING_PATH = "/api/dns/blocking"

REPLY_TYPE_MAP = {
    "UNKNOWN": "unknown",
    "NODATA": "no_data",
    "NXDOMAIN": "nx_domain",
    "CNAME": "cname",
    "IP": "ip",
    "DOMAIN": "domain",
    "RRNAME": "rr_name",
    "SERVFAIL": "serv_fail",
    "REFUSED": "refused",
    "NOTIMP": "not_imp",
    "OTHER": "other",
    "DNSSEC": "dnssec",
    "NONE": "none",
    "BLOB": "blob",
}
