import argparse
import logging
import os
import signal
import sys
from pathlib import Path

from . import http_server, scrape
from .api_client import APIClient
from .errors import ConfigError
from .metrics import Metrics
from .settings import HostConfig, Settings

logger = logging.getLogger("pihole_exporter")

FLAG_NAMES = (
    "pihole_protocol",
    "pihole_hostname",
    "pihole_port",
    "pihole_password",
    "bind_addr",
    "port",
    "timeout",
    "scrape_timeout",
    "scrape_interval",
    "skip_tls_verification",
)


def _read_version() -> str:
    version_path = Path(__file__).resolve().parents[2] / "VERSION"
    if version_path.is_file():
        return version_path.read_text().strip()
    try:
        from . import __version__  # type: ignore

        return str(__version__)
    except Exception:
        return "unknown"


def _read_commit() -> str:
    return (
        os.getenv("GIT_COMMIT") or os.getenv("GIT_SHA") or os.getenv("SOURCE_COMMIT") or "unknown"
    )


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Pi-hole Prometheus exporter")
    parser.add_argument(
        "--verbose", "--debug", action="store_true", help="Enable verbose (debug) logging"
    )
    for name in FLAG_NAMES:
        parser.add_argument(
            f"--{name}",
            default=None,
            help=f"Overrides the {name.upper()} environment variable",
        )
    return parser.parse_args(argv)


def load_settings(args, env=None) -> Settings:
    """Build settings from the environment, with command line flags taking precedence."""
    merged = dict(os.environ if env is None else env)
    for name in FLAG_NAMES:
        value = getattr(args, name, None)
        if value is not None:
            merged[name.upper()] = value
    return Settings.from_env(merged)


def build_clients(hosts: list[HostConfig]) -> list[APIClient]:
    clients = []
    for host in hosts:
        logger.info("Creating client with config %s", host)
        clients.append(APIClient(host))
    return clients


def close_clients(clients: list[APIClient]) -> None:
    logger.info("Closing clients")
    for client in clients:
        client.close()
    logger.info("All clients closed")


def install_signal_handlers(server: http_server.ExporterServer) -> None:
    def _stop(signum, _frame):
        logger.info("Received signal %s; shutting down", signal.Signals(signum).name)
        server.stop()

    signal.signal(signal.SIGTERM, _stop)
    signal.signal(signal.SIGINT, _stop)


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings(args)
        hosts = settings.hosts()
    except ConfigError as e:
        configure_logging(bool(args.verbose))
        logger.error("Failed to load configuration: %s", e)
        return 2

    configure_logging(bool(args.verbose) or settings.debug)
    logger.info("Exporter version=%s commit=%s", _read_version(), _read_commit())
    logger.info("Pi-hole exporter configuration")
    for line in settings.describe_lines():
        logger.info("  %s", line)

    metrics = Metrics()
    clients = build_clients(hosts)
    try:
        coordinator = scrape.ScrapeCoordinator(clients, metrics, timeout=settings.scrape_timeout)
        on_demand = settings.scrape_interval <= 0
        if not on_demand:
            scrape.start_background_scrape(coordinator, settings.scrape_interval)

        server = http_server.ExporterServer(
            settings.listen_addr,
            settings.listen_port,
            coordinator,
            metrics.registry,
            on_demand=on_demand,
        )
        install_signal_handlers(server)
        logger.info(
            "Starting exporter (listen=%s:%s, hosts=%d, mode=%s)",
            settings.listen_addr,
            settings.listen_port,
            len(clients),
            "on-demand" if on_demand else f"every {settings.scrape_interval:g}s",
        )
        server.serve()
    finally:
        close_clients(clients)

    logger.info("Exporter HTTP server stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
