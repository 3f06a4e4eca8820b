import logging
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .errors import AllHostsFailedError
from .scrape import ScrapeCoordinator, raise_for_outcomes


def make_handler(coordinator: ScrapeCoordinator, registry, is_ready, on_demand=True, logger=None):
    if logger is None:
        logger = logging.getLogger("pihole_exporter")

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            path = self.path.split("?", 1)[0]
            if path == "/liveness":
                self._send_plain(200, b"ok\n")
                return
            if path == "/readiness":
                if is_ready():
                    self._send_plain(200, b"ready\n")
                else:
                    self._send_plain(404, b"not ready\n")
                return
            if path not in ("/metrics", "/"):
                self.send_response(404)
                self.end_headers()
                return

            try:
                logger.info("HTTP request: %s %s", self.command, self.path)
                start = time.time()
                outcomes = coordinator.scrape() if on_demand else coordinator.last_outcomes
                try:
                    raise_for_outcomes(outcomes)
                except AllHostsFailedError as e:
                    logger.warning("All %d hosts failed to scrape", len(e.messages))
                    self._send_plain(400, str(e).encode())
                    return

                payload = generate_latest(registry)
                self.send_response(200)
                self.send_header("Content-Type", CONTENT_TYPE_LATEST)
                self.send_header("Content-Length", str(len(payload)))
                self.end_headers()
                self.wfile.write(payload)
                elapsed = time.time() - start
                logger.info(
                    "HTTP 200 served metrics bytes=%d scrape_time=%.3fs",
                    len(payload),
                    elapsed,
                )
            except (BrokenPipeError, ConnectionResetError) as e:
                logger.debug("Client disconnected while serving request: %s", e)
            except Exception as e:
                logger.exception("Scrape failed while serving request")
                self._send_plain(500, f"scrape failed: {e}\n".encode())

        def _send_plain(self, code: int, body: bytes) -> None:
            self.send_response(code)
            self.send_header("Content-Type", "text/plain; charset=utf-8")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format, *args):
            return

    return Handler


class _HTTPServer(ThreadingHTTPServer):
    # join request threads on close so in-flight scrapes finish
    daemon_threads = False


class ExporterServer:
    def __init__(
        self,
        listen_addr: str,
        listen_port: int,
        coordinator: ScrapeCoordinator,
        registry,
        on_demand: bool = True,
    ) -> None:
        handler_cls = make_handler(coordinator, registry, self.is_ready, on_demand=on_demand)
        self.httpd: ThreadingHTTPServer | None = _HTTPServer(
            (listen_addr, listen_port), handler_cls
        )

    def is_ready(self) -> bool:
        return self.httpd is not None

    def serve(self) -> None:
        if self.httpd is None:
            return
        logging.getLogger("pihole_exporter").info("HTTP server ready; waiting for scrapes")
        try:
            self.httpd.serve_forever()
        finally:
            httpd, self.httpd = self.httpd, None
            if httpd is not None:
                httpd.server_close()

    def stop(self) -> None:
        """Stop serving; safe to call from a signal handler on the serving thread."""
        httpd = self.httpd
        if httpd is None:
            return
        threading.Thread(target=httpd.shutdown, name="http-shutdown", daemon=True).start()
