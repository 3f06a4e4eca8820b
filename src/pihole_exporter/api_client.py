import json
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import requests

from .constants import AUTH_PATH, MAX_RESPONSE_SIZE, SESSION_HEADER
from .errors import AuthenticationError, DecodeError, HTTPStatusError, TransportError
from .settings import HostConfig

logger = logging.getLogger("pihole_exporter")
T = TypeVar("T")


@dataclass(frozen=True)
class Session:
    sid: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


class APIClient:
    """Client for one Pi-hole host, holding its own session and connection pool.

    Authentication is serialized per instance: while one login is in flight,
    other callers wait for it and reuse the session it commits. The lock only
    guards the session state and is never held during network I/O.
    """

    def __init__(
        self,
        config: HostConfig,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self._http = session if session is not None else requests.Session()
        self._http.verify = not config.skip_tls_verify
        self._clock = clock
        self._cond = threading.Condition()
        self._session: Session | None = None
        self._auth_in_flight = False
        self._closed = False
        if config.skip_tls_verify:
            logger.warning("TLS certificate verification disabled for %s", config.hostname)

    @property
    def host(self) -> str:
        return self.config.hostname

    @property
    def base_url(self) -> str:
        return self.config.base_url

    @property
    def session(self) -> Session | None:
        with self._cond:
            return self._session

    def __repr__(self) -> str:
        return f"APIClient({self.config.describe()})"

    def _has_valid_session(self) -> bool:
        return self._session is not None and self._session.is_valid(self._clock())

    def authenticate(self, reuse_valid: bool = False) -> Session:
        """Log in and store the new session.

        With ``reuse_valid`` a session that is still valid once the lock is
        held is returned instead, so callers racing on an expired session
        share a single login.
        """
        with self._cond:
            waited = False
            while self._auth_in_flight:
                waited = True
                self._cond.wait()
            if (waited or reuse_valid) and self._has_valid_session():
                return self._session
            self._auth_in_flight = True

        session = None
        try:
            session = self._login()
        finally:
            with self._cond:
                if session is not None:
                    self._session = session
                self._auth_in_flight = False
                self._cond.notify_all()
        return session

    def _login(self) -> Session:
        url = f"{self.base_url}{AUTH_PATH}"
        logger.debug("Authenticating to %s", self.base_url)
        try:
            resp = self._http.post(
                url, json={"password": self.config.password}, timeout=self.config.timeout
            )
        except requests.RequestException as e:
            raise TransportError(f"authentication request to {self.host} failed: {e}") from e

        try:
            if resp.status_code != 200:
                raise AuthenticationError(
                    f"authentication to {self.host} failed, status code: {resp.status_code}"
                )
            try:
                data = json.loads(_read_limited(resp))
                payload = data["session"]
                valid = bool(payload["valid"])
                sid = payload.get("sid")
                validity = float(payload.get("validity") or 0)
            except (ValueError, KeyError, TypeError) as e:
                raise AuthenticationError(
                    f"failed to parse authentication response from {self.host}: {e}"
                ) from e
        finally:
            resp.close()

        if not valid or not sid:
            raise AuthenticationError(f"authentication to {self.host} unsuccessful")

        logger.debug("Authentication to %s successful (validity=%ss)", self.host, validity)
        return Session(sid=str(sid), expires_at=self._clock() + validity)

    def ensure_authenticated(self) -> Session | None:
        if not self.config.uses_password:
            return None
        with self._cond:
            if self._has_valid_session():
                return self._session
        logger.debug("Session for %s missing or expired, authenticating", self.host)
        return self.authenticate(reuse_valid=True)

    def invalidate(self, stale: Session | None = None) -> None:
        with self._cond:
            if stale is None or self._session == stale:
                self._session = None

    def fetch(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        into: Callable[[Any], T] | None = None,
    ) -> T | Any:
        """GET ``path`` from the host and decode the JSON body.

        When ``into`` is given the decoded object is passed through it and
        parsing failures surface as :class:`DecodeError`.
        """
        session = self.ensure_authenticated()
        resp = self._get(path, params, session)
        if resp.status_code == 401 and session is not None:
            resp.close()
            logger.info("Session for %s rejected, re-authenticating once", self.host)
            self.invalidate(session)
            session = self.ensure_authenticated()
            resp = self._get(path, params, session)

        try:
            if resp.status_code != 200:
                raise HTTPStatusError(
                    f"non-200 status code from {self.host}{path}: {resp.status_code}",
                    status_code=resp.status_code,
                )
            body = _read_limited(resp)
        finally:
            resp.close()

        try:
            data = json.loads(body)
        except ValueError as e:
            raise DecodeError(f"failed to parse JSON response from {self.host}{path}: {e}") from e

        if into is None:
            logger.debug("Fetched %s%s", self.host, path)
            return data
        try:
            result = into(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"unexpected response shape from {self.host}{path}: {e!r}") from e
        logger.debug("Fetched %s%s", self.host, path)
        return result

    def _get(self, path: str, params: dict[str, Any] | None, session: Session | None):
        headers = {"X-Content-Type-Options": "nosniff"}
        if session is not None:
            headers[SESSION_HEADER] = session.sid
        url = f"{self.base_url}{path}"
        try:
            return self._http.get(
                url, params=params, headers=headers, timeout=self.config.timeout, stream=True
            )
        except requests.RequestException as e:
            raise TransportError(f"failed to fetch data from {url}: {e}") from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._http.close()
        logger.debug("Closed HTTP session for %s", self.host)


def _read_limited(resp, limit: int = MAX_RESPONSE_SIZE) -> bytes:
    buf = bytearray()
    try:
        for chunk in resp.iter_content(chunk_size=64 * 1024):
            buf.extend(chunk)
            if len(buf) >= limit:
                del buf[limit:]
                break
    except requests.RequestException as e:
        raise TransportError(f"failed to read response body: {e}") from e
    return bytes(buf)
