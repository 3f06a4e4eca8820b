import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field

from .constants import (
    DEFAULT_HOSTNAME,
    DEFAULT_LISTEN_PORT,
    DEFAULT_PIHOLE_PORT,
    DEFAULT_PROTOCOL,
    DEFAULT_SCRAPE_TIMEOUT,
    DEFAULT_TIMEOUT,
)
from .errors import ConfigError

VALID_PROTOCOLS = ("http", "https")

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


@dataclass(frozen=True)
class HostConfig:
    protocol: str
    hostname: str
    port: int
    password: str = field(default="", repr=False)
    skip_tls_verify: bool = False
    timeout: float = DEFAULT_TIMEOUT

    @property
    def base_url(self) -> str:
        return f"{self.protocol}://{self.hostname}:{self.port}"

    @property
    def uses_password(self) -> bool:
        return bool(self.password)

    def validate(self) -> None:
        if self.protocol not in VALID_PROTOCOLS:
            raise ConfigError(f"protocol {self.protocol} is invalid. Must be http or https")
        if not self.hostname:
            raise ConfigError("hostname must not be empty")
        if not 1 <= self.port <= 65535:
            raise ConfigError(f"port must be between 1 and 65535 (got {self.port!r})")

    def describe(self) -> str:
        """Render every field except the password, which is masked when set."""
        parts = [
            f"protocol={self.protocol}",
            f"hostname={self.hostname}",
            f"port={self.port}",
        ]
        if self.password:
            parts.append("password=*****")
        parts.append(f"skip_tls_verify={self.skip_tls_verify}")
        parts.append(f"timeout={self.timeout:g}s")
        return f"<HostConfig {', '.join(parts)}>"

    def __str__(self) -> str:
        return self.describe()


@dataclass
class Settings:
    hostnames: list[str]
    protocols: list[str]
    ports: list[int]
    passwords: list[str] = field(repr=False)
    listen_addr: str
    listen_port: int
    timeout: float
    scrape_timeout: float
    scrape_interval: float
    skip_tls_verify: bool
    debug: bool

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        if env is None:
            env = os.environ

        def _get(name: str, default: str) -> str:
            return env.get(name, default)

        def _get_port(name: str, default: int) -> int:
            value = _get(name, str(default))
            try:
                parsed = int(value)
            except ValueError as e:
                raise ConfigError(f"{name} must be an integer (got {value!r})") from e
            if not 1 <= parsed <= 65535:
                raise ConfigError(f"{name} must be between 1 and 65535 (got {value!r})")
            return parsed

        def _get_duration(name: str, default: float, allow_zero: bool = False) -> float:
            value = _get(name, f"{default:g}s")
            parsed = parse_duration(value, name)
            if parsed < 0 or (parsed == 0 and not allow_zero):
                raise ConfigError(f"{name} must be > 0 (got {value!r})")
            return parsed

        ports = []
        for item in split_list(_get("PIHOLE_PORT", str(DEFAULT_PIHOLE_PORT))):
            try:
                ports.append(int(item))
            except ValueError as e:
                raise ConfigError(f"PIHOLE_PORT must be a list of integers (got {item!r})") from e

        return cls(
            hostnames=split_list(_get("PIHOLE_HOSTNAME", DEFAULT_HOSTNAME)),
            protocols=split_list(_get("PIHOLE_PROTOCOL", DEFAULT_PROTOCOL)),
            ports=ports,
            passwords=split_list(_get("PIHOLE_PASSWORD", ""), keep_empty=True),
            listen_addr=_get("BIND_ADDR", "0.0.0.0"),
            listen_port=_get_port("PORT", DEFAULT_LISTEN_PORT),
            timeout=_get_duration("TIMEOUT", DEFAULT_TIMEOUT),
            scrape_timeout=_get_duration("SCRAPE_TIMEOUT", DEFAULT_SCRAPE_TIMEOUT),
            scrape_interval=_get_duration("SCRAPE_INTERVAL", 0, allow_zero=True),
            skip_tls_verify=env_truthy("SKIP_TLS_VERIFICATION", "false", env),
            debug=env_truthy("DEBUG", "false", env),
        )

    def hosts(self) -> list[HostConfig]:
        """Split the per-host lists into one validated HostConfig per hostname."""
        if not self.hostnames:
            raise ConfigError("at least one PIHOLE_HOSTNAME is required")

        count = len(self.hostnames)
        result = []
        for idx, hostname in enumerate(self.hostnames):
            port = _pick(self.ports, idx, count, "PIHOLE_PORT")
            protocol = _pick(self.protocols, idx, count, "PIHOLE_PROTOCOL")
            password = _pick(self.passwords, idx, count, "PIHOLE_PASSWORD")

            host = HostConfig(
                protocol=(protocol or DEFAULT_PROTOCOL).strip().lower(),
                hostname=hostname.strip(),
                port=DEFAULT_PIHOLE_PORT if port is None else port,
                password=(password or "").strip(),
                skip_tls_verify=self.skip_tls_verify,
                timeout=self.timeout,
            )
            host.validate()
            result.append(host)
        return result

    def describe_lines(self) -> list[str]:
        lines = [
            f"listen: {self.listen_addr}:{self.listen_port}",
            f"timeout: {self.timeout:g}s",
            f"scrape_timeout: {self.scrape_timeout:g}s",
            (
                f"scrape_interval: {self.scrape_interval:g}s"
                if self.scrape_interval
                else "scrape_interval: on-demand"
            ),
            f"skip_tls_verification: {self.skip_tls_verify}",
            f"debug: {self.debug}",
        ]
        lines.extend(f"host: {host.describe()}" for host in self.hosts())
        if any(self.passwords):
            lines.append("authentication: password")
        return lines


def _pick(values: list, idx: int, count: int, name: str):
    if len(values) == 0:
        return None
    if len(values) == 1:
        return values[0]
    if len(values) == count:
        return values[idx]
    raise ConfigError(
        f"Wrong number of {name}. {name} can be empty to use default, one value to use "
        "for all hosts, or match the number of hosts"
    )


def split_list(value: str, keep_empty: bool = False) -> list[str]:
    items = [item.strip() for item in value.split(",")]
    if keep_empty:
        return items if any(items) or len(items) > 1 else []
    return [item for item in items if item]


def parse_duration(value: str, name: str = "duration") -> float:
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ConfigError(f"{name} must be a duration like 5, 5s or 500ms (got {value!r})")
    amount, unit = match.groups()
    return float(amount) * _DURATION_UNITS[unit or "s"]


def env_truthy(name: str, default: str = "false", env: Mapping[str, str] | None = None) -> bool:
    if env is None:
        env = os.environ
    value = env.get(name, default)
    return str(value).strip().lower() in {"1", "true", "t", "yes", "y", "on"}
