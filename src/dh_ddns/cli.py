#!/usr/bin/env python3
"""dh-ddns-updater - Dynamic DNS for Dreamhost

Polls a public IP lookup service and keeps one or more Dreamhost DNS records
pointed at the current address. Records are only rewritten when their live
value differs from the resolved IP.

Usage:
    dh-ddns-updater [CONFIG_PATH] [--once]

    CONFIG_PATH defaults to /etc/dh-ddns-updater/config.yaml

Example config file:

    check_interval: 5m
    dreamhost_api_key: "ABCDEF123456"
    state_path: /var/lib/dh-ddns-updater/state.json
    log_level: info
    domains:
      - name: example.com
        record: home
        type: A
      - name: example.com
        record: ""          # apex record
        type: A

Optional keys:
    ip_lookup_url          Public IP echo endpoint (default: https://ipinfo.io/ip)
    api_url                Dreamhost API base URL (default: https://api.dreamhost.com/)
    http_timeout           Per-request timeout, must be positive (default: 30s)

Durations (check_interval, http_timeout) are a number of seconds or a
sequence of number+unit parts using h, m, s, ms, us (or µs) and ns,
for example "5m", "1h30m" or "1500ms".

Environment variables:
    DREAMHOST_API_KEY      Used when the config file does not set dreamhost_api_key
    LOG_LEVEL              Overrides log_level from the config file
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import re
import signal
import sys
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import requests
import yaml

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_CONFIG_PATH = "/etc/dh-ddns-updater/config.yaml"
DEFAULT_STATE_PATH = "/var/lib/dh-ddns-updater/state.json"
DEFAULT_IP_LOOKUP_URL = "https://ipinfo.io/ip"
DEFAULT_API_URL = "https://api.dreamhost.com/"
DEFAULT_CHECK_INTERVAL_SECONDS = 300.0
MIN_CHECK_INTERVAL_SECONDS = 30.0
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0
DEFAULT_LOG_LEVEL = "info"

# Zero timestamp written by older state files for "never updated"
_ZERO_TIMESTAMP = "0001-01-01T00:00:00Z"

logger = logging.getLogger(__name__)

# =============================================================================
# Errors
# =============================================================================


class DDNSError(Exception):
    """Base class for all daemon errors."""


class ConfigError(DDNSError):
    """Configuration file is missing or invalid. Fatal at startup."""


class StateCorruptError(DDNSError):
    """State file exists but cannot be parsed. Fatal at startup."""


class ResolutionError(DDNSError):
    """Public IP lookup failed. Aborts the current pass only."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProviderError(DDNSError):
    """DNS provider call failed at the transport or application level."""


class ReconcileError(DDNSError):
    """One or more record updates failed during a pass."""

    def __init__(self, errors: List[Exception]):
        super().__init__(f"failed to update {len(errors)} record(s)")
        self.errors = errors


class PassCancelled(DDNSError):
    """Shutdown was requested while a pass was in progress."""


def _check_cancelled(stop_event: Optional[threading.Event]) -> None:
    if stop_event is not None and stop_event.is_set():
        raise PassCancelled("shutdown requested")


# =============================================================================
# Data Classes
# =============================================================================


def record_key(zone: str, record: str) -> str:
    """Return the fully qualified name a zone + record label resolves to.

    This is the only place record names are built. The same key is used for
    provider lookups, add/remove calls and the state file.
    """
    if record:
        return f"{record}.{zone}"
    return zone


@dataclass(frozen=True)
class DomainSpec:
    """One managed DNS record."""

    zone: str
    record: str
    type: str

    @property
    def key(self) -> str:
        return record_key(self.zone, self.record)


@dataclass(frozen=True)
class ProviderRecord:
    """A record as reported by the provider's list call."""

    record: str
    type: str
    value: str


@dataclass(frozen=True)
class DaemonConfig:
    """Parsed daemon configuration."""

    api_key: str
    domains: Tuple[DomainSpec, ...] = ()
    check_interval: float = DEFAULT_CHECK_INTERVAL_SECONDS
    state_path: str = DEFAULT_STATE_PATH
    log_level: str = DEFAULT_LOG_LEVEL
    ip_lookup_url: str = DEFAULT_IP_LOOKUP_URL
    api_url: str = DEFAULT_API_URL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS


@dataclass
class PersistedState:
    """What the daemon last applied. Only an optimization; the provider is
    the authority for live record values."""

    last_public_ip: str = ""
    last_updated: Optional[datetime] = None
    records: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "last_public_ip": self.last_public_ip,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            "records": dict(self.records),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "PersistedState":
        """Build a state from decoded JSON, raising ValueError on bad shapes."""
        if not isinstance(data, dict):
            raise ValueError("state document must be a JSON object")

        last_ip = data.get("last_public_ip", data.get("last_ip", "")) or ""
        if not isinstance(last_ip, str):
            raise ValueError("last_public_ip must be a string")

        records = data.get("records") or {}
        if not isinstance(records, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in records.items()
        ):
            raise ValueError("records must map strings to strings")

        return cls(
            last_public_ip=last_ip,
            last_updated=_parse_timestamp(data.get("last_updated")),
            records=dict(records),
        )


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value in (None, "", 0, _ZERO_TIMESTAMP):
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if not isinstance(value, str):
        raise ValueError(f"last_updated has unsupported type {type(value).__name__}")
    # fromisoformat() only accepts a trailing "Z" from Python 3.11 on
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    # Older state files carry nanosecond precision, fromisoformat() stops at microseconds
    value = re.sub(r"(\.\d{6})\d+", r"\1", value)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# =============================================================================
# Configuration
# =============================================================================

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d+)?)(ns|us|\u00b5s|\u03bcs|ms|h|m|s)")
_DURATION_UNITS = {
    "h": 3600.0,
    "m": 60.0,
    "s": 1.0,
    "ms": 1e-3,
    "us": 1e-6,
    "\u00b5s": 1e-6,
    "\u03bcs": 1e-6,
    "ns": 1e-9,
}


def parse_duration(value: Any) -> float:
    """Parse a duration such as "5m", "1h30m" or "90s", or plain seconds.

    Returns the duration in seconds. Raises ValueError on anything else.
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"invalid duration: {value!r}")

    text = value.strip().lower()
    if not text:
        raise ValueError("empty duration")
    try:
        return float(text)
    except ValueError:
        pass

    pos = 0
    total = 0.0
    for match in _DURATION_PART_RE.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ValueError(f"invalid duration: {value!r}")
    return total


def _parse_log_level(value: str) -> int:
    name = str(value).strip().lower()
    if name == "warn":
        name = "warning"
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def _parse_domains(items: Any) -> Tuple[DomainSpec, ...]:
    if items is None:
        return ()
    if not isinstance(items, list):
        raise ConfigError("'domains' must be a list")

    domains: List[DomainSpec] = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ConfigError(f"domains[{index}] must be a mapping")
        zone = str(item.get("name") or "").strip()
        if not zone:
            raise ConfigError(f"domains[{index}] is missing 'name'")
        rtype = str(item.get("type") or "").strip()
        if not rtype:
            raise ConfigError(f"domains[{index}] ({zone}) is missing 'type'")
        record = str(item.get("record") or "").strip()
        domains.append(DomainSpec(zone=zone, record=record, type=rtype))
    return tuple(domains)


def load_config(config_path: str) -> DaemonConfig:
    """Read and validate the YAML configuration file."""
    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"cannot read config file {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"cannot parse config file {config_path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {config_path} must contain a mapping")

    domains = _parse_domains(data.get("domains"))

    api_key = str(data.get("dreamhost_api_key") or os.getenv("DREAMHOST_API_KEY", "")).strip()
    if domains and not api_key:
        raise ConfigError("dreamhost_api_key is required when domains are configured")

    try:
        check_interval = (
            parse_duration(data["check_interval"])
            if data.get("check_interval") is not None
            else DEFAULT_CHECK_INTERVAL_SECONDS
        )
        http_timeout = (
            parse_duration(data["http_timeout"])
            if data.get("http_timeout") is not None
            else DEFAULT_HTTP_TIMEOUT_SECONDS
        )
    except ValueError as e:
        raise ConfigError(str(e)) from e

    if http_timeout <= 0:
        raise ConfigError(f"http_timeout must be positive, got {http_timeout:g}s")

    if check_interval < MIN_CHECK_INTERVAL_SECONDS:
        logger.warning(
            f"check_interval {check_interval:g}s is below the minimum, "
            f"using {MIN_CHECK_INTERVAL_SECONDS:g}s"
        )
        check_interval = MIN_CHECK_INTERVAL_SECONDS

    return DaemonConfig(
        api_key=api_key,
        domains=domains,
        check_interval=check_interval,
        state_path=str(data.get("state_path") or DEFAULT_STATE_PATH),
        log_level=os.getenv("LOG_LEVEL") or str(data.get("log_level") or DEFAULT_LOG_LEVEL),
        ip_lookup_url=str(data.get("ip_lookup_url") or DEFAULT_IP_LOOKUP_URL),
        api_url=str(data.get("api_url") or DEFAULT_API_URL),
        http_timeout=http_timeout,
    )


# =============================================================================
# IP Resolver Interface and Implementations
# =============================================================================


class IPResolver(ABC):
    """Abstract base class for public IP lookups."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the resolver name for logging."""
        pass

    @abstractmethod
    def resolve(self, stop_event: Optional[threading.Event] = None) -> str:
        """Return the current public IP address."""
        pass


class HTTPIPResolver(IPResolver):
    """Resolves the public IP from a plain text echo endpoint."""

    def __init__(
        self,
        url: str = DEFAULT_IP_LOOKUP_URL,
        timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self._url = url
        self._timeout = timeout_seconds
        self._session = session or requests.Session()

    @property
    def name(self) -> str:
        return self._url

    def resolve(self, stop_event: Optional[threading.Event] = None) -> str:
        _check_cancelled(stop_event)
        try:
            response = self._session.get(self._url, timeout=self._timeout)
        except requests.exceptions.RequestException as e:
            raise ResolutionError(f"request to {self.name} failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise ResolutionError(
                f"HTTP {response.status_code} from {self.name}",
                status_code=response.status_code,
            )

        ip = response.text.strip()
        if not ip:
            raise ResolutionError(f"empty response from {self.name}")
        return ip


# =============================================================================
# DNS Provider Interface and Implementations
# =============================================================================


class DNSProvider(ABC):
    """Abstract base class for DNS providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name for logging."""
        pass

    @abstractmethod
    def list_records(self, stop_event: Optional[threading.Event] = None) -> List[ProviderRecord]:
        """List all DNS records visible to the account."""
        pass

    @abstractmethod
    def add_record(
        self, fqdn: str, rtype: str, value: str, stop_event: Optional[threading.Event] = None
    ) -> None:
        """Add a DNS record."""
        pass

    @abstractmethod
    def remove_record(
        self,
        fqdn: str,
        rtype: str,
        value: Optional[str] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        """Remove a DNS record."""
        pass

    def lookup_current_value(
        self, fqdn: str, rtype: str, stop_event: Optional[threading.Event] = None
    ) -> str:
        """Return the live value of (fqdn, rtype), or "" if no such record."""
        for record in self.list_records(stop_event):
            if record.record == fqdn and record.type == rtype:
                return record.value
        return ""

    def update_record(
        self,
        fqdn: str,
        rtype: str,
        new_value: str,
        old_value: Optional[str] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        """Update a record. Default implementation: best-effort remove + add.

        The remove may fail simply because the record does not exist yet, so
        its error is logged and never blocks the add.
        """
        try:
            self.remove_record(fqdn, rtype, old_value, stop_event)
        except ProviderError as e:
            logger.warning(
                f"Failed to remove existing record (might not exist): {fqdn} {rtype}: {e}"
            )
        self.add_record(fqdn, rtype, new_value, stop_event)


class DreamhostDNSProvider(DNSProvider):
    """Dreamhost API DNS provider implementation."""

    def __init__(
        self,
        api_key: str,
        url: str = DEFAULT_API_URL,
        timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self._api_key = api_key
        self._url = url
        self._timeout = timeout_seconds
        self._session = session or requests.Session()

    @property
    def name(self) -> str:
        return "Dreamhost"

    def _call(
        self, cmd: str, params: Dict[str, str], stop_event: Optional[threading.Event] = None
    ) -> Any:
        """Issue one API command and return the envelope's data payload."""
        _check_cancelled(stop_event)
        query = {"key": self._api_key, "cmd": cmd, "format": "json"}
        query.update(params)
        try:
            response = self._session.get(self._url, params=query, timeout=self._timeout)
            response.raise_for_status()
            envelope = response.json()
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"{cmd} request failed: {e}") from e
        except ValueError as e:
            raise ProviderError(f"{cmd} returned invalid JSON: {e}") from e

        if not isinstance(envelope, dict):
            raise ProviderError(f"{cmd} returned an unexpected response: {envelope!r}")
        if envelope.get("result") != "success":
            raise ProviderError(f"{self.name} API error for {cmd}: {envelope.get('data')}")
        return envelope.get("data")

    def list_records(self, stop_event: Optional[threading.Event] = None) -> List[ProviderRecord]:
        data = self._call("dns-list_records", {}, stop_event)
        if not isinstance(data, list):
            raise ProviderError(f"dns-list_records returned non-list data: {data!r}")

        records = []
        for r in data:
            record = r.get("record") if isinstance(r, dict) else None
            rtype = r.get("type") if isinstance(r, dict) else None
            value = r.get("value") if isinstance(r, dict) else None
            if not all(isinstance(v, str) for v in (record, rtype, value)):
                logger.warning(f"Skipping malformed record: {r}")
                continue
            records.append(ProviderRecord(record=record, type=rtype, value=value))
        return records

    def add_record(
        self, fqdn: str, rtype: str, value: str, stop_event: Optional[threading.Event] = None
    ) -> None:
        self._call("dns-add_record", {"record": fqdn, "type": rtype, "value": value}, stop_event)
        logger.debug(f"Added DNS record: {fqdn} {rtype} -> {value}")

    def remove_record(
        self,
        fqdn: str,
        rtype: str,
        value: Optional[str] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        params = {"record": fqdn, "type": rtype}
        if value:
            params["value"] = value
        self._call("dns-remove_record", params, stop_event)
        logger.debug(f"Removed DNS record: {fqdn} {rtype} -> {value or '*'}")


# =============================================================================
# State Management
# =============================================================================


class StateStore:
    def __init__(self, path: str):
        self.path = Path(path)

    def load(self) -> PersistedState:
        if not self.path.exists():
            state = PersistedState()
            self.save(state)
            logger.info(f"Created new state file {self.path}")
            return state
        try:
            return PersistedState.from_dict(json.loads(self.path.read_text("utf-8")))
        except (OSError, ValueError, OverflowError) as e:
            raise StateCorruptError(f"failed to load state file {self.path}: {e}") from e

    def save(self, state: PersistedState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(state.to_dict(), indent=2, sort_keys=True), "utf-8")
        tmp_path.replace(self.path)


# =============================================================================
# Reconciler
# =============================================================================


class Reconciler:
    def __init__(
        self,
        *,
        ip_resolver: IPResolver,
        dns_provider: DNSProvider,
        state_store: StateStore,
        domains: Tuple[DomainSpec, ...],
        log: Optional[logging.Logger] = None,
    ):
        self.ip_resolver = ip_resolver
        self.dns_provider = dns_provider
        self.state_store = state_store
        self.domains = domains
        self.log = log or logger
        self._lock = threading.Lock()

    def run_once(self, state: PersistedState, stop_event: Optional[threading.Event] = None) -> None:
        """Run one reconciliation pass over all configured domains.

        Raises ResolutionError if the public IP cannot be determined,
        ReconcileError if any record update failed and PassCancelled if
        shutdown was requested. State is persisted only when none of these
        happen.
        """
        with self._lock:
            self._run_once(state, stop_event)

    def _run_once(self, state: PersistedState, stop_event: Optional[threading.Event]) -> None:
        current_ip = self.ip_resolver.resolve(stop_event)
        self.log.debug(f"Current IP: {current_ip}")

        if current_ip != state.last_public_ip:
            self.log.info(f"IP changed: old={state.last_public_ip or '-'} new={current_ip}")

        errors: List[Exception] = []
        updated_any = False

        for domain in self.domains:
            key = domain.key

            try:
                live_value = self.dns_provider.lookup_current_value(key, domain.type, stop_event)
            except ProviderError as e:
                self.log.warning(
                    f"Failed to get current DNS record, will update anyway: "
                    f"record={key} type={domain.type} error={e}"
                )
                live_value = ""

            if live_value == current_ip:
                self.log.debug(
                    f"DNS record already up to date: record={key} type={domain.type} ip={current_ip}"
                )
                state.records[key] = current_ip
                continue

            self.log.info(
                f"Updating DNS record: record={key} type={domain.type} "
                f"old_ip={live_value or '-'} new_ip={current_ip}"
            )
            try:
                self.dns_provider.update_record(
                    key,
                    domain.type,
                    current_ip,
                    old_value=live_value or state.records.get(key),
                    stop_event=stop_event,
                )
            except ProviderError as e:
                self.log.error(
                    f"Failed to update DNS record: record={key} type={domain.type} error={e}"
                )
                errors.append(e)
                continue

            self.log.info(
                f"Successfully updated DNS record: record={key} type={domain.type} ip={current_ip}"
            )
            state.records[key] = current_ip
            updated_any = True

        if errors:
            raise ReconcileError(errors)

        # Nothing composed under a cancelled pass is persisted
        _check_cancelled(stop_event)

        state.last_public_ip = current_ip
        if updated_any:
            state.last_updated = datetime.now(timezone.utc)
        try:
            self.state_store.save(state)
        except OSError as e:
            self.log.error(f"Failed to save state to {self.state_store.path}: {e}")


# =============================================================================
# Scheduler
# =============================================================================


class SchedulerPhase(Enum):
    IDLE = "idle"
    RUNNING = "running"
    WAITING = "waiting"
    STOPPED = "stopped"


class Scheduler:
    """Runs a pass immediately, then every interval until stop_event is set."""

    def __init__(
        self,
        *,
        reconciler: Reconciler,
        state: PersistedState,
        interval_seconds: float,
        stop_event: threading.Event,
    ):
        self.reconciler = reconciler
        self.state = state
        self.interval_seconds = interval_seconds
        self.stop_event = stop_event
        self.phase = SchedulerPhase.IDLE
        self.passes = 0

    def run_pass(self) -> bool:
        """Run one pass, logging any failure. Returns True on success."""
        self.phase = SchedulerPhase.RUNNING
        self.passes += 1
        logger.debug(f"Starting pass {self.passes}")
        try:
            self.reconciler.run_once(self.state, self.stop_event)
        except PassCancelled:
            logger.info("Pass abandoned: shutdown requested")
            return False
        except ResolutionError as e:
            logger.error(f"Failed to get current IP: {e}")
            return False
        except DDNSError as e:
            logger.error(f"Check and update failed: {e}")
            return False
        return True

    def run(self) -> None:
        while not self.stop_event.is_set():
            self.run_pass()
            if self.stop_event.is_set():
                break
            self.phase = SchedulerPhase.WAITING
            if self.stop_event.wait(self.interval_seconds):
                break
        self.phase = SchedulerPhase.STOPPED
        logger.info("Shutting down")


# =============================================================================
# Main
# =============================================================================


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        "dh-ddns-updater", description="Keep Dreamhost DNS records pointed at this host's public IP"
    )
    parser.add_argument(
        "config",
        nargs="?",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to YAML config (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("--once", action="store_true", help="Run a single pass and exit")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = _build_arg_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Failed to initialize updater: loading config: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=_parse_log_level(config.log_level),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    state_store = StateStore(config.state_path)
    try:
        state = state_store.load()
    except (StateCorruptError, OSError) as e:
        print(f"Failed to initialize updater: loading state: {e}", file=sys.stderr)
        return 1

    session = requests.Session()
    reconciler = Reconciler(
        ip_resolver=HTTPIPResolver(config.ip_lookup_url, config.http_timeout, session),
        dns_provider=DreamhostDNSProvider(
            config.api_key, config.api_url, config.http_timeout, session
        ),
        state_store=state_store,
        domains=config.domains,
    )
    stop_event = threading.Event()
    scheduler = Scheduler(
        reconciler=reconciler,
        state=state,
        interval_seconds=config.check_interval,
        stop_event=stop_event,
    )

    logger.info(
        f"Starting DDNS updater: check_interval={config.check_interval:g}s "
        f"domains={len(config.domains)} state_path={config.state_path}"
    )
    if not config.domains:
        logger.warning("No domains configured, nothing will be updated")

    if args.once:
        return 0 if scheduler.run_pass() else 1

    def handle_signal(signum: int, frame: Optional[object]) -> None:
        logger.info(f"Received signal {signal.Signals(signum).name}")
        stop_event.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    # The worker is a daemon thread so an HTTP call in flight at shutdown is
    # abandoned instead of holding the process open until its timeout.
    worker = threading.Thread(target=scheduler.run, name="reconciler", daemon=True)
    worker.start()
    while worker.is_alive() and not stop_event.is_set():
        stop_event.wait(1.0)
    if not stop_event.is_set():
        logger.error("Reconciler stopped unexpectedly")
        return 1
    worker.join(timeout=1.0)
    return 0


if __name__ == "__main__":
    sys.exit(main())
