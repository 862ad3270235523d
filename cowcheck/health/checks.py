"""Health checks — the Check contract and the node-level probes.

Supports: DNS (first resolv.conf nameserver, rcode must be NOERROR),
metadata service reachability (any HTTP response), Docker storage headroom
(devicemapper data/metadata pools against byte thresholds).

Every check owns its status. evaluate() never raises: transport errors,
threshold breaches and unreadable configuration all end in mark_failed(),
so one broken probe cannot abort an evaluation pass.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import dns.exception
import dns.message
import dns.query
import dns.rcode
import dns.rdatatype
import dns.resolver
import docker
from docker.errors import DockerException
import httpx
from humanfriendly import InvalidSize, parse_size

from ..metrics import STORAGE_POOLS, HealthMetrics

logger = logging.getLogger(__name__)

DEFAULT_DNS_QUERY = "rancher-metadata.rancher.internal."
DEFAULT_RESOLV_CONF = "/etc/resolv.conf"
DEFAULT_METADATA_URL = "http://169.254.169.250"

DATA_SPACE_KEY = "Data Space Available"
METADATA_SPACE_KEY = "Metadata Space Available"
_POOL_KEYS = {DATA_SPACE_KEY: "data", METADATA_SPACE_KEY: "metadata"}


# ── Models ───────────────────────────────────────────────────────────────────


class Outcome(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"


ProbeResult = tuple[Outcome, str]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(ts: datetime | None) -> str | None:
    return ts.isoformat() if ts else None


class Check:
    """A named probe with its own status and timestamps.

    Subclasses implement probe() and return (Outcome, message). All mutable
    fields are guarded by a per-check lock because the scheduler writes them
    from a worker thread while HTTP handlers read them.
    """

    def __init__(self, name: str, description: str = "") -> None:
        self._name = name
        self.description = description
        self._lock = threading.Lock()
        self._status = True  # optimistic until the first evaluation
        self._last_eval_time: datetime | None = None
        self._last_fail_time: datetime | None = None
        self._last_skip_time: datetime | None = None
        self._eval_count = 0
        self._skip_count = 0
        self._last_message = ""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self._name!r} status={self.status}>"

    # -- accessors -------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def status(self) -> bool:
        with self._lock:
            return self._status

    @property
    def last_eval_time(self) -> datetime | None:
        with self._lock:
            return self._last_eval_time

    @property
    def last_fail_time(self) -> datetime | None:
        with self._lock:
            return self._last_fail_time

    @property
    def eval_count(self) -> int:
        with self._lock:
            return self._eval_count

    @property
    def skip_count(self) -> int:
        with self._lock:
            return self._skip_count

    def snapshot(self) -> dict[str, Any]:
        """Consistent view of the check for diagnostics."""
        with self._lock:
            return {
                "name": self._name,
                "description": self.description,
                "status": self._status,
                "last_eval_time": _iso(self._last_eval_time),
                "last_fail_time": _iso(self._last_fail_time),
                "last_skip_time": _iso(self._last_skip_time),
                "eval_count": self._eval_count,
                "skip_count": self._skip_count,
                "message": self._last_message,
            }

    # -- lifecycle -------------------------------------------------------------

    def probe(self) -> ProbeResult:
        """Run the external interaction. Overridden by every concrete check."""
        return Outcome.PASS, ""

    def evaluate(self) -> None:
        """Run the probe and fold its outcome into this check's state."""
        logger.info("Evaluating check %s", self._name)
        with self._lock:
            self._last_eval_time = _now()
            self._eval_count += 1

        try:
            outcome, message = self.probe()
        except Exception as e:
            logger.exception("Check %s raised during probe", self._name)
            self.mark_failed(f"{type(e).__name__}: {e}")
            return

        if outcome is Outcome.PASS:
            with self._lock:
                self._status = True
                self._last_message = message
        elif outcome is Outcome.SKIP:
            self.mark_skipped(message)
        else:
            self.mark_failed(message)

        logger.debug("Check %s after eval: %s", self._name, self.snapshot())

    def mark_failed(self, message: str = "") -> None:
        """Flip to failed and refresh the fail timestamp, even if already failed."""
        logger.error("Check %s has failed: %s", self._name, message or "no detail")
        with self._lock:
            self._status = False
            self._last_fail_time = _now()
            self._last_message = message

    def mark_skipped(self, message: str = "") -> None:
        """Record an inconclusive evaluation; status keeps its previous value."""
        logger.warning("Check %s skipped: %s", self._name, message or "no detail")
        with self._lock:
            self._last_skip_time = _now()
            self._skip_count += 1
            self._last_message = message


# ── DNS ──────────────────────────────────────────────────────────────────────


def query_rcode(qname: str, resolv_conf: str, timeout: float) -> int:
    """Send one recursive A query to the first configured nameserver, return its rcode."""
    resolver = dns.resolver.Resolver(filename=resolv_conf)
    if not resolver.nameservers:
        raise dns.resolver.NoResolverConfiguration(f"No nameservers in {resolv_conf}")
    request = dns.message.make_query(qname, dns.rdatatype.A)
    response = dns.query.udp(
        request, str(resolver.nameservers[0]), timeout=timeout, port=resolver.port,
    )
    return response.rcode()


class DnsCheck(Check):
    """Resolves the internal metadata name through the host's own resolver."""

    def __init__(
        self,
        query_name: str = DEFAULT_DNS_QUERY,
        resolv_conf: str = DEFAULT_RESOLV_CONF,
        timeout: float = 5.0,
        query: Callable[[str, str, float], int] | None = None,
    ) -> None:
        super().__init__("CheckDNS", "A check for the DNS Service")
        self.query_name = query_name
        self.resolv_conf = resolv_conf
        self.timeout = timeout
        self._query = query or query_rcode

    def probe(self) -> ProbeResult:
        try:
            rcode = self._query(self.query_name, self.resolv_conf, self.timeout)
        except dns.resolver.NoResolverConfiguration as e:
            return Outcome.FAIL, f"Resolver configuration unusable: {e}"
        except dns.exception.Timeout:
            return Outcome.FAIL, f"DNS query timed out ({self.timeout}s)"
        except (dns.exception.DNSException, OSError) as e:
            return Outcome.FAIL, f"DNS error: {type(e).__name__}: {e}"

        if rcode != dns.rcode.NOERROR:
            return Outcome.FAIL, f"DNS query for {self.query_name} returned {dns.rcode.to_text(rcode)}"
        return Outcome.PASS, f"{self.query_name} resolved"


# ── Metadata service ─────────────────────────────────────────────────────────


class MetadataCheck(Check):
    """Reachability of the link-local metadata service. Any HTTP status passes."""

    def __init__(
        self,
        url: str = DEFAULT_METADATA_URL,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__("CheckMetadata", "A check for the Metadata Service")
        self.url = url
        self.timeout = timeout
        self._transport = transport

    def probe(self) -> ProbeResult:
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.get(self.url)
        except httpx.TimeoutException:
            return Outcome.FAIL, f"Request to {self.url} timed out ({self.timeout}s)"
        except httpx.TransportError as e:
            return Outcome.FAIL, f"Connection error: {e}"
        return Outcome.PASS, f"{resp.status_code} from {self.url}"


# ── Docker storage ───────────────────────────────────────────────────────────


def docker_driver_status(timeout: float = 10.0) -> Sequence[Sequence[str]]:
    """DriverStatus pairs from the local Docker daemon's /info."""
    client = docker.from_env(timeout=timeout)
    try:
        return client.info().get("DriverStatus") or []
    finally:
        client.close()


class StorageCheck(Check):
    """Free space of the Docker data and metadata pools against thresholds."""

    def __init__(
        self,
        enabled: bool = False,
        data_threshold: int = 1000,
        metadata_threshold: int = 1000,
        driver_status: Callable[[], Sequence[Sequence[str]]] | None = None,
        metrics: HealthMetrics | None = None,
        timeout: float = 10.0,
    ) -> None:
        super().__init__("CheckStorage", "A check for the Docker Storage subsystem")
        self.enabled = enabled
        self.thresholds = {"data": data_threshold, "metadata": metadata_threshold}
        self.timeout = timeout
        self._driver_status = driver_status or (lambda: docker_driver_status(self.timeout))
        self._metrics = metrics

    def probe(self) -> ProbeResult:
        if not self.enabled:
            logger.debug("Skipping storage check per user config")
            return Outcome.PASS, "Storage check disabled"

        try:
            status = self._driver_status()
        except DockerException as e:
            return Outcome.FAIL, f"Docker info unavailable: {e}"

        free: dict[str, int] = {}
        for item in status:
            if len(item) < 2 or item[0] not in _POOL_KEYS:
                continue
            key, value = item[0], item[1]
            try:
                free[_POOL_KEYS[key]] = parse_size(value)
            except InvalidSize:
                return Outcome.FAIL, f"Unparseable {key!r} value: {value!r}"
            logger.debug("Found %r value of %s", key, value)

        if not free:
            return Outcome.SKIP, "Didn't find storage information from Docker API"

        if self._metrics:
            for pool, free_bytes in free.items():
                self._metrics.set_storage_free(pool, free_bytes)

        missing = [pool for pool in STORAGE_POOLS if pool not in free]
        if missing:
            return Outcome.FAIL, f"Docker API did not report free space for: {', '.join(missing)}"

        breaches = [
            f"{pool} free {free[pool]}B < {self.thresholds[pool]}B"
            for pool in STORAGE_POOLS
            if free[pool] < self.thresholds[pool]
        ]
        if breaches:
            return Outcome.FAIL, "Below threshold: " + "; ".join(breaches)
        return Outcome.PASS, f"data free {free['data']}B, metadata free {free['metadata']}B"
