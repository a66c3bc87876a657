#!/usr/bin/env python3
"""
Kleidi Configuration

Run settings built from the command line (with ETCDCTL_* environment
defaults), and the persistent run history kept in a .kleidi directory.
"""

import json
import math
import os
import pathlib
import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Optional

from remediation import Mode, resolve_mode

ENV_ENDPOINTS = "ETCDCTL_ENDPOINTS"
ENV_CACERT = "ETCDCTL_CACERT"
ENV_CERT = "ETCDCTL_CERT"
ENV_KEY = "ETCDCTL_KEY"
ENV_HOME = "KLEIDI_HOME"

DEFAULT_TIMEOUT = "5s"

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


class ConfigError(Exception):
    """Invalid or incomplete configuration; fatal for the run"""


def parse_duration(value: str) -> float:
    """Parse a duration such as '5s', '500ms' or '1m30s' into seconds.

    A bare number is taken as seconds.
    """
    text = value.strip()
    try:
        seconds = float(text)
    except ValueError:
        pos = 0
        seconds = 0.0
        for match in _DURATION_PART.finditer(text):
            if match.start() != pos:
                break
            seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
            pos = match.end()
        if not text or pos != len(text):
            raise ConfigError(f"Invalid duration: {value!r}") from None

    if not math.isfinite(seconds) or seconds <= 0:
        raise ConfigError(f"Timeout must be positive: {value!r}")
    return seconds


def decode_prefix(hex_prefix: str) -> bytes:
    """Decode the hex key prefix; an empty string matches all keys."""
    if not hex_prefix:
        return b""
    try:
        return bytes.fromhex(hex_prefix)
    except ValueError as e:
        raise ConfigError(f"Failed to decode hex prefix {hex_prefix!r}: {e}") from e


def split_endpoints(value: Optional[str]) -> list[str]:
    """Split a comma-separated endpoint list, dropping blanks"""
    if not value:
        return []
    return [ep.strip() for ep in value.split(",") if ep.strip()]


@dataclass
class ScanSettings:
    """Validated settings for one scan"""

    endpoints: list[str]
    cacert: str = ""
    cert: str = ""
    key: str = ""
    prefix_hex: str = ""
    prefix: bytes = b""
    timeout: float = 5.0
    debug: bool = False
    remove: bool = False
    dry_run: bool = False

    @property
    def mode(self) -> Mode:
        return resolve_mode(self.dry_run, self.remove)

    @property
    def tls_requested(self) -> bool:
        """TLS is only used when all three files are given"""
        return bool(self.cacert and self.cert and self.key)

    @classmethod
    def from_args(cls, args) -> "ScanSettings":
        """Build settings from parsed command-line arguments

        Raises:
            ConfigError: missing endpoints, bad timeout or bad hex prefix
        """
        endpoints = split_endpoints(args.endpoints)
        if not endpoints:
            raise ConfigError(f"Missing etcd endpoints (--endpoints or ${ENV_ENDPOINTS})")

        return cls(
            endpoints=endpoints,
            cacert=args.cacert or "",
            cert=args.cert or "",
            key=args.key or "",
            prefix_hex=args.prefix or "",
            prefix=decode_prefix(args.prefix or ""),
            timeout=parse_duration(args.timeout),
            debug=args.debug,
            remove=args.remove,
            dry_run=args.dry,
        )


def _default_stats() -> dict:
    return {"total_runs": 0, "total_scanned": 0, "total_binary": 0, "total_deleted": 0}


@dataclass
class KleidiConfig:
    """Persistent kleidi state"""

    version: str = "1.0"
    last_run: Optional[str] = None
    stats: dict = field(default_factory=_default_stats)

    def record_run(self, scanned: int, binary: int, deleted: int):
        """Fold a completed scan into the history"""
        increments = {"total_runs": 1, "total_scanned": scanned, "total_binary": binary, "total_deleted": deleted}
        for name, amount in increments.items():
            self.stats[name] = self.stats.get(name, 0) + amount
        self.last_run = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "KleidiConfig":
        """Create from dictionary"""
        stats = _default_stats()
        stats.update(data.get("stats", {}))
        return cls(
            version=data.get("version", "1.0"),
            last_run=data.get("last_run"),
            stats=stats,
        )


class SharedConfigManager:
    """Loads and saves the kleidi history file"""

    def __init__(self, kleidi_dir: Optional[pathlib.Path] = None):
        """Initialize configuration manager

        Args:
            kleidi_dir: Override default .kleidi directory location
        """
        if kleidi_dir:
            self.kleidi_dir = kleidi_dir
        elif os.environ.get(ENV_HOME):
            self.kleidi_dir = pathlib.Path(os.environ[ENV_HOME])
        else:
            self.kleidi_dir = pathlib.Path.home() / ".kleidi"

        self.config_file = self.kleidi_dir / "config.json"

    def load(self) -> KleidiConfig:
        """Load configuration from file"""
        if self.config_file.exists():
            try:
                with self.config_file.open() as f:
                    data = json.load(f)
                    return KleidiConfig.from_dict(data)
            except (json.JSONDecodeError, AttributeError, TypeError, OSError):
                # If config is corrupted, return default
                return KleidiConfig()
        return KleidiConfig()

    def save(self, config: KleidiConfig):
        """Save configuration to file"""
        self.kleidi_dir.mkdir(parents=True, exist_ok=True)
        with self.config_file.open("w") as f:
            json.dump(config.to_dict(), f, indent=2)

    def reset(self):
        """Reset configuration to default"""
        if self.config_file.exists():
            self.config_file.unlink()
