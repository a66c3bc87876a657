#!/usr/bin/env python3
"""
Kleidi, from the Greek κλειδί (key)

Audits an etcd cluster for keys that are not valid text. Binary or corrupted
keys left behind by buggy producers are listed with a hex dump, an escaped
rendering and a short value preview, and can optionally be removed.

Nothing is deleted unless --remove is given, and --dry always wins over it.

Usage:
    kleidi --endpoints 10.0.0.1:2379                  # Report binary keys
    kleidi --endpoints 10.0.0.1:2379 --prefix 2f61    # Only keys starting with "/a"
    kleidi --endpoints 10.0.0.1:2379 --remove --dry   # Show what would be deleted
    kleidi --endpoints 10.0.0.1:2379 --remove         # Delete binary keys
    kleidi --show-stats                               # Show scan history
"""

import argparse
import os
import sys
from typing import Mapping, Optional

from auxiliary import format_path_for_display
from console_ui import ConsoleUI
from etcd_store import EtcdStore, StoreError, load_transport_credentials
from kleidi_config import (
    DEFAULT_TIMEOUT,
    ENV_CACERT,
    ENV_CERT,
    ENV_ENDPOINTS,
    ENV_KEY,
    ConfigError,
    ScanSettings,
    SharedConfigManager,
)
from key_scanner import KeyScanner, ScanCounters
from remediation import DRY_RUN_OVERRIDE_NOTE, Mode, needs_override_note
from scan_report import render_report


class Kleidi:
    """Main application class for the kleidi binary key auditor."""

    def __init__(
        self,
        args: argparse.Namespace,
        ui: Optional[ConsoleUI] = None,
        store_factory=EtcdStore,
        config_manager: Optional[SharedConfigManager] = None,
    ):
        self.args = args
        self.ui = ui or ConsoleUI()
        self.store_factory = store_factory
        self.config_manager = config_manager or SharedConfigManager()

    # -- history commands ----------------------------------------------------

    def show_stats(self):
        config = self.config_manager.load()
        self.ui.show_stats(config.last_run, config.stats)

    def reset_stats(self):
        self.config_manager.reset()
        self.ui.print_success("Scan history cleared.")

    def _record_run(self, counters: ScanCounters):
        config = self.config_manager.load()
        config.record_run(counters.total, counters.binary, counters.deleted)
        try:
            self.config_manager.save(config)
        except OSError as e:
            self.ui.print_warning(f"Could not save scan history: {e}")

    # -- scan ------------------------------------------------------------------

    def _show_settings(self, settings: ScanSettings):
        self.ui.print_header("Kleidi", f"Scanning {', '.join(settings.endpoints)}")
        shown = {
            "Endpoints": settings.endpoints,
            "Prefix": settings.prefix_hex or "(all keys)",
            "Timeout": f"{settings.timeout:g}s",
            "Mode": settings.mode.value,
            "TLS": "on" if settings.tls_requested else "off",
        }
        if settings.tls_requested:
            shown["CA"] = format_path_for_display(settings.cacert)
            shown["Certificate"] = format_path_for_display(settings.cert)
        self.ui.show_configuration(shown)

    def _open_store(self, settings: ScanSettings):
        credentials = None
        if settings.tls_requested:
            credentials = load_transport_credentials(settings.cacert, settings.cert, settings.key)
        return self.store_factory(settings.endpoints, settings.timeout, credentials)

    def scan(self, settings: ScanSettings) -> ScanCounters:
        """Fetch the key range once, then classify and remediate every key."""
        store = self._open_store(settings)
        try:
            progress = self.ui.create_activity_progress()
            with progress:
                progress.add_task("Fetching keys...", total=None)
                records = store.fetch_prefix(settings.prefix)

            mode = settings.mode
            scanner = KeyScanner(self.ui)
            delete_fn = store.delete_key if mode is Mode.DELETE else None
            counters = scanner.run(records, mode, verbose_text=settings.debug, delete_fn=delete_fn)
        finally:
            store.close()

        self.ui.show_report(render_report(mode, counters))
        return counters

    # -- main entry point ----------------------------------------------------

    def run(self) -> int:
        if getattr(self.args, "show_stats", False):
            self.show_stats()
            return 0
        if getattr(self.args, "reset_stats", False):
            self.reset_stats()
            return 0

        try:
            settings = ScanSettings.from_args(self.args)
            if needs_override_note(settings.dry_run, settings.remove):
                self.ui.print_warning(DRY_RUN_OVERRIDE_NOTE)
            self._show_settings(settings)
            counters = self.scan(settings)
        except ConfigError as e:
            self.ui.print_error(f"Configuration error: {e}")
            return 1
        except StoreError as e:
            self.ui.print_error(str(e))
            return 1

        self._record_run(counters)
        return 0


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def build_parser(environ: Optional[Mapping[str, str]] = None) -> argparse.ArgumentParser:
    env = os.environ if environ is None else environ
    parser = argparse.ArgumentParser(
        prog="kleidi",
        description="Kleidi: find and remove binary keys in etcd",
    )
    parser.add_argument(
        "--endpoints",
        default=env.get(ENV_ENDPOINTS, ""),
        help=f"Comma-separated list of etcd endpoints (default: ${ENV_ENDPOINTS})",
    )
    parser.add_argument("--cacert", default=env.get(ENV_CACERT, ""), help=f"Path to trusted CA file (default: ${ENV_CACERT})")
    parser.add_argument("--cert", default=env.get(ENV_CERT, ""), help=f"Path to client certificate (default: ${ENV_CERT})")
    parser.add_argument("--key", default=env.get(ENV_KEY, ""), help=f"Path to client private key (default: ${ENV_KEY})")
    parser.add_argument("--prefix", default="", help="Hexadecimal prefix of keys to scan (empty scans all keys)")
    parser.add_argument("--timeout", default=DEFAULT_TIMEOUT, help="Request timeout, e.g. 5s, 500ms, 1m (default: 5s)")
    parser.add_argument("--debug", action="store_true", help="Print UTF-8 keys and values")
    parser.add_argument("--remove", action="store_true", help="Delete binary keys")
    parser.add_argument("--dry", action="store_true", help="Dry-run mode (simulates deletion)")
    parser.add_argument("--show-stats", action="store_true", help="Show scan history and exit")
    parser.add_argument("--reset-stats", action="store_true", help="Clear scan history and exit")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    app = Kleidi(args)
    return app.run()


if __name__ == "__main__":
    sys.exit(main())
