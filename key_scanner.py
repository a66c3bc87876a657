#!/usr/bin/env python3
"""
Key Scanner Module

Walks a retrieved snapshot of etcd key/value pairs once, classifies every key
and applies the remediation action for the run's mode. Per-key output goes
through the console UI; the accumulated counters are returned to the caller.
"""

from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from auxiliary import quote_bytes
from console_ui import ConsoleUI
from etcd_store import KeyRecord, StoreError
from key_analyzer import Classification, classify, preview_raw, preview_text
from remediation import Action, Mode, decide


@dataclass
class ScanCounters:
    """Accounting for a single scan"""

    total: int = 0
    binary: int = 0
    text: int = 0
    dry_run_marked: int = 0
    deleted: int = 0


class KeyScanner:
    """Scan-classify-remediate engine"""

    def __init__(self, ui: ConsoleUI):
        self.ui = ui

    def run(
        self,
        records: Iterable[KeyRecord],
        mode: Mode,
        verbose_text: bool = False,
        delete_fn: Optional[Callable[[bytes], None]] = None,
    ) -> ScanCounters:
        """Process every record in the order given and return the final counters.

        Args:
            records: Key/value pairs, already in store order
            mode: Remediation mode for the whole run
            verbose_text: Also print text keys with a value preview
            delete_fn: Deletes one key, raising StoreError on failure; required in DELETE mode

        Returns:
            Counters for the completed scan
        """
        if mode is Mode.DELETE and delete_fn is None:
            raise ValueError("delete mode requires a delete function")

        counters = ScanCounters()
        for record in records:
            counters.total += 1
            classification = classify(record.key)

            if classification is Classification.TEXT:
                counters.text += 1
                if verbose_text:
                    self.ui.show_text_key(quote_bytes(record.key), preview_text(record.value))
                continue

            counters.binary += 1
            raw_key = quote_bytes(record.key)
            self.ui.show_binary_key(record.key.hex(), raw_key, preview_raw(record.value))

            action = decide(mode, classification)
            if action is Action.SIMULATE_DELETE:
                self.ui.show_would_delete(raw_key)
                counters.dry_run_marked += 1
            elif action is Action.DELETE:
                try:
                    delete_fn(record.key)
                except StoreError as e:
                    self.ui.show_delete_failed(raw_key, str(e))
                else:
                    self.ui.show_deleted(raw_key)
                    counters.deleted += 1

        return counters
