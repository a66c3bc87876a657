#!/usr/bin/env python3
"""
Scan report rendering

Turns the run mode and final counters into the ordered summary lines. Styles
are named here and applied by the console layer.
"""

from dataclasses import dataclass
from typing import Optional

from key_scanner import ScanCounters
from remediation import Mode


@dataclass(frozen=True)
class ReportLine:
    """One line of the summary"""

    label: str
    value: str = ""
    style: Optional[str] = None
    indent: int = 0

    def plain(self) -> str:
        """Line text without styling"""
        text = f"{self.label}:"
        if self.value:
            text = f"{text} {self.value}"
        return " " * self.indent + text


def render_report(mode: Mode, counters: ScanCounters) -> list[ReportLine]:
    """Build the summary for a finished scan.

    Line order is fixed: mode, heading, binary, UTF-8 and total counts, then
    the dry-run or delete count for those modes.
    """
    lines: list[ReportLine] = []
    if mode is Mode.DRY_RUN:
        lines.append(ReportLine("Mode", "dry-run"))
    elif mode is Mode.DELETE:
        lines.append(ReportLine("Mode", "delete"))

    lines.append(ReportLine("SUMMARY", style="bold white"))
    lines.append(ReportLine("Binary keys", str(counters.binary), style="green", indent=2))
    lines.append(ReportLine("UTF-8 keys", str(counters.text), style="blue", indent=2))
    lines.append(ReportLine("Total keys", str(counters.total), indent=2))

    if mode is Mode.DRY_RUN:
        lines.append(ReportLine("Dry-run", f"{counters.dry_run_marked} keys would be deleted", style="yellow", indent=2))
    elif mode is Mode.DELETE:
        lines.append(ReportLine("Deleted", f"{counters.deleted} keys", style="red", indent=2))

    return lines
