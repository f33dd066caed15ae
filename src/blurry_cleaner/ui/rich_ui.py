#!/usr/bin/env python3
"""
rich_ui.py: Rich-based live view for a blurry-cleaner scan.

Shows scan progress, a keep/maybe/reject breakdown at the current threshold
and the most recent results while the scheduler works through the records.
"""

import asyncio
from collections import Counter
from typing import Iterable, List, Optional, Tuple

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TimeElapsedColumn, TimeRemainingColumn
from rich.panel import Panel
from rich.layout import Layout
from rich.live import Live
from rich.text import Text
from rich.table import Table

from ..core.quality import classify
from ..core.records import ImageRecord, RecordEvent
from ..core.scan_engine import ScanScheduler
from ..utils.log_utils import get_logger

logger = get_logger(__name__)

LABEL_STYLES = {"keep": "bold green", "maybe": "bold yellow", "reject": "bold red"}
RECENT_RESULTS = 3


class RichScanUI:
    """Live progress display bound to a scheduler's record store."""

    def __init__(self, scheduler: ScanScheduler, threshold: int, console: Optional[Console] = None):
        self.scheduler = scheduler
        self.threshold = threshold
        self.console = console or Console()
        self.label_counts: Counter = Counter()
        self.failed_count = 0
        self.resolved_count = 0
        self.recent_results: List[str] = []
        self.layout: Optional[Layout] = None
        self.analysis_task_id = None
        self.stats_text = Text("Waiting for results...", style="dim")
        self.results_text = Text("Waiting for analysis results...", style="dim")
        self.status_text = Text(
            f"Scanning with {scheduler.concurrency} workers, threshold {threshold}", style="blue"
        )
        self.analysis_progress = Progress(
            SpinnerColumn("dots8"),
            TextColumn("[bold yellow]Analyzing images..."),
            BarColumn(bar_width=None),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TextColumn("({task.completed}/{task.total})"),
            TimeElapsedColumn(),
            TimeRemainingColumn(),
            console=self.console,
        )

    def _create_layout(self) -> Layout:
        layout = Layout()
        layout.split_column(
            Layout(name="progress_section", size=4),
            Layout(name="stats_section", size=4),
            Layout(name="results_section"),
        )
        return layout

    def _create_progress_section(self) -> Panel:
        table = Table(show_header=False, box=None, padding=0)
        table.add_column("Progress", width=None)
        table.add_row(self.status_text)
        table.add_row(self.analysis_progress)
        return Panel(table, title="[bold]Progress", border_style="blue")

    def _create_stats_section(self) -> Panel:
        return Panel(self.stats_text, title="[bold]Quality Summary", border_style="magenta")

    def _create_results_section(self) -> Panel:
        return Panel(self.results_text, title="[bold]Latest Results", border_style="green")

    def _update_stats_panel(self) -> None:
        """Rebuild the keep/maybe/reject bar."""
        total = sum(self.label_counts.values())
        bar_width = max(10, self.console.width - 4)
        bar = Text()
        if total <= 0:
            bar.append(" " * bar_width, style="dim")
        else:
            remaining = bar_width
            for label in ("keep", "maybe", "reject"):
                length = min(remaining, int(round(self.label_counts[label] / total * bar_width)))
                if length > 0:
                    bar.append("█" * length, style=LABEL_STYLES[label])
                remaining -= length

        label_line = Text()
        for label in ("keep", "maybe", "reject"):
            pct = self.label_counts[label] / total * 100 if total else 0.0
            label_line.append(f" {label.capitalize()} {pct:>5.1f}%  ", style=LABEL_STYLES[label])
        label_line.append(f" Failed {self.failed_count}", style="dim")

        self.stats_text = Text.assemble(bar, Text("\n"), label_line)
        if self.layout:
            self.layout["stats_section"].update(self._create_stats_section())

    def _update_results_display(self, line: str) -> None:
        self.recent_results.append(line)
        self.recent_results = self.recent_results[-RECENT_RESULTS:]
        self.results_text.plain = "\n".join(self.recent_results)

    def describe(self, record: ImageRecord) -> str:
        if record.analysis is None:
            return f"{record.name}: Error - {(record.error or '')[:60]}"
        label = classify(record.analysis.quality, self.threshold)
        m = record.analysis
        return (
            f"[{label.upper()} {m.quality:.0f}] {record.name} "
            f"(sharp {m.sharpness:.1f}, contrast {m.contrast:.1f}, noise {m.noise:.1f})"
        )

    def _on_record_event(self, event: RecordEvent) -> None:
        if event.kind not in ("analyzed", "failed"):
            return
        for record in event.records:
            if record.analysis is not None:
                self.label_counts[classify(record.analysis.quality, self.threshold)] += 1
            else:
                self.failed_count += 1
            self.resolved_count += 1
            self._update_results_display(self.describe(record))
        if self.analysis_task_id is not None:
            self.analysis_progress.update(
                self.analysis_task_id,
                completed=self.resolved_count,
            )
        self._update_stats_panel()

    def _on_state_change(self, active: bool) -> None:
        if not active:
            self.status_text.plain = "✓ Scan complete!"
            self.status_text.style = "green"

    async def run_session(self, records: Iterable[ImageRecord]) -> Tuple[ImageRecord, ...]:
        """Run one scan session with the live display attached."""
        unsubscribe = self.scheduler.store.subscribe(self._on_record_event)
        self.scheduler.on_state_change = self._on_state_change
        try:
            self.layout = self._create_layout()
            self.layout["progress_section"].update(self._create_progress_section())
            self.layout["stats_section"].update(self._create_stats_section())
            self.layout["results_section"].update(self._create_results_section())

            with Live(self.layout, console=self.console, refresh_per_second=10, screen=False):
                self.scheduler.start_session(records)
                visible = self.scheduler.store.visible()
                self.resolved_count = sum(1 for r in visible if r.resolved)
                self.analysis_task_id = self.analysis_progress.add_task(
                    "Analyzing images...",
                    total=len(visible),
                    completed=self.resolved_count,
                )
                self._update_stats_panel()
                await self.scheduler.run()
        finally:
            unsubscribe()
            self.scheduler.on_state_change = None
        return self.scheduler.store.snapshot()

    @staticmethod
    def run(scheduler: ScanScheduler, records: Iterable[ImageRecord], threshold: int,
            console: Optional[Console] = None) -> Tuple[ImageRecord, ...]:
        """Convenience method to run a scan under the live display."""
        ui = RichScanUI(scheduler, threshold, console=console)
        return asyncio.run(ui.run_session(records))
