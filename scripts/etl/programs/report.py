"""
Migration report for one import run.

`ReportBuilder` is the only mutable piece: the orchestrator bumps counters and
appends issues while it walks the records. `finalize()` freezes everything into
a `MigrationReport`, which is what gets written to JSON and persisted as a
MigrationRun. A finalized report is never changed afterwards.
"""
from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

INFO = "info"
WARNING = "warning"
ERROR = "error"
SEVERITIES = (INFO, WARNING, ERROR)

COUNTER_NAMES = ("total", "created", "updated", "unchanged", "skipped", "errors")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ReportIssue:
    record_identifier: str
    field: str
    issue: str
    severity: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "record_identifier": self.record_identifier,
            "field": self.field,
            "issue": self.issue,
            "severity": self.severity,
        }


@dataclass(frozen=True)
class MigrationReport:
    total: int
    created: int
    updated: int
    unchanged: int
    skipped: int
    errors: int
    issues: Tuple[ReportIssue, ...]
    started_at: datetime
    finished_at: datetime
    dry_run: bool = False

    @property
    def succeeded(self) -> bool:
        return self.errors == 0

    @property
    def counters(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in COUNTER_NAMES}

    def issues_by_severity(self) -> Dict[str, int]:
        counts = Counter(i.severity for i in self.issues)
        return {sev: counts.get(sev, 0) for sev in SEVERITIES}

    def issues_by_field(self) -> Dict[str, int]:
        return dict(Counter(i.field for i in self.issues).most_common())

    def failed_records(self) -> List[str]:
        seen: Dict[str, None] = {}
        for i in self.issues:
            if i.severity == ERROR:
                seen.setdefault(i.record_identifier, None)
        return list(seen)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "counters": self.counters,
            "succeeded": self.succeeded,
            "dry_run": self.dry_run,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "issues_by_severity": self.issues_by_severity(),
            "issues_by_field": self.issues_by_field(),
            "failed_records": self.failed_records(),
            "issues": [i.to_dict() for i in self.issues],
        }

    def write_json(self, path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        return path


@dataclass
class ReportBuilder:
    """Accumulates counters and issues during a run."""
    dry_run: bool = False
    started_at: datetime = field(default_factory=utcnow)
    counters: Dict[str, int] = field(default_factory=lambda: {name: 0 for name in COUNTER_NAMES})
    issues: List[ReportIssue] = field(default_factory=list)
    _finalized: Optional[MigrationReport] = field(default=None, init=False, repr=False)

    def inc(self, counter: str) -> None:
        if counter not in self.counters:
            raise KeyError(f"Unknown report counter: {counter}")
        self._check_open()
        self.counters[counter] += 1

    def add(self, record_identifier: str, field_name: str, issue: str, severity: str = INFO) -> None:
        if severity not in SEVERITIES:
            raise ValueError(f"Unknown severity: {severity}")
        self._check_open()
        self.issues.append(ReportIssue(str(record_identifier), field_name, issue, severity))

    def info(self, record_identifier: str, field_name: str, issue: str) -> None:
        self.add(record_identifier, field_name, issue, INFO)

    def warning(self, record_identifier: str, field_name: str, issue: str) -> None:
        self.add(record_identifier, field_name, issue, WARNING)

    def error(self, record_identifier: str, field_name: str, issue: str) -> None:
        self.add(record_identifier, field_name, issue, ERROR)

    def finalize(self) -> MigrationReport:
        if self._finalized is None:
            self._finalized = MigrationReport(
                issues=tuple(self.issues),
                started_at=self.started_at,
                finished_at=utcnow(),
                dry_run=self.dry_run,
                **self.counters,
            )
        return self._finalized

    def _check_open(self) -> None:
        if self._finalized is not None:
            raise RuntimeError("Report already finalized")


def persist_run(report: MigrationReport, action: str = "import_programs", input_path: str = "", report_path: str = ""):
    """Store a finalized report as MigrationRun + MigrationIssue rows (write-once)."""
    from catalog.models import MigrationIssue, MigrationRun

    stats = dict(report.counters)
    stats["issues_by_severity"] = report.issues_by_severity()
    run = MigrationRun.objects.create(
        action=action,
        input_path=str(input_path or ""),
        report_path=str(report_path or ""),
        started_at=report.started_at,
        finished_at=report.finished_at,
        dry_run=report.dry_run,
        stats=stats,
    )
    MigrationIssue.objects.bulk_create(
        [
            MigrationIssue(
                run=run,
                record_identifier=i.record_identifier[:255],
                field=i.field[:100],
                issue=i.issue,
                severity=i.severity,
            )
            for i in report.issues
        ]
    )
    return run
