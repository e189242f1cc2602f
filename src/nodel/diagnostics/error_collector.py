"""Run-scoped diagnostic collection for graph operations.

Failed graph mutations are recovered at the store boundary and recorded here
instead of propagating. Collected diagnostics can be flushed to a directory as
JSON summaries with a rolling index.
"""

import json
import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

MAX_INDEXED_RUNS = 100


class ErrorSeverity(str, Enum):
    """Diagnostic severity levels."""
    CRITICAL = "critical"  # Corrupted state
    ERROR = "error"        # Invalid internal state, e.g. negative suspend depth
    WARNING = "warning"    # Rejected request, e.g. unknown node id
    INFO = "info"          # Expected no-op, e.g. disconnecting a missing edge


@dataclass
class ErrorContext:
    """Context information for a diagnostic."""
    operation: str                      # Operation that failed (e.g., "connect_nodes")
    component: str                      # Component reporting it (e.g., "GraphStore")
    node_id: Optional[str] = None
    related_id: Optional[str] = None    # Second node of an edge operation
    additional_context: Optional[Dict[str, Any]] = None


@dataclass
class Diagnostic:
    """A single reported failure."""
    diagnostic_id: str
    run_id: str
    timestamp: str
    severity: ErrorSeverity
    error_type: str
    message: str
    context: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "diagnostic_id": self.diagnostic_id,
            "run_id": self.run_id,
            "timestamp": self.timestamp,
            "severity": self.severity.value,
            "error_type": self.error_type,
            "message": self.message,
            "context": self.context,
        }


@dataclass
class DiagnosticSummary:
    """Summary of diagnostics for a complete run."""
    run_id: str
    command: str
    started_at: str
    completed_at: str
    duration_seconds: float
    total_diagnostics: int
    diagnostics_by_severity: Dict[str, int]
    diagnostics: List[Diagnostic]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": "1.0.0",
            "run_id": self.run_id,
            "command": self.command,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "duration_seconds": self.duration_seconds,
            "total_diagnostics": self.total_diagnostics,
            "diagnostics_by_severity": self.diagnostics_by_severity,
            "diagnostics": [diagnostic.to_dict() for diagnostic in self.diagnostics],
        }


class ErrorCollector:
    """Collects diagnostics reported by a graph store."""

    def __init__(self, command: str = "session"):
        """Initialize error collector.

        Args:
            command: Label for the run, e.g. the CLI command executed
        """
        self.command = command
        self.start_time = datetime.now(UTC)
        self.run_id = self._generate_run_id()
        self.diagnostics: List[Diagnostic] = []

        logger.debug(f"Initialized error collector for run {self.run_id}")

    def collect_error(
        self,
        error: Exception,
        context: ErrorContext,
        severity: ErrorSeverity = ErrorSeverity.ERROR
    ) -> str:
        """Record an error with context.

        Args:
            error: Exception describing the failure
            context: Error context information
            severity: Diagnostic severity level

        Returns:
            Diagnostic ID for reference
        """
        diagnostic_id = str(uuid.uuid4())[:8]

        diagnostic = Diagnostic(
            diagnostic_id=diagnostic_id,
            run_id=self.run_id,
            timestamp=datetime.now(UTC).isoformat(),
            severity=severity,
            error_type=type(error).__name__,
            message=str(error),
            context=asdict(context),
        )
        self.diagnostics.append(diagnostic)

        logger.debug(f"Collected diagnostic {diagnostic_id}: {diagnostic.error_type} - {diagnostic.message}")
        return diagnostic_id

    def collect_warning(self, message: str, context: ErrorContext) -> str:
        """Record a warning message."""
        return self.collect_error(RuntimeWarning(message), context, ErrorSeverity.WARNING)

    def has_errors(self) -> bool:
        """Check if anything at ERROR severity or above was collected."""
        return any(
            d.severity in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL) for d in self.diagnostics
        )

    def has_critical_errors(self) -> bool:
        return any(d.severity == ErrorSeverity.CRITICAL for d in self.diagnostics)

    def get_error_counts(self) -> Dict[str, int]:
        """Get diagnostic counts by severity."""
        counts = {severity.value: 0 for severity in ErrorSeverity}

        for diagnostic in self.diagnostics:
            counts[diagnostic.severity.value] += 1

        return counts

    def latest(self) -> Optional[Diagnostic]:
        """Most recently collected diagnostic, if any."""
        return self.diagnostics[-1] if self.diagnostics else None

    def clear(self) -> None:
        self.diagnostics.clear()

    def flush_to_filesystem(self, directory: Path) -> Optional[Path]:
        """Write collected diagnostics to ``directory``.

        Returns:
            Path to the summary file, or None if nothing was collected
        """
        if not self.diagnostics:
            logger.debug(f"No diagnostics to flush for run {self.run_id}")
            return None

        directory.mkdir(parents=True, exist_ok=True)

        end_time = datetime.now(UTC)
        summary = DiagnosticSummary(
            run_id=self.run_id,
            command=self.command,
            started_at=self.start_time.isoformat(),
            completed_at=end_time.isoformat(),
            duration_seconds=(end_time - self.start_time).total_seconds(),
            total_diagnostics=len(self.diagnostics),
            diagnostics_by_severity=self.get_error_counts(),
            diagnostics=list(self.diagnostics),
        )

        summary_file = directory / f"{self.run_id}.json"
        with open(summary_file, "w", encoding="utf-8") as f:
            json.dump(summary.to_dict(), f, indent=2, ensure_ascii=False)

        self._update_index(directory, summary)

        logger.info(f"Flushed {len(self.diagnostics)} diagnostics to: {summary_file}")
        return summary_file

    def _update_index(self, directory: Path, summary: DiagnosticSummary) -> None:
        """Update index.json with the current run summary."""
        index_file = directory / "index.json"

        if index_file.exists():
            try:
                with open(index_file, "r", encoding="utf-8") as f:
                    index_data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Failed to read diagnostics index, creating new one: {e}")
                index_data = self._create_empty_index()
        else:
            index_data = self._create_empty_index()

        run_entry = {
            "run_id": summary.run_id,
            "command": summary.command,
            "started_at": summary.started_at,
            "total_diagnostics": summary.total_diagnostics,
            "diagnostics_by_severity": summary.diagnostics_by_severity,
            "file": f"{summary.run_id}.json",
        }

        runs = [run for run in index_data["runs"] if run["run_id"] != summary.run_id]
        runs.append(run_entry)
        runs.sort(key=lambda r: r["started_at"], reverse=True)

        for old_run in runs[MAX_INDEXED_RUNS:]:
            old_file = directory / old_run["file"]
            if old_file.exists():
                old_file.unlink()

        index_data["runs"] = runs[:MAX_INDEXED_RUNS]
        index_data["total_runs"] = len(index_data["runs"])
        index_data["last_updated"] = datetime.now(UTC).isoformat()

        with open(index_file, "w", encoding="utf-8") as f:
            json.dump(index_data, f, indent=2, ensure_ascii=False)

    def _create_empty_index(self) -> Dict[str, Any]:
        now = datetime.now(UTC).isoformat()
        return {
            "schema_version": "1.0.0",
            "created_at": now,
            "last_updated": now,
            "total_runs": 0,
            "runs": [],
        }

    def _generate_run_id(self) -> str:
        # Format: run-YYYYMMDD-HHMMSS-{short_uuid}
        timestamp_part = self.start_time.strftime("run-%Y%m%d-%H%M%S")
        uuid_part = str(uuid.uuid4())[:8]
        return f"{timestamp_part}-{uuid_part}"


def create_error_collector(command: str = "session") -> ErrorCollector:
    """Create error collector for a run."""
    return ErrorCollector(command)
