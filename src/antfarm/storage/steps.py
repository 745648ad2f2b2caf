"""SQLite storage for workflow runs and their steps."""

import logging
import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)


class RunStatus(Enum):
    """Status of a workflow run."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Runs in these states never advance.
TERMINATED_RUN_STATUSES = (RunStatus.FAILED, RunStatus.CANCELLED)


class StepStatus(Enum):
    """Status of a single step within a run."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


def _parse_status(status_enum: type[Enum], value: str) -> Enum | str:
    """Map a stored status to its enum member, keeping states the engine added as text."""
    try:
        return status_enum(value)
    except ValueError:
        return value


def _status_text(status: Enum | str) -> str:
    return status.value if isinstance(status, Enum) else status


@dataclass
class Run:
    """One execution of a multi-step workflow."""

    id: str
    status: RunStatus | str
    created_at: datetime
    updated_at: datetime

    @property
    def status_value(self) -> str:
        return _status_text(self.status)


@dataclass
class Step:
    """One ordered unit of work within a run, owned by one agent."""

    id: str
    run_id: str
    agent_id: str
    step_id: str
    step_index: int
    status: StepStatus | str
    created_at: datetime
    updated_at: datetime

    @property
    def status_value(self) -> str:
        return _status_text(self.status)

    def __str__(self) -> str:
        return f"{self.step_id} #{self.step_index} ({self.status_value})"


class StepStore:
    """Runs and steps table backed by SQLite.

    The workflow engine owns every write; the dispatcher only calls
    :meth:`next_pending_step`.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._init_database()

    @staticmethod
    def _now() -> str:
        return datetime.now(UTC).isoformat()

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get a database connection that is properly closed with transaction support."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_database(self) -> None:
        """Initialize the SQLite database."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._get_connection() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS runs (
                    id TEXT PRIMARY KEY,
                    status TEXT NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
                """,
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS steps (
                    id TEXT PRIMARY KEY,
                    run_id TEXT NOT NULL REFERENCES runs(id),
                    agent_id TEXT NOT NULL,
                    step_id TEXT NOT NULL,
                    step_index INTEGER NOT NULL,
                    status TEXT NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    UNIQUE (run_id, step_index)
                )
                """,
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_steps_run_status ON steps(run_id, status)",
            )

    def create_run(
        self,
        run_id: str | None = None,
        status: RunStatus = RunStatus.PENDING,
    ) -> Run:
        """Insert a new run."""
        now = self._now()
        run_id = run_id or str(uuid.uuid4())
        with self._get_connection() as conn:
            conn.execute(
                "INSERT INTO runs (id, status, created_at, updated_at) VALUES (?, ?, ?, ?)",
                (run_id, status.value, now, now),
            )
        logger.debug("Created run %s (%s)", run_id, status.value)
        return Run(
            id=run_id,
            status=status,
            created_at=datetime.fromisoformat(now),
            updated_at=datetime.fromisoformat(now),
        )

    def add_step(
        self,
        run_id: str,
        agent_id: str,
        step_id: str,
        step_index: int,
        status: StepStatus = StepStatus.PENDING,
    ) -> Step:
        """Insert a step into an existing run.

        Raises ``sqlite3.IntegrityError`` when ``step_index`` is already taken
        within the run.
        """
        now = self._now()
        row_id = str(uuid.uuid4())
        with self._get_connection() as conn:
            conn.execute(
                """
                INSERT INTO steps (id, run_id, agent_id, step_id, step_index, status,
                    created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (row_id, run_id, agent_id, step_id, step_index, status.value, now, now),
            )
        return Step(
            id=row_id,
            run_id=run_id,
            agent_id=agent_id,
            step_id=step_id,
            step_index=step_index,
            status=status,
            created_at=datetime.fromisoformat(now),
            updated_at=datetime.fromisoformat(now),
        )

    def set_run_status(self, run_id: str, status: RunStatus) -> None:
        """Update a run's status."""
        with self._get_connection() as conn:
            conn.execute(
                "UPDATE runs SET status = ?, updated_at = ? WHERE id = ?",
                (status.value, self._now(), run_id),
            )

    def set_step_status(self, step_row_id: str, status: StepStatus) -> None:
        """Update a step's status by its row id."""
        with self._get_connection() as conn:
            conn.execute(
                "UPDATE steps SET status = ?, updated_at = ? WHERE id = ?",
                (status.value, self._now(), step_row_id),
            )

    def get_run(self, run_id: str) -> Run | None:
        """Get a run by id."""
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM runs WHERE id = ?", (run_id,)).fetchone()
        return self._row_to_run(row) if row else None

    def list_runs(self) -> list[Run]:
        """Get all runs, newest first."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM runs ORDER BY created_at DESC",
            ).fetchall()
        return [self._row_to_run(row) for row in rows]

    def list_steps(self, run_id: str) -> list[Step]:
        """Get every step of a run in execution order."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM steps WHERE run_id = ? ORDER BY step_index ASC",
                (run_id,),
            ).fetchall()
        return [self._row_to_step(row) for row in rows]

    def next_pending_step(self, run_id: str) -> Step | None:
        """Lowest-index pending step of a run that has not failed or been cancelled."""
        placeholders = ",".join("?" * len(TERMINATED_RUN_STATUSES))
        query = f"""
            SELECT s.* FROM steps s
            JOIN runs r ON r.id = s.run_id
            WHERE s.run_id = ?
              AND s.status = ?
              AND r.status NOT IN ({placeholders})
            ORDER BY s.step_index ASC
            LIMIT 1
        """
        params = [run_id, StepStatus.PENDING.value]
        params.extend(s.value for s in TERMINATED_RUN_STATUSES)
        with self._get_connection() as conn:
            row = conn.execute(query, params).fetchone()
        return self._row_to_step(row) if row else None

    def _row_to_run(self, row: sqlite3.Row) -> Run:
        return Run(
            id=row["id"],
            status=_parse_status(RunStatus, row["status"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _row_to_step(self, row: sqlite3.Row) -> Step:
        return Step(
            id=row["id"],
            run_id=row["run_id"],
            agent_id=row["agent_id"],
            step_id=row["step_id"],
            step_index=row["step_index"],
            status=_parse_status(StepStatus, row["status"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
