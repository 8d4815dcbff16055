"""
Run Log Repository
==================

Insert-then-update storage for fetch run logs. A run log row is created
when a run starts and rewritten in place when the run is finalized.
"""

import sqlite3
from typing import List, Optional

from ..database.models import RunLog
from ..database.connection import DatabaseConnection
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, ErrorCode


class RunLogRepository:
    """Repository for fetch run logs."""

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self.logger = get_logger_for_component("run_log_repository")

    def create_run_log(self, run_log: RunLog) -> int:
        """Persist a new run log and return its ID.

        Raises:
            DatabaseError: If the insert fails
        """
        try:
            with self.db.get_connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO fetch_run_logs (start_time, end_time, status,
                        total_sources_attempted, total_sources_succeeded,
                        total_sources_failed, total_new_articles,
                        orchestration_errors, source_summaries)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    self._values(run_log),
                )
                conn.commit()
                run_id = cursor.lastrowid
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to create run log: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e

        self.logger.debug(f"Created run log {run_id}")
        return run_id

    def update_run_log(self, run_log: RunLog) -> None:
        """Overwrite a stored run log with the in-memory state.

        Raises:
            DatabaseError: If the run log has no ID, does not exist, or the update fails
        """
        if run_log.id is None:
            raise DatabaseError(
                "Cannot update a run log that was never created",
                error_code=ErrorCode.DATABASE_ERROR,
            )

        try:
            updated = self.db.execute_update(
                """
                UPDATE fetch_run_logs
                SET start_time = ?, end_time = ?, status = ?,
                    total_sources_attempted = ?, total_sources_succeeded = ?,
                    total_sources_failed = ?, total_new_articles = ?,
                    orchestration_errors = ?, source_summaries = ?
                WHERE id = ?
                """,
                self._values(run_log) + (run_log.id,),
            )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to update run log {run_log.id}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        if updated == 0:
            raise DatabaseError(
                f"Run log {run_log.id} not found", error_code=ErrorCode.DATABASE_ERROR
            )

    def get_run_log(self, run_id: int) -> Optional[RunLog]:
        row = self.db.execute_one("SELECT * FROM fetch_run_logs WHERE id = ?", (run_id,))
        return RunLog.from_db_row(row) if row else None

    def get_recent_run_logs(self, limit: int = 10) -> List[RunLog]:
        rows = self.db.execute_query(
            "SELECT * FROM fetch_run_logs ORDER BY start_time DESC, id DESC LIMIT ?", (limit,)
        )
        return [RunLog.from_db_row(row) for row in rows]

    @staticmethod
    def _values(run_log: RunLog) -> tuple:
        return (
            run_log.start_time.isoformat(),
            run_log.end_time.isoformat() if run_log.end_time else None,
            run_log.status.value,
            run_log.total_sources_attempted,
            run_log.total_sources_succeeded,
            run_log.total_sources_failed,
            run_log.total_new_articles,
            run_log.errors_json(),
            run_log.summaries_json(),
        )
