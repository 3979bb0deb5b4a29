"""Ordered store for feedback questions.

Encapsulates every SQL statement touching `feedback_questions` and the
`ordering_lock` row so the engine and routes stay free of persistence
details. Write helpers take the caller's open Connection: they never begin,
commit, or roll back on their own, which lets the reorder engine compose
them inside one transaction.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
import logging

from sqlalchemy import bindparam, text as sql_text
from sqlalchemy.engine import Connection, Engine

from coursefeedback.logic.errors import ValidationError
from coursefeedback.models.question import ActiveQuestion, Question

logger = logging.getLogger(__name__)

ORDERING_LOCK_NAME = "feedback_questions"

_SELECT_COLUMNS = (
    "SELECT id, question_text, question_type, position, is_required, is_active, created_at "
    "FROM feedback_questions"
)


def _created_at_text(value: Any) -> str:
    # PostgreSQL returns datetime, SQLite the ISO text written on insert
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _row_to_question(row: Mapping[str, Any]) -> Question:
    return Question(
        id=int(row["id"]),
        text=str(row["question_text"]),
        type=str(row["question_type"]),
        position=int(row["position"]),
        required=bool(row["is_required"]),
        active=bool(row["is_active"]),
        created_at=_created_at_text(row["created_at"]),
    )


class OrderedQuestionStore:
    """Durable set of questions, read in ascending position order."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # ------------------------------------------------------------------
    # Reads (own connection, single statement)
    # ------------------------------------------------------------------

    def list_questions(self, active_only: bool = False) -> List[Question]:
        sql = _SELECT_COLUMNS
        if active_only:
            sql += " WHERE is_active = :active"
        sql += " ORDER BY position ASC, id ASC"
        params = {"active": True} if active_only else {}
        with self.engine.connect() as conn:
            rows = conn.execute(sql_text(sql), params).mappings().all()
        return [_row_to_question(r) for r in rows]

    def list_active_questions(self) -> List[ActiveQuestion]:
        return [
            ActiveQuestion(id=q.id, text=q.text, type=q.type, position=q.position, required=q.required)
            for q in self.list_questions(active_only=True)
        ]

    def get_question(self, question_id: int, conn: Optional[Connection] = None) -> Optional[Question]:
        stmt = sql_text(_SELECT_COLUMNS + " WHERE id = :qid")
        if conn is not None:
            row = conn.execute(stmt, {"qid": int(question_id)}).mappings().fetchone()
        else:
            with self.engine.connect() as c:
                row = c.execute(stmt, {"qid": int(question_id)}).mappings().fetchone()
        return _row_to_question(row) if row else None

    # ------------------------------------------------------------------
    # Transaction-scoped helpers
    # ------------------------------------------------------------------

    def acquire_ordering_lock(self, conn: Connection) -> int:
        """Bump the ordering lock row and return its new version.

        The row write blocks any other writer doing the same until this
        transaction ends, which serialises every reorder-class operation.
        """
        result = conn.execute(
            sql_text("UPDATE ordering_lock SET version = version + 1 WHERE name = :name"),
            {"name": ORDERING_LOCK_NAME},
        )
        if result.rowcount == 0:
            logger.warning("ordering_lock.row_missing name=%s; creating", ORDERING_LOCK_NAME)
            conn.execute(
                sql_text("INSERT INTO ordering_lock (name, version) VALUES (:name, 1)"),
                {"name": ORDERING_LOCK_NAME},
            )
        row = conn.execute(
            sql_text("SELECT version FROM ordering_lock WHERE name = :name"),
            {"name": ORDERING_LOCK_NAME},
        ).fetchone()
        return int(row[0]) if row and row[0] is not None else 0

    def count_questions(self, conn: Connection) -> int:
        row = conn.execute(sql_text("SELECT COUNT(*) FROM feedback_questions")).fetchone()
        return int(row[0]) if row and row[0] is not None else 0

    def get_position(self, conn: Connection, question_id: int) -> Optional[int]:
        row = conn.execute(
            sql_text("SELECT position FROM feedback_questions WHERE id = :qid"),
            {"qid": int(question_id)},
        ).fetchone()
        return int(row[0]) if row else None

    def positions_for(self, conn: Connection, question_ids: Iterable[int]) -> Dict[int, int]:
        ids = [int(i) for i in question_ids]
        if not ids:
            return {}
        stmt = sql_text("SELECT id, position FROM feedback_questions WHERE id IN :ids").bindparams(
            bindparam("ids", expanding=True)
        )
        rows = conn.execute(stmt, {"ids": ids}).fetchall()
        return {int(r[0]): int(r[1]) for r in rows}

    def position_stats(self, conn: Connection) -> Tuple[int, int, int, int]:
        """Return (count, min, max, distinct) over all positions."""
        row = conn.execute(
            sql_text(
                "SELECT COUNT(*), COALESCE(MIN(position), 0), COALESCE(MAX(position), 0), "
                "COUNT(DISTINCT position) FROM feedback_questions"
            )
        ).fetchone()
        return int(row[0]), int(row[1]), int(row[2]), int(row[3])

    def insert_at_position(
        self,
        conn: Connection,
        *,
        text: str,
        question_type: str,
        position: int,
        required: bool,
        active: bool = True,
    ) -> int:
        """Insert a question at ``position`` and return its new id.

        The caller must already have shifted any row occupying ``position``.
        """
        if isinstance(position, bool) or not isinstance(position, int) or position <= 0:
            raise ValidationError(
                "position must be a positive integer",
                [{"path": "$.position", "code": "invalid_or_non_positive"}],
            )
        row = conn.execute(
            sql_text(
                """
                INSERT INTO feedback_questions (
                    question_text, question_type, position, is_required, is_active, created_at
                )
                VALUES (:qtext, :qtype, :pos, :req, :active, :created)
                RETURNING id
                """
            ),
            {
                "qtext": text,
                "qtype": question_type,
                "pos": position,
                "req": bool(required),
                "active": bool(active),
                "created": datetime.now(timezone.utc).replace(microsecond=0).isoformat(),
            },
        ).fetchone()
        return int(row[0])

    def shift_range(
        self,
        conn: Connection,
        *,
        delta: int,
        low: Optional[int] = None,
        high: Optional[int] = None,
        low_inclusive: bool = True,
        high_inclusive: bool = True,
        exclude_id: Optional[int] = None,
    ) -> int:
        """Add ``delta`` (+1 or -1) to every position inside the given bounds.

        A missing bound is open. Returns the number of rows shifted.
        """
        if delta not in (1, -1):
            raise ValueError("shift delta must be +1 or -1")
        clauses: List[str] = []
        params: Dict[str, Any] = {"delta": delta}
        if low is not None:
            clauses.append("position >= :low" if low_inclusive else "position > :low")
            params["low"] = int(low)
        if high is not None:
            clauses.append("position <= :high" if high_inclusive else "position < :high")
            params["high"] = int(high)
        if exclude_id is not None:
            clauses.append("id != :exclude_id")
            params["exclude_id"] = int(exclude_id)
        sql = "UPDATE feedback_questions SET position = position + :delta"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        return int(conn.execute(sql_text(sql), params).rowcount)

    def update_fields(
        self,
        conn: Connection,
        question_id: int,
        *,
        text: Optional[str] = None,
        question_type: Optional[str] = None,
        required: Optional[bool] = None,
        active: Optional[bool] = None,
    ) -> int:
        """Update non-position attributes; None keeps the stored value."""
        assignments: List[str] = []
        params: Dict[str, Any] = {"qid": int(question_id)}
        if text is not None:
            assignments.append("question_text = :qtext")
            params["qtext"] = text
        if question_type is not None:
            assignments.append("question_type = :qtype")
            params["qtype"] = question_type
        if required is not None:
            assignments.append("is_required = :req")
            params["req"] = bool(required)
        if active is not None:
            assignments.append("is_active = :active")
            params["active"] = bool(active)
        if not assignments:
            return 0
        sql = "UPDATE feedback_questions SET " + ", ".join(assignments) + " WHERE id = :qid"
        return int(conn.execute(sql_text(sql), params).rowcount)

    def set_position(self, conn: Connection, question_id: int, position: int) -> int:
        return int(
            conn.execute(
                sql_text("UPDATE feedback_questions SET position = :pos WHERE id = :qid"),
                {"pos": int(position), "qid": int(question_id)},
            ).rowcount
        )

    def delete_question(self, conn: Connection, question_id: int) -> int:
        return int(
            conn.execute(
                sql_text("DELETE FROM feedback_questions WHERE id = :qid"),
                {"qid": int(question_id)},
            ).rowcount
        )

    def offset_positions(self, conn: Connection, question_ids: Iterable[int], offset: int) -> int:
        """Park the given rows at ``position + offset``, outside the valid range."""
        ids = [int(i) for i in question_ids]
        if not ids:
            return 0
        stmt = sql_text(
            "UPDATE feedback_questions SET position = position + :offset WHERE id IN :ids"
        ).bindparams(bindparam("ids", expanding=True))
        return int(conn.execute(stmt, {"offset": int(offset), "ids": ids}).rowcount)

    def assign_positions(self, conn: Connection, assignments: Mapping[int, int]) -> None:
        """Land final positions for a batch of rows in one executemany pass."""
        if not assignments:
            return
        conn.execute(
            sql_text("UPDATE feedback_questions SET position = :pos WHERE id = :qid"),
            [{"qid": int(qid), "pos": int(pos)} for qid, pos in assignments.items()],
        )


__all__ = ["OrderedQuestionStore", "ORDERING_LOCK_NAME"]
