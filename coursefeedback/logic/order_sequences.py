"""Question ordering engine.

Keeps feedback question positions dense (exactly 1..N, no duplicates, no
gaps) under insert, move, delete, and bulk drag-and-drop reorder. Each
operation runs as one transaction that:

1. takes the ordering lock row (single writer over the whole list),
2. shifts the affected range, then lands the triggering change,
3. re-checks density before commit.

Any failure rolls the whole transaction back, so readers only ever see the
state before or after an operation.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterable, Iterator, List, Optional, Tuple
import logging

from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from coursefeedback.logic import events
from coursefeedback.logic.errors import (
    ConflictError,
    NotFoundError,
    QuestionOrderingError,
    StoreFailure,
    ValidationError,
)
from coursefeedback.logic.repository_questions import OrderedQuestionStore
from coursefeedback.models.question import Question

logger = logging.getLogger(__name__)


def _out_of_range(field: str, limit: int) -> ValidationError:
    return ValidationError(
        f"{field} must be between 1 and {limit}",
        [{"path": f"$.{field}", "code": "out_of_range"}],
    )


class ReorderEngine:
    """Position-mutating operations over an :class:`OrderedQuestionStore`."""

    def __init__(self, store: OrderedQuestionStore, max_questions: int) -> None:
        if max_questions <= 0:
            raise ValueError("max_questions must be positive")
        self.store = store
        self.max_questions = max_questions

    @contextmanager
    def _ordering_transaction(self, operation: str) -> Iterator[Connection]:
        try:
            with self.store.engine.begin() as conn:
                version = self.store.acquire_ordering_lock(conn)
                logger.debug("question_ordering.%s.begin version=%s", operation, version)
                yield conn
                self._check_dense(conn, operation)
        except QuestionOrderingError as exc:
            logger.info("question_ordering.%s.rolled_back reason=%s", operation, exc.code)
            raise
        except SQLAlchemyError as exc:
            logger.error("question_ordering.%s.store_failure; transaction rolled back", operation, exc_info=True)
            raise StoreFailure() from exc

    def _check_dense(self, conn: Connection, operation: str) -> None:
        count, lowest, highest, distinct = self.store.position_stats(conn)
        if count == 0:
            return
        if lowest != 1 or highest != count or distinct != count:
            logger.error(
                "question_ordering.%s.density_violation count=%s min=%s max=%s distinct=%s",
                operation,
                count,
                lowest,
                highest,
                distinct,
            )
            raise ConflictError("question positions would no longer be contiguous")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def add(
        self,
        *,
        text: str,
        question_type: str,
        position: int,
        required: bool = True,
        active: bool = True,
    ) -> Question:
        """Insert a question at ``position``, pushing later questions down by one.

        Positions past N + 1 are rejected rather than clamped.
        """
        with self._ordering_transaction("add") as conn:
            count = self.store.count_questions(conn)
            if count >= self.max_questions:
                raise ConflictError(f"question limit of {self.max_questions} reached")
            if position > count + 1:
                raise _out_of_range("position", count + 1)
            shifted = self.store.shift_range(conn, delta=1, low=position)
            question_id = self.store.insert_at_position(
                conn,
                text=text,
                question_type=question_type,
                position=position,
                required=required,
                active=active,
            )
            created = self.store.get_question(question_id, conn)
        logger.info("question_ordering.add id=%s position=%s shifted=%s", question_id, position, shifted)
        events.publish(events.QUESTION_CREATED, {"id": question_id, "position": position})
        return created  # type: ignore[return-value]

    def update(
        self,
        question_id: int,
        *,
        position: int,
        previous_position: Optional[int] = None,
        text: Optional[str] = None,
        question_type: Optional[str] = None,
        required: Optional[bool] = None,
        active: Optional[bool] = None,
    ) -> Question:
        """Edit a question and move it to ``position``.

        The stored position is authoritative. ``previous_position`` is the
        caller's view of it; a mismatch means the list changed underneath the
        caller and the edit is refused.
        """
        with self._ordering_transaction("update") as conn:
            current = self.store.get_position(conn, question_id)
            if current is None:
                raise NotFoundError(question_id)
            if previous_position is not None and previous_position != current:
                raise ConflictError(
                    f"question {question_id} is now at position {current}, not {previous_position}; reload and retry"
                )
            count = self.store.count_questions(conn)
            if position > count:
                raise _out_of_range("position", count)

            shifted = 0
            if position > current:
                # Moving later: close the slot behind, pull (current, position] up
                shifted = self.store.shift_range(
                    conn, delta=-1, low=current, low_inclusive=False, high=position, exclude_id=question_id
                )
            elif position < current:
                # Moving earlier: open a slot, push [position, current) down
                shifted = self.store.shift_range(
                    conn, delta=1, low=position, high=current, high_inclusive=False, exclude_id=question_id
                )
            if position != current:
                self.store.set_position(conn, question_id, position)
            self.store.update_fields(
                conn,
                question_id,
                text=text,
                question_type=question_type,
                required=required,
                active=active,
            )
            updated = self.store.get_question(question_id, conn)
            if updated is None:
                raise NotFoundError(question_id)
        logger.info(
            "question_ordering.update id=%s from=%s to=%s shifted=%s",
            question_id,
            current,
            position,
            shifted,
        )
        events.publish(events.QUESTION_UPDATED, {"id": question_id, "from": current, "to": position})
        return updated

    def move(self, question_id: int, new_position: int, previous_position: Optional[int] = None) -> Question:
        """Reposition a question without touching its other fields."""
        return self.update(question_id, position=new_position, previous_position=previous_position)

    def delete(self, question_id: int) -> int:
        """Delete a question and close its gap; returns the freed position."""
        with self._ordering_transaction("delete") as conn:
            position = self.store.get_position(conn, question_id)
            if position is None:
                raise NotFoundError(question_id)
            self.store.delete_question(conn, question_id)
            shifted = self.store.shift_range(conn, delta=-1, low=position, low_inclusive=False)
        logger.info("question_ordering.delete id=%s position=%s shifted=%s", question_id, position, shifted)
        events.publish(events.QUESTION_DELETED, {"id": question_id, "position": position})
        return position

    def bulk_reorder(self, assignments: Iterable[Tuple[int, int]]) -> int:
        """Apply a batch of (id, position) targets with offset-then-land.

        The targets must be a permutation of the listed questions' current
        positions. Returns how many questions changed position.
        """
        items: List[Tuple[int, int]] = [(int(qid), int(pos)) for qid, pos in assignments]
        if not items:
            raise ValidationError(
                "at least one question is required",
                [{"path": "$.questions", "code": "empty"}],
            )
        ids = [qid for qid, _ in items]
        targets = [pos for _, pos in items]
        if len(set(ids)) != len(ids):
            raise ConflictError("each question may appear only once in a reorder")
        if len(set(targets)) != len(targets):
            raise ConflictError("two questions cannot be assigned the same position")
        mapping = dict(items)

        with self._ordering_transaction("bulk_reorder") as conn:
            current = self.store.positions_for(conn, ids)
            missing = [qid for qid in ids if qid not in current]
            if missing:
                raise NotFoundError(missing[0])
            if sorted(current.values()) != sorted(targets):
                raise ConflictError("target positions must be the current positions of the listed questions")
            count = self.store.count_questions(conn)
            # Parking offset clears every valid and every in-flight position
            offset = max(self.max_questions, count) + 1
            self.store.offset_positions(conn, ids, offset)
            self.store.assign_positions(conn, mapping)
        changed = sum(1 for qid, pos in mapping.items() if current[qid] != pos)
        logger.info("question_ordering.bulk_reorder items=%s changed=%s", len(mapping), changed)
        events.publish(events.QUESTIONS_REORDERED, {"ids": ids, "changed": changed})
        return changed


__all__ = ["ReorderEngine"]
