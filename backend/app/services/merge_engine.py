from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
import logging

from app.core.exceptions import InvalidMergeError, InvalidSplitError
from app.schemas.timetable import (
    Day,
    MergeCandidate,
    Session,
    SessionCreate,
    SessionType,
    SessionUpdate,
)
from app.services import merge_rules
from app.services.session_store import SessionStore, new_session_id

logger = logging.getLogger(__name__)


def merge_candidates(sessions: Iterable[Session]) -> list[MergeCandidate]:
    """
    Every pair of unmerged same-class sessions that exactly fills a merge block.

    Days are scanned in weekday order and blocks in table order, so identical
    input always yields candidates in the same order.
    """
    by_window: dict[tuple[Day, str, str], list[Session]] = defaultdict(list)
    for session in sessions:
        if not session.is_merged:
            by_window[(session.day, session.start_time, session.end_time)].append(session)

    candidates: list[MergeCandidate] = []
    for day in Day:
        for block in merge_rules.MERGE_BLOCKS:
            firsts = by_window.get((day, block.first.start, block.first.end), [])
            seconds = by_window.get((day, block.second.start, block.second.end), [])
            for first in firsts:
                second = next((item for item in seconds if item.class_ref == first.class_ref), None)
                if second is not None:
                    candidates.append(MergeCandidate(day=day, block=block, first=first, second=second))
                    break
    return candidates


class MergeEngine:
    """Merge, split and the auto-merge policy on top of one SessionStore."""

    def __init__(self, store: SessionStore) -> None:
        self.store = store

    def candidates(self) -> list[MergeCandidate]:
        return merge_candidates(self.store.list_all())

    def merge(self, first_id: str, second_id: str, custom_label: str | None = None) -> Session:
        with self.store.transaction():
            first = self.store.get(first_id)
            second = self.store.get(second_id)
            if first_id == second_id:
                raise InvalidMergeError("A session cannot be merged with itself")
            if first.is_merged or second.is_merged:
                raise InvalidMergeError(
                    "Session is already merged",
                    details={"sessions": [item.id for item in (first, second) if item.is_merged]},
                )
            if first.class_ref != second.class_ref:
                raise InvalidMergeError(
                    "Can only merge schedules for the same class",
                    details={"classes": [first.class_ref, second.class_ref]},
                )
            if first.day != second.day:
                raise InvalidMergeError("Can only merge schedules within the same day")

            block = merge_rules.block_for_pair(
                first.start_time, first.end_time, second.start_time, second.end_time
            )
            if block is None:
                allowed = ", ".join(f"{item.merged.start}-{item.merged.end}" for item in merge_rules.MERGE_BLOCKS)
                raise InvalidMergeError(
                    f"Can only merge schedules for continuous 2-hour blocks: {allowed}",
                    details={
                        "windows": [
                            f"{first.start_time}-{first.end_time}",
                            f"{second.start_time}-{second.end_time}",
                        ]
                    },
                )

            # The earlier half survives so the merged session keeps its grid anchor.
            keep, absorb = (first, second) if first.start_time == block.first.start else (second, first)
            self.store.delete(absorb.id)
            merged = keep.with_changes(
                end_time=block.merged.end,
                session_type=SessionType.lab,
                is_merged=True,
                merged_with=absorb.id,
                custom_label=custom_label if custom_label is not None else block.default_label,
                pre_merge_type=keep.session_type,
            )
            self.store.replace(keep.id, merged.model_dump())
        logger.info(
            "Merged %s and %s into lab %s %s-%s",
            keep.id,
            absorb.id,
            merged.day.value,
            merged.start_time,
            merged.end_time,
        )
        return merged

    def split(self, merged_id: str) -> tuple[Session, Session]:
        with self.store.transaction():
            merged = self.store.get(merged_id)
            if not merged.is_merged:
                raise InvalidSplitError("Session is not a merged lab session", details={"id": merged_id})
            block = merge_rules.block_for_merged(merged.start_time, merged.end_time)
            if block is None:
                raise InvalidSplitError(
                    f"Merged window {merged.start_time}-{merged.end_time} does not match any lab block",
                    details={"id": merged_id},
                )

            first = merged.with_changes(
                end_time=block.first.end,
                session_type=merged.pre_merge_type or SessionType.lecture,
                is_merged=False,
                merged_with=None,
                custom_label=None,
                pre_merge_type=None,
            )
            second_id = merged.merged_with
            if not second_id or second_id in self.store:
                second_id = new_session_id()
            second = first.with_changes(
                id=second_id,
                start_time=block.second.start,
                end_time=block.second.end,
            )

            # Both halves must still fit around anything booked since the merge.
            self.store.ensure_free(first, exclude_ids={merged.id})
            self.store.ensure_free(second, exclude_ids={merged.id})

            self.store.replace(merged.id, first.model_dump())
            self.store.create(second)
        logger.info("Split lab %s into %s and %s", merged_id, first.id, second.id)
        return first, second

    def _auto_merge(self, session: Session) -> Session:
        located = merge_rules.find_block_for_slot(session.start_time, session.end_time)
        if located is None:
            return session
        block, half = located
        partner_window = merge_rules.partner_slot(block, half)
        partner = self.store.find_at(session.day, partner_window.start, partner_window.end)
        if partner is None or partner.is_merged or partner.class_ref != session.class_ref:
            return session
        logger.info("Auto-merging %s with %s on %s", session.id, partner.id, session.day.value)
        return self.merge(session.id, partner.id)

    def create_session(self, data: SessionCreate, auto_merge: bool = True) -> Session:
        with self.store.transaction():
            session = self.store.create(data)
            if auto_merge:
                session = self._auto_merge(session)
        return session

    def create_weekly(self, items: Iterable[SessionCreate], auto_merge: bool = True) -> list[Session]:
        """Bulk create from the weekly builder; all sessions are created or none."""
        with self.store.transaction():
            created: dict[str, Session] = {}
            for item in items:
                session = self.store.create(item)
                created[session.id] = session
                if auto_merge:
                    merged = self._auto_merge(session)
                    if merged.is_merged:
                        created.pop(merged.merged_with, None)
                        created.pop(session.id, None)
                        created[merged.id] = merged
        return list(created.values())

    def assign_class(self, session_id: str, class_ref: str, auto_merge: bool = True) -> Session:
        with self.store.transaction():
            current = self.store.get(session_id)
            if current.is_merged and current.class_ref != class_ref:
                raise InvalidMergeError("Split the lab session before changing its class")
            session = self.store.replace(session_id, {"class_ref": class_ref})
            if auto_merge and not session.is_merged:
                session = self._auto_merge(session)
        return session

    def update_session(self, session_id: str, patch: SessionUpdate, auto_merge: bool = True) -> Session:
        changes = patch.changes()
        class_ref = changes.pop("class_ref", None)
        with self.store.transaction():
            current = self.store.get(session_id)
            if current.is_merged and {"day", "start_time", "end_time"} & changes.keys():
                raise InvalidMergeError("Split the lab session before moving it")
            session = self.store.replace(session_id, changes) if changes else current
            if class_ref is not None and class_ref != session.class_ref:
                session = self.assign_class(session_id, class_ref, auto_merge=auto_merge)
        return session

    def merge_all(self) -> list[Session]:
        """Merge every current candidate (the "merge existing labs" batch)."""
        merged: list[Session] = []
        with self.store.transaction():
            for candidate in self.candidates():
                merged.append(self.merge(candidate.first.id, candidate.second.id))
        if merged:
            logger.info("Batch merge produced %d lab session(s)", len(merged))
        return merged
