"""
Lab-period policy: the only slot pairs that may be merged into a two-hour lab.

The table is institutional policy rather than a "any two adjacent hours" rule;
pairs that straddle a break or include the 16:00 period are never mergeable.
"""
from __future__ import annotations

from typing import Literal

from app.schemas.timetable import MergeBlock, SlotKind, TimeSlot
from app.services import time_grid

Half = Literal["first", "second"]


def _build_block(index: int, first_id: str, second_id: str) -> MergeBlock:
    first = time_grid.slot_by_id(first_id)
    second = time_grid.slot_by_id(second_id)
    merged = TimeSlot(
        id=f"lab{index + 1}",
        start=first.start,
        end=second.end,
        kind=SlotKind.class_period,
        label=f"{first.start}-{second.end} (Lab Session)",
    )
    return MergeBlock(index=index, first=first, second=second, merged=merged)


MERGE_BLOCKS: tuple[MergeBlock, ...] = (
    _build_block(0, "1", "2"),
    _build_block(1, "3", "4"),
    _build_block(2, "5", "6"),
)


def merge_blocks() -> list[MergeBlock]:
    return list(MERGE_BLOCKS)


def find_block_for_slot(start: str, end: str) -> tuple[MergeBlock, Half] | None:
    """Return the block and half a one-hour window belongs to, if any."""
    for block in MERGE_BLOCKS:
        if block.first.start == start and block.first.end == end:
            return block, "first"
        if block.second.start == start and block.second.end == end:
            return block, "second"
    return None


def partner_slot(block: MergeBlock, half: Half) -> TimeSlot:
    return block.second if half == "first" else block.first


def block_for_pair(a_start: str, a_end: str, b_start: str, b_end: str) -> MergeBlock | None:
    """Match two windows against the table as (first, second) in either order."""
    for block in MERGE_BLOCKS:
        forward = (a_start, a_end, b_start, b_end)
        backward = (b_start, b_end, a_start, a_end)
        expected = (block.first.start, block.first.end, block.second.start, block.second.end)
        if forward == expected or backward == expected:
            return block
    return None


def block_for_merged(start: str, end: str) -> MergeBlock | None:
    for block in MERGE_BLOCKS:
        if block.merged.start == start and block.merged.end == end:
            return block
    return None
