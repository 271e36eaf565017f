"""Splitting a linear run of native instructions into basic blocks."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from .backend import Backend
from .ir import NativeBasicBlock
from .visitor import Visitor

_MAX_BOUNDARIES = 128


def decompose(backend: Backend, instructions: Sequence[Any]) -> list[NativeBasicBlock]:
    """Split the instructions into native basic blocks at branch targets."""
    if not instructions:
        return []

    addresses = [backend.address(instruction) for instruction in instructions]
    boundaries = Visitor(_MAX_BOUNDARIES)
    for instruction in instructions:
        if not backend.is_jump(instruction):
            continue
        boundaries.add(backend.jump_target(instruction))
        if backend.is_conditional_jump(instruction):
            boundaries.add(backend.jump_fallthrough(instruction))
    boundaries.add(addresses[-1])

    ends = sorted(boundaries.compressed())
    blocks: list[NativeBasicBlock] = []
    start_va = addresses[0]
    cursor = 0
    count = len(instructions)

    for position, end_address in enumerate(ends):
        block = NativeBasicBlock(start_va=start_va, end_va=end_address, query_begin=cursor)
        while cursor < count:
            block.query_end = cursor
            if addresses[cursor] >= end_address:
                break
            cursor += 1
        if position == len(ends) - 1:
            block.query_end += 1
        blocks.append(block)
        start_va = end_address

    return blocks