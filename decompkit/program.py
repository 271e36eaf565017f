"""A program image together with the backend and formatter that decompile it."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, NamedTuple

from . import optimizer
from .backend import Backend
from .controlflow import resolve_block, traverse
from .emitter import emit_routine
from .errors import DecompileError, MissingBackendError, MissingFormatterError
from .formatter import Formatter
from .ir import BasicBlock, Routine
from .native import decompose

VERSION_MAJOR = 0
VERSION_MINOR = 1


class _VersionInfo(NamedTuple):
    major: int
    minor: int

    @property
    def encoded(self) -> int:
        """The version packed as (major << 8) | minor."""
        return (self.major << 8) | self.minor


def version() -> _VersionInfo:
    """The library version as (major, minor)."""
    return _VersionInfo(VERSION_MAJOR, VERSION_MINOR)


def _resolve(blocks: Sequence[BasicBlock], target: BasicBlock | int) -> BasicBlock | None:
    if isinstance(target, BasicBlock):
        return target
    return resolve_block(blocks, target)


class Program:
    """A run of disassembled instructions to decompile into one routine."""

    def __init__(
        self,
        instructions: Sequence[Any] = (),
        backend: Backend | None = None,
        formatter: Formatter | None = None,
    ) -> None:
        self.instructions: list[Any] = list(instructions)
        self.backend = backend
        self.formatter = formatter
        self.routine: Routine | None = None

    def set_image(self, instructions: Sequence[Any]) -> None:
        """Replace the instructions that make up the program image."""
        self.instructions = list(instructions)

    def _lift(self, backend: Backend) -> Routine:
        routine = Routine()
        for native in decompose(backend, self.instructions):
            block = BasicBlock(start_va=native.start_va, end_va=native.end_va)
            routine.basic_blocks.append(block)
            for instruction in self.instructions[native.query_begin : native.query_end]:
                backend.lift(instruction, routine, block)

        blocks = routine.basic_blocks
        for position, block in enumerate(blocks):
            if block.go_to_true is not None:
                block.go_to_true = _resolve(blocks, block.go_to_true)
            if block.go_to is not None:
                block.go_to = _resolve(blocks, block.go_to)
            else:
                block.go_to = blocks[position + 1] if position + 1 < len(blocks) else None
        return routine

    def decompile(self) -> str:
        """Decompile the image and return the routine's source text."""
        if self.backend is None:
            raise MissingBackendError("program has no disassembler backend")
        if self.formatter is None:
            raise MissingFormatterError("program has no output formatter")
        if not self.instructions:
            raise DecompileError("program image is empty")

        backend = self.backend
        routine = self._lift(backend)
        nodes = traverse(routine.basic_blocks)

        optimizer.copy_propagation_safe(nodes)
        optimizer.simplify_shifts(routine)
        optimizer.remove_dead_code(routine)
        optimizer.remove_dead_common_code(routine)
        optimizer.remove_dead_variables(backend, routine)

        text = emit_routine(self.formatter, backend, routine, nodes)
        self.routine = routine
        return text