"""Intermediate language: opcodes, variables, instructions, blocks and routines."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class Opcode(IntEnum):
    """Opcodes of the stack-based intermediate language."""

    INVALID = 0
    LOAD_IMM = 1
    LOAD_REG = 2
    STORE = 3
    READ = 4
    WRITE = 5
    ADD = 6
    SUB = 7
    MUL = 8
    DIV = 9
    AND = 10
    OR = 11
    XOR = 12
    SHL = 13
    SHR = 14
    NEG = 15
    CMP = 16
    JMP = 17
    JZ = 18
    JNZ = 19
    JB = 20
    JNB = 21
    JBE = 22
    JNBE = 23
    JL = 24
    JLE = 25
    JNL = 26
    JNLE = 27
    JNS = 28
    JS = 29
    RET = 30
    PHI = 31

    def mnemonic(self) -> str:
        """Short textual name of the opcode."""
        return _MNEMONICS[self]

    def is_conditional_jump(self) -> bool:
        """True for the conditional branch opcodes."""
        return Opcode.JZ <= self <= Opcode.JS


_MNEMONICS = {
    Opcode.INVALID: "invalid",
    Opcode.LOAD_IMM: "load",
    Opcode.LOAD_REG: "load",
    Opcode.STORE: "store",
    Opcode.READ: "read",
    Opcode.WRITE: "write",
    Opcode.ADD: "add",
    Opcode.SUB: "sub",
    Opcode.MUL: "mul",
    Opcode.DIV: "div",
    Opcode.AND: "and",
    Opcode.OR: "or",
    Opcode.XOR: "xor",
    Opcode.SHL: "shl",
    Opcode.SHR: "shr",
    Opcode.NEG: "neg",
    Opcode.CMP: "cmp",
    Opcode.JMP: "jmp",
    Opcode.JZ: "jz",
    Opcode.JNZ: "jnz",
    Opcode.JB: "jb",
    Opcode.JNB: "jnb",
    Opcode.JBE: "jbe",
    Opcode.JNBE: "jnbe",
    Opcode.JL: "jl",
    Opcode.JLE: "jle",
    Opcode.JNL: "jnl",
    Opcode.JNLE: "jnle",
    Opcode.JNS: "jns",
    Opcode.JS: "js",
    Opcode.RET: "ret",
    Opcode.PHI: "phi",
}


class StopReason(IntEnum):
    """Why the control flow traversal stopped following a path."""

    SUCCESS = 0
    NULL_BB = 1
    MERGE_POINT = 2
    ALREADY_VISITED = 3


class ControlNodeType(IntEnum):
    """Structural role of a node in the control tree."""

    INVALID = 0
    BODY = 1
    IF = 2
    WHILE = 3
    IF_ELSE = 4


class ControlNodeScope(IntEnum):
    """Which branch of its parent a node belongs to."""

    NONE = 0
    TRUE = 1
    FALSE = 2


@dataclass(eq=False)
class Variable:
    """A register or stack slot promoted to a variable."""

    index: int
    size: int
    is_param: bool = False
    native_operand: Any = None
    ssa_parent: Variable | None = field(default=None, repr=False)
    ssa_list: list[Variable] = field(default_factory=list, repr=False)
    ssa_last: Variable | None = field(default=None, repr=False)


@dataclass(eq=False)
class Instruction:
    """One intermediate language instruction."""

    opcode: Opcode
    size: int = 0
    immediate: int = 0
    variable: Variable | None = None


@dataclass(eq=False)
class BasicBlock:
    """A lifted basic block covering the native range [start_va, end_va)."""

    start_va: int = 0
    end_va: int = 0
    instructions: list[Instruction] = field(default_factory=list)
    go_to: BasicBlock | int | None = field(default=None, repr=False)
    go_to_true: BasicBlock | int | None = field(default=None, repr=False)

    def contains(self, address: int) -> bool:
        """True if the native address lies inside this block."""
        return self.start_va <= address < self.end_va


@dataclass(eq=False)
class Routine:
    """A lifted routine: its blocks and variables."""

    basic_blocks: list[BasicBlock] = field(default_factory=list)
    variables: list[Variable] = field(default_factory=list)
    retval: Variable | None = None
    n_params: int = 0

    def parameters(self) -> list[Variable]:
        """Variables that are parameters, in declaration order."""
        return [v for v in self.variables if v.is_param]

    def locals(self) -> list[Variable]:
        """Variables that are not parameters, in declaration order."""
        return [v for v in self.variables if not v.is_param]

    def reindex_variables(self) -> None:
        """Renumber variables by their position in the routine."""
        for index, variable in enumerate(self.variables):
            variable.index = index


@dataclass(eq=False)
class NativeBasicBlock:
    """A basic block as a range of native instructions."""

    start_va: int = 0
    end_va: int = 0
    query_begin: int = 0
    query_end: int = 0


@dataclass(eq=False)
class ControlNode:
    """A node of the structured control tree built from basic blocks."""

    bb: BasicBlock
    level: int = 0
    type: ControlNodeType = ControlNodeType.INVALID
    scope: ControlNodeScope = ControlNodeScope.NONE
    parent: ControlNode | None = field(default=None, repr=False)
    next: ControlNode | None = field(default=None, repr=False)
    next_in_level: ControlNode | None = field(default=None, repr=False)
    ssa_last_array: list[Variable | None] | None = field(default=None, repr=False)