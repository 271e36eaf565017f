"""Interface a disassembler backend implements for the decompiler."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Any


class OperandType(IntEnum):
    """Backend-independent kind of an operand."""

    INVALID = 0
    IMM = 1
    REG = 2
    MEM = 3


class Backend(ABC):
    """Adapter between a disassembler's instruction objects and the decompiler."""

    @abstractmethod
    def is_jump(self, instruction: Any) -> bool:
        """True if the instruction is a branch."""

    @abstractmethod
    def is_conditional_jump(self, instruction: Any) -> bool:
        """True if the instruction is a conditional branch."""

    @abstractmethod
    def jump_target(self, instruction: Any) -> int:
        """Address the branch targets."""

    @abstractmethod
    def jump_fallthrough(self, instruction: Any) -> int:
        """Address of the next instruction when the branch is not taken."""

    @abstractmethod
    def address(self, instruction: Any) -> int:
        """Address of the instruction."""

    @abstractmethod
    def operand(self, instruction: Any, index: int) -> Any:
        """Operand at the given index, or None if there is none."""

    @abstractmethod
    def operand_type(self, operand: Any) -> OperandType:
        """Kind of the operand."""

    @abstractmethod
    def operand_bitsize(self, operand: Any) -> int:
        """Size of the operand in bits."""

    @abstractmethod
    def register_index(self, operand: Any) -> int:
        """Backend register index of a register operand."""

    @abstractmethod
    def largest_enclosing_register(self, index: int) -> int:
        """Index of the widest register enclosing the given one."""

    @abstractmethod
    def memory_base_register(self, operand: Any) -> int:
        """Base register index of a memory operand."""

    @abstractmethod
    def memory_displacement(self, operand: Any) -> int:
        """Displacement of a memory operand."""

    @abstractmethod
    def is_stack_variable(self, operand: Any) -> bool:
        """True if the operand refers to a stack variable."""

    @abstractmethod
    def is_return_value(self, operand: Any) -> bool:
        """True if the operand holds the return value."""

    @abstractmethod
    def immediate_value(self, operand: Any) -> int:
        """Value of an immediate operand."""

    @abstractmethod
    def operands_equal(self, first: Any, second: Any) -> bool:
        """True if both operands denote the same location."""

    @abstractmethod
    def lift(self, instruction: Any, routine: Any, block: Any) -> None:
        """Append the intermediate form of the instruction to the block."""