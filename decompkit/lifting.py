"""Helpers a backend uses to lift native operands into intermediate instructions."""

from __future__ import annotations

from typing import Any

from .backend import Backend, OperandType
from .ir import BasicBlock, Instruction, Opcode, Routine, Variable

_ADDRESS_SIZE = 8


def get_variable(backend: Backend, routine: Routine, operand: Any, is_param: bool) -> Variable:
    """The routine's variable for the operand, created if it does not exist yet."""
    for variable in routine.variables:
        if backend.operands_equal(variable.native_operand, operand):
            return variable

    if is_param:
        routine.n_params += 1

    variable = Variable(
        index=len(routine.variables),
        size=backend.operand_bitsize(operand),
        is_param=is_param,
        native_operand=operand,
    )
    routine.variables.append(variable)
    return variable


def _load_address(backend: Backend, routine: Routine, block: BasicBlock, operand: Any) -> None:
    block.instructions.append(
        Instruction(
            Opcode.LOAD_REG,
            size=_ADDRESS_SIZE,
            variable=get_variable(backend, routine, operand, False),
        )
    )
    block.instructions.append(
        Instruction(
            Opcode.LOAD_IMM,
            size=_ADDRESS_SIZE,
            immediate=backend.memory_displacement(operand),
        )
    )
    block.instructions.append(Instruction(Opcode.ADD, size=_ADDRESS_SIZE))


def _enclosing_register_variable(backend: Backend, routine: Routine, operand: Any) -> Variable | None:
    """A register variable whose widest register is the memory operand's base."""
    base = backend.largest_enclosing_register(backend.memory_base_register(operand))
    for variable in routine.variables:
        if backend.operand_type(variable.native_operand) != OperandType.REG:
            continue
        index = backend.largest_enclosing_register(backend.register_index(variable.native_operand))
        if index == base:
            return variable
    return None


def _memory_access(
    backend: Backend, routine: Routine, block: BasicBlock, operand: Any, opcode: Opcode
) -> None:
    existing = _enclosing_register_variable(backend, routine, operand)
    address_operand = existing.native_operand if existing is not None else operand
    _load_address(backend, routine, block, address_operand)
    block.instructions.append(Instruction(opcode, size=backend.operand_bitsize(operand)))


def load(backend: Backend, routine: Routine, block: BasicBlock, operand: Any) -> None:
    """Append instructions that push the operand's value."""
    kind = backend.operand_type(operand)
    if kind == OperandType.IMM:
        block.instructions.append(
            Instruction(
                Opcode.LOAD_IMM,
                size=backend.operand_bitsize(operand),
                immediate=backend.immediate_value(operand),
            )
        )
    elif kind == OperandType.REG:
        block.instructions.append(
            Instruction(
                Opcode.LOAD_REG,
                size=backend.operand_bitsize(operand),
                variable=get_variable(backend, routine, operand, True),
            )
        )
    elif kind == OperandType.MEM:
        if backend.is_stack_variable(operand):
            block.instructions.append(
                Instruction(
                    Opcode.LOAD_REG,
                    size=backend.operand_bitsize(operand),
                    variable=get_variable(backend, routine, operand, False),
                )
            )
            return
        _memory_access(backend, routine, block, operand, Opcode.READ)


def store(backend: Backend, routine: Routine, block: BasicBlock, operand: Any) -> None:
    """Append instructions that pop a value into the operand."""
    kind = backend.operand_type(operand)
    if kind == OperandType.REG:
        block.instructions.append(
            Instruction(
                Opcode.STORE,
                size=backend.operand_bitsize(operand),
                variable=get_variable(backend, routine, operand, False),
            )
        )
    elif kind == OperandType.MEM:
        if backend.is_stack_variable(operand):
            block.instructions.append(
                Instruction(
                    Opcode.STORE,
                    size=backend.operand_bitsize(operand),
                    variable=get_variable(backend, routine, operand, False),
                )
            )
            return
        _memory_access(backend, routine, block, operand, Opcode.WRITE)