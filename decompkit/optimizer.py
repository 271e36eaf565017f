"""Passes over the intermediate language: SSA renaming, dead code removal and simplifications."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .backend import Backend
from .ir import ControlNode, ControlNodeType, Instruction, Opcode, Routine, Variable

_STACK_BINARY_OPS = frozenset(
    {Opcode.ADD, Opcode.SUB, Opcode.AND, Opcode.OR, Opcode.XOR, Opcode.SHL, Opcode.SHR}
)


def _ssa_root(variable: Variable) -> Variable:
    return variable.ssa_parent if variable.ssa_parent is not None else variable


def _ssa_create(node: ControlNode, variable: Variable) -> Variable:
    parent = _ssa_root(variable)
    result = Variable(
        index=parent.ssa_last.index + 1 if parent.ssa_last is not None else 0,
        size=parent.size,
        is_param=parent.is_param,
        native_operand=parent.native_operand,
        ssa_parent=parent,
    )
    parent.ssa_list.append(result)
    parent.ssa_last = result
    node.ssa_last_array[parent.index] = result
    return result


def _ssa_get(node: ControlNode, variable: Variable) -> Variable:
    parent = _ssa_root(variable)
    current = node.ssa_last_array[parent.index]
    if current is not None:
        return current
    if parent.ssa_last is not None:
        return parent.ssa_last
    return _ssa_create(node, parent)


def convert_to_ssa(routine: Routine, nodes: Iterable[ControlNode]) -> None:
    """Rename every load and store to a versioned variable."""
    count = len(routine.variables)
    previous_top: ControlNode | None = None

    for node in nodes:
        source = node.parent if node.parent is not None else previous_top
        if source is not None and source.ssa_last_array is not None:
            node.ssa_last_array = list(source.ssa_last_array)
        else:
            node.ssa_last_array = [None] * count

        for instruction in node.bb.instructions:
            if instruction.variable is None:
                continue
            if instruction.opcode == Opcode.LOAD_REG:
                instruction.variable = _ssa_get(node, instruction.variable)
            elif instruction.opcode == Opcode.STORE:
                instruction.variable = _ssa_create(node, instruction.variable)

        if node.level == 0:
            previous_top = node


def remove_dead_variables(backend: Backend, routine: Routine) -> None:
    """Drop variables never read, and the stores to them, keeping the return value."""
    read = {
        instruction.variable.index
        for block in routine.basic_blocks
        for instruction in block.instructions
        if instruction.opcode == Opcode.LOAD_REG and instruction.variable is not None
    }

    def dead(variable: Variable) -> bool:
        return variable.index not in read and not backend.is_return_value(variable.native_operand)

    for block in routine.basic_blocks:
        block.instructions = [
            instruction
            for instruction in block.instructions
            if not (
                instruction.opcode == Opcode.STORE
                and instruction.variable is not None
                and dead(instruction.variable)
            )
        ]

    routine.variables = [variable for variable in routine.variables if not dead(variable)]
    routine.reindex_variables()


def remove_dead_code(routine: Routine) -> None:
    """Drop stores overwritten in the same block before being read."""
    for block in routine.basic_blocks:
        pending: dict[int, Instruction] = {}
        dead: set[Instruction] = set()
        for instruction in block.instructions:
            if instruction.variable is None:
                continue
            index = instruction.variable.index
            if instruction.opcode == Opcode.STORE:
                if index in pending:
                    dead.add(pending[index])
                pending[index] = instruction
            elif instruction.opcode == Opcode.LOAD_REG:
                pending.pop(index, None)
        if dead:
            block.instructions = [i for i in block.instructions if i not in dead]


def remove_dead_common_code(routine: Routine) -> None:
    """Drop a load of a variable immediately stored back into itself."""
    for block in routine.basic_blocks:
        kept: list[Instruction] = []
        stream = iter(block.instructions)
        current = next(stream, None)
        while current is not None:
            following = next(stream, None)
            if following is None:
                kept.append(current)
                break
            if (
                current.opcode == Opcode.LOAD_REG
                and following.opcode == Opcode.STORE
                and current.variable is following.variable
            ):
                current = next(stream, None)
                continue
            kept.append(current)
            current = following
        block.instructions = kept


def simplify_shifts(routine: Routine) -> None:
    """Rewrite a register shifted by a constant as a multiplication or division."""
    older: Instruction | None = None
    newer: Instruction | None = None

    for block in routine.basic_blocks:
        for instruction in block.instructions:
            if instruction.opcode in (Opcode.LOAD_REG, Opcode.LOAD_IMM):
                older, newer = newer, instruction
                continue
            if older is None or newer is None:
                continue
            if (
                newer.opcode == Opcode.LOAD_IMM
                and older.opcode == Opcode.LOAD_REG
                and instruction.opcode in (Opcode.SHL, Opcode.SHR)
            ):
                instruction.opcode = Opcode.MUL if instruction.opcode == Opcode.SHL else Opcode.DIV
                newer.immediate = 1 << newer.immediate


def operation_to_be_compared(
    instructions: Sequence[Instruction], offset: int, end: int, track: Variable
) -> bool:
    """True if the tracked variable is on the stack when a comparison is reached."""
    stack: list[Variable | None] = []
    for instruction in instructions[offset:end]:
        opcode = instruction.opcode
        if opcode == Opcode.LOAD_REG:
            stack.append(instruction.variable)
        elif opcode == Opcode.LOAD_IMM:
            stack.append(None)
        elif opcode == Opcode.STORE:
            del stack[-1:]
        elif opcode in _STACK_BINARY_OPS:
            del stack[-1:]
        elif opcode == Opcode.CMP:
            if any(entry is track for entry in stack):
                return True
            del stack[-2:]
        if not stack:
            return False
    return False


def _is_copy(first: Instruction, second: Instruction) -> bool:
    return first.opcode == Opcode.LOAD_REG and second.opcode in (Opcode.STORE, Opcode.RET)


def _propagate(src: Variable | None, dst: Variable | None, rest: Iterable[Instruction]) -> None:
    if dst is None:
        return
    for instruction in rest:
        if instruction.opcode == Opcode.STORE and (
            instruction.variable is src or instruction.variable is dst
        ):
            break
        if instruction.variable is dst:
            instruction.variable = src


def copy_propagation_safe(nodes: Iterable[ControlNode]) -> None:
    """Within each block, replace uses of a copied variable by its source."""
    for node in nodes:
        instructions = node.bb.instructions
        for position, (first, second) in enumerate(zip(instructions, instructions[1:])):
            if _is_copy(first, second):
                _propagate(first.variable, second.variable, instructions[position + 2 :])


def copy_propagation(nodes: Iterable[ControlNode]) -> None:
    """Replace uses of copied variables across all non-loop blocks in order."""
    flat = [
        instruction
        for node in nodes
        if node.type != ControlNodeType.WHILE
        for instruction in node.bb.instructions
    ]
    last = len(flat) - 1
    position = 0
    while position < last:
        first, second = flat[position], flat[position + 1]
        if not _is_copy(first, second):
            position += 1
            continue
        _propagate(first.variable, second.variable, flat[position + 2 : last])
        position += 2