"""Rendering the control tree of a lifted routine as source text."""

from __future__ import annotations

from collections.abc import Sequence

from .backend import Backend
from .errors import DecompileError
from .formatter import Formatter, Output
from .ir import (
    BasicBlock,
    ControlNode,
    ControlNodeScope,
    ControlNodeType,
    Opcode,
    Routine,
    Variable,
)

_UNKNOWN = "??"
_MASK = 0xFFFF_FFFF_FFFF_FFFF
_SIGN = 1 << 63

_OPERATORS = {
    Opcode.ADD: "+",
    Opcode.SUB: "-",
    Opcode.MUL: "*",
    Opcode.DIV: "/",
    Opcode.AND: "&",
    Opcode.OR: "|",
    Opcode.XOR: "^",
    Opcode.SHL: "<<",
    Opcode.SHR: ">>",
    Opcode.JZ: "==",
    Opcode.JNZ: "!=",
    Opcode.JB: "<",
    Opcode.JNB: ">=",
    Opcode.JBE: "<=",
    Opcode.JNBE: ">",
    Opcode.JL: "<",
    Opcode.JLE: "<=",
    Opcode.JNL: ">=",
    Opcode.JNLE: ">",
    Opcode.JS: "<",
    Opcode.JNS: ">=",
}

_OPPOSITES = {
    Opcode.JZ: "!=",
    Opcode.JNZ: "==",
    Opcode.JB: ">=",
    Opcode.JNB: "<",
    Opcode.JBE: ">",
    Opcode.JNBE: "<=",
    Opcode.JL: ">=",
    Opcode.JLE: ">",
    Opcode.JNL: "<",
    Opcode.JNLE: "<=",
}

_ARITHMETIC = frozenset(
    {
        Opcode.ADD,
        Opcode.SUB,
        Opcode.MUL,
        Opcode.DIV,
        Opcode.AND,
        Opcode.OR,
        Opcode.XOR,
        Opcode.SHL,
        Opcode.SHR,
    }
)


def operator_symbol(opcode: Opcode | None) -> str:
    """Infix symbol of an arithmetic or conditional jump opcode."""
    return _OPERATORS.get(opcode, _UNKNOWN)


def opposite_operator_symbol(opcode: Opcode | None) -> str:
    """Symbol of the negated comparison of a conditional jump opcode."""
    return _OPPOSITES.get(opcode, _UNKNOWN)


def _signed(value: int) -> str:
    value &= _MASK
    if value >= _SIGN:
        value -= 1 << 64
    return str(value)


class Emitter:
    """Evaluates intermediate instructions on an expression stack and writes statements."""

    def __init__(self, formatter: Formatter, out: Output | None = None) -> None:
        self.formatter = formatter
        self.out = out if out is not None else Output()
        self._stack: list[str] = []

    def _pop(self) -> str:
        if not self._stack:
            raise DecompileError("expression stack underflow")
        return self._stack.pop()

    def _name(self, variable: Variable | None) -> str:
        if variable is None:
            raise DecompileError("instruction refers to no variable")
        return self.formatter.variable_name(variable)

    def _statement(self, indents: int, text: str) -> None:
        self.formatter.indent(self.out, indents)
        self.out.write(text)

    def evaluate(
        self, block: BasicBlock, indents: int, emit: bool
    ) -> tuple[Opcode | None, str, str]:
        """Run the block's instructions; return its jump opcode and compared expressions."""
        fmt = self.formatter
        jump: Opcode | None = None
        left = right = ""

        for instruction in block.instructions:
            opcode = instruction.opcode
            if opcode == Opcode.LOAD_REG:
                self._stack.append(self._name(instruction.variable))
            elif opcode == Opcode.LOAD_IMM:
                self._stack.append(_signed(instruction.immediate))
            elif opcode == Opcode.STORE:
                target = self._name(instruction.variable)
                value = self._pop()
                if emit:
                    self._statement(indents, fmt.assignment(target, value))
            elif opcode == Opcode.READ:
                address = self._pop()
                self._stack.append(fmt.memory_location(address, instruction.size))
            elif opcode == Opcode.WRITE:
                address = self._pop()
                value = self._pop()
                target = fmt.memory_location(address, instruction.size)
                if emit:
                    self._statement(indents, fmt.assignment(target, value))
            elif opcode in _ARITHMETIC:
                rhs = self._pop()
                lhs = self._pop()
                self._stack.append(fmt.arithmetic(lhs, operator_symbol(opcode), rhs))
            elif opcode == Opcode.NEG:
                self._stack.append("-" + self._pop())
            elif opcode == Opcode.CMP:
                left = self._pop()
                right = self._pop()
            elif Opcode.JZ <= opcode <= Opcode.JS:
                jump = Opcode(opcode)
            elif opcode == Opcode.RET:
                value = self._pop()
                if emit:
                    self._statement(indents, fmt.return_statement(value))
            elif opcode == Opcode.PHI:
                second = self._pop()
                first = self._pop()
                self._stack.append(f"phi({first}, {second})")

        return jump, left, right

    def emit(self, node: ControlNode | None) -> ControlNode | None:
        """Write the node and what follows it in its scope; return the next node in order."""
        if node is None:
            return None

        fmt = self.formatter
        header_indent = node.level + 1
        jump, left, right = self.evaluate(
            node.bb, header_indent, node.type != ControlNodeType.WHILE
        )

        if node.type == ControlNodeType.IF_ELSE:
            fmt.indent(self.out, header_indent)
            fmt.conditional_header(self.out, node.type, left, right, operator_symbol(jump))
            otherwise = self.emit(node.next)
            fmt.indent(self.out, header_indent)
            fmt.header_epilogue(self.out)
            fmt.indent(self.out, header_indent)
            fmt.else_header(self.out)
            self.emit(otherwise)
            fmt.indent(self.out, header_indent)
            fmt.header_epilogue(self.out)
            return self.emit(node.next_in_level)

        if node.type == ControlNodeType.IF:
            if node.next is not None and node.next.scope == ControlNodeScope.FALSE:
                op = opposite_operator_symbol(jump)
            else:
                op = operator_symbol(jump)
            fmt.indent(self.out, header_indent)
            fmt.conditional_header(self.out, node.type, left, right, op)
            self.emit(node.next)
            fmt.indent(self.out, header_indent)
            fmt.header_epilogue(self.out)
            return self.emit(node.next_in_level)

        if node.type == ControlNodeType.WHILE:
            fmt.indent(self.out, header_indent)
            fmt.conditional_header(self.out, node.type, left, right, operator_symbol(jump))
            self.emit(node.next)
            # The loop header block runs again at the end of every iteration.
            self.evaluate(node.bb, node.level + 2, True)
            fmt.indent(self.out, header_indent)
            fmt.header_epilogue(self.out)
            return self.emit(node.next_in_level)

        if node.scope == ControlNodeScope.NONE:
            following = node.next_in_level
            if following is not None and following.parent is node.parent:
                self.emit(following)

        return node.next


def emit_routine(
    formatter: Formatter,
    backend: Backend,
    routine: Routine,
    nodes: Sequence[ControlNode],
) -> str:
    """Render the whole routine, header and body, as text."""
    for variable in routine.variables:
        if backend.is_return_value(variable.native_operand):
            routine.retval = variable
            break

    out = Output()
    formatter.function_header(out, routine)
    Emitter(formatter, out).emit(nodes[0] if nodes else None)
    formatter.header_epilogue(out)
    return str(out)