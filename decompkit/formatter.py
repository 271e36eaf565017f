"""Output buffer and the base class for target-language formatters."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .ir import ControlNodeType, Routine, Variable


class Output:
    """Growing text buffer the decompiler writes into."""

    def __init__(self) -> None:
        self._parts: list[str] = []

    def write(self, text: str) -> None:
        """Append text."""
        if text:
            self._parts.append(text)

    def last_char(self) -> str:
        """The last character written, or an empty string."""
        return self._parts[-1][-1] if self._parts else ""

    def replace_last_char(self, char: str) -> None:
        """Overwrite the last character written."""
        if not self._parts:
            raise ValueError("output is empty")
        self._parts[-1] = self._parts[-1][:-1] + char
        if not self._parts[-1]:
            self._parts.pop()

    def __str__(self) -> str:
        return "".join(self._parts)


class Formatter(ABC):
    """Renders a lifted routine as source text in some language."""

    indent_repeat: int = 4
    indent_char: str = " "
    routine_prefix: str = "sub_"
    variable_prefix: str = "var"
    argument_prefix: str = "arg"
    endline: str = ";\n"
    assignment_format: str = "{} = {}{}"
    arithmetic_format: str = "({} {} {})"
    return_format: str = "return {}{}"

    def routine_name(self, routine: Routine) -> str:
        """Name of the routine, derived from its first block's address."""
        if not routine.basic_blocks:
            raise ValueError("routine has no basic blocks")
        return f"{self.routine_prefix}{routine.basic_blocks[0].start_va:x}"

    def variable_name(self, variable: Variable) -> str:
        """Name of a variable or argument."""
        prefix = self.argument_prefix if variable.is_param else self.variable_prefix
        return f"{prefix}{variable.index}"

    def indent(self, out: Output, count: int) -> None:
        """Write indentation for the given depth."""
        out.write(self.indent_char * (self.indent_repeat * max(count, 0)))

    def assignment(self, target: str, value: str) -> str:
        """An assignment statement, line ending included."""
        return self.assignment_format.format(target, value, self.endline)

    def arithmetic(self, left: str, op: str, right: str) -> str:
        """A binary expression."""
        return self.arithmetic_format.format(left, op, right)

    def return_statement(self, value: str) -> str:
        """A return statement, line ending included."""
        return self.return_format.format(value, self.endline)

    @abstractmethod
    def function_header(self, out: Output, routine: Routine) -> None:
        """Write the function signature and local declarations."""

    @abstractmethod
    def conditional_header(
        self, out: Output, kind: ControlNodeType, left: str, right: str, op: str
    ) -> None:
        """Write the opening of an if or while construct."""

    @abstractmethod
    def else_header(self, out: Output) -> None:
        """Write the opening of an else branch."""

    @abstractmethod
    def header_epilogue(self, out: Output) -> None:
        """Write the closing of a block."""

    @abstractmethod
    def memory_location(self, expression: str, bitsize: int) -> str:
        """An expression dereferencing memory at the given address."""