"""Formatters for the supported output languages: C, Zig, Python and a compact expression form."""

from __future__ import annotations

from .formatter import Formatter, Output
from .ir import ControlNodeType, Routine


def _separator(position: int, total: int, text: str) -> str:
    return text if position != total else ""


class CFormatter(Formatter):
    """Renders routines as C source."""

    indent_repeat = 4
    indent_char = " "
    routine_prefix = "sub_"
    variable_prefix = "var"
    argument_prefix = "arg"
    endline = ";\n"
    assignment_format = "{} = {}{}"
    arithmetic_format = "({} {} {})"
    return_format = "return {}{}"

    def function_header(self, out: Output, routine: Routine) -> None:
        if routine.retval is not None:
            out.write(f"int{routine.retval.size}_t ")
        else:
            out.write("void ")
        out.write(self.routine_name(routine))
        out.write("(")
        for position, variable in enumerate(routine.parameters(), start=1):
            out.write(f"int{variable.size}_t ")
            out.write(self.variable_name(variable))
            out.write(_separator(position, routine.n_params, ", "))
        out.write(")\n{\n")
        for variable in routine.locals():
            self.indent(out, 1)
            out.write(f"int{variable.size}_t ")
            out.write(self.variable_name(variable))
            out.write(";\n")
        out.write("\n")

    def conditional_header(
        self, out: Output, kind: ControlNodeType, left: str, right: str, op: str
    ) -> None:
        if kind in (ControlNodeType.IF, ControlNodeType.IF_ELSE):
            out.write(f"if ({left} {op} {right}) {{\n")
        elif kind == ControlNodeType.WHILE:
            out.write(f"while ({left} {op} {right}) {{\n")

    def else_header(self, out: Output) -> None:
        out.write("else {\n")

    def header_epilogue(self, out: Output) -> None:
        out.write("}\n")

    def memory_location(self, expression: str, bitsize: int) -> str:
        return f"*(int{bitsize}_t*){expression}"


class ZigFormatter(Formatter):
    """Renders routines as Zig source."""

    indent_repeat = 4
    indent_char = " "
    routine_prefix = "sub_"
    variable_prefix = "var"
    argument_prefix = "arg"
    endline = ";\n"
    assignment_format = "{} = {}{}"
    arithmetic_format = "({} {} {})"
    return_format = "return {}{}"

    def function_header(self, out: Output, routine: Routine) -> None:
        out.write("pub fn ")
        out.write(self.routine_name(routine))
        out.write("(")
        for position, variable in enumerate(routine.parameters(), start=1):
            out.write(self.variable_name(variable))
            out.write(f": i{variable.size}")
            out.write(_separator(position, routine.n_params, ", "))
        out.write(") ")
        if routine.retval is not None:
            out.write(f"i{routine.retval.size} ")
        out.write("{\n")
        for variable in routine.locals():
            self.indent(out, 1)
            out.write("var ")
            out.write(self.variable_name(variable))
            out.write(f": i{variable.size} = undefined;\n")
        out.write("\n")

    def conditional_header(
        self, out: Output, kind: ControlNodeType, left: str, right: str, op: str
    ) -> None:
        if kind in (ControlNodeType.IF, ControlNodeType.IF_ELSE):
            out.write(f"if ({left} {op} {right}) {{\n")
        elif kind == ControlNodeType.WHILE:
            out.write(f"while ({left} {op} {right}) {{\n")

    def else_header(self, out: Output) -> None:
        out.write("else {\n")

    def header_epilogue(self, out: Output) -> None:
        out.write("}\n")

    def memory_location(self, expression: str, bitsize: int) -> str:
        return f"mem_read({expression}, {int(bitsize / 8)})"


class PythonFormatter(Formatter):
    """Renders routines as Python source."""

    indent_repeat = 4
    indent_char = " "
    routine_prefix = "sub_"
    variable_prefix = "var"
    argument_prefix = "arg"
    endline = "\n"
    assignment_format = "{} = {}{}"
    arithmetic_format = "({} {} {})"
    return_format = "return {}{}"

    def function_header(self, out: Output, routine: Routine) -> None:
        out.write("def ")
        out.write(self.routine_name(routine))
        out.write("(")
        for position, variable in enumerate(routine.parameters(), start=1):
            out.write(self.variable_name(variable))
            out.write(_separator(position, routine.n_params, ", "))
        out.write("):\n")
        for variable in routine.locals():
            self.indent(out, 1)
            out.write(self.variable_name(variable))
            out.write(" = None\n")
        out.write("\n")

    def conditional_header(
        self, out: Output, kind: ControlNodeType, left: str, right: str, op: str
    ) -> None:
        if kind in (ControlNodeType.IF, ControlNodeType.IF_ELSE):
            out.write(f"if {left} {op} {right}:\n")
        elif kind == ControlNodeType.WHILE:
            out.write(f"while {left} {op} {right}:\n")

    def else_header(self, out: Output) -> None:
        out.write("else:\n")

    def header_epilogue(self, out: Output) -> None:
        out.write("\n")

    def memory_location(self, expression: str, bitsize: int) -> str:
        return f"ctypes.c_uint{bitsize}.from_address({expression}).value"


class ExprFormatter(Formatter):
    """Renders routines as a compact single-line expression form."""

    indent_repeat = 0
    indent_char = " "
    routine_prefix = ""
    variable_prefix = "v"
    argument_prefix = "v"
    endline = ","
    assignment_format = "{}={}{}"
    arithmetic_format = "({}{}{})"
    return_format = "__return__({}){}"

    def function_header(self, out: Output, routine: Routine) -> None:
        if routine.retval is not None:
            out.write(f"u{routine.retval.size}(")
        else:
            out.write("none(")
        position = 0
        for variable in routine.parameters():
            position += 1
            out.write(self.variable_name(variable))
            out.write(f":u{variable.size}")
            out.write(_separator(position, routine.n_params, ","))
        out.write(")[")
        total = len(routine.variables)
        for variable in routine.locals():
            position += 1
            out.write(self.variable_name(variable))
            out.write(f":u{variable.size}")
            out.write(_separator(position, total, ","))
        out.write("]{")

    def conditional_header(
        self, out: Output, kind: ControlNodeType, left: str, right: str, op: str
    ) -> None:
        if kind in (ControlNodeType.IF, ControlNodeType.IF_ELSE):
            out.write(f"if({left}{op}{right}){{")
        elif kind == ControlNodeType.WHILE:
            out.write(f"while({left}{op}{right}){{")

    def else_header(self, out: Output) -> None:
        out.write("else{")

    def header_epilogue(self, out: Output) -> None:
        if out.last_char() == ",":
            out.replace_last_char("}")
        else:
            out.write("}")

    def memory_location(self, expression: str, bitsize: int) -> str:
        return f"*(u{bitsize}*){expression}"


_LANGUAGES: dict[str, type[Formatter]] = {
    "c": CFormatter,
    "zig": ZigFormatter,
    "python": PythonFormatter,
    "expr": ExprFormatter,
}


def get_formatter(name: str) -> Formatter:
    """A new formatter for the named language: c, zig, python or expr."""
    try:
        return _LANGUAGES[name]()
    except KeyError:
        choices = ", ".join(_LANGUAGES)
        raise ValueError(f"unknown language {name!r}; expected one of {choices}") from None