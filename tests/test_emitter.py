import pytest

from decompkit.backend import Backend, OperandType
from decompkit.controlflow import traverse
from decompkit.emitter import Emitter, emit_routine, operator_symbol, opposite_operator_symbol
from decompkit.errors import DecompileError
from decompkit.formatter import Output
from decompkit.ir import (
    BasicBlock,
    ControlNode,
    ControlNodeScope,
    ControlNodeType,
    Instruction,
    Opcode,
    Routine,
    Variable,
)
from decompkit.languages import CFormatter, ExprFormatter


class RegisterBackend(Backend):
    """Operands are plain register names; eax holds the return value."""

    def is_jump(self, instruction):
        return False

    def is_conditional_jump(self, instruction):
        return False

    def jump_target(self, instruction):
        return 0

    def jump_fallthrough(self, instruction):
        return 0

    def address(self, instruction):
        return 0

    def operand(self, instruction, index):
        return None

    def operand_type(self, operand):
        return OperandType.REG

    def operand_bitsize(self, operand):
        return 32

    def register_index(self, operand):
        return 0

    def largest_enclosing_register(self, index):
        return index

    def memory_base_register(self, operand):
        return 0

    def memory_displacement(self, operand):
        return 0

    def is_stack_variable(self, operand):
        return False

    def is_return_value(self, operand):
        return operand == "eax"

    def immediate_value(self, operand):
        return 0

    def operands_equal(self, first, second):
        return first == second

    def lift(self, instruction, routine, block):
        return None


def imm(value, size=32):
    return Instruction(Opcode.LOAD_IMM, size=size, immediate=value)


def load(variable):
    return Instruction(Opcode.LOAD_REG, size=variable.size, variable=variable)


def store(variable):
    return Instruction(Opcode.STORE, size=variable.size, variable=variable)


def node(instructions, level=0, kind=ControlNodeType.BODY, scope=ControlNodeScope.NONE, parent=None):
    return ControlNode(
        bb=BasicBlock(instructions=list(instructions)),
        level=level,
        type=kind,
        scope=scope,
        parent=parent,
    )


@pytest.mark.parametrize(
    ("opcode", "symbol"),
    [
        (Opcode.ADD, "+"),
        (Opcode.SUB, "-"),
        (Opcode.SHL, "<<"),
        (Opcode.SHR, ">>"),
        (Opcode.JZ, "=="),
        (Opcode.JNL, ">="),
        (Opcode.JS, "<"),
        (Opcode.JNS, ">="),
        (Opcode.PHI, "??"),
        (None, "??"),
    ],
)
def test_operator_symbol(opcode, symbol):
    assert operator_symbol(opcode) == symbol


@pytest.mark.parametrize(
    ("opcode", "symbol"),
    [
        (Opcode.JZ, "!="),
        (Opcode.JNZ, "=="),
        (Opcode.JB, ">="),
        (Opcode.JNBE, "<="),
        (Opcode.JS, "??"),
        (Opcode.ADD, "??"),
    ],
)
def test_opposite_operator_symbol(opcode, symbol):
    assert opposite_operator_symbol(opcode) == symbol


def test_evaluate_store_writes_indented_assignment():
    fmt = CFormatter()
    v = Variable(index=0, size=32)
    emitter = Emitter(fmt, Output())
    result = emitter.evaluate(BasicBlock(instructions=[imm(5), store(v)]), 1, True)
    assert result == (None, "", "")
    expected = " " * fmt.indent_repeat + fmt.assignment(fmt.variable_name(v), "5")
    assert str(emitter.out) == expected


def test_evaluate_silent_writes_nothing():
    emitter = Emitter(CFormatter())
    v = Variable(index=0, size=32)
    emitter.evaluate(BasicBlock(instructions=[imm(5), store(v)]), 1, False)
    assert str(emitter.out) == ""


def test_evaluate_negative_immediate():
    fmt = CFormatter()
    v = Variable(index=0, size=32)
    emitter = Emitter(fmt)
    emitter.evaluate(BasicBlock(instructions=[imm(2**64 - 4), store(v)]), 0, True)
    assert str(emitter.out) == fmt.assignment(fmt.variable_name(v), "-4")


def test_evaluate_compare_returns_operands_and_jump():
    fmt = CFormatter()
    v = Variable(index=0, size=32)
    block = BasicBlock(
        instructions=[imm(10), load(v), Instruction(Opcode.CMP), Instruction(Opcode.JL)]
    )
    assert Emitter(fmt).evaluate(block, 0, True) == (Opcode.JL, fmt.variable_name(v), "10")


def test_evaluate_memory_write():
    fmt = CFormatter()
    base = Variable(index=0, size=64)
    block = BasicBlock(
        instructions=[
            imm(7),
            load(base),
            imm(4, 8),
            Instruction(Opcode.ADD, size=8),
            Instruction(Opcode.WRITE, size=32),
        ]
    )
    emitter = Emitter(fmt)
    emitter.evaluate(block, 0, True)
    address = fmt.arithmetic(fmt.variable_name(base), "+", "4")
    assert str(emitter.out) == fmt.assignment(fmt.memory_location(address, 32), "7")


def test_evaluate_read_neg_and_return():
    fmt = CFormatter()
    base = Variable(index=0, size=64, is_param=True)
    block = BasicBlock(
        instructions=[
            load(base),
            Instruction(Opcode.READ, size=16),
            Instruction(Opcode.NEG),
            Instruction(Opcode.RET),
        ]
    )
    emitter = Emitter(fmt)
    emitter.evaluate(block, 0, True)
    value = "-" + fmt.memory_location(fmt.variable_name(base), 16)
    assert str(emitter.out) == fmt.return_statement(value)


def test_evaluate_phi():
    fmt = CFormatter()
    a, b, c = (Variable(index=i, size=32) for i in range(3))
    block = BasicBlock(instructions=[load(a), load(b), Instruction(Opcode.PHI), store(c)])
    emitter = Emitter(fmt)
    emitter.evaluate(block, 0, True)
    phi = f"phi({fmt.variable_name(a)}, {fmt.variable_name(b)})"
    assert str(emitter.out) == fmt.assignment(fmt.variable_name(c), phi)


def test_evaluate_stack_underflow_raises():
    v = Variable(index=0, size=32)
    with pytest.raises(DecompileError):
        Emitter(CFormatter()).evaluate(BasicBlock(instructions=[store(v)]), 0, True)


def _if_tree(scope):
    v = Variable(index=0, size=32)
    root = node(
        [imm(0), load(v), Instruction(Opcode.CMP), Instruction(Opcode.JZ)],
        kind=ControlNodeType.IF,
    )
    child = node([imm(1), store(v)], level=1, scope=scope, parent=root)
    root.next = child
    return root


def test_if_true_scope_uses_operator():
    emitter = Emitter(CFormatter())
    emitter.emit(_if_tree(ControlNodeScope.TRUE))
    text = str(emitter.out)
    assert "==" in text
    assert "!=" not in text


def test_if_false_scope_uses_opposite_operator():
    emitter = Emitter(CFormatter())
    emitter.emit(_if_tree(ControlNodeScope.FALSE))
    text = str(emitter.out)
    assert "!=" in text
    assert "==" not in text


def test_if_else_emits_branches_in_order():
    fmt = CFormatter()
    v = Variable(index=0, size=32)
    root = node(
        [imm(0), load(v), Instruction(Opcode.CMP), Instruction(Opcode.JZ)],
        kind=ControlNodeType.IF_ELSE,
    )
    taken = node([imm(1), store(v)], level=1, scope=ControlNodeScope.TRUE, parent=root)
    passed = node([imm(2), store(v)], level=1, scope=ControlNodeScope.FALSE, parent=root)
    root.next = taken
    taken.next = passed
    taken.next_in_level = passed
    emitter = Emitter(fmt)
    emitter.emit(root)
    text = str(emitter.out)
    name = fmt.variable_name(v)
    first = text.index(fmt.assignment(name, "1"))
    middle = text.index("else")
    last = text.index(fmt.assignment(name, "2"))
    assert first < middle < last
    assert text.count("{") == text.count("}")


def test_while_reevaluates_header_after_body():
    fmt = CFormatter()
    v0 = Variable(index=0, size=32)
    v1 = Variable(index=1, size=32)
    root = node(
        [imm(1), store(v0), imm(5), load(v0), Instruction(Opcode.CMP), Instruction(Opcode.JL)],
        kind=ControlNodeType.WHILE,
    )
    body = node([imm(2), store(v1)], level=1, scope=ControlNodeScope.TRUE, parent=root)
    root.next = body
    emitter = Emitter(fmt)
    emitter.emit(root)
    text = str(emitter.out)
    header_store = fmt.assignment(fmt.variable_name(v0), "1")
    body_store = fmt.assignment(fmt.variable_name(v1), "2")
    assert text.startswith(" " * fmt.indent_repeat + "while (")
    assert text.count(header_store) == 1
    assert text.index(body_store) < text.index(header_store)


def test_body_chain_follows_siblings_with_same_parent():
    fmt = CFormatter()
    v = Variable(index=0, size=32)
    first = node([imm(1), store(v)])
    second = node([imm(2), store(v)])
    first.next = second
    first.next_in_level = second
    emitter = Emitter(fmt)
    assert emitter.emit(first) is second
    text = str(emitter.out)
    assert fmt.assignment(fmt.variable_name(v), "1") in text
    assert fmt.assignment(fmt.variable_name(v), "2") in text


def test_body_chain_stops_at_other_parent():
    fmt = CFormatter()
    v = Variable(index=0, size=32)
    first = node([imm(1), store(v)])
    second = node([imm(2), store(v)], parent=node([]))
    first.next_in_level = second
    emitter = Emitter(fmt)
    emitter.emit(first)
    assert fmt.assignment(fmt.variable_name(v), "2") not in str(emitter.out)


def test_emit_routine_sets_retval_and_renders_expr():
    v0 = Variable(index=0, size=32, native_operand="eax")
    block = BasicBlock(
        start_va=0x1000,
        end_va=0x1004,
        instructions=[imm(3), store(v0), load(v0), Instruction(Opcode.RET)],
    )
    routine = Routine(basic_blocks=[block], variables=[v0])
    text = emit_routine(ExprFormatter(), RegisterBackend(), routine, traverse(routine.basic_blocks))
    assert routine.retval is v0
    assert text == "u32()[v0:u32]{v0=3,__return__(v0)}"


def test_emit_routine_without_return_value():
    v0 = Variable(index=0, size=32, native_operand="ecx")
    block = BasicBlock(start_va=0x1000, end_va=0x1004, instructions=[imm(3), store(v0)])
    routine = Routine(basic_blocks=[block], variables=[v0])
    text = emit_routine(ExprFormatter(), RegisterBackend(), routine, traverse(routine.basic_blocks))
    assert routine.retval is None
    assert text.startswith("none(")