# decompkit

decompkit is a small decompiler library. It takes a list of instructions that have already been disassembled and runs them through these steps:

1. It splits them into basic blocks at branch targets.
2. It lifts each block into a stack-based intermediate language (IL) through a backend you supply.
3. It recovers `if`, `if`/`else` and `while` structure from the control-flow graph.
4. It runs simple passes: in-block copy propagation, shift-to-multiply/divide simplification, and removal of dead stores, self-copies and unread variables.
5. It prints the routine as C, Zig, Python, or a compact one-line expression form.

## Installation

```
pip install decompkit
```

To run the tests:

```
pip install "decompkit[test]"
pytest
```

## Usage

```python
from decompkit.program import Program, version
from decompkit.languages import get_formatter

backend = MyBackend()              # your decompkit.backend.Backend subclass
formatter = get_formatter("c")     # "c", "zig", "python" or "expr"

program = Program(instructions, backend, formatter)
print(program.decompile())
```

- `Program(instructions=(), backend=None, formatter=None)` holds the image. The `backend` and `formatter` attributes can be set later.
- `Program.set_image(instructions)` replaces the instruction list.
- `Program.decompile()` returns the source text. It also stores the lifted routine in `program.routine`.
- `version()` returns a `(major, minor)` named tuple. Its `encoded` property gives `(major << 8) | minor`.
- `get_formatter(name)` raises `ValueError` for an unknown language.

### Writing a backend

`decompkit.backend.Backend` is an abstract class. A backend answers questions about your disassembler's instruction and operand objects:

- branches: `is_jump`, `is_conditional_jump`, `jump_target`, `jump_fallthrough`, `address`
- operand access and kind: `operand`, `operand_type` (returns an `OperandType`), `operand_bitsize`
- registers and memory: `register_index`, `largest_enclosing_register`, `memory_base_register`, `memory_displacement`
- operand roles and comparison: `is_stack_variable`, `is_return_value`, `immediate_value`, `operands_equal`

It also implements `lift(instruction, routine, block)`. This method appends IL to the block. It usually does so through `decompkit.lifting.load`, `store` and `get_variable`. A conditional branch sets `block.go_to_true` and `block.go_to` to target addresses. An unconditional branch sets only `block.go_to`. `Program.decompile` resolves these addresses to blocks.

### Errors

The exceptions live in `decompkit.errors` and all derive from `DecompileError`.

- `MissingBackendError` is raised by `decompile()` when no backend is set.
- `MissingFormatterError` is raised when no formatter is set.
- `DecompileError` itself is raised for an empty image, and when the emitter's expression stack underflows.
- `BadControlFlowError` is defined for callers to use, but the library does not raise it.

### Output formats

The formatters in `decompkit.languages` are `CFormatter`, `ZigFormatter`, `PythonFormatter` and `ExprFormatter`. Each one subclasses `decompkit.formatter.Formatter` and writes into a `decompkit.formatter.Output` buffer.

The expression form puts a whole routine on one line. Here is a routine with two 32-bit locals that returns their sum:

```
u32()[v0:u32,v1:u32]{v0=123,v1=321,v0=(v0+v1),__return__(v0)}
```

### Building blocks

Each stage can also be used on its own:

- `decompkit.native.decompose(backend, instructions)` returns `NativeBasicBlock` ranges.
- `decompkit.lifting` contains the IL emission helpers for backends.
- `decompkit.controlflow` provides `resolve_block`, `find_merge_point`, and `traverse`, which builds the list of `ControlNode`s.
- `decompkit.optimizer` contains the passes. It also has `convert_to_ssa` and `copy_propagation`, which `decompile()` does not run.
- `decompkit.emitter` provides `Emitter` and `emit_routine`, which render a routine through a formatter.
- `decompkit.visitor.Visitor` is the fixed-capacity address set used during traversal.
- `decompkit.ir` holds the IL types: `Opcode`, `Variable`, `Instruction`, `BasicBlock`, `Routine` and the control-node types.

## What decompkit does not do

- It does not decode machine code. It ships no backend for any disassembler, so you must write one.
- It does not read executable file formats.
- It has no command-line tool.
- It decompiles one image into a single routine. It does not split the image into several functions.