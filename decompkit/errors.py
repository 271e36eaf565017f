"""Exceptions raised while decompiling a program."""


class DecompileError(Exception):
    """Base class for every decompilation failure."""


class MissingBackendError(DecompileError):
    """The program has no disassembler backend."""


class MissingFormatterError(DecompileError):
    """The program has no output formatter."""


class BadControlFlowError(DecompileError):
    """The control flow graph could not be built or resolved."""