"""
Tiny-C - Compiler and Virtual Machine
=====================================

This package compiles Tiny-C, a stripped down C with 26 predeclared
integer variables (a to z), into bytecode and runs it on a small stack
machine.

Main Components
---------------
- **lexer**: turns source text into tokens on demand
- **compiler**: single-pass recursive descent compiler emitting bytecode
  directly, with forward-jump backpatching
- **vm**: stack machine executing the bytecode against the variable table
- **disassembler**: readable listings of compiled programs

Quick Start
-----------
    >>> from tinyc import compile_source, VM, format_variables
    >>> program = compile_source("a=b=c=2<3;")
    >>> format_variables(VM().run(program))
    ['a = 1', 'b = 1', 'c = 1']

Or use the command-line tool:
    $ echo "{ i=1; do i=i+10; while (i<50); }" | tinyc
    i = 51
"""

__version__ = "1.0.0"

from tinyc.errors import (
    TinyCError,
    LexError,
    TinyCSyntaxError,
    BytecodeError,
    SourceLocation,
)
from tinyc.lexer import Lexer, Token, TokenType
from tinyc.opcodes import Opcode, OPCODE_TABLE, VARIABLE_COUNT, wrap_word
from tinyc.bytecode import BytecodeBuilder, Program
from tinyc.compiler import Compiler, compile_source
from tinyc.vm import VM, VMState, format_variables, run_source
from tinyc.disassembler import DisassembledInstruction, disassemble, format_listing

__all__ = [
    "__version__",
    # Errors
    "TinyCError",
    "LexError",
    "TinyCSyntaxError",
    "BytecodeError",
    "SourceLocation",
    # Lexer
    "Lexer",
    "Token",
    "TokenType",
    # Instruction set and bytecode
    "Opcode",
    "OPCODE_TABLE",
    "VARIABLE_COUNT",
    "wrap_word",
    "BytecodeBuilder",
    "Program",
    # Compiler
    "Compiler",
    "compile_source",
    # Virtual machine
    "VM",
    "VMState",
    "format_variables",
    "run_source",
    # Disassembler
    "DisassembledInstruction",
    "disassemble",
    "format_listing",
]
