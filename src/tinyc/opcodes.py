"""
Tiny-C Instruction Set Definition
=================================

This module defines the stack machine instruction set shared by the
compiler, the virtual machine and the disassembler.

Encoding
--------
A program is a flat sequence of integer words. Every instruction is one
opcode word, optionally followed by a single operand word:

| Mnemonic | Operand   | Size | Stack effect          |
|----------|-----------|------|-----------------------|
| FETCH    | variable  | 2    | -- value              |
| STORE    | variable  | 2    | value -- value        |
| PUSH     | constant  | 2    | -- value              |
| POP      | (none)    | 1    | value --              |
| ADD      | (none)    | 1    | left right -- sum     |
| SUB      | (none)    | 1    | left right -- diff    |
| LT       | (none)    | 1    | left right -- 0/1     |
| JZ       | address   | 2    | value --              |
| JNZ      | address   | 2    | value --              |
| JMP      | address   | 2    | --                    |
| HALT     | (none)    | 1    | --                    |

Jump targets are absolute word offsets into the same program and always
point at an opcode word.

Arithmetic
----------
Values are signed 64-bit two's-complement machine words. Literals and the
results of ADD and SUB wrap into that range (see wrap_word).
"""

from dataclasses import dataclass
from enum import Enum, IntEnum, auto


# =============================================================================
# Machine Constants
# =============================================================================

VARIABLE_COUNT = 26

WORD_BITS = 64
WORD_MASK = (1 << WORD_BITS) - 1
WORD_SIGN = 1 << (WORD_BITS - 1)

WORD_MIN = -WORD_SIGN
WORD_MAX = WORD_SIGN - 1


def wrap_word(value: int) -> int:
    """
    Fold an arbitrary integer into the signed 64-bit word range.

    >>> wrap_word(WORD_MAX + 1) == WORD_MIN
    True
    """
    value &= WORD_MASK
    if value & WORD_SIGN:
        value -= 1 << WORD_BITS
    return value


def variable_slot(name: str) -> int:
    """Return the variable table slot (0-25) for a letter 'a'-'z'."""
    if len(name) != 1 or not "a" <= name <= "z":
        raise ValueError(f"not a variable name: {name!r}")
    return ord(name) - ord("a")


def variable_name(slot: int) -> str:
    """Return the letter for a variable table slot."""
    if not 0 <= slot < VARIABLE_COUNT:
        raise ValueError(f"variable slot out of range: {slot}")
    return chr(ord("a") + slot)


# =============================================================================
# Opcodes
# =============================================================================

class Opcode(IntEnum):
    """Opcode words of the Tiny-C stack machine."""
    FETCH = 0
    STORE = 1
    PUSH = 2
    POP = 3
    ADD = 4
    SUB = 5
    LT = 6
    JZ = 7
    JNZ = 8
    JMP = 9
    HALT = 10


class OperandKind(Enum):
    """What the operand word following an opcode means."""
    NONE = auto()       # no operand word
    VARIABLE = auto()   # variable table slot 0-25
    CONSTANT = auto()   # signed word literal
    ADDRESS = auto()    # absolute code offset

    def __str__(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class OpcodeInfo:
    """
    Static information about one opcode.

    Attributes:
        opcode: The opcode word
        mnemonic: Assembly-style name used in listings and traces
        operand: Kind of operand word that follows (if any)
        pops: Values removed from the operand stack
        pushes: Values pushed onto the operand stack
        description: One-line summary for listings
    """
    opcode: Opcode
    mnemonic: str
    operand: OperandKind
    pops: int
    pushes: int
    description: str

    @property
    def size(self) -> int:
        """Total instruction size in words."""
        return 1 if self.operand is OperandKind.NONE else 2

    @property
    def is_jump(self) -> bool:
        return self.operand is OperandKind.ADDRESS

    def __repr__(self) -> str:
        return f"OpcodeInfo({self.mnemonic}, size={self.size})"


# =============================================================================
# Opcode Table
# =============================================================================

OPCODE_TABLE: dict[Opcode, OpcodeInfo] = {
    # Variables and constants
    Opcode.FETCH: OpcodeInfo(Opcode.FETCH, "FETCH", OperandKind.VARIABLE, 0, 1,
                             "Push the value of a variable"),
    # STORE leaves its value on the stack as the assignment's result
    Opcode.STORE: OpcodeInfo(Opcode.STORE, "STORE", OperandKind.VARIABLE, 1, 1,
                             "Write top of stack to a variable"),
    Opcode.PUSH: OpcodeInfo(Opcode.PUSH, "PUSH", OperandKind.CONSTANT, 0, 1,
                            "Push a constant"),
    Opcode.POP: OpcodeInfo(Opcode.POP, "POP", OperandKind.NONE, 1, 0,
                           "Discard top of stack"),

    # Arithmetic and comparison
    Opcode.ADD: OpcodeInfo(Opcode.ADD, "ADD", OperandKind.NONE, 2, 1,
                           "Add (left + right)"),
    Opcode.SUB: OpcodeInfo(Opcode.SUB, "SUB", OperandKind.NONE, 2, 1,
                           "Subtract (left - right)"),
    Opcode.LT: OpcodeInfo(Opcode.LT, "LT", OperandKind.NONE, 2, 1,
                          "Less than (1 if left < right else 0)"),

    # Control flow
    Opcode.JZ: OpcodeInfo(Opcode.JZ, "JZ", OperandKind.ADDRESS, 1, 0,
                          "Jump if top of stack is zero"),
    Opcode.JNZ: OpcodeInfo(Opcode.JNZ, "JNZ", OperandKind.ADDRESS, 1, 0,
                           "Jump if top of stack is non-zero"),
    Opcode.JMP: OpcodeInfo(Opcode.JMP, "JMP", OperandKind.ADDRESS, 0, 0,
                           "Jump unconditionally"),
    Opcode.HALT: OpcodeInfo(Opcode.HALT, "HALT", OperandKind.NONE, 0, 0,
                            "Stop execution"),
}

JUMP_OPCODES = frozenset(op for op, info in OPCODE_TABLE.items() if info.is_jump)


def get_opcode_info(word: int) -> OpcodeInfo:
    """
    Look up the table entry for an opcode word.

    Raises:
        KeyError: If the word is not a valid opcode
    """
    try:
        return OPCODE_TABLE[Opcode(word)]
    except ValueError:
        raise KeyError(word) from None
