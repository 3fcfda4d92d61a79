"""
Bytecode Disassembler
=====================

Decodes a compiled Program into a human-readable listing, one line per
instruction:

    0000: PUSH   #1
    0002: STORE  i
    0004: POP
    0005: FETCH  i
    0007: PUSH   #100
    0009: LT
    0010: JZ     @0022        ; forward
    ...
    0020: JMP    @0005        ; loop
    0022: HALT

Words that are not valid opcodes are shown as ??? and decoding continues
with the next word, so a damaged program can still be inspected.

Usage:
    print(format_listing(program))
"""

from dataclasses import dataclass
from typing import Optional

from tinyc.bytecode import Program
from tinyc.opcodes import Opcode, OperandKind, VARIABLE_COUNT, get_opcode_info, variable_name


@dataclass
class DisassembledInstruction:
    """
    One decoded instruction.

    Attributes:
        offset: Word offset of the opcode
        opcode: The opcode, or None for an unknown word
        mnemonic: Instruction mnemonic ("???" when unknown)
        operand: Raw operand word, if the instruction has one
        operand_str: Formatted operand (a, #42, @0012)
        size: Size in words
        comment: Extra context, e.g. jump direction
    """
    offset: int
    opcode: Optional[Opcode]
    mnemonic: str
    operand: Optional[int]
    operand_str: str
    size: int
    comment: str = ""

    def __str__(self) -> str:
        asm = f"{self.mnemonic:<6} {self.operand_str}".rstrip()
        if self.comment:
            return f"{self.offset:04d}: {asm:<20} ; {self.comment}"
        return f"{self.offset:04d}: {asm}"

    def to_dict(self) -> dict:
        return {
            "offset": self.offset,
            "mnemonic": self.mnemonic,
            "operand": self.operand,
            "operand_str": self.operand_str,
            "size": self.size,
            "comment": self.comment,
        }


def disassemble_one(program: Program, offset: int) -> DisassembledInstruction:
    """
    Decode the instruction at a given offset.

    Raises:
        ValueError: If offset is outside the program
    """
    code = program.code
    if not 0 <= offset < len(code):
        raise ValueError(f"Offset {offset} beyond program length {len(code)}")

    try:
        info = get_opcode_info(code[offset])
    except KeyError:
        return DisassembledInstruction(offset, None, "???", None, f"{code[offset]}", 1,
                                       "unknown opcode")

    if info.operand is OperandKind.NONE:
        return DisassembledInstruction(offset, info.opcode, info.mnemonic, None, "", 1)

    if offset + 1 >= len(code):
        return DisassembledInstruction(offset, info.opcode, info.mnemonic, None, "", 1,
                                       "truncated")

    operand = code[offset + 1]
    comment = ""
    if info.operand is OperandKind.VARIABLE:
        if 0 <= operand < VARIABLE_COUNT:
            operand_str = variable_name(operand)
        else:
            operand_str = f"${operand}"
            comment = "bad variable slot"
    elif info.operand is OperandKind.CONSTANT:
        operand_str = f"#{operand}"
    else:
        operand_str = f"@{operand:04d}"
        comment = "loop" if operand <= offset else "forward"

    return DisassembledInstruction(offset, info.opcode, info.mnemonic, operand,
                                   operand_str, info.size, comment)


def disassemble(program: Program) -> list[DisassembledInstruction]:
    """Decode every instruction of a program in order."""
    instructions = []
    offset = 0
    while offset < len(program.code):
        instr = disassemble_one(program, offset)
        instructions.append(instr)
        offset += instr.size
    return instructions


def format_listing(program: Program) -> str:
    """Return the program listing as text, one instruction per line."""
    return "\n".join(str(instr) for instr in disassemble(program))
