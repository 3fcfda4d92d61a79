"""
Bytecode Buffer
===============

The compiler appends instructions to a BytecodeBuilder as it recognises
each grammar production, then freezes the result into an immutable
Program that is handed to the virtual machine.

Backpatching
------------
Forward jumps are emitted before their destination is known. The builder
writes a placeholder operand, remembers the jump's offset as pending, and
the compiler later calls patch() once the destination has been compiled.
Every pending jump must be patched exactly once before build():

    jz = builder.emit_jump(Opcode.JZ)      # placeholder target
    ...                                    # compile the branch
    builder.patch(jz, builder.here())      # fix it up

Offsets are plain indexes into the word buffer, so patching is a single
list assignment.
"""

import logging
import struct
from dataclasses import dataclass
from typing import Iterator, Optional

from tinyc.errors import BytecodeError
from tinyc.opcodes import (
    OPCODE_TABLE,
    Opcode,
    OperandKind,
    get_opcode_info,
    wrap_word,
)

logger = logging.getLogger(__name__)


# Operand word written for a jump whose target is not yet known
PLACEHOLDER = -1

# Each word is serialised as a signed 64-bit big-endian integer
_WORD = struct.Struct(">q")


# =============================================================================
# Frozen Program
# =============================================================================

@dataclass(frozen=True)
class Program:
    """
    A finished, immutable bytecode program.

    Attributes:
        code: Flat sequence of words (opcodes and operands)
        source_name: Name of the source the program was compiled from
    """
    code: tuple[int, ...]
    source_name: str = "<input>"

    def __len__(self) -> int:
        return len(self.code)

    def iter_instructions(self) -> Iterator[tuple[int, Opcode, Optional[int]]]:
        """
        Walk the program instruction by instruction.

        Yields:
            (offset, opcode, operand) with operand None for one-word instructions

        Raises:
            BytecodeError: If a word in opcode position is not an opcode,
                or an operand is cut off by the end of the program
        """
        offset = 0
        while offset < len(self.code):
            try:
                info = get_opcode_info(self.code[offset])
            except KeyError:
                raise BytecodeError(f"invalid opcode {self.code[offset]}", offset) from None
            if offset + info.size > len(self.code):
                raise BytecodeError(f"truncated {info.mnemonic} instruction", offset)
            operand = self.code[offset + 1] if info.size == 2 else None
            yield offset, info.opcode, operand
            offset += info.size

    def instruction_offsets(self) -> set[int]:
        """Return the set of offsets that start an instruction."""
        return {offset for offset, _, _ in self.iter_instructions()}

    def to_bytes(self) -> bytes:
        """Encode the program as 8 bytes per word."""
        return b"".join(_WORD.pack(word) for word in self.code)

    @classmethod
    def from_bytes(cls, data: bytes, source_name: str = "<input>") -> "Program":
        """
        Decode a program produced by to_bytes().

        Raises:
            BytecodeError: If the data length is not a whole number of words
        """
        if len(data) % _WORD.size:
            raise BytecodeError(
                f"bytecode length {len(data)} is not a multiple of {_WORD.size}"
            )
        words = tuple(word for (word,) in _WORD.iter_unpack(data))
        return cls(words, source_name)


# =============================================================================
# Builder
# =============================================================================

class BytecodeBuilder:
    """
    Append-only word buffer with forward-jump backpatching.

    Attributes:
        source_name: Carried through to the built Program
    """

    def __init__(self, source_name: str = "<input>"):
        self.source_name = source_name
        self._code: list[int] = []
        self._pending: set[int] = set()

    def __len__(self) -> int:
        return len(self._code)

    @property
    def pending_jumps(self) -> frozenset[int]:
        """Offsets of jumps still waiting for a target."""
        return frozenset(self._pending)

    def here(self) -> int:
        """Offset at which the next instruction will be emitted."""
        return len(self._code)

    def emit(self, opcode: Opcode, operand: Optional[int] = None) -> int:
        """
        Append one instruction.

        Args:
            opcode: The instruction to emit
            operand: Operand word, required exactly when the opcode takes one

        Returns:
            Offset of the emitted instruction
        """
        info = OPCODE_TABLE[opcode]
        if info.operand is OperandKind.NONE:
            if operand is not None:
                raise BytecodeError(f"{info.mnemonic} takes no operand", self.here())
        elif operand is None:
            raise BytecodeError(f"{info.mnemonic} requires a {info.operand} operand", self.here())

        offset = self.here()
        self._code.append(int(opcode))
        if operand is not None:
            if info.operand is OperandKind.CONSTANT:
                operand = wrap_word(operand)
            self._code.append(operand)
        return offset

    def emit_jump(self, opcode: Opcode, target: Optional[int] = None) -> int:
        """
        Append a jump instruction.

        Backward jumps pass their (already known) target. Forward jumps omit
        it; a placeholder is written and the jump is recorded as pending
        until patch() is called.

        Returns:
            Offset of the jump instruction
        """
        if not OPCODE_TABLE[opcode].is_jump:
            raise BytecodeError(f"{opcode.name} is not a jump", self.here())
        if target is None:
            offset = self.emit(opcode, PLACEHOLDER)
            self._pending.add(offset)
            return offset
        return self.emit(opcode, target)

    def patch(self, jump_offset: int, target: int) -> None:
        """
        Resolve a pending forward jump.

        Raises:
            BytecodeError: If jump_offset is not a pending jump
        """
        if jump_offset not in self._pending:
            raise BytecodeError("patch of a jump that is not pending", jump_offset)
        self._pending.remove(jump_offset)
        self._code[jump_offset + 1] = target
        logger.debug("Patched jump at %d to %d", jump_offset, target)

    def build(self) -> Program:
        """
        Freeze the buffer into a Program.

        Raises:
            BytecodeError: If a jump is still unpatched or any jump target
                is not an instruction boundary
        """
        if self._pending:
            raise BytecodeError("unpatched jump", min(self._pending))

        program = Program(tuple(self._code), self.source_name)
        boundaries = program.instruction_offsets()
        for offset, opcode, operand in program.iter_instructions():
            if OPCODE_TABLE[opcode].is_jump and operand not in boundaries:
                # Targets past the final HALT are not instructions either
                raise BytecodeError(f"{opcode.name} target {operand} is not an instruction", offset)
        return program
