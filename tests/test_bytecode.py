"""
Bytecode Buffer and Instruction Set Tests
=========================================

Tests for the opcode table, word arithmetic helpers, the backpatching
BytecodeBuilder and the frozen Program.
"""

import logging

import pytest
from tinyc.bytecode import PLACEHOLDER, BytecodeBuilder, Program
from tinyc.errors import BytecodeError
from tinyc.opcodes import (
    OPCODE_TABLE,
    JUMP_OPCODES,
    Opcode,
    OperandKind,
    WORD_MAX,
    WORD_MIN,
    get_opcode_info,
    variable_name,
    variable_slot,
    wrap_word,
)


# =============================================================================
# Instruction Set
# =============================================================================

class TestOpcodeTable:
    """The shared opcode definitions."""

    def test_every_opcode_has_an_entry(self):
        assert set(OPCODE_TABLE) == set(Opcode)

    def test_sizes(self):
        assert OPCODE_TABLE[Opcode.FETCH].size == 2
        assert OPCODE_TABLE[Opcode.PUSH].size == 2
        assert OPCODE_TABLE[Opcode.ADD].size == 1
        assert OPCODE_TABLE[Opcode.HALT].size == 1

    def test_jump_opcodes(self):
        assert JUMP_OPCODES == {Opcode.JZ, Opcode.JNZ, Opcode.JMP}

    def test_store_keeps_its_value(self):
        info = OPCODE_TABLE[Opcode.STORE]
        assert (info.pops, info.pushes) == (1, 1)
        assert info.operand is OperandKind.VARIABLE

    def test_unknown_opcode(self):
        with pytest.raises(KeyError):
            get_opcode_info(99)


class TestWordHelpers:
    """wrap_word and the variable name mapping."""

    @pytest.mark.parametrize("value,expected", [
        (0, 0),
        (-1, -1),
        (WORD_MAX, WORD_MAX),
        (WORD_MAX + 1, WORD_MIN),
        (WORD_MIN - 1, WORD_MAX),
        (2 ** 64 + 5, 5),
    ])
    def test_wrap_word(self, value, expected):
        assert wrap_word(value) == expected

    def test_variable_slots(self):
        assert variable_slot("a") == 0
        assert variable_slot("z") == 25
        assert variable_name(8) == "i"

    @pytest.mark.parametrize("name", ["A", "ab", "", "_"])
    def test_bad_variable_name(self, name):
        with pytest.raises(ValueError):
            variable_slot(name)

    def test_bad_variable_slot(self):
        with pytest.raises(ValueError):
            variable_name(26)


# =============================================================================
# Builder
# =============================================================================

class TestBytecodeBuilder:
    """Emission and backpatching."""

    def test_emit_returns_offsets(self):
        builder = BytecodeBuilder()
        assert builder.emit(Opcode.PUSH, 1) == 0
        assert builder.emit(Opcode.POP) == 2
        assert builder.here() == 3

    def test_operand_required(self):
        with pytest.raises(BytecodeError):
            BytecodeBuilder().emit(Opcode.FETCH)

    def test_operand_rejected(self):
        with pytest.raises(BytecodeError):
            BytecodeBuilder().emit(Opcode.ADD, 1)

    def test_forward_jump_is_pending_until_patched(self):
        builder = BytecodeBuilder()
        jump = builder.emit_jump(Opcode.JMP)
        assert builder.pending_jumps == {jump}
        builder.patch(jump, builder.here())
        assert builder.pending_jumps == frozenset()

    def test_patch_is_logged(self, caplog):
        builder = BytecodeBuilder()
        builder.emit(Opcode.PUSH, 0)
        jump = builder.emit_jump(Opcode.JZ)
        with caplog.at_level(logging.DEBUG, logger="tinyc.bytecode"):
            builder.patch(jump, builder.here())
        assert "Patched jump at 2 to 4" in caplog.text

    def test_placeholder_written_before_patch(self):
        builder = BytecodeBuilder()
        builder.emit_jump(Opcode.JZ)
        assert builder._code == [Opcode.JZ, PLACEHOLDER]

    def test_unpatched_jump_fails_build(self):
        builder = BytecodeBuilder()
        builder.emit(Opcode.PUSH, 0)
        builder.emit_jump(Opcode.JZ)
        builder.emit(Opcode.HALT)
        with pytest.raises(BytecodeError, match="unpatched"):
            builder.build()

    def test_patch_only_once(self):
        builder = BytecodeBuilder()
        jump = builder.emit_jump(Opcode.JMP)
        builder.emit(Opcode.HALT)
        builder.patch(jump, 2)
        with pytest.raises(BytecodeError):
            builder.patch(jump, 2)

    def test_patch_non_jump(self):
        builder = BytecodeBuilder()
        offset = builder.emit(Opcode.PUSH, 1)
        with pytest.raises(BytecodeError):
            builder.patch(offset, 0)

    def test_backward_jump_needs_no_patch(self):
        builder = BytecodeBuilder()
        builder.emit_jump(Opcode.JMP, 0)
        assert builder.pending_jumps == frozenset()
        assert builder.build().code == (Opcode.JMP, 0)

    def test_emit_jump_rejects_non_jump(self):
        with pytest.raises(BytecodeError):
            BytecodeBuilder().emit_jump(Opcode.PUSH)

    def test_jump_into_operand_fails_build(self):
        builder = BytecodeBuilder()
        builder.emit(Opcode.PUSH, 1)
        builder.emit_jump(Opcode.JMP, 1)
        builder.emit(Opcode.HALT)
        with pytest.raises(BytecodeError, match="not an instruction"):
            builder.build()

    def test_constants_wrap(self):
        builder = BytecodeBuilder()
        builder.emit(Opcode.PUSH, WORD_MAX + 1)
        assert builder.build().code == (Opcode.PUSH, WORD_MIN)


# =============================================================================
# Program
# =============================================================================

class TestProgram:
    """The frozen program handed to the virtual machine."""

    def test_iter_instructions(self):
        program = Program((Opcode.PUSH, 4, Opcode.POP, Opcode.HALT))
        assert list(program.iter_instructions()) == [
            (0, Opcode.PUSH, 4),
            (2, Opcode.POP, None),
            (3, Opcode.HALT, None),
        ]
        assert program.instruction_offsets() == {0, 2, 3}

    def test_truncated_instruction(self):
        with pytest.raises(BytecodeError, match="truncated"):
            Program((Opcode.HALT, Opcode.PUSH)).instruction_offsets()

    def test_bytes_encoding(self):
        program = Program((Opcode.PUSH, -1, Opcode.HALT), "p.tc")
        data = program.to_bytes()
        assert len(data) == 24
        assert data[8:16] == b"\xff" * 8
        assert Program.from_bytes(data, "p.tc") == program

    def test_from_bytes_bad_length(self):
        with pytest.raises(BytecodeError):
            Program.from_bytes(b"\x00" * 7)

    def test_program_is_immutable(self):
        program = Program((Opcode.HALT,))
        with pytest.raises(AttributeError):
            program.code = ()
