"""
Tiny-C Virtual Machine
======================

A stack machine that executes a compiled Program against a table of 26
integer variables.

Execution Model
---------------
- pc starts at 0 with an empty operand stack
- each step fetches the opcode word at pc, reads its operand word (if
  any), executes it and moves pc to the next instruction or jump target
- HALT stops the loop; a well-formed program halts with an empty stack

The variable table is an explicit value: it can be passed in (for
example a REPL carrying variables from one line to the next) and a copy
is returned by run(). Nothing is kept in module-level state.

There is no step limit. A Tiny-C loop that never ends, such as
`while (1);`, runs forever here too.

Instrumentation
---------------
on_instruction(pc, opcode) is called before each instruction; returning
False stops execution (breakpoint style). With trace=True every
instruction is logged at DEBUG level together with the operand stack.

Example:
    >>> from tinyc.compiler import compile_source
    >>> vm = VM()
    >>> variables = vm.run(compile_source("{ i=1; while (i<100) i=i+i; }"))
    >>> format_variables(variables)
    ['i = 128']
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from tinyc.bytecode import Program
from tinyc.compiler import compile_source
from tinyc.errors import BytecodeError
from tinyc.opcodes import (
    OPCODE_TABLE,
    VARIABLE_COUNT,
    Opcode,
    get_opcode_info,
    variable_name,
    wrap_word,
)

logger = logging.getLogger(__name__)


@dataclass
class VMState:
    """
    Complete machine state.

    Attributes:
        variables: The 26-slot variable table, a..z
        stack: Operand stack, top of stack last
        pc: Offset of the next instruction
        halted: True once HALT has executed
        steps: Instructions executed since the last run() started
    """
    variables: list[int] = field(default_factory=lambda: [0] * VARIABLE_COUNT)
    stack: list[int] = field(default_factory=list)
    pc: int = 0
    halted: bool = False
    steps: int = 0


class VM:
    """
    Bytecode interpreter for Tiny-C programs.

    Example:
        vm = VM()
        variables = vm.run(program)

    Attributes:
        state: The live VMState
        trace: Log every executed instruction at DEBUG level
        on_instruction: Optional hook called as hook(pc, opcode) before each
            instruction; returning False stops execution
    """

    def __init__(self, variables: Optional[Iterable[int]] = None, trace: bool = False):
        """
        Initialize the machine.

        Args:
            variables: Initial variable table (26 values); all zero if None
            trace: Log each instruction as it executes
        """
        self.state = VMState()
        if variables is not None:
            self.variables = variables
        self.trace = trace
        self.on_instruction: Optional[Callable[[int, Opcode], bool]] = None
        self._program: Optional[Program] = None

    # ========================================
    # State Access
    # ========================================

    @property
    def variables(self) -> list[int]:
        return self.state.variables

    @variables.setter
    def variables(self, values: Iterable[int]) -> None:
        values = [wrap_word(int(v)) for v in values]
        if len(values) != VARIABLE_COUNT:
            raise ValueError(f"expected {VARIABLE_COUNT} variables, got {len(values)}")
        self.state.variables = values

    @property
    def pc(self) -> int:
        return self.state.pc

    @property
    def stack(self) -> list[int]:
        return self.state.stack

    def load(self, program: Program) -> None:
        """Load a program and reset pc and stack. Variables are kept."""
        self._program = program
        self.state.stack = []
        self.state.pc = 0
        self.state.halted = False
        self.state.steps = 0

    # ========================================
    # Main Execution Loop
    # ========================================

    def run(self, program: Optional[Program] = None) -> list[int]:
        """
        Execute until HALT.

        Args:
            program: Program to load first; if None, continue the loaded one

        Returns:
            A copy of the variable table

        Raises:
            BytecodeError: If the program is malformed
        """
        if program is not None:
            self.load(program)
        if self._program is None:
            raise BytecodeError("no program loaded")

        while not self.state.halted:
            if self.on_instruction is not None:
                opcode = self._opcode_at(self.state.pc)
                if not self.on_instruction(self.state.pc, opcode):
                    break
            self._execute()

        if self.state.halted and self.state.stack:
            logger.warning("Halted with %d value(s) left on the stack", len(self.state.stack))

        return list(self.state.variables)

    def step(self) -> Opcode:
        """
        Execute exactly one instruction.

        Returns:
            The opcode that was executed
        """
        if self._program is None:
            raise BytecodeError("no program loaded")
        if self.state.halted:
            raise BytecodeError("machine has halted", self.state.pc)
        return self._execute()

    # ========================================
    # Fetch and Dispatch
    # ========================================

    def _opcode_at(self, pc: int) -> Opcode:
        code = self._program.code
        if not 0 <= pc < len(code):
            raise BytecodeError("program counter out of range", pc)
        try:
            return get_opcode_info(code[pc]).opcode
        except KeyError:
            raise BytecodeError(f"invalid opcode {code[pc]}", pc) from None

    def _operand(self, pc: int) -> int:
        code = self._program.code
        if pc + 1 >= len(code):
            raise BytecodeError("missing operand", pc)
        return code[pc + 1]

    def _pop(self, pc: int) -> int:
        if not self.state.stack:
            raise BytecodeError("operand stack underflow", pc)
        return self.state.stack.pop()

    def _slot(self, pc: int) -> int:
        slot = self._operand(pc)
        if not 0 <= slot < VARIABLE_COUNT:
            raise BytecodeError(f"variable slot {slot} out of range", pc)
        return slot

    def _target(self, pc: int) -> int:
        target = self._operand(pc)
        if not 0 <= target < len(self._program.code):
            raise BytecodeError(f"jump target {target} out of range", pc)
        return target

    def _execute(self) -> Opcode:
        state = self.state
        pc = state.pc
        opcode = self._opcode_at(pc)
        info = OPCODE_TABLE[opcode]

        if self.trace:
            operand = f" {self._operand(pc)}" if info.size == 2 else ""
            logger.debug("%4d: %-5s%s  stack=%s", pc, info.mnemonic, operand, state.stack)

        next_pc = pc + info.size
        stack = state.stack

        if opcode is Opcode.FETCH:
            stack.append(state.variables[self._slot(pc)])
        elif opcode is Opcode.STORE:
            # The stored value stays on the stack as the assignment's result
            slot = self._slot(pc)
            if not stack:
                raise BytecodeError("operand stack underflow", pc)
            state.variables[slot] = stack[-1]
        elif opcode is Opcode.PUSH:
            stack.append(wrap_word(self._operand(pc)))
        elif opcode is Opcode.POP:
            self._pop(pc)
        elif opcode is Opcode.ADD:
            right = self._pop(pc)
            left = self._pop(pc)
            stack.append(wrap_word(left + right))
        elif opcode is Opcode.SUB:
            right = self._pop(pc)
            left = self._pop(pc)
            stack.append(wrap_word(left - right))
        elif opcode is Opcode.LT:
            right = self._pop(pc)
            left = self._pop(pc)
            stack.append(1 if left < right else 0)
        elif opcode is Opcode.JZ:
            target = self._target(pc)
            if self._pop(pc) == 0:
                next_pc = target
        elif opcode is Opcode.JNZ:
            target = self._target(pc)
            if self._pop(pc) != 0:
                next_pc = target
        elif opcode is Opcode.JMP:
            next_pc = self._target(pc)
        elif opcode is Opcode.HALT:
            state.halted = True
            next_pc = pc

        state.pc = next_pc
        state.steps += 1
        return opcode


# =============================================================================
# Output Formatting
# =============================================================================

def format_variables(variables: Iterable[int]) -> list[str]:
    """
    Format the non-zero variables as "<letter> = <value>" lines.

    Variables are listed in alphabetical order; zero variables are omitted.
    """
    return [
        f"{variable_name(slot)} = {value}"
        for slot, value in enumerate(variables)
        if value != 0
    ]


def run_source(
    source: str,
    filename: str = "<input>",
    variables: Optional[Iterable[int]] = None,
    trace: bool = False,
) -> list[int]:
    """
    Compile and run Tiny-C source in one call.

    Args:
        source: Program text
        filename: Source name for error messages
        variables: Initial variable table; all zero if None
        trace: Log each executed instruction

    Returns:
        The final variable table

    Raises:
        LexError, TinyCSyntaxError: If the source does not compile; nothing runs
    """
    program = compile_source(source, filename)
    return VM(variables, trace=trace).run(program)
