"""
Tiny-C Error Hierarchy
======================

This module defines the exception hierarchy for the Tiny-C toolchain.
All exceptions inherit from TinyCError, allowing callers to catch every
compiler or machine error with a single except clause if desired.

Exception Hierarchy
-------------------
TinyCError (base)
├── LexError - character that starts no token
├── TinyCSyntaxError - token does not match the grammar
└── BytecodeError - malformed bytecode or unpatched jump (internal defect)

Error Message Format
--------------------
Errors raised while reading source carry a location and follow this format:

    filename:line:column: error: description
        source_line_text
        ^ (pointer to error location)
    hint: suggestion for fixing (when available)

Example:
    prog.tc:1:9: error: expected ')', found end of input
        if (a<1
                ^
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Base Exception Class
# =============================================================================

class TinyCError(Exception):
    """
    Base exception for all Tiny-C errors.

    Provides the common message layout: location prefix, the offending
    source line with a caret under the error column, and an optional hint.

        try:
            program = compile_source(text)
        except TinyCError as e:
            print(e)

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The actual source text at the error location (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with location, source context, and hint."""
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


# =============================================================================
# Source Errors (Lexer and Compiler)
# =============================================================================

class LexError(TinyCError):
    """
    A character in the source starts no valid token.

    Raised by the lexer for uppercase letters, unsupported punctuation and
    multi-letter words that are not keywords. Lexing stops immediately.
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
        char: Optional[str] = None,
    ):
        self.char = char
        super().__init__(message, location=location, hint=hint, source_line=source_line)


class TinyCSyntaxError(TinyCError):
    """
    The current token does not match the grammar production being parsed.

    Named to avoid shadowing Python's builtin SyntaxError.

    Attributes:
        expected: Description of the construct the parser wanted
        found: Description of the token actually present
    """

    def __init__(
        self,
        expected: str,
        found: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        hint: Optional[str] = None,
    ):
        self.expected = expected
        self.found = found
        super().__init__(
            f"expected {expected}, found {found}",
            location=location,
            hint=hint,
            source_line=source_line,
        )


# =============================================================================
# Bytecode Errors
# =============================================================================

class BytecodeError(TinyCError):
    """
    Malformed bytecode.

    Raised when a jump is left unpatched or patched twice, when a jump
    target is not an instruction boundary, or when the virtual machine is
    handed code it cannot execute (operand word in opcode position, stack
    underflow, program counter out of range). Code produced by the
    compiler never triggers it.

    Attributes:
        offset: Bytecode offset where the problem was found (optional)
    """

    def __init__(self, message: str, offset: Optional[int] = None):
        self.offset = offset
        if offset is not None:
            message = f"{message} (at offset {offset})"
        super().__init__(message)
