"""
Tiny-C Compiler
===============

A single-pass recursive descent compiler. Each grammar rule is one method
that consumes tokens and appends bytecode for what it recognised; no
syntax tree is built.

Grammar
-------
    <program>    ::= <statement>
    <statement>  ::= "if" <paren_expr> <statement>
                   | "if" <paren_expr> <statement> "else" <statement>
                   | "while" <paren_expr> <statement>
                   | "do" <statement> "while" <paren_expr> ";"
                   | "{" { <statement> } "}"
                   | <expr> ";"
                   | ";"
    <paren_expr> ::= "(" <expr> ")"
    <expr>       ::= <test> | <id> "=" <expr>
    <test>       ::= <sum> | <sum> "<" <sum>
    <sum>        ::= <term> | <sum> "+" <term> | <sum> "-" <term>
    <term>       ::= <id> | <int> | <paren_expr>

Code Shapes
-----------
    if (c) s            c  JZ L1  s  L1:
    if (c) s1 else s2   c  JZ L1  s1  JMP L2  L1: s2  L2:
    while (c) s         L0: c  JZ L1  s  JMP L0  L1:
    do s while (c);     L0: s  c  JNZ L0
    e;                  e  POP

Usage
-----
>>> from tinyc.compiler import compile_source
>>> program = compile_source("a = 42;")
>>> program.code
(2, 42, 1, 0, 3, 10)
"""

import logging
from typing import Optional

from tinyc.bytecode import BytecodeBuilder, Program
from tinyc.errors import TinyCError, TinyCSyntaxError
from tinyc.lexer import Lexer, Token, TokenType, TOKEN_TEXT
from tinyc.opcodes import Opcode, variable_slot

logger = logging.getLogger(__name__)


class Compiler:
    """
    Compiles one Tiny-C program to bytecode.

    Holds the lexer, exactly one token of lookahead, and the bytecode
    buffer being built. A Compiler instance is single use.

    Example:
        program = Compiler("{ i=1; while (i<100) i=i+i; }").compile()

    Attributes:
        filename: Source name used in diagnostics and on the Program
    """

    def __init__(self, source: str, filename: str = "<input>", line_number: int = 1):
        self.filename = filename
        self._lexer = Lexer(source, filename, line_number)
        self._code = BytecodeBuilder(filename)
        self._token: Optional[Token] = None

    def compile(self) -> Program:
        """
        Compile the whole program.

        Returns:
            The finished Program, ending in HALT

        Raises:
            LexError: On an invalid character
            TinyCSyntaxError: On the first token that breaks the grammar
            TinyCError: If statements or parentheses nest too deeply
        """
        if self._token is not None:
            raise RuntimeError("Compiler instances are single use")

        self._advance()
        try:
            self._statement()
        except RecursionError:
            raise self._nesting_error() from None
        if self._token.type is not TokenType.EOF:
            raise self._error("end of input")
        self._code.emit(Opcode.HALT)

        program = self._code.build()
        logger.debug("Compiled %s: %d words", self.filename, len(program))
        return program

    # =========================================================================
    # Token Handling
    # =========================================================================

    def _advance(self) -> Token:
        """Consume the lookahead token and read the next one."""
        consumed = self._token
        self._token = self._lexer.next()
        return consumed

    def _check(self, token_type: TokenType) -> bool:
        return self._token.type is token_type

    def _expect(self, token_type: TokenType) -> Token:
        """Consume a token of the given type or fail."""
        if not self._check(token_type):
            raise self._error(f"'{TOKEN_TEXT[token_type]}'")
        return self._advance()

    def _error(self, expected: str, hint: Optional[str] = None) -> TinyCSyntaxError:
        token = self._token
        return TinyCSyntaxError(
            expected,
            token.describe(),
            location=token.location,
            source_line=self._lexer.source_line(token.line),
            hint=hint,
        )

    def _nesting_error(self) -> TinyCError:
        token = self._token
        return TinyCError(
            "nesting too deep",
            location=token.location,
            hint="split the program into flatter statements",
            source_line=self._lexer.source_line(token.line),
        )

    # =========================================================================
    # Statements
    # =========================================================================

    def _statement(self) -> None:
        if self._check(TokenType.IF):
            self._if_statement()
        elif self._check(TokenType.WHILE):
            self._while_statement()
        elif self._check(TokenType.DO):
            self._do_statement()
        elif self._check(TokenType.LBRACE):
            self._block()
        elif self._check(TokenType.SEMICOLON):
            # Empty statement emits nothing
            self._advance()
        else:
            self._expr()
            self._expect(TokenType.SEMICOLON)
            self._code.emit(Opcode.POP)

    def _if_statement(self) -> None:
        self._advance()
        self._paren_expr()
        skip_then = self._code.emit_jump(Opcode.JZ)
        self._statement()

        # else binds to the nearest unmatched if: the innermost call sees it first
        if self._check(TokenType.ELSE):
            self._advance()
            skip_else = self._code.emit_jump(Opcode.JMP)
            self._code.patch(skip_then, self._code.here())
            self._statement()
            self._code.patch(skip_else, self._code.here())
        else:
            self._code.patch(skip_then, self._code.here())

    def _while_statement(self) -> None:
        self._advance()
        loop_top = self._code.here()
        self._paren_expr()
        loop_exit = self._code.emit_jump(Opcode.JZ)
        self._statement()
        self._code.emit_jump(Opcode.JMP, loop_top)
        self._code.patch(loop_exit, self._code.here())

    def _do_statement(self) -> None:
        self._advance()
        loop_top = self._code.here()
        self._statement()
        if not self._check(TokenType.WHILE):
            raise self._error("'while'", hint="a do statement ends with while (...);")
        self._advance()
        self._paren_expr()
        self._expect(TokenType.SEMICOLON)
        self._code.emit_jump(Opcode.JNZ, loop_top)

    def _block(self) -> None:
        self._advance()
        while not self._check(TokenType.RBRACE):
            if self._check(TokenType.EOF):
                raise self._error("'}'")
            self._statement()
        self._advance()

    # =========================================================================
    # Expressions
    # =========================================================================

    def _paren_expr(self) -> None:
        self._expect(TokenType.LPAREN)
        self._expr()
        self._expect(TokenType.RPAREN)

    def _expr(self) -> None:
        """
        <expr> ::= <test> | <id> "=" <expr>

        An identifier followed by '=' is an assignment target; with one
        token of lookahead we only know that after consuming the
        identifier, so the FETCH for a plain variable is emitted only once
        '=' has been ruled out.
        """
        if not self._check(TokenType.IDENTIFIER):
            self._test()
            return

        name = self._advance().value
        if self._check(TokenType.ASSIGN):
            self._advance()
            self._expr()
            self._code.emit(Opcode.STORE, variable_slot(name))
            return

        self._code.emit(Opcode.FETCH, variable_slot(name))
        self._sum_rest()
        self._test_rest()

    def _test(self) -> None:
        self._sum()
        self._test_rest()

    def _test_rest(self) -> None:
        if self._check(TokenType.LESS):
            self._advance()
            self._sum()
            self._code.emit(Opcode.LT)

    def _sum(self) -> None:
        self._term()
        self._sum_rest()

    def _sum_rest(self) -> None:
        while True:
            if self._check(TokenType.PLUS):
                self._advance()
                self._term()
                self._code.emit(Opcode.ADD)
            elif self._check(TokenType.MINUS):
                self._advance()
                self._term()
                self._code.emit(Opcode.SUB)
            else:
                return

    def _term(self) -> None:
        if self._check(TokenType.IDENTIFIER):
            self._code.emit(Opcode.FETCH, variable_slot(self._advance().value))
        elif self._check(TokenType.NUMBER):
            self._code.emit(Opcode.PUSH, self._advance().value)
        elif self._check(TokenType.LPAREN):
            self._paren_expr()
        else:
            raise self._error("a variable, integer or '('")


def compile_source(source: str, filename: str = "<input>", line_number: int = 1) -> Program:
    """
    Compile Tiny-C source text to a Program.

    Args:
        source: Program text
        filename: Source name for error messages
        line_number: Line number of the first source line

    Raises:
        LexError: On an invalid character
        TinyCSyntaxError: On a grammar violation
    """
    return Compiler(source, filename, line_number).compile()
