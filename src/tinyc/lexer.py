"""
Tiny-C Lexer (Tokenizer)
========================

This module converts Tiny-C source text into tokens for the compiler.
Tokens are produced on demand: the compiler calls next() each time it
consumes its single lookahead token.

Token Categories
----------------
- Keywords: if, else, while, do
- Variables: single lowercase letters a-z
- Numbers: unsigned decimal integers
- Punctuation: { } ( ) + - < ; =

Anything else (uppercase letters, other punctuation, multi-letter words
that are not keywords) raises LexError and stops lexing.

Example Usage
-------------
>>> from tinyc.lexer import Lexer
>>> for token in Lexer("a=b+12;").tokenize():
...     print(token)
Token(IDENTIFIER, 'a', 1:1)
Token(ASSIGN, 1:2)
Token(IDENTIFIER, 'b', 1:3)
Token(PLUS, 1:4)
Token(NUMBER, 12, 1:5)
Token(SEMICOLON, 1:7)
Token(EOF, 1:8)
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional

from tinyc.errors import LexError, SourceLocation


# =============================================================================
# Token Type Enumeration
# =============================================================================

class TokenType(Enum):
    """Token types for the Tiny-C language."""

    # === Structural ===
    EOF = auto()            # End of input

    # === Identifiers and Literals ===
    IDENTIFIER = auto()     # Variable a-z
    NUMBER = auto()         # Unsigned decimal integer

    # === Keywords ===
    IF = auto()             # if
    ELSE = auto()           # else
    WHILE = auto()          # while
    DO = auto()             # do

    # === Punctuation ===
    LBRACE = auto()         # {
    RBRACE = auto()         # }
    LPAREN = auto()         # (
    RPAREN = auto()         # )
    PLUS = auto()           # +
    MINUS = auto()          # -
    LESS = auto()           # <
    SEMICOLON = auto()      # ;
    ASSIGN = auto()         # =


KEYWORDS: dict[str, TokenType] = {
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "while": TokenType.WHILE,
    "do": TokenType.DO,
}

PUNCTUATION: dict[str, TokenType] = {
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "<": TokenType.LESS,
    ";": TokenType.SEMICOLON,
    "=": TokenType.ASSIGN,
}

# Source text for keyword and punctuation tokens, used in diagnostics
TOKEN_TEXT: dict[TokenType, str] = {
    **{token_type: text for text, token_type in KEYWORDS.items()},
    **{token_type: text for text, token_type in PUNCTUATION.items()},
}

WHITESPACE = " \t\r\n"
WORD_CHARS = "abcdefghijklmnopqrstuvwxyz_"


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    A single token with its position in the source.

    Attributes:
        type: The TokenType classification
        value: The letter for identifiers, the integer for numbers, else None
        line: Line number in source (1-indexed)
        column: Column number in source (1-indexed)
        filename: Name of the source
    """
    type: TokenType
    value: str | int | None
    line: int
    column: int
    filename: str = "<input>"

    def __repr__(self) -> str:
        if self.value is not None:
            return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"
        return f"Token({self.type.name}, {self.line}:{self.column})"

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(self.filename, self.line, self.column)

    def describe(self) -> str:
        """Human-readable description for 'expected X, found Y' messages."""
        if self.type is TokenType.EOF:
            return "end of input"
        if self.type is TokenType.IDENTIFIER:
            return f"variable '{self.value}'"
        if self.type is TokenType.NUMBER:
            return f"integer {self.value}"
        return f"'{TOKEN_TEXT[self.type]}'"


# =============================================================================
# Lexer Implementation
# =============================================================================

class Lexer:
    """
    On-demand tokenizer over a source string.

    The lexer is a cursor over the input; each call to next() skips
    whitespace and scans one token. Once the input is exhausted next()
    keeps returning EOF.

    Usage:
        lexer = Lexer(source_text, filename)
        token = lexer.next()

    Attributes:
        source: The source code being tokenized
        filename: Name of the source (for error reporting)
    """

    def __init__(self, source: str, filename: str = "<input>", line_number: int = 1):
        """
        Args:
            source: The Tiny-C source to tokenize
            filename: Name of the source (for error messages)
            line_number: Line number of the first source line
        """
        self.source = source
        self.filename = filename
        self.first_line = line_number

        self._pos = 0
        self._line = line_number
        self._column = 1
        self._line_start_pos = 0

    def tokenize(self) -> Iterator[Token]:
        """
        Generate all tokens, ending with a single EOF token.

        Raises:
            LexError: If a character starts no token
        """
        while True:
            token = self.next()
            yield token
            if token.type is TokenType.EOF:
                return

    def next(self) -> Token:
        """
        Scan and return the next token.

        Raises:
            LexError: If a character starts no token
        """
        self._skip_whitespace()

        line, column = self._line, self._column
        char = self._peek()

        if not char:
            return self._make_token(TokenType.EOF, None, line, column)

        if char.isdigit() and char.isascii():
            return self._make_token(TokenType.NUMBER, self._scan_number(), line, column)

        if char in WORD_CHARS and char != "_":
            return self._scan_word(line, column)

        token_type = PUNCTUATION.get(char)
        if token_type is None:
            raise self._error(
                f"invalid character '{char}'",
                char=char,
                hint=self._hint_for(char),
            )
        self._advance()
        return self._make_token(token_type, None, line, column)

    # =========================================================================
    # Character Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _peek(self) -> str:
        """Current character, or empty string at end of input."""
        if self._at_end():
            return ""
        return self.source[self._pos]

    def _advance(self) -> str:
        """Consume the current character, tracking line and column."""
        if self._at_end():
            return ""

        char = self.source[self._pos]
        self._pos += 1

        if char == "\n":
            self._line += 1
            self._column = 1
            self._line_start_pos = self._pos
        else:
            self._column += 1

        return char

    def _skip_whitespace(self) -> None:
        while not self._at_end() and self._peek() in WHITESPACE:
            self._advance()

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def _scan_number(self) -> int:
        """Scan a maximal run of decimal digits."""
        value = 0
        while self._peek().isdigit() and self._peek().isascii():
            value = value * 10 + int(self._advance())
        return value

    def _scan_word(self, line: int, column: int) -> Token:
        """
        Scan a lowercase word: a keyword or a single-letter variable.

        Raises:
            LexError: For any other word, reported at its first character
        """
        start = self._pos
        while self._peek() and self._peek() in WORD_CHARS:
            self._advance()
        word = self.source[start:self._pos]

        keyword = KEYWORDS.get(word)
        if keyword is not None:
            return self._make_token(keyword, None, line, column)
        if len(word) == 1:
            return self._make_token(TokenType.IDENTIFIER, word, line, column)

        raise self._error(
            f"unknown identifier '{word}'",
            line=line,
            column=column,
            hint="variables are the single letters a to z",
        )

    def _make_token(
        self,
        token_type: TokenType,
        value: str | int | None,
        line: int,
        column: int,
    ) -> Token:
        return Token(token_type, value, line, column, self.filename)

    # =========================================================================
    # Error Reporting
    # =========================================================================

    def source_line(self, line: int) -> str:
        """Return the text of a source line by its line number."""
        lines = self.source.splitlines()
        index = line - self.first_line
        if 0 <= index < len(lines):
            return lines[index]
        return ""

    def _error(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        hint: Optional[str] = None,
        char: Optional[str] = None,
    ) -> LexError:
        """Create a LexError at the current (or given) position."""
        line = line or self._line
        column = column or self._column
        location = SourceLocation(self.filename, line, column)
        return LexError(
            message,
            location=location,
            hint=hint,
            source_line=self.source_line(line),
            char=char,
        )

    @staticmethod
    def _hint_for(char: str) -> Optional[str]:
        if char.isupper():
            return "variable names are lowercase"
        if char in "*/%>!&|":
            return "only '+', '-' and '<' operators are supported"
        return None
