"""
Lexical Analyzer (Lexer) for the foldcc language

Converts source code into a stream of tokens for the parser.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional, Set


INT32_MAX = 2**31 - 1


class TokenKind(Enum):
    """Coarse lexeme classes the parser dispatches on"""
    INT = auto()
    KEYWORD = auto()
    SEPARATOR = auto()
    IDENTIFIER = auto()
    OPERATOR = auto()
    EOF = auto()


class TokenType(Enum):
    """Token types for the foldcc lexer"""
    # Literals
    NUMBER = auto()

    # Identifiers and Keywords
    IDENTIFIER = auto()
    KEYWORD = auto()

    # Operators
    PLUS = auto()                # +
    MINUS = auto()               # -
    STAR = auto()                # *
    SLASH = auto()               # /
    PERCENT = auto()             # %
    ASSIGN = auto()              # =
    PLUS_ASSIGN = auto()         # +=
    MINUS_ASSIGN = auto()        # -=
    STAR_ASSIGN = auto()         # *=
    SLASH_ASSIGN = auto()        # /=
    PERCENT_ASSIGN = auto()      # %=
    EQ = auto()                  # ==
    NEQ = auto()                 # !=
    LT = auto()                  # <
    GT = auto()                  # >
    LTE = auto()                 # <=
    GTE = auto()                 # >=
    LSHIFT = auto()              # <<
    RSHIFT = auto()              # >>
    LSHIFT_ASSIGN = auto()       # <<=
    RSHIFT_ASSIGN = auto()       # >>=
    AMPERSAND = auto()           # &
    PIPE = auto()                # |
    CARET = auto()               # ^
    LAND = auto()                # &&
    LOR = auto()                 # ||

    # Separators
    LPAREN = auto()              # (
    RPAREN = auto()              # )
    LBRACE = auto()              # {
    RBRACE = auto()              # }
    SEMICOLON = auto()           # ;
    COMMA = auto()               # ,

    # Special
    EOF = auto()


SEPARATOR_TYPES = {
    TokenType.LPAREN,
    TokenType.RPAREN,
    TokenType.LBRACE,
    TokenType.RBRACE,
    TokenType.SEMICOLON,
    TokenType.COMMA,
}

ASSIGNMENT_TYPES = {
    TokenType.ASSIGN,
    TokenType.PLUS_ASSIGN,
    TokenType.MINUS_ASSIGN,
    TokenType.STAR_ASSIGN,
    TokenType.SLASH_ASSIGN,
    TokenType.PERCENT_ASSIGN,
    TokenType.LSHIFT_ASSIGN,
    TokenType.RSHIFT_ASSIGN,
}


@dataclass(frozen=True)
class Token:
    """Represents a lexical token"""
    type: TokenType
    value: str
    line: int
    column: int

    @property
    def kind(self) -> TokenKind:
        if self.type == TokenType.NUMBER:
            return TokenKind.INT
        if self.type == TokenType.KEYWORD:
            return TokenKind.KEYWORD
        if self.type == TokenType.IDENTIFIER:
            return TokenKind.IDENTIFIER
        if self.type == TokenType.EOF:
            return TokenKind.EOF
        if self.type in SEPARATOR_TYPES:
            return TokenKind.SEPARATOR
        return TokenKind.OPERATOR

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {repr(self.value)}, {self.line}:{self.column})"


class LexerError(Exception):
    """Lexer error with line and column information"""
    def __init__(self, message: str, line: int, column: int):
        self.message = message
        self.line = line
        self.column = column
        super().__init__(f"{message} at {line}:{column}")


# Longest spellings first so that e.g. '<<=' wins over '<<' and '<'.
_OPERATORS = [
    ("<<=", TokenType.LSHIFT_ASSIGN),
    (">>=", TokenType.RSHIFT_ASSIGN),
    ("+=", TokenType.PLUS_ASSIGN),
    ("-=", TokenType.MINUS_ASSIGN),
    ("*=", TokenType.STAR_ASSIGN),
    ("/=", TokenType.SLASH_ASSIGN),
    ("%=", TokenType.PERCENT_ASSIGN),
    ("==", TokenType.EQ),
    ("!=", TokenType.NEQ),
    ("<=", TokenType.LTE),
    (">=", TokenType.GTE),
    ("<<", TokenType.LSHIFT),
    (">>", TokenType.RSHIFT),
    ("&&", TokenType.LAND),
    ("||", TokenType.LOR),
    ("+", TokenType.PLUS),
    ("-", TokenType.MINUS),
    ("*", TokenType.STAR),
    ("/", TokenType.SLASH),
    ("%", TokenType.PERCENT),
    ("=", TokenType.ASSIGN),
    ("<", TokenType.LT),
    (">", TokenType.GT),
    ("&", TokenType.AMPERSAND),
    ("|", TokenType.PIPE),
    ("^", TokenType.CARET),
    ("(", TokenType.LPAREN),
    (")", TokenType.RPAREN),
    ("{", TokenType.LBRACE),
    ("}", TokenType.RBRACE),
    (";", TokenType.SEMICOLON),
    (",", TokenType.COMMA),
]


class Lexer:
    """Lexical analyzer for foldcc source code"""

    KEYWORDS: Set[str] = {'int', 'if', 'else', 'while', 'do', 'exit'}

    def __init__(self, source: str, filename: str = "<input>"):
        """Initialize lexer with source code"""
        self.source = source
        self.filename = filename
        self.position = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Token] = []
        self.errors: List[LexerError] = []

    def current_char(self) -> Optional[str]:
        """Get current character without consuming"""
        if self.position >= len(self.source):
            return None
        return self.source[self.position]

    def peek_char(self, offset: int = 1) -> Optional[str]:
        """Peek ahead at character"""
        pos = self.position + offset
        if pos >= len(self.source):
            return None
        return self.source[pos]

    def advance(self) -> Optional[str]:
        """Consume and return current character"""
        if self.position >= len(self.source):
            return None

        char = self.source[self.position]
        self.position += 1

        if char == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1

        return char

    def skip_whitespace(self) -> None:
        """Skip whitespace characters, newlines included"""
        while self.current_char() and self.current_char() in ' \t\r\n':
            self.advance()

    def skip_line_comment(self) -> None:
        """Skip single-line comment (//...)"""
        self.advance()  # skip first /
        self.advance()  # skip second /

        while self.current_char() and self.current_char() != '\n':
            self.advance()

    def skip_block_comment(self) -> None:
        """Skip multi-line comment (/* ... */)"""
        start_line, start_column = self.line, self.column
        self.advance()  # skip /
        self.advance()  # skip *

        while self.current_char():
            if self.current_char() == '*' and self.peek_char() == '/':
                self.advance()  # skip *
                self.advance()  # skip /
                return
            self.advance()

        self.errors.append(LexerError("Unterminated block comment", start_line, start_column))

    def read_number(self) -> str:
        """Read an integer literal (decimal, hex or octal)"""
        num_str = ""

        if self.current_char() == '0' and self.peek_char() in ('x', 'X'):
            num_str += self.advance()  # 0
            num_str += self.advance()  # x
            while self.current_char() and self.current_char() in '0123456789abcdefABCDEF':
                num_str += self.advance()
            return num_str

        while self.current_char() and self.current_char().isdigit():
            num_str += self.advance()
        return num_str

    def read_identifier(self) -> str:
        """Read identifier or keyword"""
        ident = ""
        while self.current_char() and (self.current_char().isalnum() or self.current_char() == '_'):
            ident += self.advance()
        return ident

    def tokenize(self) -> List[Token]:
        """Tokenize entire source code"""
        self.tokens = []
        self.errors = []

        while self.position < len(self.source):
            self.skip_whitespace()

            if self.position >= len(self.source):
                break

            token_line = self.line
            token_column = self.column
            char = self.current_char()

            if char == '/' and self.peek_char() == '/':
                self.skip_line_comment()
                continue
            if char == '/' and self.peek_char() == '*':
                self.skip_block_comment()
                continue

            if char.isdigit():
                text = self.read_number()
                if self.current_char() and (self.current_char().isalnum() or self.current_char() == '_'):
                    bad = text + self.read_identifier()
                    self.errors.append(LexerError(f"Invalid integer literal '{bad}'", token_line, token_column))
                    continue
                if parse_int_literal(text) is None:
                    self.errors.append(LexerError(f"Invalid integer literal '{text}'", token_line, token_column))
                    continue
                if parse_int_literal(text) > INT32_MAX:
                    self.errors.append(LexerError(f"Integer literal '{text}' out of range for int", token_line, token_column))
                    continue
                self.tokens.append(Token(TokenType.NUMBER, text, token_line, token_column))
                continue

            if char.isalpha() or char == '_':
                ident = self.read_identifier()
                if ident in self.KEYWORDS:
                    self.tokens.append(Token(TokenType.KEYWORD, ident, token_line, token_column))
                else:
                    self.tokens.append(Token(TokenType.IDENTIFIER, ident, token_line, token_column))
                continue

            for spelling, token_type in _OPERATORS:
                if self.source.startswith(spelling, self.position):
                    for _ in spelling:
                        self.advance()
                    self.tokens.append(Token(token_type, spelling, token_line, token_column))
                    break
            else:
                self.errors.append(LexerError(f"Unexpected character '{char}'", token_line, token_column))
                self.advance()

        # Add EOF token
        self.tokens.append(Token(TokenType.EOF, '', self.line, self.column))

        return self.tokens

    def has_errors(self) -> bool:
        """Check if any lexer errors occurred"""
        return len(self.errors) > 0

    def get_errors(self) -> List[LexerError]:
        """Get all lexer errors"""
        return self.errors


def parse_int_literal(text: str) -> Optional[int]:
    """Value of a decimal, 0x-hex or 0-octal literal; None if malformed."""
    try:
        if text.startswith(("0x", "0X")):
            return int(text[2:], 16)
        if len(text) > 1 and text.startswith("0"):
            return int(text[1:], 8)
        return int(text, 10)
    except ValueError:
        return None
