"""foldcc.parser

Recursive-descent parser for the foldcc language.

Grammar (informal):

    program     := statement*
    statement   := declaration | assignment | exit | if | while | do-while | block
    declaration := 'int' IDENT ['=' expr] (',' IDENT ['=' expr])* ';'
    assignment  := IDENT ('=' | '+=' | '-=' | '*=' | '/=' | '%=' | '<<=' | '>>=') expr ';'
    exit        := 'exit' '(' [expr] ')' ';'
    if          := 'if' '(' expr ')' block ('else' 'if' '(' expr ')' block)* ['else' block]
    while       := 'while' '(' expr ')' block
    do-while    := 'do' block 'while' '(' expr ')' ';'
    block       := '{' statement* '}'

Binary expressions use precedence climbing over the table in
``foldcc.folding``. Whenever both operands of an operator are literals the
operator is evaluated on the spot and the binary node is replaced by a single
literal. Identifiers stay symbolic here; the resolver substitutes their
compile-time values while executing the program.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List, Optional

from foldcc.ast_nodes import (
    Assignment,
    BinaryOp,
    Block,
    DoWhileStmt,
    ElseClause,
    ElseIfClause,
    ExitCall,
    Expression,
    Identifier,
    IfStmt,
    IntLiteral,
    Program,
    Statement,
    VarDecl,
    WhileStmt,
)
from foldcc.errors import (
    CompileError,
    NestingLimitError,
    ParserError,
    UnexpectedEndOfInput,
)
from foldcc.folding import PRECEDENCE, apply_operator
from foldcc.lexer import ASSIGNMENT_TYPES, Token, TokenKind, TokenType, parse_int_literal
from foldcc.tree import TreeBuilder


DEFAULT_MAX_DEPTH = 100


class Parser:
    """Parser for foldcc programs"""

    def __init__(self, tokens: List[Token], builder: Optional[TreeBuilder] = None, max_depth: int = DEFAULT_MAX_DEPTH):
        self.tokens: List[Token] = list(tokens)
        if not self.tokens or self.tokens[-1].type != TokenType.EOF:
            last = self.tokens[-1] if self.tokens else None
            self.tokens.append(Token(TokenType.EOF, '', last.line if last else 1, last.column if last else 1))
        self.position = 0
        self.current_token: Token = self.tokens[0]
        self.builder = builder if builder is not None else TreeBuilder()
        self.max_depth = max_depth
        self._depth = 0

    def parse(self) -> Program:
        """Parse entire program"""
        try:
            statements: List[Statement] = []
            while not self._at(TokenType.EOF):
                statements.extend(self._parse_statement())
            first = self.tokens[0]
            return self.builder.make(Program, statements=statements, line=first.line, column=first.column)
        except CompileError:
            self.builder.release_all()
            raise

    def advance(self) -> Token:
        """Move to next token"""
        if self.position < len(self.tokens) - 1:
            self.position += 1
            self.current_token = self.tokens[self.position]
        return self.current_token

    def peek(self, offset: int = 1) -> Optional[Token]:
        """Peek ahead"""
        pos = self.position + offset
        if pos < len(self.tokens):
            return self.tokens[pos]
        return None

    # -----------------
    # Helpers
    # -----------------

    def _at(self, t: TokenType) -> bool:
        return self.current_token.type == t

    def _at_keyword(self, kw: str) -> bool:
        return self.current_token.type == TokenType.KEYWORD and self.current_token.value == kw

    def _match(self, t: TokenType) -> bool:
        if self._at(t):
            self.advance()
            return True
        return False

    def _expect(self, t: TokenType, msg: str) -> Token:
        tok = self.current_token
        if tok.type == TokenType.EOF and t != TokenType.EOF:
            raise UnexpectedEndOfInput(f"Unexpected end of input: {msg}", tok)
        if tok.type != t:
            raise ParserError(f"{msg}, got '{tok.value}'", tok)
        self.advance()
        return tok

    def _expect_keyword(self, kw: str, msg: str) -> Token:
        tok = self.current_token
        if tok.type == TokenType.EOF:
            raise UnexpectedEndOfInput(f"Unexpected end of input: {msg}", tok)
        if tok.type != TokenType.KEYWORD or tok.value != kw:
            raise ParserError(f"{msg}, got '{tok.value}'", tok)
        self.advance()
        return tok

    @contextmanager
    def _nested(self, tok: Token) -> Iterator[None]:
        self._depth += 1
        try:
            if self._depth > self.max_depth:
                raise NestingLimitError(f"Nesting deeper than {self.max_depth} levels", tok)
            yield
        finally:
            self._depth -= 1

    # -----------------
    # Statements
    # -----------------

    def _parse_statement(self) -> List[Statement]:
        """Parse one statement; a declaration yields one node per declarator."""
        tok = self.current_token

        if tok.type == TokenType.KEYWORD:
            kw = tok.value
            if kw == "int":
                return self._parse_declaration()
            if kw == "exit":
                return [self._parse_exit()]
            if kw == "if":
                return [self._parse_if()]
            if kw == "while":
                return [self._parse_while()]
            if kw == "do":
                return [self._parse_do_while()]
            if kw == "else":
                nxt = self.peek()
                if nxt is not None and nxt.type == TokenType.KEYWORD and nxt.value == "if":
                    raise ParserError("'else if' without preceding 'if'", tok)
                raise ParserError("'else' without preceding 'if'", tok)

        if self._at(TokenType.LBRACE):
            return [self._parse_block()]

        if tok.type == TokenType.IDENTIFIER:
            nxt = self.peek()
            if nxt is not None and nxt.type in ASSIGNMENT_TYPES:
                return [self._parse_assignment()]

        raise ParserError(f"Unsupported statement starting with '{tok.value}'", tok)

    def _parse_block(self) -> Block:
        lbrace = self._expect(TokenType.LBRACE, "Expected '{'")
        statements: List[Statement] = []
        with self._nested(lbrace):
            while not self._at(TokenType.RBRACE):
                if self._at(TokenType.EOF):
                    raise UnexpectedEndOfInput("Unexpected end of input before closing '}'", self.current_token)
                statements.extend(self._parse_statement())
            self.advance()
        return self.builder.make(Block, statements=statements, line=lbrace.line, column=lbrace.column)

    def _parse_declaration(self) -> List[Statement]:
        self._expect_keyword("int", "Expected 'int'")
        decls: List[Statement] = []
        while True:
            name_tok = self._expect(TokenType.IDENTIFIER, "Expected identifier in declaration")
            init = None
            if self._match(TokenType.ASSIGN):
                init = self._parse_expression()
            decls.append(self.builder.make(
                VarDecl, name=name_tok.value, initializer=init, line=name_tok.line, column=name_tok.column
            ))
            if self._match(TokenType.SEMICOLON):
                return decls
            if self._match(TokenType.COMMA):
                continue
            if self._at(TokenType.EOF):
                raise UnexpectedEndOfInput("Unexpected end of input in declaration", self.current_token)
            raise ParserError("Expected ',' or ';'", self.current_token)

    def _parse_assignment(self) -> Assignment:
        name_tok = self._expect(TokenType.IDENTIFIER, "Expected identifier")
        op_tok = self.current_token
        if op_tok.type not in ASSIGNMENT_TYPES:
            raise ParserError("Expected assignment operator", op_tok)
        self.advance()
        value = self._parse_expression()
        self._expect(TokenType.SEMICOLON, "Expected ';' after assignment")
        return self.builder.make(
            Assignment,
            target=name_tok.value,
            operator=op_tok.value,
            value=value,
            line=name_tok.line,
            column=name_tok.column,
        )

    def _parse_exit(self) -> ExitCall:
        kw = self._expect_keyword("exit", "Expected 'exit'")
        self._expect(TokenType.LPAREN, "Expected '(' after 'exit'")
        arg = None
        if not self._at(TokenType.RPAREN):
            arg = self._parse_expression()
        self._expect(TokenType.RPAREN, "Expected ')' after exit argument")
        self._expect(TokenType.SEMICOLON, "Expected ';' after exit call")
        return self.builder.make(ExitCall, argument=arg, line=kw.line, column=kw.column)

    def _parse_condition(self, after: str) -> Expression:
        self._expect(TokenType.LPAREN, f"Expected '(' after '{after}'")
        cond = self._parse_expression()
        self._expect(TokenType.RPAREN, f"Expected ')' after {after} condition")
        return cond

    def _parse_if(self) -> IfStmt:
        kw = self._expect_keyword("if", "Expected 'if'")
        cond = self._parse_condition("if")
        then_block = self._parse_block()

        else_ifs: List[ElseIfClause] = []
        else_clause = None
        while self._at_keyword("else"):
            else_tok = self.current_token
            nxt = self.peek()
            if nxt is not None and nxt.type == TokenType.KEYWORD and nxt.value == "if":
                self.advance()  # else
                self.advance()  # if
                c = self._parse_condition("else if")
                b = self._parse_block()
                else_ifs.append(self.builder.make(
                    ElseIfClause, condition=c, block=b, line=else_tok.line, column=else_tok.column
                ))
                continue
            self.advance()
            b = self._parse_block()
            else_clause = self.builder.make(ElseClause, block=b, line=else_tok.line, column=else_tok.column)
            break

        return self.builder.make(
            IfStmt,
            condition=cond,
            then_block=then_block,
            else_ifs=else_ifs,
            else_clause=else_clause,
            line=kw.line,
            column=kw.column,
        )

    def _parse_while(self) -> WhileStmt:
        kw = self._expect_keyword("while", "Expected 'while'")
        cond = self._parse_condition("while")
        body = self._parse_block()
        return self.builder.make(WhileStmt, condition=cond, body=body, line=kw.line, column=kw.column)

    def _parse_do_while(self) -> DoWhileStmt:
        kw = self._expect_keyword("do", "Expected 'do'")
        body = self._parse_block()
        self._expect_keyword("while", "Expected 'while' after do block")
        cond = self._parse_condition("do-while")
        self._expect(TokenType.SEMICOLON, "Expected ';' after do-while statement")
        return self.builder.make(DoWhileStmt, body=body, condition=cond, line=kw.line, column=kw.column)

    # -----------------
    # Expressions (precedence climbing)
    # -----------------

    def _parse_expression(self, min_precedence: int = 0) -> Expression:
        left = self._parse_primary()
        while True:
            op_tok = self.current_token
            if op_tok.kind != TokenKind.OPERATOR:
                break
            precedence = PRECEDENCE.get(op_tok.value)
            if precedence is None or precedence < min_precedence:
                break
            self.advance()
            right = self._parse_expression(precedence + 1)
            left = self._combine(op_tok, left, right)
        return left

    def _combine(self, op_tok: Token, left: Expression, right: Expression) -> Expression:
        binary = self.builder.make(
            BinaryOp, operator=op_tok.value, left=left, right=right, line=op_tok.line, column=op_tok.column
        )
        if isinstance(left, IntLiteral) and isinstance(right, IntLiteral):
            value = apply_operator(op_tok.value, left.value, right.value, op_tok.line, op_tok.column)
            # the binary node and both operand literals are displaced
            self.builder.release(binary)
            return self.builder.make(IntLiteral, value=value, line=op_tok.line, column=op_tok.column)
        return binary

    def _parse_primary(self) -> Expression:
        tok = self.current_token
        if tok.type == TokenType.EOF:
            raise UnexpectedEndOfInput("Unexpected end of input, expected expression", tok)

        if tok.type == TokenType.NUMBER:
            self.advance()
            value = parse_int_literal(tok.value)
            if value is None:
                raise ParserError(f"Invalid integer literal '{tok.value}'", tok)
            return self.builder.make(IntLiteral, value=value, line=tok.line, column=tok.column)

        if tok.type == TokenType.IDENTIFIER:
            self.advance()
            return self.builder.make(Identifier, name=tok.value, line=tok.line, column=tok.column)

        if self._at(TokenType.LPAREN):
            self.advance()
            with self._nested(tok):
                expr = self._parse_expression()
            self._expect(TokenType.RPAREN, "Expected ')'")
            return expr

        raise ParserError(f"Unexpected token '{tok.value}'", tok)
