"""
foldcc - a constant-folding compiler front end

Compiles a tiny C-like language (int variables, if/else, while, do-while,
exit) by resolving the whole program at compile time, then emits x86-64
assembly that only performs the final exit system call.
"""

__version__ = "0.1.0"
__author__ = "foldcc Contributors"
__license__ = "MIT"

from .lexer import Lexer, Token, TokenType
from .parser import Parser
from .resolver import Resolver
from .symbols import ScopeStack
from .tree import TreeBuilder
from .codegen import CodeGenerator
from .compiler import Compiler

__all__ = [
    'Lexer',
    'Token',
    'TokenType',
    'Parser',
    'Resolver',
    'ScopeStack',
    'TreeBuilder',
    'CodeGenerator',
    'Compiler',
]
