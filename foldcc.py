#!/usr/bin/env python3
"""foldcc - top-level CLI wrapper

Compatible with Python 3.8+.

Usage examples:
  ./foldcc.py prog.fc -o prog
  ./foldcc.py prog.fc -o prog.s --dump-tree
  ./foldcc.py prog.fc --dump-symbols
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from foldcc.ast_nodes import print_ast
from foldcc.compiler import Compiler
from foldcc.lexer import LexerError


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    ap = argparse.ArgumentParser(prog="foldcc", description="foldcc CLI")
    ap.add_argument("source", help="Input source file")
    ap.add_argument("-o", dest="output", required=False, help="Output: .s, .o, or executable")
    ap.add_argument("--dump-tokens", action="store_true", help="Print the token stream")
    ap.add_argument("--dump-tree", action="store_true", help="Print the resolved tree")
    ap.add_argument("--dump-symbols", action="store_true", help="Print final global variable values")
    ap.add_argument("--max-iterations", type=int, default=None, help="Compile-time iteration ceiling per loop")
    ap.add_argument("--max-depth", type=int, default=None, help="Block and expression nesting ceiling")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = ap.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    dumping = args.dump_tokens or args.dump_tree or args.dump_symbols
    if not args.output and not dumping:
        print("Error: -o is required unless a --dump-* option is used")
        return 1

    compiler = Compiler(max_iterations=args.max_iterations, max_depth=args.max_depth)

    if args.dump_tokens:
        try:
            with open(args.source, "r") as f:
                tokens = compiler.get_tokens(f.read(), args.source)
        except (OSError, LexerError) as e:
            print("Error:", e)
            return 1
        for tok in tokens:
            print(f"{tok.line}:{tok.column}\t{tok.kind.name}\t{tok.value}")

    result = compiler.compile_file(args.source, args.output)
    if not result.success:
        for e in result.errors:
            print("Error:", e)
        return 1

    if args.dump_tree:
        sys.stdout.write(print_ast(result.ast))
    if args.dump_symbols:
        for name, value in sorted(result.symbols.items()):
            print(f"{name} = {value}")

    if args.output:
        print("Done:", args.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
