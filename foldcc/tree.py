"""foldcc.tree

Tree Builder: allocates AST nodes and accounts for their release.

Python frees memory on its own, but the front end still tracks node
ownership explicitly: folding and loop resolution displace subtrees, and
every displaced node must be released exactly once. The builder counts
allocations and releases so tests can check that constructing and then
releasing a tree balances, and it rejects a second release of the same node.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Type, TypeVar

from foldcc.ast_nodes import ASTNode
from foldcc.errors import TreeOwnershipError


logger = logging.getLogger(__name__)

N = TypeVar("N", bound=ASTNode)


class TreeBuilder:
    """Allocates nodes and releases subtrees exactly once."""

    def __init__(self):
        self.allocated = 0
        self.released = 0
        self._next_id = 1
        self._live: Dict[int, ASTNode] = {}

    @property
    def live(self) -> int:
        return len(self._live)

    def make(self, node_cls: Type[N], **fields) -> N:
        """Allocate a node of ``node_cls``; ownership passes to the caller."""
        node = node_cls(**fields)
        node.node_id = self._next_id
        self._next_id += 1
        self._live[node.node_id] = node
        self.allocated += 1
        return node

    def owns(self, node: ASTNode) -> bool:
        return self._live.get(node.node_id) is node

    def release(self, node: Optional[ASTNode]) -> None:
        """Release ``node`` and everything it owns: children first, then itself."""
        if node is None:
            return
        # explicit stack: left-associative chains can be far deeper than the
        # interpreter's recursion limit
        stack = [(node, False)]
        while stack:
            current, expanded = stack.pop()
            if expanded:
                self._release_one(current)
                continue
            stack.append((current, True))
            for child in reversed(list(current.children())):
                stack.append((child, False))

    def release_all(self) -> int:
        """Release every node still live (used when compilation aborts)."""
        count = 0
        for node in list(self._live.values()):
            self._release_one(node)
            count += 1
        if count:
            logger.debug("released %d outstanding nodes", count)
        return count

    def _release_one(self, node: ASTNode) -> None:
        if self._live.get(node.node_id) is not node:
            raise TreeOwnershipError(
                f"{node.__class__.__name__} node released twice or not owned by this builder",
                node.line,
                node.column,
            )
        del self._live[node.node_id]
        self.released += 1
