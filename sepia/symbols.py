"""Static analysis of which names a function body binds.

A name bound anywhere in a function body (assignment, `for` target, `def`,
`class`, `import`, `del`, `except ..., name`) is local to the whole body,
unless the body declares it `global`. A `global` declaration applies to the
whole body wherever it appears. Nested `def` and `class` bodies are not
entered: only the name they bind counts.
"""

from __future__ import annotations

from typing import Iterable, List, Set, Tuple

from .ast import (
    Node, Block, Name, TupleLit, ListLit, Assign, ForStmt, WhileStmt, IfStmt,
    FuncDecl, ClassDecl, ImportStmt, FromImportStmt, GlobalStmt, DelStmt, TryStmt,
)


def analyze_function(params: List[str], body: Block) -> Tuple[frozenset, frozenset]:
    """Return (local_names, global_names) for a function with `params` and `body`."""
    bound: Set[str] = set(params)
    declared_global: Set[str] = set()
    _collect(body.statements, bound, declared_global)
    return frozenset(bound - declared_global), frozenset(declared_global)


def _bind_target(node: Node, bound: Set[str]) -> None:
    if isinstance(node, Name):
        bound.add(node.ident)
    elif isinstance(node, (TupleLit, ListLit)):
        for element in node.elements:
            _bind_target(element, bound)


def _collect(statements: Iterable[Node], bound: Set[str], declared_global: Set[str]) -> None:
    for stmt in statements:
        if isinstance(stmt, Assign):
            for target in stmt.targets:
                _bind_target(target, bound)
        elif isinstance(stmt, ForStmt):
            _bind_target(stmt.target, bound)
            _collect_blocks([stmt.body, stmt.else_block], bound, declared_global)
        elif isinstance(stmt, WhileStmt):
            _collect_blocks([stmt.body, stmt.else_block], bound, declared_global)
        elif isinstance(stmt, IfStmt):
            _collect_blocks([stmt.then_block, stmt.else_block], bound, declared_global)
        elif isinstance(stmt, Block):
            _collect(stmt.statements, bound, declared_global)
        elif isinstance(stmt, (FuncDecl, ClassDecl)):
            bound.add(stmt.name)
        elif isinstance(stmt, ImportStmt):
            bound.update(name.split('.')[0] for name in stmt.names)
        elif isinstance(stmt, FromImportStmt):
            bound.update(name for name in stmt.names if name != '*')
        elif isinstance(stmt, GlobalStmt):
            declared_global.update(stmt.names)
        elif isinstance(stmt, DelStmt):
            for target in stmt.targets:
                _bind_target(target, bound)
        elif isinstance(stmt, TryStmt):
            _collect_blocks([stmt.body, stmt.else_block, stmt.final_block], bound, declared_global)
            for handler in stmt.handlers:
                if handler.name is not None:
                    bound.add(handler.name)
                _collect(handler.body.statements, bound, declared_global)


def _collect_blocks(blocks: Iterable, bound: Set[str], declared_global: Set[str]) -> None:
    for block in blocks:
        if block is not None:
            _collect(block.statements, bound, declared_global)
