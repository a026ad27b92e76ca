"""Abstract Syntax Tree (AST) definitions for Sepia.

Each node records the line and column of the token it starts at so the
evaluator can attach positions to the exceptions it raises. Nodes own
their children exclusively: the AST is a strict tree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple


@dataclass
class Node:
    """Base class for all AST nodes."""
    line: int = field(default=0, kw_only=True, compare=False)
    column: int = field(default=0, kw_only=True, compare=False)


@dataclass
class Program(Node):
    body: List[Node]


# Expressions

@dataclass
class Literal(Node):
    value: Any
    literal_type: str  # 'Integer', 'Float', 'String', 'None'


@dataclass
class Name(Node):
    ident: str


@dataclass
class BinaryOp(Node):
    op: str
    left: Node
    right: Node


@dataclass
class BoolOp(Node):
    op: str  # 'and' or 'or'
    left: Node
    right: Node


@dataclass
class UnaryOp(Node):
    op: str
    operand: Node


@dataclass
class Compare(Node):
    """A comparison chain: `a < b <= c` is Compare(a, ['<', '<='], [b, c])."""
    left: Node
    ops: List[str]
    comparators: List[Node]


@dataclass
class Call(Node):
    func: Node
    args: List[Node]


@dataclass
class Attribute(Node):
    target: Node
    name: str


@dataclass
class Subscript(Node):
    target: Node
    index: Node


@dataclass
class Slice(Node):
    lower: Optional[Node]
    upper: Optional[Node]


@dataclass
class ListLit(Node):
    elements: List[Node]


@dataclass
class TupleLit(Node):
    elements: List[Node]


@dataclass
class DictLit(Node):
    entries: List[Tuple[Node, Node]]


@dataclass
class Lambda(Node):
    params: List[str]
    defaults: List[Node]
    body: Node


# Statements

@dataclass
class Block(Node):
    statements: List[Node]


@dataclass
class ExprStmt(Node):
    expr: Node


@dataclass
class Assign(Node):
    """`a = b = value` is Assign([a, b], value); targets are assigned left to right."""
    targets: List[Node]
    value: Node


@dataclass
class IfStmt(Node):
    condition: Node
    then_block: Block
    else_block: Optional[Block]


@dataclass
class WhileStmt(Node):
    condition: Node
    body: Block
    else_block: Optional[Block] = None


@dataclass
class ForStmt(Node):
    target: Node
    iterable: Node
    body: Block
    else_block: Optional[Block] = None


@dataclass
class FuncDecl(Node):
    name: str
    params: List[str]
    defaults: List[Node]
    body: Block


@dataclass
class ClassDecl(Node):
    name: str
    base: Optional[Node]
    body: Block


@dataclass
class ReturnStmt(Node):
    value: Optional[Node]


@dataclass
class BreakStmt(Node):
    pass


@dataclass
class ContinueStmt(Node):
    pass


@dataclass
class PassStmt(Node):
    pass


@dataclass
class PrintStmt(Node):
    values: List[Node]
    trailing_comma: bool = False


@dataclass
class ImportStmt(Node):
    names: List[str]  # dotted module names


@dataclass
class FromImportStmt(Node):
    module: str
    names: List[str]  # ['*'] for a star import


@dataclass
class GlobalStmt(Node):
    names: List[str]


@dataclass
class DelStmt(Node):
    targets: List[Node]


@dataclass
class RaiseStmt(Node):
    exception: Optional[Node]
    argument: Optional[Node] = None


@dataclass
class ExceptClause(Node):
    exc_type: Optional[Node]
    name: Optional[str]
    body: Block


@dataclass
class TryStmt(Node):
    body: Block
    handlers: List[ExceptClause]
    else_block: Optional[Block]
    final_block: Optional[Block]
