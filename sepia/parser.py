"""Recursive-descent parser for Sepia.

The parser consumes the token list produced by `sepia.lexer.tokenize` and
builds a `Program` AST. Statements are dispatched on their leading keyword.
Expressions are parsed top-down through the boolean and comparison levels;
the arithmetic and bitwise binary operators are parsed by precedence
climbing over BINARY_PRECEDENCE.

Precedence, lowest first:

    lambda
    or
    and
    not
    < > == >= <= <> != in, not in, is, is not   (chained)
    |  ^  &  << >>  + -  * / %                  (BINARY_PRECEDENCE)
    unary - + ~
    **                                          (right-associative)
    call, attribute, subscript
    atoms

Assignment is not an operator: an expression statement followed by `=` is
turned into an `Assign` statement. The first syntax error aborts parsing.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple, Union

from lark import Token

from .ast import (
    Program, Node, Literal, Name, BinaryOp, BoolOp, UnaryOp, Compare, Call,
    Attribute, Subscript, Slice, ListLit, TupleLit, DictLit, Lambda,
    Block, ExprStmt, Assign, IfStmt, WhileStmt, ForStmt, FuncDecl, ClassDecl,
    ReturnStmt, BreakStmt, ContinueStmt, PassStmt, PrintStmt, ImportStmt,
    FromImportStmt, GlobalStmt, DelStmt, RaiseStmt, ExceptClause, TryStmt,
)
from .errors import ParseError
from .limits import DEFAULT_MAX_DEPTH, recursion_headroom
from .types import NONE

BINARY_PRECEDENCE: Dict[str, int] = {
    '|': 1,
    '^': 2,
    '&': 3,
    '<<': 4, '>>': 4,
    '+': 5, '-': 5,
    '*': 6, '/': 6, '%': 6,
}

COMPARISON_OPS = frozenset(['<', '>', '==', '>=', '<=', '<>', '!='])

UNARY_OPS = frozenset(['-', '+', '~'])

# Tokens that may directly follow a trailing comma in an unparenthesized tuple.
TESTLIST_END = frozenset([')', ']', '}', ';', ':', '='])

SIMPLE_STATEMENT_END = frozenset(['NEWLINE', ';'])


class Parser:
    def __init__(self, tokens: List[Token], max_depth: int = DEFAULT_MAX_DEPTH):
        self.tokens = tokens
        self.pos = 0
        self.max_depth = max_depth
        self.depth = 0
        # Context for 'return', 'break' and 'continue'.
        self.function_depth = 0
        self.loop_depth = 0

    # Token helpers

    def peek(self, offset: int = 0) -> Token:
        index = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def advance(self) -> Token:
        token = self.peek()
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return token

    @staticmethod
    def token_is(token: Token, expected: str) -> bool:
        if token.type == expected:
            return True
        return token.type in ('KEYWORD', 'OP', 'DELIM') and token.value == expected

    def match(self, expected: Union[str, List[str]]) -> bool:
        token = self.peek()
        if isinstance(expected, list):
            return any(self.token_is(token, e) for e in expected)
        return self.token_is(token, expected)

    def consume(self, expected: str, description: Optional[str] = None) -> Token:
        token = self.peek()
        if not self.token_is(token, expected):
            wanted = description or describe_expected(expected)
            raise self.error(f"expected {wanted}, found {describe_token(token)}", token, wanted)
        return self.advance()

    def error(self, message: str, token: Optional[Token] = None, expected: Optional[str] = None) -> ParseError:
        token = token or self.peek()
        return ParseError(message, token.line, token.column, expected, describe_token(token))

    def at_simple_statement_end(self) -> bool:
        return self.match(['NEWLINE', ';'])

    @contextmanager
    def nested(self) -> Iterator[None]:
        self.depth += 1
        try:
            if self.depth > self.max_depth:
                raise self.error(f"too many nested levels (limit {self.max_depth})")
            yield
        finally:
            self.depth -= 1

    # Statements

    def parse_program(self) -> Program:
        statements: List[Node] = []
        with recursion_headroom(self.max_depth):
            while not self.match('ENDMARKER'):
                statements.extend(self.parse_statement())
        return Program(statements, line=1, column=1)

    def parse_statement(self) -> List[Node]:
        token = self.peek()
        if token.type == 'INDENT':
            raise self.error('unexpected indent')
        if token.type == 'DEDENT':
            raise self.error('unexpected dedent')
        if token.type == 'KEYWORD':
            if token.value == 'if':
                return [self.parse_if_stmt()]
            if token.value == 'while':
                return [self.parse_while_stmt()]
            if token.value == 'for':
                return [self.parse_for_stmt()]
            if token.value == 'def':
                return [self.parse_func_decl()]
            if token.value == 'class':
                return [self.parse_class_decl()]
            if token.value == 'try':
                return [self.parse_try_stmt()]
        return self.parse_simple_statements()

    def parse_simple_statements(self) -> List[Node]:
        statements = [self.parse_small_statement()]
        while self.match(';'):
            self.consume(';')
            if self.match('NEWLINE'):
                break
            statements.append(self.parse_small_statement())
        self.consume('NEWLINE', 'end of statement')
        return statements

    def parse_small_statement(self) -> Node:
        token = self.peek()
        if token.type == 'KEYWORD':
            if token.value == 'pass':
                self.advance()
                return PassStmt(**position(token))
            if token.value == 'break':
                self.advance()
                if self.loop_depth == 0:
                    raise self.error("'break' outside loop", token)
                return BreakStmt(**position(token))
            if token.value == 'continue':
                self.advance()
                if self.loop_depth == 0:
                    raise self.error("'continue' not properly in loop", token)
                return ContinueStmt(**position(token))
            if token.value == 'return':
                return self.parse_return_stmt()
            if token.value == 'print':
                return self.parse_print_stmt()
            if token.value == 'raise':
                return self.parse_raise_stmt()
            if token.value == 'global':
                return self.parse_global_stmt()
            if token.value == 'del':
                return self.parse_del_stmt()
            if token.value == 'import':
                return self.parse_import_stmt()
            if token.value == 'from':
                return self.parse_from_import_stmt()
        return self.parse_expr_stmt()

    def parse_expr_stmt(self) -> Node:
        first = self.parse_testlist()
        if not self.match('='):
            return ExprStmt(first, line=first.line, column=first.column)
        targets = [first]
        while self.match('='):
            self.consume('=')
            targets.append(self.parse_testlist())
        value = targets.pop()
        for target in targets:
            self.check_target(target, 'assign')
        return Assign(targets, value, line=first.line, column=first.column)

    def check_target(self, node: Node, verb: str) -> None:
        if isinstance(node, (Name, Attribute, Subscript)):
            return
        if isinstance(node, (TupleLit, ListLit)):
            for element in node.elements:
                self.check_target(element, verb)
            return
        if isinstance(node, Literal):
            what = 'literal'
        elif isinstance(node, Call):
            what = 'function call'
        elif isinstance(node, Lambda):
            what = 'lambda'
        else:
            what = 'operator'
        raise ParseError(f"can't {verb} to {what}", node.line, node.column, 'assignment target', what)

    def parse_suite(self) -> Block:
        """Parse ':' followed by an indented block or simple statements on the same line."""
        colon = self.consume(':')
        if not self.match('NEWLINE'):
            return Block(self.parse_simple_statements(), **position(colon))
        self.consume('NEWLINE')
        self.consume('INDENT', 'an indented block')
        statements: List[Node] = []
        with self.nested():
            while not self.match('DEDENT') and not self.match('ENDMARKER'):
                statements.extend(self.parse_statement())
        self.consume('DEDENT', 'dedent')
        return Block(statements, **position(colon))

    def parse_loop_body(self) -> Block:
        self.loop_depth += 1
        try:
            return self.parse_suite()
        finally:
            self.loop_depth -= 1

    def parse_if_stmt(self) -> IfStmt:
        token = self.advance()  # 'if' or 'elif'
        condition = self.parse_test()
        then_block = self.parse_suite()
        else_block = None
        if self.match('elif'):
            nested = self.parse_if_stmt()
            else_block = Block([nested], line=nested.line, column=nested.column)
        elif self.match('else'):
            self.consume('else')
            else_block = self.parse_suite()
        return IfStmt(condition, then_block, else_block, **position(token))

    def parse_while_stmt(self) -> WhileStmt:
        token = self.consume('while')
        condition = self.parse_test()
        body = self.parse_loop_body()
        else_block = None
        if self.match('else'):
            self.consume('else')
            else_block = self.parse_suite()
        return WhileStmt(condition, body, else_block, **position(token))

    def parse_for_stmt(self) -> ForStmt:
        token = self.consume('for')
        target = self.parse_exprlist()
        self.check_target(target, 'assign')
        self.consume('in')
        iterable = self.parse_testlist()
        body = self.parse_loop_body()
        else_block = None
        if self.match('else'):
            self.consume('else')
            else_block = self.parse_suite()
        return ForStmt(target, iterable, body, else_block, **position(token))

    def parse_func_decl(self) -> FuncDecl:
        token = self.consume('def')
        name = self.consume('NAME', 'function name')
        self.consume('(')
        params, defaults = self.parse_parameters(')')
        self.consume(')')
        saved = (self.function_depth, self.loop_depth)
        self.function_depth, self.loop_depth = self.function_depth + 1, 0
        try:
            body = self.parse_suite()
        finally:
            self.function_depth, self.loop_depth = saved
        return FuncDecl(name.value, params, defaults, body, **position(token))

    def parse_parameters(self, closer: str) -> Tuple[List[str], List[Node]]:
        params: List[str] = []
        defaults: List[Node] = []
        while not self.match(closer):
            name = self.consume('NAME', 'parameter name')
            if name.value in params:
                raise self.error(f"duplicate argument '{name.value}' in function definition", name)
            if self.match('='):
                self.consume('=')
                defaults.append(self.parse_test())
            elif defaults:
                raise self.error('non-default argument follows default argument', name)
            params.append(name.value)
            if not self.match(','):
                break
            self.consume(',')
        return params, defaults

    def parse_class_decl(self) -> ClassDecl:
        token = self.consume('class')
        name = self.consume('NAME', 'class name')
        base = None
        if self.match('('):
            self.consume('(')
            if not self.match(')'):
                base = self.parse_test()
                if self.match(','):
                    self.consume(',')
                    if not self.match(')'):
                        raise self.error('multiple inheritance is not supported', expected="')'")
            self.consume(')')
        saved = (self.function_depth, self.loop_depth)
        self.function_depth, self.loop_depth = 0, 0
        try:
            body = self.parse_suite()
        finally:
            self.function_depth, self.loop_depth = saved
        return ClassDecl(name.value, base, body, **position(token))

    def parse_try_stmt(self) -> TryStmt:
        token = self.consume('try')
        body = self.parse_suite()
        handlers: List[ExceptClause] = []
        seen_bare = False
        while self.match('except'):
            except_token = self.consume('except')
            if seen_bare:
                raise self.error("default 'except:' must be last", except_token)
            exc_type = None
            name = None
            if self.match(':'):
                seen_bare = True
            else:
                exc_type = self.parse_test()
                if self.match([',', 'as']):
                    self.advance()
                    name = self.consume('NAME', 'exception variable name').value
            handler_body = self.parse_suite()
            handlers.append(ExceptClause(exc_type, name, handler_body, **position(except_token)))
        else_block = None
        if handlers and self.match('else'):
            self.consume('else')
            else_block = self.parse_suite()
        final_block = None
        if self.match('finally'):
            self.consume('finally')
            final_block = self.parse_suite()
        if not handlers and final_block is None:
            found = self.peek()
            raise self.error(f"expected 'except' or 'finally' block, found {describe_token(found)}",
                             found, "'except' or 'finally'")
        return TryStmt(body, handlers, else_block, final_block, **position(token))

    def parse_return_stmt(self) -> ReturnStmt:
        token = self.consume('return')
        if self.function_depth == 0:
            raise self.error("'return' outside function", token)
        value = None if self.at_simple_statement_end() else self.parse_testlist()
        return ReturnStmt(value, **position(token))

    def parse_print_stmt(self) -> PrintStmt:
        token = self.consume('print')
        values: List[Node] = []
        trailing_comma = False
        while not self.at_simple_statement_end():
            values.append(self.parse_test())
            if not self.match(','):
                break
            self.consume(',')
            if self.at_simple_statement_end():
                trailing_comma = True
        return PrintStmt(values, trailing_comma, **position(token))

    def parse_raise_stmt(self) -> RaiseStmt:
        token = self.consume('raise')
        exception = None
        argument = None
        if not self.at_simple_statement_end():
            exception = self.parse_test()
            if self.match(','):
                self.consume(',')
                argument = self.parse_test()
        return RaiseStmt(exception, argument, **position(token))

    def parse_global_stmt(self) -> GlobalStmt:
        token = self.consume('global')
        names = [self.consume('NAME', 'variable name').value]
        while self.match(','):
            self.consume(',')
            names.append(self.consume('NAME', 'variable name').value)
        return GlobalStmt(names, **position(token))

    def parse_del_stmt(self) -> DelStmt:
        token = self.consume('del')
        target = self.parse_exprlist()
        self.check_target(target, 'delete')
        targets = target.elements if isinstance(target, TupleLit) else [target]
        return DelStmt(targets, **position(token))

    def parse_dotted_name(self) -> str:
        parts = [self.consume('NAME', 'module name').value]
        while self.match('.'):
            self.consume('.')
            parts.append(self.consume('NAME', 'module name').value)
        return '.'.join(parts)

    def parse_import_stmt(self) -> ImportStmt:
        token = self.consume('import')
        names = [self.parse_dotted_name()]
        while self.match(','):
            self.consume(',')
            names.append(self.parse_dotted_name())
        return ImportStmt(names, **position(token))

    def parse_from_import_stmt(self) -> FromImportStmt:
        token = self.consume('from')
        module = self.parse_dotted_name()
        self.consume('import')
        if self.match('*'):
            self.consume('*')
            return FromImportStmt(module, ['*'], **position(token))
        names = [self.consume('NAME', 'name to import').value]
        while self.match(','):
            self.consume(',')
            names.append(self.consume('NAME', 'name to import').value)
        return FromImportStmt(module, names, **position(token))

    # Expressions

    def at_testlist_end(self) -> bool:
        token = self.peek()
        if token.type in ('NEWLINE', 'ENDMARKER'):
            return True
        return token.type in ('DELIM', 'OP') and token.value in TESTLIST_END

    def parse_testlist(self) -> Node:
        """Parse `test (',' test)* [',']`; more than one element (or a trailing comma) is a tuple."""
        first = self.parse_test()
        if not self.match(','):
            return first
        elements = [first]
        while self.match(','):
            self.consume(',')
            if self.at_testlist_end():
                break
            elements.append(self.parse_test())
        return TupleLit(elements, line=first.line, column=first.column)

    def parse_exprlist(self) -> Node:
        """Like parse_testlist but without comparisons, so `for x in ...` stops at `in`."""
        first = self.parse_expr()
        if not self.match(','):
            return first
        elements = [first]
        while self.match(','):
            self.consume(',')
            if self.at_testlist_end() or self.match('in'):
                break
            elements.append(self.parse_expr())
        return TupleLit(elements, line=first.line, column=first.column)

    def parse_test(self) -> Node:
        with self.nested():
            if self.match('lambda'):
                return self.parse_lambda()
            return self.parse_or()

    def parse_lambda(self) -> Lambda:
        token = self.consume('lambda')
        params, defaults = self.parse_parameters(':')
        self.consume(':')
        body = self.parse_test()
        return Lambda(params, defaults, body, **position(token))

    def parse_or(self) -> Node:
        node = self.parse_and()
        while self.match('or'):
            self.consume('or')
            right = self.parse_and()
            node = BoolOp('or', node, right, line=node.line, column=node.column)
        return node

    def parse_and(self) -> Node:
        node = self.parse_not()
        while self.match('and'):
            self.consume('and')
            right = self.parse_not()
            node = BoolOp('and', node, right, line=node.line, column=node.column)
        return node

    def parse_not(self) -> Node:
        if self.match('not'):
            token = self.consume('not')
            with self.nested():
                operand = self.parse_not()
            return UnaryOp('not', operand, **position(token))
        return self.parse_comparison()

    def parse_comparison(self) -> Node:
        left = self.parse_expr()
        ops: List[str] = []
        comparators: List[Node] = []
        while True:
            token = self.peek()
            if token.type == 'OP' and token.value in COMPARISON_OPS:
                self.advance()
                op = token.value
            elif self.match('in'):
                self.advance()
                op = 'in'
            elif self.match('not') and self.token_is(self.peek(1), 'in'):
                self.advance()
                self.advance()
                op = 'not in'
            elif self.match('is'):
                self.advance()
                if self.match('not'):
                    self.advance()
                    op = 'is not'
                else:
                    op = 'is'
            else:
                break
            ops.append(op)
            comparators.append(self.parse_expr())
        if not ops:
            return left
        return Compare(left, ops, comparators, line=left.line, column=left.column)

    def parse_expr(self) -> Node:
        return self.parse_binary(1)

    def parse_binary(self, min_precedence: int) -> Node:
        """Precedence climbing over the left-associative binary operators."""
        left = self.parse_unary()
        while True:
            token = self.peek()
            if token.type != 'OP':
                return left
            precedence = BINARY_PRECEDENCE.get(token.value)
            if precedence is None or precedence < min_precedence:
                return left
            self.advance()
            right = self.parse_binary(precedence + 1)
            left = BinaryOp(token.value, left, right, line=left.line, column=left.column)

    def parse_unary(self) -> Node:
        token = self.peek()
        if token.type == 'OP' and token.value in UNARY_OPS:
            self.advance()
            with self.nested():
                operand = self.parse_unary()
            return UnaryOp(token.value, operand, **position(token))
        return self.parse_power()

    def parse_power(self) -> Node:
        base = self.parse_postfix()
        if self.match('**'):
            self.consume('**')
            with self.nested():
                exponent = self.parse_unary()
            return BinaryOp('**', base, exponent, line=base.line, column=base.column)
        return base

    def parse_postfix(self) -> Node:
        node = self.parse_atom()
        while True:
            if self.match('('):
                self.consume('(')
                args: List[Node] = []
                while not self.match(')'):
                    args.append(self.parse_test())
                    if self.match('='):
                        raise self.error('keyword arguments are not supported', expected="')'")
                    if not self.match(','):
                        break
                    self.consume(',')
                self.consume(')')
                node = Call(node, args, line=node.line, column=node.column)
                continue
            if self.match('['):
                self.consume('[')
                index = self.parse_subscript()
                self.consume(']')
                node = Subscript(node, index, line=node.line, column=node.column)
                continue
            if self.match('.'):
                self.consume('.')
                name = self.consume('NAME', 'attribute name')
                node = Attribute(node, name.value, line=node.line, column=node.column)
                continue
            break
        return node

    def parse_subscript(self) -> Node:
        token = self.peek()
        lower = None
        if not self.match(':'):
            lower = self.parse_testlist()
            if not self.match(':'):
                return lower
        self.consume(':')
        upper = None if self.match(']') else self.parse_test()
        return Slice(lower, upper, **position(token))

    def parse_atom(self) -> Node:
        token = self.peek()
        if token.type == 'INT':
            self.advance()
            return Literal(token.value, 'Integer', **position(token))
        if token.type == 'FLOAT':
            self.advance()
            return Literal(token.value, 'Float', **position(token))
        if token.type == 'STRING':
            # Adjacent string literals are concatenated.
            parts = []
            while self.match('STRING'):
                parts.append(self.advance().value)
            return Literal(''.join(parts), 'String', **position(token))
        if token.type == 'NAME':
            self.advance()
            return Name(token.value, **position(token))
        if self.match('None'):
            self.advance()
            return Literal(NONE, 'None', **position(token))
        if self.match('True'):
            self.advance()
            return Literal(1, 'Integer', **position(token))
        if self.match('False'):
            self.advance()
            return Literal(0, 'Integer', **position(token))
        if self.match('('):
            return self.parse_paren()
        if self.match('['):
            self.consume('[')
            elements = self.parse_elements(']')
            self.consume(']')
            return ListLit(elements, **position(token))
        if self.match('{'):
            return self.parse_dict()
        if token.type == 'INDENT':
            raise self.error('unexpected indent', token, 'expression')
        if token.type == 'ENDMARKER':
            raise self.error('unexpected end of input', token, 'expression')
        raise self.error(f"invalid syntax: unexpected {describe_token(token)}", token, 'expression')

    def parse_paren(self) -> Node:
        token = self.consume('(')
        if self.match(')'):
            self.consume(')')
            return TupleLit([], **position(token))
        first = self.parse_test()
        if not self.match(','):
            self.consume(')')
            return first
        self.consume(',')
        elements = [first] + self.parse_elements(')')
        self.consume(')')
        return TupleLit(elements, **position(token))

    def parse_elements(self, closer: str) -> List[Node]:
        elements: List[Node] = []
        while not self.match(closer):
            elements.append(self.parse_test())
            if not self.match(','):
                break
            self.consume(',')
        return elements

    def parse_dict(self) -> DictLit:
        token = self.consume('{')
        entries: List[Tuple[Node, Node]] = []
        while not self.match('}'):
            key = self.parse_test()
            self.consume(':')
            value = self.parse_test()
            entries.append((key, value))
            if not self.match(','):
                break
            self.consume(',')
        self.consume('}')
        return DictLit(entries, **position(token))


def position(token: Token) -> Dict[str, int]:
    return {'line': token.line, 'column': token.column}


def describe_expected(expected: str) -> str:
    if expected in ('NAME', 'NEWLINE', 'INDENT', 'DEDENT', 'ENDMARKER', 'STRING', 'INT', 'FLOAT'):
        return expected
    return f"'{expected}'"


def describe_token(token: Token) -> str:
    if token.type == 'ENDMARKER':
        return 'end of input'
    if token.type in ('NEWLINE', 'INDENT', 'DEDENT'):
        return token.type
    if token.type == 'STRING':
        return f"string {token.value!r}"
    return f"'{token}'"


def parse(tokens: List[Token], max_depth: int = DEFAULT_MAX_DEPTH) -> Program:
    """Parse a token list into a Program. Raises ParseError on the first syntax error."""
    return Parser(tokens, max_depth).parse_program()
