"""Tree-walking evaluator for Sepia.

`Interpreter.execute` runs one statement and returns a `Signal` describing
how it completed; `Interpreter.evaluate` computes the value of one
expression and raises `Thrown` when the program raises an exception. The
two meet at statement boundaries: `execute` turns a `Thrown` into a
`Raised` signal, and a `Raised` signal that leaves a function body is
thrown again at the call site. A `try` statement inspects the signal of
its body, so exceptions are matched against handlers without unwinding
the host stack.
"""

from __future__ import annotations

import sys
from typing import Any, List, Optional, TextIO

from .ast import (
    Program, Node, Literal, Name, BinaryOp, BoolOp, UnaryOp, Compare, Call,
    Attribute, Subscript, Slice, ListLit, TupleLit, DictLit, Lambda,
    Block, ExprStmt, Assign, IfStmt, WhileStmt, ForStmt, FuncDecl, ClassDecl,
    ReturnStmt, BreakStmt, ContinueStmt, PassStmt, PrintStmt, ImportStmt,
    FromImportStmt, GlobalStmt, DelStmt, RaiseStmt, TryStmt,
)
from .builtin_function import BuiltinFunction
from .environment import Environment
from .errors import ExecutionError, Thrown
from .exceptions import describe, new_exception, throw
from .lexer import tokenize
from .limits import DEFAULT_MAX_DEPTH, recursion_headroom
from .operators import binary_op, check_hashable, compare, iterate, unary_op
from .parser import parse
from .prelude import builtin_method, check_arity, populate_builtins
from .signals import NORMAL, BREAK, CONTINUE, Signal, Return, Raised
from .symbols import analyze_function
from .types import (
    NONE, ListVal, TupleVal, DictVal, FunctionVal, ClassVal, InstanceVal,
    BoundMethod, is_truthy, repr_value, to_string, type_name,
)


def parse_program(source: str, max_depth: int = DEFAULT_MAX_DEPTH) -> Program:
    """Tokenize and parse a source unit. Raises LexError or ParseError."""
    return parse(tokenize(source), max_depth)


class Interpreter:
    """Core interpreter that executes a Sepia AST."""
    def __init__(self, debug_level: int = 0, debug_file: str = 'debug.txt',
                 max_depth: int = DEFAULT_MAX_DEPTH, stdout: Optional[TextIO] = None):
        self.debug_level = debug_level
        self.debug_fp = open(debug_file, 'w') if debug_level > 0 else None
        self.max_depth = max_depth
        self.stdout = stdout
        self.depth = 0
        self.softspace = False
        # Exceptions whose handlers are running, innermost last; a bare `raise` re-raises the last.
        self.handling: List[Any] = []
        self.builtins = populate_builtins(self)
        self.global_env = self.new_global_scope()

    def debug(self, msg: str):
        if self.debug_level > 0:
            if self.debug_fp:
                self.debug_fp.write(msg + '\n')
                self.debug_fp.flush()
            else:
                print(msg)

    def close(self):
        if self.debug_fp:
            self.debug_fp.close()
            self.debug_fp = None

    def new_global_scope(self) -> Environment:
        env = Environment(self.builtins, kind='module')
        env.values['__name__'] = '__main__'
        return env

    # Public API
    def run(self, program: Program, env: Optional[Environment] = None) -> Signal:
        """Execute `program` in `env` (the interpreter's own global scope by default).

        An exception that no handler catches is reported as ExecutionError.
        """
        if env is None:
            env = self.global_env
        with recursion_headroom(self.max_depth):
            signal = self.execute_block(program.body, env)
        if isinstance(signal, Raised):
            raise ExecutionError(describe(signal.exception), signal.line, signal.column, signal.exception)
        return signal

    def execute_block(self, statements: List[Node], env: Environment) -> Signal:
        for stmt in statements:
            signal = self.execute(stmt, env)
            if signal is not NORMAL:
                return signal
        return NORMAL

    def execute(self, node: Node, env: Environment) -> Signal:
        try:
            return self.execute_statement(node, env)
        except Thrown as exc:
            return raised(exc, node)
        except RecursionError:
            return Raised(new_exception('RuntimeError', 'maximum recursion depth exceeded'),
                          node.line, node.column)

    def execute_statement(self, node: Node, env: Environment) -> Signal:
        if isinstance(node, ExprStmt):
            self.evaluate(node.expr, env)
            return NORMAL
        if isinstance(node, Assign):
            value = self.evaluate(node.value, env)
            for target in node.targets:
                self.assign_target(target, value, env)
            return NORMAL
        if isinstance(node, PrintStmt):
            self.print_values(node, env)
            return NORMAL
        if isinstance(node, IfStmt):
            cond = self.evaluate(node.condition, env)
            truthy = is_truthy(cond)
            if self.debug_level >= 3:
                self.debug(f"line {node.line}: if condition {repr_value(cond)} -> {truthy}")
            if truthy:
                return self.execute_block(node.then_block.statements, env)
            if node.else_block is not None:
                return self.execute_block(node.else_block.statements, env)
            return NORMAL
        if isinstance(node, WhileStmt):
            while True:
                cond = self.evaluate(node.condition, env)
                truthy = is_truthy(cond)
                if self.debug_level >= 3:
                    self.debug(f"line {node.line}: while condition {repr_value(cond)} -> {truthy}")
                if not truthy:
                    break
                signal = self.execute_block(node.body.statements, env)
                if signal is BREAK:
                    return NORMAL
                if signal is not NORMAL and signal is not CONTINUE:
                    return signal
            if node.else_block is not None:
                return self.execute_block(node.else_block.statements, env)
            return NORMAL
        if isinstance(node, ForStmt):
            for item in iterate(self.evaluate(node.iterable, env)):
                self.assign_target(node.target, item, env)
                signal = self.execute_block(node.body.statements, env)
                if signal is BREAK:
                    return NORMAL
                if signal is not NORMAL and signal is not CONTINUE:
                    return signal
            if node.else_block is not None:
                return self.execute_block(node.else_block.statements, env)
            return NORMAL
        if isinstance(node, FuncDecl):
            func = self.make_function(node.name, node.params, node.defaults, node.body, env)
            env.set(node.name, func)
            if self.debug_level >= 2:
                self.debug(f"line {node.line}: define function {node.name}({', '.join(node.params)})")
            return NORMAL
        if isinstance(node, ClassDecl):
            cls = self.make_class(node, env)
            env.set(node.name, cls)
            if self.debug_level >= 2:
                base = f"({cls.base.name})" if cls.base is not None else ''
                self.debug(f"line {node.line}: define class {node.name}{base}")
            return NORMAL
        if isinstance(node, ReturnStmt):
            value = self.evaluate(node.value, env) if node.value is not None else NONE
            return Return(value)
        if isinstance(node, BreakStmt):
            return BREAK
        if isinstance(node, ContinueStmt):
            return CONTINUE
        if isinstance(node, (PassStmt, GlobalStmt)):
            # `global` declarations are resolved when the enclosing function is defined.
            return NORMAL
        if isinstance(node, TryStmt):
            return self.execute_try(node, env)
        if isinstance(node, RaiseStmt):
            return self.execute_raise(node, env)
        if isinstance(node, DelStmt):
            for target in node.targets:
                self.delete_target(target, env)
            return NORMAL
        if isinstance(node, ImportStmt):
            throw('ImportError', f"No module named {node.names[0]}")
        if isinstance(node, FromImportStmt):
            throw('ImportError', f"No module named {node.module}")
        if isinstance(node, Block):
            return self.execute_block(node.statements, env)
        raise NotImplementedError(f"execute: unexpected node type {type(node)}")

    def print_values(self, node: PrintStmt, env: Environment):
        # Resolved on every print so a replaced sys.stdout (e.g. under capsys) is honoured.
        out = self.stdout if self.stdout is not None else sys.stdout
        for value_node in node.values:
            text = to_string(self.evaluate(value_node, env))
            if self.softspace:
                out.write(' ')
            out.write(text)
            self.softspace = not (text and text[-1].isspace() and text[-1] != ' ')
        if not node.trailing_comma:
            out.write('\n')
            self.softspace = False

    def make_function(self, name: str, params: List[str], defaults: List[Node],
                      body: Block, env: Environment) -> FunctionVal:
        default_values = [self.evaluate(d, env) for d in defaults]
        local_names, global_names = analyze_function(params, body)
        return FunctionVal(name, params, default_values, body, env.global_scope,
                           local_names, global_names)

    def make_class(self, node: ClassDecl, env: Environment) -> ClassVal:
        base = None
        if node.base is not None:
            base = self.evaluate(node.base, env)
            if not isinstance(base, ClassVal):
                throw('TypeError', f"base class must be a class, not '{type_name(base)}'")
        class_env = Environment(env.global_scope, kind='class')
        signal = self.execute_block(node.body.statements, class_env)
        if isinstance(signal, Raised):
            raise Thrown(signal.exception, signal.line, signal.column)
        cls = ClassVal(node.name, dict(class_env.values), base)
        # Walking the chain once rejects a hierarchy deeper than MAX_CLASS_DEPTH.
        for _ in cls.chain():
            pass
        return cls

    def execute_try(self, node: TryStmt, env: Environment) -> Signal:
        signal = self.execute_block(node.body.statements, env)
        if isinstance(signal, Raised) and node.handlers:
            signal = self.handle_exception(node, signal, env)
        elif signal is NORMAL and node.else_block is not None:
            signal = self.execute_block(node.else_block.statements, env)
        if node.final_block is not None:
            final = self.execute_block(node.final_block.statements, env)
            if final is not NORMAL:
                return final
        return signal

    def handle_exception(self, node: TryStmt, signal: Raised, env: Environment) -> Signal:
        for handler in node.handlers:
            if handler.exc_type is not None:
                try:
                    pattern = self.evaluate(handler.exc_type, env)
                except Thrown as exc:
                    return raised(exc, handler)
                if not exception_matches(signal.exception, pattern):
                    continue
            if self.debug_level >= 3:
                self.debug(f"line {handler.line}: caught {describe(signal.exception)} "
                           f"raised at line {signal.line}")
            if handler.name is not None:
                env.set(handler.name, signal.exception)
            self.handling.append(signal.exception)
            try:
                return self.execute_block(handler.body.statements, env)
            finally:
                self.handling.pop()
        return signal

    def execute_raise(self, node: RaiseStmt, env: Environment) -> Signal:
        if node.exception is None:
            if not self.handling:
                throw('RuntimeError', 'no active exception to re-raise')
            return Raised(self.handling[-1], node.line, node.column)
        exception = self.evaluate(node.exception, env)
        args = [self.evaluate(node.argument, env)] if node.argument is not None else []
        if isinstance(exception, ClassVal):
            exception = self.instantiate(exception, args)
        elif isinstance(exception, InstanceVal):
            if args:
                throw('TypeError', 'instance exception may not have a separate value')
        elif isinstance(exception, str):
            if args:
                throw('TypeError', 'string exceptions take no separate value')
        else:
            throw('TypeError', f"exceptions must be classes, instances or strings, not {type_name(exception)}")
        return Raised(exception, node.line, node.column)

    def evaluate(self, node: Node, env: Environment) -> Any:
        try:
            return self.evaluate_expression(node, env)
        except Thrown as exc:
            if exc.line is None:
                exc.line, exc.column = node.line, node.column
            raise

    def evaluate_expression(self, node: Node, env: Environment) -> Any:
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, Name):
            return env.get(node.ident)
        if isinstance(node, BinaryOp):
            left = self.evaluate(node.left, env)
            right = self.evaluate(node.right, env)
            return binary_op(node.op, left, right)
        if isinstance(node, BoolOp):
            # Short-circuit; the result is the operand that decided it.
            left = self.evaluate(node.left, env)
            if node.op == 'and':
                return self.evaluate(node.right, env) if is_truthy(left) else left
            return left if is_truthy(left) else self.evaluate(node.right, env)
        if isinstance(node, UnaryOp):
            return unary_op(node.op, self.evaluate(node.operand, env))
        if isinstance(node, Compare):
            left = self.evaluate(node.left, env)
            for op, comparator in zip(node.ops, node.comparators):
                right = self.evaluate(comparator, env)
                if not compare(op, left, right):
                    return 0
                left = right
            return 1
        if isinstance(node, Call):
            func = self.evaluate(node.func, env)
            args = [self.evaluate(arg, env) for arg in node.args]
            return self.call_function(func, args)
        if isinstance(node, Attribute):
            return self.get_attribute(self.evaluate(node.target, env), node.name)
        if isinstance(node, Subscript):
            target = self.evaluate(node.target, env)
            if isinstance(node.index, Slice):
                lower, upper = self.slice_bounds(node.index, env)
                return get_slice(target, lower, upper)
            return get_item(target, self.evaluate(node.index, env))
        if isinstance(node, ListLit):
            return ListVal([self.evaluate(el, env) for el in node.elements])
        if isinstance(node, TupleLit):
            return TupleVal(tuple(self.evaluate(el, env) for el in node.elements))
        if isinstance(node, DictLit):
            entries = {}
            for key_node, value_node in node.entries:
                key = self.evaluate(key_node, env)
                check_hashable(key)
                entries[key] = self.evaluate(value_node, env)
            return DictVal(entries)
        if isinstance(node, Lambda):
            body = Block([ReturnStmt(node.body, line=node.body.line, column=node.body.column)],
                         line=node.line, column=node.column)
            return self.make_function('<lambda>', node.params, node.defaults, body, env)
        raise NotImplementedError(f"evaluate: unexpected node type {type(node)}")

    def slice_bounds(self, node: Slice, env: Environment):
        bounds = []
        for bound in (node.lower, node.upper):
            if bound is None:
                bounds.append(None)
                continue
            value = self.evaluate(bound, env)
            if not isinstance(value, int):
                throw('TypeError', 'slice indices must be integers')
            bounds.append(value)
        return bounds

    # Attributes

    def get_attribute(self, obj: Any, name: str) -> Any:
        if isinstance(obj, InstanceVal):
            if name in obj.attrs:
                return obj.attrs[name]
            if name == '__class__':
                return obj.cls
            attr = obj.cls.lookup(name)
            if attr is None:
                throw('AttributeError', f"{obj.cls.name} instance has no attribute '{name}'")
            if isinstance(attr, (FunctionVal, BuiltinFunction)):
                return BoundMethod(obj, attr)
            return attr
        if isinstance(obj, ClassVal):
            if name == '__name__':
                return obj.name
            attr = obj.lookup(name)
            if attr is None:
                throw('AttributeError', f"class {obj.name} has no attribute '{name}'")
            return attr
        if isinstance(obj, (FunctionVal, BuiltinFunction)) and name == '__name__':
            return obj.name
        method = builtin_method(obj, name)
        if method is None:
            throw('AttributeError', f"'{type_name(obj)}' object has no attribute '{name}'")
        return method

    def set_attribute(self, obj: Any, name: str, value: Any):
        check_writable(obj, name)
        if isinstance(obj, (InstanceVal, ClassVal)):
            obj.attrs[name] = value
            return
        throw('AttributeError', f"'{type_name(obj)}' object has no attribute '{name}'")

    # Assignment targets

    def assign_target(self, target: Node, value: Any, env: Environment):
        if isinstance(target, Name):
            env.set(target.ident, value)
            if self.debug_level >= 2:
                self.debug(f"line {target.line}: {target.ident} = {repr_value(value)}")
            return
        if isinstance(target, Attribute):
            self.set_attribute(self.evaluate(target.target, env), target.name, value)
            return
        if isinstance(target, Subscript):
            container = self.evaluate(target.target, env)
            if isinstance(target.index, Slice):
                lower, upper = self.slice_bounds(target.index, env)
                set_slice(container, lower, upper, value)
            else:
                set_item(container, self.evaluate(target.index, env), value)
            return
        if isinstance(target, (TupleLit, ListLit)):
            items = iterate(value)
            if len(items) > len(target.elements):
                throw('ValueError', 'too many values to unpack')
            if len(items) < len(target.elements):
                throw('ValueError', f"need more than {len(items)} value{'s' if len(items) != 1 else ''} to unpack")
            for element, item in zip(target.elements, items):
                self.assign_target(element, item, env)
            return
        throw('TypeError', 'invalid assignment target')

    def delete_target(self, target: Node, env: Environment):
        if isinstance(target, Name):
            env.delete(target.ident)
            return
        if isinstance(target, Attribute):
            obj = self.evaluate(target.target, env)
            check_writable(obj, target.name)
            if not isinstance(obj, (InstanceVal, ClassVal)) or target.name not in obj.attrs:
                throw('AttributeError', f"'{type_name(obj)}' object has no attribute '{target.name}'")
            del obj.attrs[target.name]
            return
        if isinstance(target, Subscript):
            container = self.evaluate(target.target, env)
            if isinstance(target.index, Slice):
                lower, upper = self.slice_bounds(target.index, env)
                if not isinstance(container, ListVal):
                    throw('TypeError', f"'{type_name(container)}' object does not support slice deletion")
                del container.items[lower:upper]
            else:
                del_item(container, self.evaluate(target.index, env))
            return
        if isinstance(target, (TupleLit, ListLit)):
            for element in target.elements:
                self.delete_target(element, env)
            return
        throw('TypeError', 'invalid deletion target')

    # Calls

    def call_function(self, func: Any, args: List[Any]) -> Any:
        if isinstance(func, BuiltinFunction):
            if func.arity is not None:
                check_arity(func.name, args, func.arity)
            if self.debug_level >= 1:
                self.debug(f"call builtin {func.name}({', '.join(repr_value(a) for a in args)})")
            return func.fn(args)
        if isinstance(func, BoundMethod):
            return self.call_function(func.function, [func.instance] + args)
        if isinstance(func, ClassVal):
            return self.instantiate(func, args)
        if isinstance(func, FunctionVal):
            return self.call_user_function(func, args)
        throw('TypeError', f"'{type_name(func)}' object is not callable")

    def instantiate(self, cls: ClassVal, args: List[Any]) -> InstanceVal:
        instance = InstanceVal(cls, {})
        init = cls.lookup('__init__')
        if init is None:
            if args:
                throw('TypeError', 'this constructor takes no arguments')
            return instance
        result = self.call_function(init, [instance] + args)
        if result is not NONE:
            throw('TypeError', f"__init__() should return None, not '{type_name(result)}'")
        return instance

    def call_user_function(self, func: FunctionVal, args: List[Any]) -> Any:
        given = len(args)
        if given < func.min_args or given > len(func.params):
            if func.defaults:
                bound, expected = ('at least', func.min_args) if given < func.min_args else ('at most', len(func.params))
            else:
                bound, expected = 'exactly', len(func.params)
            plural = 's' if expected != 1 else ''
            throw('TypeError', f"{func.name}() takes {bound} {expected} argument{plural} ({given} given)")
        if self.depth >= self.max_depth:
            throw('RuntimeError', 'maximum recursion depth exceeded')
        if self.debug_level >= 1:
            self.debug(f"call {func.name}({', '.join(repr_value(a) for a in args)})")
        frame = Environment(func.globals, kind='function',
                            local_names=func.local_names, global_names=func.global_names)
        values = list(args) + func.defaults[given - func.min_args:]
        for param, value in zip(func.params, values):
            frame.values[param] = value
        self.depth += 1
        try:
            signal = self.execute_block(func.body.statements, frame)
        finally:
            self.depth -= 1
        if isinstance(signal, Return):
            return signal.value
        if isinstance(signal, Raised):
            raise Thrown(signal.exception, signal.line, signal.column)
        return NONE


def raised(exc: Thrown, node: Node) -> Raised:
    """Turn a Thrown into a Raised signal, positioned at `node` if it carries no position."""
    if exc.line is None:
        return Raised(exc.value, node.line, node.column)
    return Raised(exc.value, exc.line, exc.column)


def check_writable(obj: Any, name: str):
    if isinstance(obj, ClassVal) and obj.builtin:
        throw('TypeError', f"cannot set '{name}' attribute of built-in class '{obj.name}'")


def exception_matches(exception: Any, pattern: Any) -> bool:
    if isinstance(pattern, TupleVal):
        return any(exception_matches(exception, p) for p in pattern.items)
    if isinstance(pattern, ClassVal):
        return isinstance(exception, InstanceVal) and exception.cls.is_subclass(pattern)
    if isinstance(pattern, str):
        return isinstance(exception, str) and exception == pattern
    return False


def _normalize_index(name: str, index: Any, length: int) -> int:
    if not isinstance(index, int):
        throw('TypeError', f"{name} indices must be integers, not {type_name(index)}")
    if index < 0:
        index += length
    if not 0 <= index < length:
        throw('IndexError', f"{name} index out of range")
    return index


def get_item(target: Any, index: Any) -> Any:
    if isinstance(target, ListVal):
        return target.items[_normalize_index('list', index, len(target.items))]
    if isinstance(target, TupleVal):
        return target.items[_normalize_index('tuple', index, len(target.items))]
    if isinstance(target, str):
        return target[_normalize_index('string', index, len(target))]
    if isinstance(target, DictVal):
        check_hashable(index)
        if index not in target.entries:
            throw('KeyError', repr_value(index))
        return target.entries[index]
    throw('TypeError', f"'{type_name(target)}' object is not subscriptable")


def get_slice(target: Any, lower: Optional[int], upper: Optional[int]) -> Any:
    if isinstance(target, ListVal):
        return ListVal(target.items[lower:upper])
    if isinstance(target, TupleVal):
        return TupleVal(target.items[lower:upper])
    if isinstance(target, str):
        return target[lower:upper]
    throw('TypeError', f"'{type_name(target)}' object is not sliceable")


def set_item(target: Any, index: Any, value: Any):
    if isinstance(target, ListVal):
        if not isinstance(index, int):
            throw('TypeError', f"list indices must be integers, not {type_name(index)}")
        length = len(target.items)
        if not -length <= index < length:
            throw('IndexError', 'list assignment index out of range')
        target.items[index] = value
        return
    if isinstance(target, DictVal):
        check_hashable(index)
        target.entries[index] = value
        return
    throw('TypeError', f"'{type_name(target)}' object does not support item assignment")


def set_slice(target: Any, lower: Optional[int], upper: Optional[int], value: Any):
    if not isinstance(target, ListVal):
        throw('TypeError', f"'{type_name(target)}' object does not support slice assignment")
    target.items[lower:upper] = iterate(value)


def del_item(target: Any, index: Any):
    if isinstance(target, ListVal):
        del target.items[_normalize_index('list', index, len(target.items))]
        return
    if isinstance(target, DictVal):
        check_hashable(index)
        if index not in target.entries:
            throw('KeyError', repr_value(index))
        del target.entries[index]
        return
    throw('TypeError', f"'{type_name(target)}' object doesn't support item deletion")


def run_program(source: str, debug_level: int = 0, max_depth: int = DEFAULT_MAX_DEPTH,
                stdout: Optional[TextIO] = None) -> Environment:
    """Parse and run a Sepia program from a source string; return its global scope."""
    ast_program = parse_program(source, max_depth)
    interpreter = Interpreter(debug_level=debug_level, max_depth=max_depth, stdout=stdout)
    try:
        interpreter.run(ast_program)
    finally:
        interpreter.close()
    return interpreter.global_env
