"""Type-directed dispatch for Sepia's operators.

Integer arithmetic stays Integer, except `/` which always yields a Float.
A Float operand promotes the whole operation to Float. Operands of
unsupported types raise TypeError. Results of comparisons are the integers
1 and 0.
"""

from __future__ import annotations

from typing import Any, List, Tuple

from .exceptions import throw
from .types import DictVal, ListVal, TupleVal, is_truthy, to_string, type_name

# Largest left-shift count accepted for a non-zero operand.
MAX_SHIFT = 1 << 24


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float))


def iterate(value: Any) -> List[Any]:
    """Return a snapshot of the elements a `for` loop visits."""
    if isinstance(value, (ListVal, TupleVal)):
        return list(value.items)
    if isinstance(value, DictVal):
        return list(value.entries.keys())
    if isinstance(value, str):
        return list(value)
    throw('TypeError', f"'{type_name(value)}' object is not iterable")


def check_hashable(key: Any) -> None:
    try:
        hash(key)
    except TypeError:
        throw('TypeError', f"unhashable type: '{type_name(key)}'")


def _unsupported(op: str, a: Any, b: Any):
    throw('TypeError', f"unsupported operand type(s) for {op}: '{type_name(a)}' and '{type_name(b)}'")


def _repeat(seq: Any, count: Any) -> Any:
    if isinstance(seq, str):
        return seq * count
    if isinstance(seq, ListVal):
        return ListVal(seq.items * count)
    return TupleVal(seq.items * count)


def format_string(template: str, arg: Any) -> str:
    """Apply `template % arg` the way the `%` operator does for strings."""
    args: Tuple[Any, ...] = arg.items if isinstance(arg, TupleVal) else (arg,)
    converted = tuple(v if is_number(v) or isinstance(v, str) else to_string(v) for v in args)
    try:
        return template % converted
    except (TypeError, ValueError) as e:
        throw('TypeError', str(e))


def binary_op(op: str, a: Any, b: Any) -> Any:
    try:
        return _binary_op(op, a, b)
    except OverflowError as e:
        throw('OverflowError', str(e))
    except MemoryError:
        throw('OverflowError', 'result too large')


def _binary_op(op: str, a: Any, b: Any) -> Any:
    if op == '+':
        if is_number(a) and is_number(b):
            return a + b
        if isinstance(a, str) and isinstance(b, str):
            return a + b
        if isinstance(a, ListVal) and isinstance(b, ListVal):
            return ListVal(a.items + b.items)
        if isinstance(a, TupleVal) and isinstance(b, TupleVal):
            return TupleVal(a.items + b.items)
        _unsupported(op, a, b)
    if op == '-':
        if is_number(a) and is_number(b):
            return a - b
        _unsupported(op, a, b)
    if op == '*':
        if is_number(a) and is_number(b):
            return a * b
        if isinstance(a, (str, ListVal, TupleVal)) and isinstance(b, int):
            return _repeat(a, b)
        if isinstance(b, (str, ListVal, TupleVal)) and isinstance(a, int):
            return _repeat(b, a)
        _unsupported(op, a, b)
    if op == '/':
        if is_number(a) and is_number(b):
            if b == 0:
                throw('ZeroDivisionError', 'division by zero')
            return a / b
        _unsupported(op, a, b)
    if op == '%':
        if isinstance(a, str):
            return format_string(a, b)
        if is_number(a) and is_number(b):
            if b == 0:
                throw('ZeroDivisionError', 'modulo by zero')
            return a % b
        _unsupported(op, a, b)
    if op == '**':
        if is_number(a) and is_number(b):
            return _power(a, b)
        _unsupported(op, a, b)
    if op in ('&', '|', '^', '<<', '>>'):
        if isinstance(a, int) and isinstance(b, int):
            if op == '&':
                return a & b
            if op == '|':
                return a | b
            if op == '^':
                return a ^ b
            if b < 0:
                throw('ValueError', 'negative shift count')
            if op == '<<' and a != 0 and b > MAX_SHIFT:
                throw('OverflowError', 'shift count too large')
            return a << b if op == '<<' else a >> b
        _unsupported(op, a, b)
    throw('TypeError', f'unknown operator {op}')


def _power(a: Any, b: Any) -> Any:
    if isinstance(a, int) and isinstance(b, int) and b < 0:
        a = float(a)
    try:
        result = a ** b
    except ZeroDivisionError:
        throw('ZeroDivisionError', '0.0 cannot be raised to a negative power')
    except OverflowError as e:
        throw('OverflowError', str(e))
    if isinstance(result, complex):
        throw('ValueError', 'negative number cannot be raised to a fractional power')
    return result


def unary_op(op: str, operand: Any) -> Any:
    if op == 'not':
        return 0 if is_truthy(operand) else 1
    if op == '-':
        if is_number(operand):
            return -operand
        throw('TypeError', f"bad operand type for unary -: '{type_name(operand)}'")
    if op == '+':
        if is_number(operand):
            return operand
        throw('TypeError', f"bad operand type for unary +: '{type_name(operand)}'")
    if op == '~':
        if isinstance(operand, int):
            return ~operand
        throw('TypeError', f"bad operand type for unary ~: '{type_name(operand)}'")
    throw('TypeError', f'unknown unary operator {op}')


def values_equal(a: Any, b: Any) -> bool:
    """Structural equality. Values of different types are never equal, except Integer and Float."""
    try:
        return bool(a == b)
    except RecursionError:
        throw('RuntimeError', 'maximum recursion depth exceeded in comparison')


def identical(a: Any, b: Any) -> bool:
    # Numbers and strings have no observable identity; compare them by type and value.
    if isinstance(a, (int, float, str)) and isinstance(b, (int, float, str)):
        return type(a) is type(b) and a == b
    return a is b


def _order(a: Any, b: Any, op: str) -> int:
    """Three-way comparison for the ordering operators."""
    if is_number(a) and is_number(b) or isinstance(a, str) and isinstance(b, str):
        return (a > b) - (a < b)
    if isinstance(a, ListVal) and isinstance(b, ListVal) or isinstance(a, TupleVal) and isinstance(b, TupleVal):
        for x, y in zip(a.items, b.items):
            if not values_equal(x, y):
                return _order(x, y, op)
        return (len(a.items) > len(b.items)) - (len(a.items) < len(b.items))
    throw('TypeError', f"'{op}' not supported between '{type_name(a)}' and '{type_name(b)}'")


def contains(container: Any, item: Any) -> bool:
    if isinstance(container, (ListVal, TupleVal)):
        return any(values_equal(item, x) for x in container.items)
    if isinstance(container, DictVal):
        try:
            return item in container.entries
        except TypeError:
            throw('TypeError', f"unhashable type: '{type_name(item)}'")
    if isinstance(container, str):
        if not isinstance(item, str):
            throw('TypeError', f"'in <string>' requires string as left operand, not {type_name(item)}")
        return item in container
    throw('TypeError', f"argument of type '{type_name(container)}' is not iterable")


def compare(op: str, a: Any, b: Any) -> int:
    if op == '==':
        return int(values_equal(a, b))
    if op in ('!=', '<>'):
        return int(not values_equal(a, b))
    if op == '<':
        return int(_order(a, b, op) < 0)
    if op == '>':
        return int(_order(a, b, op) > 0)
    if op == '<=':
        return int(_order(a, b, op) <= 0)
    if op == '>=':
        return int(_order(a, b, op) >= 0)
    if op == 'in':
        return int(contains(b, a))
    if op == 'not in':
        return int(not contains(b, a))
    if op == 'is':
        return int(identical(a, b))
    if op == 'is not':
        return int(not identical(a, b))
    throw('TypeError', f'unknown comparison {op}')
