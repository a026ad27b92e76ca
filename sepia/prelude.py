"""Built-in functions, methods of built-in types, and the built-ins scope."""

from __future__ import annotations

from functools import cmp_to_key
from typing import Any, Callable, List, Optional

from .builtin_function import BuiltinFunction
from .environment import Environment
from .errors import Thrown
from .exceptions import BUILTIN_EXCEPTIONS, throw
from .operators import check_hashable, compare, is_number, iterate, values_equal
from .types import (
    NONE, ClassVal, DictVal, InstanceVal, ListVal, TupleVal,
    repr_value, to_string, type_name,
)


def check_arity(name: str, args: List[Any], low: int, high: Optional[int] = None) -> None:
    high = low if high is None else high
    if low <= len(args) <= high:
        return
    if low == high:
        expected = f"exactly {low} argument{'s' if low != 1 else ''}"
    else:
        expected = f"{low} to {high} arguments"
    throw('TypeError', f"{name}() takes {expected} ({len(args)} given)")


def _require_int(name: str, value: Any) -> int:
    if not isinstance(value, int):
        throw('TypeError', f"{name}() expected an integer, got {type_name(value)}")
    return value


def _three_way(a: Any, b: Any) -> int:
    if compare('<', a, b):
        return -1
    if compare('>', a, b):
        return 1
    return 0


def populate_builtins(interpreter: Any) -> Environment:
    """Create the built-ins scope that every global scope falls back to."""
    env = Environment(kind='builtins')

    def b_len(args: List[Any]) -> Any:
        value = args[0]
        if isinstance(value, str):
            return len(value)
        if isinstance(value, (ListVal, TupleVal)):
            return len(value.items)
        if isinstance(value, DictVal):
            return len(value.entries)
        throw('TypeError', f"object of type '{type_name(value)}' has no len()")

    def b_range(args: List[Any]) -> Any:
        check_arity('range', args, 1, 3)
        for arg in args:
            _require_int('range', arg)
        if len(args) == 1:
            start, stop, step = 0, args[0], 1
        else:
            start, stop = args[0], args[1]
            step = args[2] if len(args) == 3 else 1
        if step == 0:
            throw('ValueError', 'range() step argument must not be zero')
        return ListVal(list(range(start, stop, step)))

    def b_str(args: List[Any]) -> Any:
        return to_string(args[0])

    def b_repr(args: List[Any]) -> Any:
        return repr_value(args[0])

    def b_int(args: List[Any]) -> Any:
        value = args[0]
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            try:
                return int(value)
            except (OverflowError, ValueError) as e:
                throw('OverflowError', str(e))
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                throw('ValueError', f"invalid literal for int(): {value!r}")
        throw('TypeError', f"int() argument must be a string or a number, not '{type_name(value)}'")

    def b_float(args: List[Any]) -> Any:
        value = args[0]
        if is_number(value):
            try:
                return float(value)
            except OverflowError as e:
                throw('OverflowError', str(e))
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                throw('ValueError', f"invalid literal for float(): {value!r}")
        throw('TypeError', f"float() argument must be a string or a number, not '{type_name(value)}'")

    def b_abs(args: List[Any]) -> Any:
        value = args[0]
        if is_number(value):
            return abs(value)
        throw('TypeError', f"bad operand type for abs(): '{type_name(value)}'")

    def extremum(name: str, pick: Callable[[int], bool]) -> Callable[[List[Any]], Any]:
        def fn(args: List[Any]) -> Any:
            if not args:
                throw('TypeError', f"{name}() expected at least 1 argument, got 0")
            candidates = iterate(args[0]) if len(args) == 1 else list(args)
            if not candidates:
                throw('ValueError', f"{name}() arg is an empty sequence")
            best = candidates[0]
            for candidate in candidates[1:]:
                if pick(_three_way(candidate, best)):
                    best = candidate
            return best
        return fn

    def b_chr(args: List[Any]) -> Any:
        code = _require_int('chr', args[0])
        if not 0 <= code < 256:
            throw('ValueError', 'chr() arg not in range(256)')
        return chr(code)

    def b_ord(args: List[Any]) -> Any:
        value = args[0]
        if not isinstance(value, str) or len(value) != 1:
            throw('TypeError', 'ord() expected a character')
        return ord(value)

    def b_isinstance(args: List[Any]) -> Any:
        value, cls = args
        if not isinstance(cls, ClassVal):
            throw('TypeError', 'isinstance() arg 2 must be a class')
        return int(isinstance(value, InstanceVal) and value.cls.is_subclass(cls))

    def attribute_name(name: str, value: Any) -> str:
        if not isinstance(value, str):
            throw('TypeError', f"{name}(): attribute name must be string")
        return value

    def b_getattr(args: List[Any]) -> Any:
        check_arity('getattr', args, 2, 3)
        name = attribute_name('getattr', args[1])
        if len(args) == 2:
            return interpreter.get_attribute(args[0], name)
        try:
            return interpreter.get_attribute(args[0], name)
        except Thrown as exc:
            if not _is_attribute_error(exc.value):
                raise
            return args[2]

    def b_hasattr(args: List[Any]) -> Any:
        name = attribute_name('hasattr', args[1])
        try:
            interpreter.get_attribute(args[0], name)
        except Thrown as exc:
            if not _is_attribute_error(exc.value):
                raise
            return 0
        return 1

    def b_setattr(args: List[Any]) -> Any:
        interpreter.set_attribute(args[0], attribute_name('setattr', args[1]), args[2])
        return NONE

    def b_list(args: List[Any]) -> Any:
        check_arity('list', args, 0, 1)
        return ListVal(iterate(args[0]) if args else [])

    def b_tuple(args: List[Any]) -> Any:
        check_arity('tuple', args, 0, 1)
        return TupleVal(tuple(iterate(args[0])) if args else ())

    env.values['len'] = BuiltinFunction('len', 1, b_len)
    env.values['range'] = BuiltinFunction('range', None, b_range)
    env.values['str'] = BuiltinFunction('str', 1, b_str)
    env.values['repr'] = BuiltinFunction('repr', 1, b_repr)
    env.values['int'] = BuiltinFunction('int', 1, b_int)
    env.values['float'] = BuiltinFunction('float', 1, b_float)
    env.values['abs'] = BuiltinFunction('abs', 1, b_abs)
    env.values['min'] = BuiltinFunction('min', None, extremum('min', lambda order: order < 0))
    env.values['max'] = BuiltinFunction('max', None, extremum('max', lambda order: order > 0))
    env.values['chr'] = BuiltinFunction('chr', 1, b_chr)
    env.values['ord'] = BuiltinFunction('ord', 1, b_ord)
    env.values['isinstance'] = BuiltinFunction('isinstance', 2, b_isinstance)
    env.values['getattr'] = BuiltinFunction('getattr', None, b_getattr)
    env.values['hasattr'] = BuiltinFunction('hasattr', 2, b_hasattr)
    env.values['setattr'] = BuiltinFunction('setattr', 3, b_setattr)
    env.values['list'] = BuiltinFunction('list', None, b_list)
    env.values['tuple'] = BuiltinFunction('tuple', None, b_tuple)
    env.values.update(BUILTIN_EXCEPTIONS)
    return env


def _is_attribute_error(value: Any) -> bool:
    return isinstance(value, InstanceVal) and value.cls.is_subclass(BUILTIN_EXCEPTIONS['AttributeError'])


def builtin_method(value: Any, name: str) -> Optional[BuiltinFunction]:
    """Return method `name` of a list, dict or string bound to `value`, or None."""
    if isinstance(value, ListVal):
        factory = LIST_METHODS.get(name)
    elif isinstance(value, DictVal):
        factory = DICT_METHODS.get(name)
    elif isinstance(value, str):
        factory = STRING_METHODS.get(name)
    else:
        return None
    if factory is None:
        return None
    return factory(value)


def _method(name: str, low: int, high: Optional[int] = None):
    """Decorator turning `impl(receiver, args)` into a factory of bound BuiltinFunctions."""
    def decorate(impl: Callable[[Any, List[Any]], Any]) -> Callable[[Any], BuiltinFunction]:
        def factory(receiver: Any) -> BuiltinFunction:
            def fn(args: List[Any]) -> Any:
                check_arity(name, args, low, high)
                return impl(receiver, args)
            return BuiltinFunction(name, None, fn)
        return factory
    return decorate


def _index_of(items: List[Any], value: Any) -> int:
    for i, item in enumerate(items):
        if values_equal(item, value):
            return i
    return -1


@_method('append', 1)
def _list_append(lst: ListVal, args: List[Any]) -> Any:
    lst.items.append(args[0])
    return NONE


@_method('insert', 2)
def _list_insert(lst: ListVal, args: List[Any]) -> Any:
    lst.items.insert(_require_int('insert', args[0]), args[1])
    return NONE


@_method('pop', 0, 1)
def _list_pop(lst: ListVal, args: List[Any]) -> Any:
    if not lst.items:
        throw('IndexError', 'pop from empty list')
    index = _require_int('pop', args[0]) if args else -1
    if not -len(lst.items) <= index < len(lst.items):
        throw('IndexError', 'pop index out of range')
    return lst.items.pop(index)


@_method('remove', 1)
def _list_remove(lst: ListVal, args: List[Any]) -> Any:
    index = _index_of(lst.items, args[0])
    if index < 0:
        throw('ValueError', 'list.remove(x): x not in list')
    del lst.items[index]
    return NONE


@_method('index', 1)
def _list_index(lst: ListVal, args: List[Any]) -> Any:
    index = _index_of(lst.items, args[0])
    if index < 0:
        throw('ValueError', 'list.index(x): x not in list')
    return index


@_method('count', 1)
def _list_count(lst: ListVal, args: List[Any]) -> Any:
    return sum(1 for item in lst.items if values_equal(item, args[0]))


@_method('reverse', 0)
def _list_reverse(lst: ListVal, args: List[Any]) -> Any:
    lst.items.reverse()
    return NONE


@_method('sort', 0)
def _list_sort(lst: ListVal, args: List[Any]) -> Any:
    lst.items[:] = sorted(lst.items, key=cmp_to_key(_three_way))
    return NONE


@_method('keys', 0)
def _dict_keys(d: DictVal, args: List[Any]) -> Any:
    return ListVal(list(d.entries.keys()))


@_method('values', 0)
def _dict_values(d: DictVal, args: List[Any]) -> Any:
    return ListVal(list(d.entries.values()))


@_method('items', 0)
def _dict_items(d: DictVal, args: List[Any]) -> Any:
    return ListVal([TupleVal((k, v)) for k, v in d.entries.items()])


@_method('has_key', 1)
def _dict_has_key(d: DictVal, args: List[Any]) -> Any:
    check_hashable(args[0])
    return int(args[0] in d.entries)


@_method('get', 1, 2)
def _dict_get(d: DictVal, args: List[Any]) -> Any:
    check_hashable(args[0])
    default = args[1] if len(args) == 2 else NONE
    return d.entries.get(args[0], default)


def _require_str(name: str, value: Any) -> str:
    if not isinstance(value, str):
        throw('TypeError', f"{name}() expected a string, got {type_name(value)}")
    return value


@_method('upper', 0)
def _str_upper(s: str, args: List[Any]) -> Any:
    return s.upper()


@_method('lower', 0)
def _str_lower(s: str, args: List[Any]) -> Any:
    return s.lower()


@_method('strip', 0)
def _str_strip(s: str, args: List[Any]) -> Any:
    return s.strip()


@_method('split', 0, 1)
def _str_split(s: str, args: List[Any]) -> Any:
    if not args or args[0] is NONE:
        return ListVal(s.split())
    separator = _require_str('split', args[0])
    if separator == '':
        throw('ValueError', 'empty separator')
    return ListVal(s.split(separator))


@_method('join', 1)
def _str_join(s: str, args: List[Any]) -> Any:
    parts = iterate(args[0])
    for part in parts:
        _require_str('join', part)
    return s.join(parts)


@_method('replace', 2)
def _str_replace(s: str, args: List[Any]) -> Any:
    return s.replace(_require_str('replace', args[0]), _require_str('replace', args[1]))


@_method('find', 1)
def _str_find(s: str, args: List[Any]) -> Any:
    return s.find(_require_str('find', args[0]))


LIST_METHODS = {
    'append': _list_append,
    'insert': _list_insert,
    'pop': _list_pop,
    'remove': _list_remove,
    'index': _list_index,
    'count': _list_count,
    'reverse': _list_reverse,
    'sort': _list_sort,
}

DICT_METHODS = {
    'keys': _dict_keys,
    'values': _dict_values,
    'items': _dict_items,
    'has_key': _dict_has_key,
    'get': _dict_get,
}

STRING_METHODS = {
    'upper': _str_upper,
    'lower': _str_lower,
    'strip': _str_strip,
    'split': _str_split,
    'join': _str_join,
    'replace': _str_replace,
    'find': _str_find,
}
