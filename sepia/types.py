"""Runtime value model for Sepia.

Integers, floats and strings are represented by the host's ``int``,
``float`` and ``str``. Everything else is one of the classes below. There
is no boolean type: truth values are the integers 1 and 0.

Values are shared by reference. Lists, dicts and instances may refer to
each other and form cycles; reclaiming them is left to the host
collector.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

# Upper bound on the length of a base-class chain.
MAX_CLASS_DEPTH = 64


class NoneVal:
    """Marker object for the Sepia `None` value."""
    def __repr__(self) -> str:
        return 'None'


NONE = NoneVal()


@dataclass
class ListVal:
    """Ordered, mutable sequence."""
    items: List[Any]

    def __repr__(self) -> str:
        return f"ListVal({self.items!r})"


@dataclass(frozen=True)
class TupleVal:
    """Ordered, immutable sequence. Hashable when its items are."""
    items: Tuple[Any, ...]

    def __repr__(self) -> str:
        return f"TupleVal({self.items!r})"


@dataclass
class DictVal:
    """Mapping with unique keys. Keys must be hashable values."""
    entries: Dict[Any, Any]

    def __repr__(self) -> str:
        return f"DictVal({self.entries!r})"


@dataclass(eq=False)
class FunctionVal:
    """A user-defined function or lambda.

    `globals` is the global scope the function was defined in; under the
    two-level scoping rule it is the only scope a call falls back to.
    `local_names` and `global_names` come from the static analysis of the
    body (see `sepia.symbols`).
    """
    name: str
    params: List[str]
    defaults: List[Any]
    body: Any
    globals: Any
    local_names: frozenset = frozenset()
    global_names: frozenset = frozenset()

    @property
    def min_args(self) -> int:
        return len(self.params) - len(self.defaults)

    def __repr__(self) -> str:
        return f"<function {self.name}>"


@dataclass(eq=False)
class ClassVal:
    """A class: a name, an attribute mapping and at most one base class.

    Built-in classes are shared by every interpreter and refuse attribute writes.
    """
    name: str
    attrs: Dict[str, Any] = field(default_factory=dict)
    base: Optional['ClassVal'] = None
    builtin: bool = False

    def chain(self) -> Iterator['ClassVal']:
        """Yield this class and its ancestors, nearest first.

        The walk is bounded by MAX_CLASS_DEPTH so a corrupted (cyclic)
        hierarchy cannot loop forever.
        """
        cls: Optional[ClassVal] = self
        depth = 0
        while cls is not None:
            if depth >= MAX_CLASS_DEPTH:
                from .exceptions import throw
                throw('TypeError', f"class hierarchy of {self.name} is too deep or cyclic")
            yield cls
            cls = cls.base
            depth += 1

    def lookup(self, name: str) -> Any:
        """Return the attribute `name` from the class chain, or None if absent."""
        for cls in self.chain():
            if name in cls.attrs:
                return cls.attrs[name]
        return None

    def is_subclass(self, other: 'ClassVal') -> bool:
        return any(cls is other for cls in self.chain())

    def __repr__(self) -> str:
        return f"<class {self.name}>"


@dataclass(eq=False)
class InstanceVal:
    """An instance: a class reference and its own attribute mapping."""
    cls: ClassVal
    attrs: Dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"<{self.cls.name} instance>"


@dataclass(eq=False)
class BoundMethod:
    """A function retrieved through an instance; calls pass the instance first."""
    instance: InstanceVal
    function: Any

    def __repr__(self) -> str:
        return f"<method {self.cls_name}.{self.function.name}>"

    @property
    def cls_name(self) -> str:
        return self.instance.cls.name


def type_name(value: Any) -> str:
    """Return the Sepia type name of a runtime value."""
    from .builtin_function import BuiltinFunction
    if isinstance(value, int):
        return 'int'
    if isinstance(value, float):
        return 'float'
    if isinstance(value, str):
        return 'str'
    if isinstance(value, NoneVal):
        return 'NoneType'
    if isinstance(value, ListVal):
        return 'list'
    if isinstance(value, TupleVal):
        return 'tuple'
    if isinstance(value, DictVal):
        return 'dict'
    if isinstance(value, FunctionVal):
        return 'function'
    if isinstance(value, BuiltinFunction):
        return 'builtin_function'
    if isinstance(value, BoundMethod):
        return 'instancemethod'
    if isinstance(value, ClassVal):
        return 'class'
    if isinstance(value, InstanceVal):
        return 'instance'
    return type(value).__name__


def is_exception_instance(value: Any) -> bool:
    from .exceptions import BUILTIN_EXCEPTIONS
    return isinstance(value, InstanceVal) and value.cls.is_subclass(BUILTIN_EXCEPTIONS['Exception'])


def to_string(value: Any) -> str:
    """Convert a value to the text `print` and `str()` produce."""
    if isinstance(value, str):
        return value
    if is_exception_instance(value):
        args = value.attrs.get('args')
        if isinstance(args, TupleVal):
            if len(args.items) == 1:
                return to_string(args.items[0])
            if args.items:
                return repr_value(args)
        return ''
    return repr_value(value)


def repr_value(value: Any, _seen: Optional[set] = None) -> str:
    """Return the `repr()` text of a value.

    Containers that (directly or indirectly) contain themselves render the
    repeated part as `[...]` or `{...}`.
    """
    if isinstance(value, int):
        try:
            return repr(value)
        except ValueError as e:
            # The host caps decimal conversion of very large integers.
            from .exceptions import throw
            throw('ValueError', str(e))
    if isinstance(value, str):
        return repr(value)
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, NoneVal):
        return 'None'
    if isinstance(value, (ListVal, TupleVal, DictVal)):
        seen = _seen if _seen is not None else set()
        if id(value) in seen:
            if isinstance(value, ListVal):
                return '[...]'
            if isinstance(value, DictVal):
                return '{...}'
            return '(...)'
        seen.add(id(value))
        try:
            if isinstance(value, ListVal):
                return '[' + ', '.join(repr_value(v, seen) for v in value.items) + ']'
            if isinstance(value, TupleVal):
                if len(value.items) == 1:
                    return '(' + repr_value(value.items[0], seen) + ',)'
                return '(' + ', '.join(repr_value(v, seen) for v in value.items) + ')'
            entries = ', '.join(f"{repr_value(k, seen)}: {repr_value(v, seen)}"
                                for k, v in value.entries.items())
            return '{' + entries + '}'
        finally:
            seen.discard(id(value))
    return repr(value)


def is_truthy(value: Any) -> bool:
    """Truthiness: None, zero and empty containers are false."""
    if isinstance(value, NoneVal):
        return False
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return len(value) > 0
    if isinstance(value, (ListVal, TupleVal)):
        return len(value.items) > 0
    if isinstance(value, DictVal):
        return len(value.entries) > 0
    return True
