"""Built-in exception classes.

The hierarchy is built once and shared, the way the host's own built-in
exceptions are. Every error the evaluator detects is raised as an instance
of one of these classes, so programs can catch it with `except`.
"""

from __future__ import annotations

from typing import Any, Dict, List, NoReturn, Optional

from .errors import Thrown
from .types import ClassVal, InstanceVal, TupleVal

# (name, base) in definition order; a base always precedes its subclasses.
_HIERARCHY = [
    ('Exception', None),
    ('ArithmeticError', 'Exception'),
    ('ZeroDivisionError', 'ArithmeticError'),
    ('OverflowError', 'ArithmeticError'),
    ('LookupError', 'Exception'),
    ('IndexError', 'LookupError'),
    ('KeyError', 'LookupError'),
    ('NameError', 'Exception'),
    ('UnboundLocalError', 'NameError'),
    ('TypeError', 'Exception'),
    ('ValueError', 'Exception'),
    ('AttributeError', 'Exception'),
    ('ImportError', 'Exception'),
    ('RuntimeError', 'Exception'),
]


def _build_hierarchy() -> Dict[str, ClassVal]:
    from .builtin_function import BuiltinFunction
    from .types import NONE

    def exception_init(args: List[Any]) -> Any:
        instance = args[0]
        init_exception(instance, args[1:])
        return NONE

    classes: Dict[str, ClassVal] = {}
    for name, base in _HIERARCHY:
        cls = ClassVal(name, {}, classes[base] if base else None, builtin=True)
        if base is None:
            cls.attrs['__init__'] = BuiltinFunction('__init__', None, exception_init)
        classes[name] = cls
    return classes


def init_exception(instance: InstanceVal, args: List[Any]) -> None:
    instance.attrs['args'] = TupleVal(tuple(args))
    instance.attrs['message'] = args[0] if len(args) == 1 else ''


BUILTIN_EXCEPTIONS: Dict[str, ClassVal] = _build_hierarchy()


def new_exception(name: str, message: Optional[str] = None) -> InstanceVal:
    """Create an instance of the built-in exception class `name`."""
    instance = InstanceVal(BUILTIN_EXCEPTIONS[name], {})
    init_exception(instance, [message] if message is not None else [])
    return instance


def throw(name: str, message: str) -> NoReturn:
    """Raise the built-in exception `name` from inside the evaluator."""
    raise Thrown(new_exception(name, message))


def describe(exception: Any) -> str:
    """Render an exception value as `Name: message` for diagnostics."""
    from .types import to_string
    if isinstance(exception, InstanceVal):
        text = to_string(exception)
        return f"{exception.cls.name}: {text}" if text else exception.cls.name
    if isinstance(exception, str):
        return exception
    return to_string(exception)
