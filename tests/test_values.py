import pytest

from sepia.errors import Thrown
from sepia.exceptions import BUILTIN_EXCEPTIONS, describe, new_exception
from sepia.operators import binary_op, compare, iterate, unary_op
from sepia.types import NONE, ClassVal, DictVal, ListVal, TupleVal, is_truthy, repr_value, to_string


def thrown_class(fn, *args):
    with pytest.raises(Thrown) as exc:
        fn(*args)
    return exc.value.value.cls.name


def test_numeric_promotion():
    assert binary_op('+', 1, 2) == 3
    assert isinstance(binary_op('*', 2, 1.5), float)
    assert binary_op('/', 6, 3) == 2.0 and isinstance(binary_op('/', 6, 3), float)
    assert binary_op('%', -7, 3) == 2
    assert binary_op('**', 2, -1) == 0.5


def test_sequence_operators():
    assert binary_op('+', ListVal([1]), ListVal([2])) == ListVal([1, 2])
    assert binary_op('*', 2, TupleVal((1,))) == TupleVal((1, 1))
    assert binary_op('+', 'ab', 'c') == 'abc'


def test_operator_errors():
    assert thrown_class(binary_op, '/', 1, 0) == 'ZeroDivisionError'
    assert thrown_class(binary_op, '%', 1.0, 0) == 'ZeroDivisionError'
    assert thrown_class(binary_op, '-', 'a', 'b') == 'TypeError'
    assert thrown_class(binary_op, '<<', 1, -1) == 'ValueError'
    assert thrown_class(unary_op, '-', 'a') == 'TypeError'


def test_comparisons_yield_integers():
    assert compare('<', 1, 2.5) == 1
    assert compare('==', 'a', 'a') == 1
    assert compare('<>', 1, 2) == 1
    assert compare('<', TupleVal((1, 2)), TupleVal((1, 3))) == 1
    assert compare('in', 'k', DictVal({'k': 1})) == 1
    assert unary_op('not', ListVal([])) == 1


def test_truthiness():
    for value in (NONE, 0, 0.0, '', ListVal([]), TupleVal(()), DictVal({})):
        assert not is_truthy(value)
    for value in (1, -0.5, 'x', ListVal([0]), ClassVal('C')):
        assert is_truthy(value)


def test_iterate_snapshots():
    assert iterate(DictVal({'a': 1, 'b': 2})) == ['a', 'b']
    assert iterate('hi') == ['h', 'i']
    assert thrown_class(iterate, 5) == 'TypeError'


def test_rendering():
    assert repr_value(TupleVal((1,))) == '(1,)'
    assert repr_value(DictVal({'a': ListVal([NONE])})) == "{'a': [None]}"
    assert to_string('text') == 'text'
    assert repr_value(ClassVal('Point')) == '<class Point>'


def test_exception_hierarchy():
    zero = BUILTIN_EXCEPTIONS['ZeroDivisionError']
    assert zero.is_subclass(BUILTIN_EXCEPTIONS['ArithmeticError'])
    assert zero.is_subclass(BUILTIN_EXCEPTIONS['Exception'])
    assert not zero.is_subclass(BUILTIN_EXCEPTIONS['LookupError'])
    assert BUILTIN_EXCEPTIONS['UnboundLocalError'].base is BUILTIN_EXCEPTIONS['NameError']


def test_exception_values():
    error = new_exception('KeyError', "'k'")
    assert error.attrs['message'] == "'k'"
    assert describe(error) == "KeyError: 'k'"
    assert describe(new_exception('ValueError')) == 'ValueError'
    assert describe('legacy') == 'legacy'


def test_cyclic_class_chain_is_rejected():
    a = ClassVal('A')
    b = ClassVal('B', {}, a)
    a.base = b
    with pytest.raises(Thrown):
        a.lookup('missing')


def test_host_overflow_becomes_overflow_error():
    assert thrown_class(binary_op, '+', 10 ** 400, 0.5) == 'OverflowError'
    assert thrown_class(binary_op, '<<', 1, 1 << 40) == 'OverflowError'
    assert binary_op('<<', 1, 10) == 1024


def test_built_in_classes_are_flagged():
    assert BUILTIN_EXCEPTIONS['ValueError'].builtin
    assert not ClassVal('Point').builtin
