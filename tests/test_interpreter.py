import io
import sys

import pytest

from sepia.errors import ExecutionError, ParseError
from sepia.interpreter import Interpreter, parse_program, run_program
from sepia.signals import NORMAL, BREAK, Raised, Return
from sepia.types import ListVal


def run(source):
    """Run `source` and return everything it printed."""
    out = io.StringIO()
    run_program(source, stdout=out)
    return out.getvalue()


def test_true_division_and_integer_addition():
    env = run_program('x = 7 / 2\ny = 7 + 2\nz = 7.0 + 2\n')
    assert env.get('x') == 3.5
    assert env.get('y') == 9 and isinstance(env.get('y'), int)
    assert env.get('z') == 9.0 and isinstance(env.get('z'), float)


def test_uncaught_exception_reports_position_and_class():
    with pytest.raises(ExecutionError) as exc:
        run_program('x = 1\ny = x / 0\n')
    assert exc.value.line == 2
    assert exc.value.column == 5
    assert exc.value.message == 'ZeroDivisionError: division by zero'
    assert exc.value.exception.cls.name == 'ZeroDivisionError'


def test_error_inside_function_keeps_its_own_position():
    source = 'def f():\n    return [][0]\n\nf()\n'
    with pytest.raises(ExecutionError) as exc:
        run_program(source)
    assert exc.value.line == 2
    assert exc.value.message == 'IndexError: list index out of range'


def test_function_locals_do_not_leak():
    with pytest.raises(ExecutionError) as exc:
        run_program('def f():\n    secret = 1\n\nf()\nprint secret\n')
    assert exc.value.message == "NameError: name 'secret' is not defined"


def test_local_read_before_assignment_ignores_global():
    source = 'x = 1\ndef f():\n    y = x\n    x = 2\n\nf()\n'
    with pytest.raises(ExecutionError) as exc:
        run_program(source)
    assert exc.value.exception.cls.name == 'UnboundLocalError'


def test_functions_do_not_see_enclosing_function_scope():
    source = ('def outer():\n'
              '    hidden = 1\n'
              '    def inner():\n'
              '        return hidden\n'
              '    return inner()\n'
              '\n'
              'outer()\n')
    with pytest.raises(ExecutionError) as exc:
        run_program(source)
    assert exc.value.exception.cls.name == 'NameError'


def test_recursion_limit_is_a_catchable_runtime_error():
    source = ('def f(n):\n'
              '    return f(n + 1)\n'
              '\n'
              'try:\n'
              '    f(0)\n'
              'except RuntimeError, e:\n'
              '    print "caught", e\n')
    assert run(source) == 'caught maximum recursion depth exceeded\n'


def test_recursion_limit_is_configurable():
    source = 'def f(n):\n    if n == 0:\n        return 0\n    return f(n - 1) + 1\n\nprint f(150)\n'
    with pytest.raises(ExecutionError):
        run(source)
    out = io.StringIO()
    run_program(source, max_depth=200, stdout=out)
    assert out.getvalue() == '150\n'


def test_exception_matching():
    source = ('try:\n'
              '    [][1]\n'
              'except (KeyError, IndexError), e:\n'
              '    print "lookup", e\n'
              'try:\n'
              '    1 / 0\n'
              'except ArithmeticError:\n'
              '    print "arithmetic"\n'
              'try:\n'
              '    raise "oops"\n'
              'except "oops":\n'
              '    print "string caught"\n')
    assert run(source) == 'lookup list index out of range\narithmetic\nstring caught\n'


def test_unmatched_handler_lets_exception_propagate():
    with pytest.raises(ExecutionError) as exc:
        run_program('try:\n    {}["k"]\nexcept IndexError:\n    pass\n')
    assert exc.value.message == "KeyError: 'k'"


def test_bare_raise_reraises_handled_exception():
    source = ('try:\n'
              '    try:\n'
              '        {}["k"]\n'
              '    except KeyError:\n'
              '        print "inner"\n'
              '        raise\n'
              'except LookupError, e:\n'
              '    print "outer", e\n')
    assert run(source) == "inner\nouter 'k'\n"


def test_finally_signal_overrides_pending_one():
    source = ('def f():\n'
              '    try:\n'
              '        return 1\n'
              '    finally:\n'
              '        return 2\n'
              '\n'
              'def g():\n'
              '    try:\n'
              '        raise ValueError, "lost"\n'
              '    finally:\n'
              '        return "kept"\n'
              '\n'
              'print f(), g()\n')
    assert run(source) == '2 kept\n'


def test_continue_inside_try_in_loop():
    source = ('for i in range(4):\n'
              '    try:\n'
              '        if i % 2:\n'
              '            continue\n'
              '        print i,\n'
              '    finally:\n'
              '        print "f",\n'
              'print\n')
    assert run(source) == '0 f f 2 f f\n'


def test_raise_forms():
    source = ('class E(Exception):\n'
              '    pass\n'
              'for thrower in [lambda: E, lambda: E("a", "b"), lambda: ValueError]:\n'
              '    try:\n'
              '        raise thrower()\n'
              '    except Exception, e:\n'
              '        print e.__class__.__name__, e.args\n')
    assert run(source) == "E ()\nE ('a', 'b')\nValueError ()\n"


def test_raising_a_non_exception_value_is_a_type_error():
    with pytest.raises(ExecutionError) as exc:
        run_program('raise 42\n')
    assert exc.value.exception.cls.name == 'TypeError'


def test_type_errors():
    with pytest.raises(ExecutionError) as exc:
        run_program('x = 1 + "a"\n')
    assert exc.value.message == "TypeError: unsupported operand type(s) for +: 'int' and 'str'"
    with pytest.raises(ExecutionError) as exc:
        run_program('x = [] < 1\n')
    assert exc.value.exception.cls.name == 'TypeError'


def test_equality_across_types():
    assert run('print 1 == "1", 1 == 1.0, [1, 2] == [1, 2], (1,) != (1,)\n') == '0 1 1 0\n'


def test_identity():
    assert run('a = []\nprint None is None, [] is [], a is a, 1 is not 1\n') == '1 0 1 0\n'


def test_arity_errors():
    with pytest.raises(ExecutionError) as exc:
        run_program('def f(a):\n    pass\nf()\n')
    assert exc.value.message == 'TypeError: f() takes exactly 1 argument (0 given)'
    with pytest.raises(ExecutionError) as exc:
        run_program('def f(a, b=1):\n    pass\nf(1, 2, 3)\n')
    assert exc.value.message == 'TypeError: f() takes at most 2 arguments (3 given)'


def test_init_must_return_none():
    source = 'class C:\n    def __init__(self):\n        return 1\nC()\n'
    with pytest.raises(ExecutionError) as exc:
        run_program(source)
    assert exc.value.exception.cls.name == 'TypeError'


def test_attribute_errors():
    with pytest.raises(ExecutionError) as exc:
        run_program('class C:\n    pass\nC().missing\n')
    assert exc.value.message == "AttributeError: C instance has no attribute 'missing'"


def test_class_attributes_and_instance_storage():
    source = ('class Counter:\n'
              '    total = 0\n'
              '    def add(self, n):\n'
              '        self.total = self.total + n\n'
              '        return self\n'
              'c = Counter()\n'
              'c.add(2).add(3)\n'
              'print c.total, Counter.total\n')
    assert run(source) == '5 0\n'


def test_base_class_must_be_a_class():
    with pytest.raises(ExecutionError) as exc:
        run_program('class C(1):\n    pass\n')
    assert exc.value.exception.cls.name == 'TypeError'


def test_import_raises_import_error():
    source = 'try:\n    import os\nexcept ImportError, e:\n    print e\n'
    assert run(source) == 'No module named os\n'


def test_del_statement():
    source = 'd = {"a": 1, "b": 2}\ndel d["a"]\nl = [1, 2, 3]\ndel l[0]\nx = 1\ndel x\nprint d, l\n'
    assert run(source) == "{'b': 2} [2, 3]\n"


def test_unpacking_errors():
    with pytest.raises(ExecutionError) as exc:
        run_program('a, b = 1, 2, 3\n')
    assert exc.value.message == 'ValueError: too many values to unpack'


def test_builtins():
    source = ('print range(5), range(1, 10, 3)\n'
              'print min(3, 1, 2), max([4, 9, 2])\n'
              'print int("42") + 1, float("2.5"), int(3.9)\n'
              'print str(12) + "!", repr("hi")\n'
              'print chr(65), ord("a")\n'
              'print abs(-4), len("abcd"), len({1: 2})\n'
              'print list("ab"), tuple([1])\n')
    assert run(source) == ('[0, 1, 2, 3, 4] [1, 4, 7]\n'
                           '1 9\n'
                           '43 2.5 3\n'
                           "12! 'hi'\n"
                           'A 97\n'
                           '4 4 1\n'
                           "['a', 'b'] (1,)\n")


def test_attribute_builtins():
    source = ('class P:\n'
              '    pass\n'
              'p = P()\n'
              'setattr(p, "x", 5)\n'
              'print hasattr(p, "x"), hasattr(p, "y"), getattr(p, "x"), getattr(p, "y", "none")\n')
    assert run(source) == '1 0 5 none\n'


def test_list_methods():
    source = ('l = [3, 1, 2]\n'
              'l.insert(0, 9)\n'
              'print l.pop(), l.index(1), l.count(3)\n'
              'l.remove(9)\n'
              'l.reverse()\n'
              'print l\n')
    assert run(source) == '2 2 1\n[1, 3]\n'


def test_string_methods():
    source = 'print "  x ".strip(), "a,b".split(","), "aXa".replace("X", "-"), "abc".find("c")\n'
    assert run(source) == "x ['a', 'b'] a-a 2\n"


def test_dict_items_and_unhashable_keys():
    assert run('d = {"k": 1}\nprint d.items(), d.values()\n') == "[('k', 1)] [1]\n"
    with pytest.raises(ExecutionError) as exc:
        run_program('d = {}\nd[[1]] = 2\n')
    assert exc.value.message == "TypeError: unhashable type: 'list'"


def test_self_referencing_list_prints():
    assert run('a = [1]\na.append(a)\nprint a\n') == '[1, [...]]\n'


def test_string_formatting():
    assert run('print "%d-%s" % (4, "x"), "%.2f" % 1.5\n') == '4-x 1.50\n'


def test_execute_returns_signals():
    interp = Interpreter()
    env = interp.new_global_scope()
    program = parse_program('x = 1\n')
    assert interp.execute(program.body[0], env) is NORMAL
    loop = parse_program('while 1:\n    break\n').body[0]
    assert interp.execute(loop.body.statements[0], env) is BREAK
    func = parse_program('def f():\n    return 5\n').body[0]
    assert interp.execute(func.body.statements[0], env) == Return(5)
    signal = interp.execute(parse_program('y = undefined\n').body[0], env)
    assert isinstance(signal, Raised)
    assert (signal.line, signal.column) == (1, 5)
    assert signal.exception.cls.name == 'NameError'


def test_run_mutates_given_scope():
    interp = Interpreter()
    env = interp.new_global_scope()
    interp.run(parse_program('items = [1]\n'), env)
    assert env.get('items') == ListVal([1])
    assert 'items' not in interp.global_env


def test_syntax_error_prevents_any_evaluation(capsys):
    with pytest.raises(ParseError):
        run_program('print "first"\nif\n')
    assert capsys.readouterr().out == ''


def test_debug_trace(tmp_path):
    debug_file = tmp_path / 'debug.txt'
    interp = Interpreter(debug_level=3, debug_file=str(debug_file), stdout=io.StringIO())
    interp.run(parse_program('def f(n):\n    return n\nif f(1):\n    x = 2\n'))
    interp.close()
    trace = debug_file.read_text()
    assert 'define function f(n)' in trace
    assert 'call f(1)' in trace
    assert 'if condition 1 -> True' in trace
    assert 'x = 2' in trace


@pytest.mark.parametrize('source, name', [
    ('x = 10 ** 400 + 0.5\n', 'OverflowError'),
    ('x = 10 ** 400 * 1.0\n', 'OverflowError'),
    ('x = 1 << 100000000000\n', 'OverflowError'),
])
def test_host_arithmetic_limits_raise_sepia_exceptions(source, name):
    with pytest.raises(ExecutionError) as exc:
        run_program(source)
    assert exc.value.exception.cls.name == name
    assert exc.value.line == 1


def test_shifting_zero_by_a_large_count():
    assert run_program('x = 0 << 100000000000\n').get('x') == 0


@pytest.mark.skipif(not hasattr(sys, 'get_int_max_str_digits'), reason='no integer digit limit')
def test_printing_an_integer_past_the_digit_limit_is_catchable():
    source = (
        'try:\n'
        '    print 2 ** 20000\n'
        'except ValueError:\n'
        '    print "too many digits"\n'
    )
    assert run(source) == 'too many digits\n'


def test_built_in_exception_classes_are_read_only():
    with pytest.raises(ExecutionError) as exc:
        run_program('ValueError.__init__ = None\n')
    assert exc.value.exception.cls.name == 'TypeError'
    with pytest.raises(ExecutionError) as exc:
        run_program('del Exception.__init__\n')
    assert exc.value.exception.cls.name == 'TypeError'
    source = (
        'try:\n'
        '    raise ValueError("bad")\n'
        'except ValueError, e:\n'
        '    print e\n'
    )
    assert run(source) == 'bad\n'


def test_subclass_of_built_in_exception_accepts_attributes():
    source = (
        'class AppError(ValueError):\n'
        '    pass\n'
        'AppError.code = 7\n'
        'print AppError.code\n'
    )
    assert run(source) == '7\n'
