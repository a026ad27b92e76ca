from sepia.interpreter import parse_program, Interpreter


def test_program_2_arithmetic(example_source, capsys):
    ast = parse_program(example_source('program_2'))
    interp = Interpreter()
    interp.run(ast)
    out_lines = capsys.readouterr().out.strip().split('\n')
    # Multiplication binds tighter than addition; '/' always yields a float.
    assert out_lines == ['14', '3.5', '9', '1 1024', '3.0', '-3.5', '20 16 2 7 4']
