from sepia.interpreter import parse_program, Interpreter


def test_program_3_functions(example_source, capsys):
    ast = parse_program(example_source('program_3'))
    interp = Interpreter()
    interp.run(ast)
    out_lines = capsys.readouterr().out.strip().split('\n')
    assert out_lines == ['3628800', '6765', 'Hello, Ada', 'Hi, Bob']
