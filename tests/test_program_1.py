from sepia.interpreter import parse_program, Interpreter


def test_program_1(example_source, capsys):
    ast = parse_program(example_source('program_1'))
    interp = Interpreter()
    interp.run(ast)
    out = capsys.readouterr().out.strip()
    assert out == 'Hello, world!'
