from sepia.interpreter import parse_program, Interpreter


def test_program_9_lambdas(example_source, capsys):
    ast = parse_program(example_source('program_9'))
    interp = Interpreter()
    interp.run(ast)
    out_lines = capsys.readouterr().out.strip().split('\n')
    assert out_lines == [
        '[1, 4, 9]',
        "['a!', 'b!']",
        'default yes []',
        '1 0',
        '1 1 1',
    ]
