from sepia.interpreter import parse_program, Interpreter


def test_program_4_inheritance(example_source, capsys):
    """Methods defined on a base class resolve on instances of derived classes."""
    ast = parse_program(example_source('program_4'))
    interp = Interpreter()
    interp.run(ast)
    out_lines = capsys.readouterr().out.strip().split('\n')
    assert out_lines == [
        'cat makes a sound',
        'rex barks',
        'I am rex',
        'bit barks 1',
        '1 0',
    ]
