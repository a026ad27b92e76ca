import pytest

from sepia.__main__ import main


def test_run_source_string(capsys):
    main(['-c', 'print 1 + 1'])
    assert capsys.readouterr().out == '2\n'


def test_run_program_file(tmp_path, capsys):
    program = tmp_path / 'program.sep'
    program.write_text('for i in range(3):\n    print i\n', encoding='utf-8')
    main([str(program)])
    assert capsys.readouterr().out == '0\n1\n2\n'


@pytest.mark.parametrize('source, stage', [
    ('x = "open', 'Lexical error'),
    ('if x', 'Syntax error'),
    ('print 1 / 0', 'Runtime error'),
])
def test_errors_exit_with_status_1(source, stage, capsys):
    with pytest.raises(SystemExit) as exc:
        main(['-c', source])
    assert exc.value.code == 1
    assert capsys.readouterr().err.startswith(stage + ': line 1')


def test_missing_file(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main([str(tmp_path / 'absent.sep')])
    assert exc.value.code == 1
    assert 'not found' in capsys.readouterr().err


def test_verbose_writes_debug_file(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    main(['-v', '-c', 'def f():\n    return 1\nprint f()'])
    assert capsys.readouterr().out == '1\n'
    assert 'call f()' in (tmp_path / 'debug.txt').read_text()
