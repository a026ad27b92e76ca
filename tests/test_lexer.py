import sys

import pytest

from sepia.errors import LexError
from sepia.lexer import tokenize


def types(source):
    return [t.type for t in tokenize(source)]


def test_simple_statement_tokens():
    tokens = tokenize('x = 1\n')
    assert [t.type for t in tokens] == ['NAME', 'OP', 'INT', 'NEWLINE', 'ENDMARKER']
    assert tokens[0].value == 'x'
    assert tokens[2].value == 1
    assert (tokens[2].line, tokens[2].column) == (1, 5)


def test_keywords_are_distinguished_from_names():
    tokens = tokenize('if None: printer = print_\n')
    assert [(t.type, t.value) for t in tokens[:4]] == [
        ('KEYWORD', 'if'), ('KEYWORD', 'None'), ('DELIM', ':'), ('NAME', 'printer'),
    ]


def test_one_indent_and_dedent_per_level():
    source = 'if x:\n    if y:\n        z = 1\nw = 2\n'
    kinds = types(source)
    assert kinds.count('INDENT') == 2
    assert kinds.count('DEDENT') == 2
    # Both dedents come before the token that starts the outer line.
    w = kinds.index('NAME', kinds.index('DEDENT'))
    assert kinds[w - 2:w] == ['DEDENT', 'DEDENT']


def test_dedents_are_flushed_at_end_of_input():
    kinds = types('while x:\n    y = 1')
    assert kinds[-3:] == ['NEWLINE', 'DEDENT', 'ENDMARKER']


def test_tab_advances_to_next_multiple_of_eight():
    # A tab and eight spaces measure the same width.
    kinds = types('if x:\n        a = 1\n\tb = 2\n')
    assert kinds.count('INDENT') == 1
    assert kinds.count('DEDENT') == 1


def test_inconsistent_dedent_is_an_error():
    with pytest.raises(LexError) as exc:
        tokenize('if x:\n    a = 1\n  b = 2\n')
    assert 'unindent does not match' in exc.value.message
    assert exc.value.line == 3


def test_blank_and_comment_lines_produce_no_tokens():
    kinds = types('x = 1\n\n   # just a comment\n\ny = 2  # trailing\n')
    assert kinds == ['NAME', 'OP', 'INT', 'NEWLINE', 'NAME', 'OP', 'INT', 'NEWLINE', 'ENDMARKER']


def test_newlines_inside_brackets_are_ignored():
    kinds = types('x = (1,\n     2)\n')
    assert kinds.count('NEWLINE') == 1
    assert 'INDENT' not in kinds


def test_numbers():
    tokens = tokenize('0x1F 1.5e3 .5 42\n')
    assert [(t.type, t.value) for t in tokens[:4]] == [
        ('INT', 31), ('FLOAT', 1500.0), ('FLOAT', 0.5), ('INT', 42),
    ]


def test_malformed_number():
    with pytest.raises(LexError):
        tokenize('x = 1.2.3\n')
    with pytest.raises(LexError):
        tokenize('x = 12abc\n')


def test_string_escapes():
    tokens = tokenize('"a\\nb" \'it\\\'s\' "\\q"\n')
    assert [t.value for t in tokens[:3]] == ['a\nb', "it's", '\\q']


def test_triple_quoted_string_spans_lines():
    tokens = tokenize('s = """one\ntwo"""\nt = 1\n')
    assert tokens[2].type == 'STRING'
    assert tokens[2].value == 'one\ntwo'
    assert tokens[4].line == 3


def test_unterminated_string_reports_its_start():
    with pytest.raises(LexError) as exc:
        tokenize('x = 1\ny = "abc\nz = 2\n')
    assert exc.value.line == 2
    assert exc.value.column == 5
    assert 'unterminated string' in exc.value.message


def test_unclosed_bracket():
    with pytest.raises(LexError) as exc:
        tokenize('x = [1, 2\n')
    assert "'[' was never closed" in exc.value.message


def test_mismatched_bracket():
    with pytest.raises(LexError):
        tokenize('x = (1]\n')


def test_two_character_operators():
    tokens = tokenize('a <> b != c ** d << e\n')
    ops = [t.value for t in tokens if t.type == 'OP']
    assert ops == ['<>', '!=', '**', '<<']


def test_unexpected_character():
    with pytest.raises(LexError) as exc:
        tokenize('x = $\n')
    assert exc.value.column == 5


def test_non_ascii_digits_are_not_numbers():
    with pytest.raises(LexError) as exc:
        tokenize('x = 1²\n')
    assert (exc.value.line, exc.value.column) == (1, 5)
    with pytest.raises(LexError):
        tokenize('x = ٣\n')


@pytest.mark.skipif(not hasattr(sys, 'get_int_max_str_digits'), reason='no integer digit limit')
def test_integer_literal_past_the_digit_limit():
    with pytest.raises(LexError) as exc:
        tokenize('x = ' + '9' * 5000 + '\n')
    assert (exc.value.line, exc.value.column) == (1, 5)
    assert exc.value.message.startswith('invalid numeric literal')
