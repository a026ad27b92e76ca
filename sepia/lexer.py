"""Tokenizer for Sepia source text.

`tokenize` turns source text into a list of `lark.Token` objects ending in
ENDMARKER. Indentation is resolved into INDENT and DEDENT tokens using a
stack of column widths that starts as ``[0]``. Tabs advance the width to
the next multiple of TAB_WIDTH.

Token types: KEYWORD, NAME, INT, FLOAT, STRING, OP, DELIM, NEWLINE,
INDENT, DEDENT, ENDMARKER. The token's ``value`` holds the payload: the
parsed number for INT/FLOAT, the decoded text for STRING, and the spelling
for everything else.
"""

from __future__ import annotations

from typing import Any, List, Optional

from lark import Token

from .errors import LexError

TAB_WIDTH = 8

KEYWORDS = frozenset([
    'and', 'as', 'break', 'class', 'continue', 'def', 'del', 'elif', 'else',
    'except', 'finally', 'for', 'from', 'global', 'if', 'import', 'in', 'is',
    'lambda', 'not', 'or', 'pass', 'print', 'raise', 'return', 'try', 'while',
    'None', 'True', 'False',
])

TWO_CHAR_OPERATORS = frozenset(['**', '<<', '>>', '<=', '>=', '==', '!=', '<>'])
OPERATOR_CHARS = frozenset('+-*/%&|^~<>=')
DELIMITER_CHARS = frozenset('()[]{},:.;')
DIGITS = frozenset('0123456789')
BRACKETS = {'(': ')', '[': ']', '{': '}'}

ESCAPES = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    '0': '\0',
    '\\': '\\',
    '\'': '\'',
    '"': '"',
}


class Tokenizer:
    """Single-pass scanner with one character of lookahead (a few for operators and triple quotes)."""

    def __init__(self, source: str):
        self.source = source.replace('\r\n', '\n').replace('\r', '\n')
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Token] = []
        self.indents: List[int] = [0]
        self.brackets: List[Token] = []
        self.at_line_start = True
        self.line_has_tokens = False

    # Character helpers

    def peek(self, offset: int = 0) -> str:
        index = self.pos + offset
        if index < len(self.source):
            return self.source[index]
        return ''

    def advance(self, n: int = 1) -> None:
        for _ in range(n):
            if self.pos >= len(self.source):
                return
            if self.source[self.pos] == '\n':
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.pos += 1

    def emit(self, type_: str, value: Any, line: int, column: int, start_pos: int) -> Token:
        token = Token(type_, value, start_pos, line, column, self.line, self.column, self.pos)
        self.tokens.append(token)
        if type_ not in ('NEWLINE', 'INDENT', 'DEDENT', 'ENDMARKER'):
            self.line_has_tokens = True
        return token

    def error(self, message: str, line: Optional[int] = None, column: Optional[int] = None) -> LexError:
        return LexError(message, self.line if line is None else line, self.column if column is None else column)

    # Main loop

    def tokenize(self) -> List[Token]:
        while self.pos < len(self.source):
            if self.at_line_start and not self.brackets:
                self.read_indentation()
                continue
            c = self.peek()
            if c == '\n':
                if not self.brackets and self.line_has_tokens:
                    self.emit('NEWLINE', '\n', self.line, self.column, self.pos)
                self.advance()
                if not self.brackets:
                    self.at_line_start = True
                    self.line_has_tokens = False
                continue
            if c in ' \t\f':
                self.advance()
                continue
            if c == '#':
                self.skip_comment()
                continue
            if c == '\\':
                if self.peek(1) != '\n':
                    raise self.error('unexpected character after line continuation character')
                self.advance(2)
                continue
            if c in DIGITS or (c == '.' and self.peek(1) in DIGITS):
                self.read_number()
                continue
            if c.isalpha() or c == '_':
                self.read_name()
                continue
            if c in ('"', '\''):
                self.read_string()
                continue
            self.read_operator()
        return self.finish()

    def finish(self) -> List[Token]:
        if self.brackets:
            opener = self.brackets[-1]
            raise self.error(f"unexpected EOF: '{opener.value}' was never closed", opener.line, opener.column)
        if self.line_has_tokens:
            self.emit('NEWLINE', '', self.line, self.column, self.pos)
        while len(self.indents) > 1:
            self.indents.pop()
            self.emit('DEDENT', '', self.line, self.column, self.pos)
        self.emit('ENDMARKER', '', self.line, self.column, self.pos)
        return self.tokens

    def skip_comment(self) -> None:
        while self.pos < len(self.source) and self.peek() != '\n':
            self.advance()

    def read_indentation(self) -> None:
        """Measure a logical line's indentation and reconcile it with the stack.

        Blank and comment-only lines are consumed without producing tokens.
        """
        width = 0
        while True:
            c = self.peek()
            if c == ' ':
                width += 1
            elif c == '\t':
                width = (width // TAB_WIDTH + 1) * TAB_WIDTH
            elif c == '\f':
                width = 0
            else:
                break
            self.advance()
        c = self.peek()
        if c == '#':
            self.skip_comment()
            c = self.peek()
        if c == '\n':
            self.advance()
            return
        if c == '':
            return
        self.at_line_start = False
        line, column, start = self.line, self.column, self.pos
        if width > self.indents[-1]:
            self.indents.append(width)
            self.emit('INDENT', '', line, column, start)
            return
        while width < self.indents[-1]:
            self.indents.pop()
            self.emit('DEDENT', '', line, column, start)
        if width != self.indents[-1]:
            raise self.error('unindent does not match any outer indentation level', line, column)

    # Literals and names

    def read_number(self) -> None:
        line, column, start = self.line, self.column, self.pos
        if self.peek() == '0' and self.peek(1) in ('x', 'X'):
            self.advance(2)
            digits_start = self.pos
            while self.peek() and self.peek() in '0123456789abcdefABCDEF':
                self.advance()
            if self.pos == digits_start:
                raise self.error('invalid hexadecimal literal', line, column)
            self.check_number_end(line, column)
            self.emit('INT', int(self.source[digits_start:self.pos], 16), line, column, start)
            return
        is_float = False
        self.read_digits()
        if self.peek() == '.':
            is_float = True
            self.advance()
            self.read_digits()
            if self.peek() == '.':
                raise self.error('invalid numeric literal: more than one decimal point', line, column)
        if self.peek() in ('e', 'E'):
            is_float = True
            self.advance()
            if self.peek() in ('+', '-'):
                self.advance()
            if self.peek() not in DIGITS:
                raise self.error('invalid numeric literal: exponent has no digits', line, column)
            self.read_digits()
        self.check_number_end(line, column)
        text = self.source[start:self.pos]
        if is_float:
            self.emit('FLOAT', float(text), line, column, start)
        else:
            try:
                value = int(text)
            except ValueError as e:
                # The host caps decimal conversion of very long integers.
                raise self.error(f'invalid numeric literal: {e}', line, column)
            self.emit('INT', value, line, column, start)

    def read_digits(self) -> None:
        while self.peek() in DIGITS:
            self.advance()

    def check_number_end(self, line: int, column: int) -> None:
        c = self.peek()
        if c and (c.isalnum() or c in '_.'):
            raise self.error('invalid numeric literal', line, column)

    def read_name(self) -> None:
        line, column, start = self.line, self.column, self.pos
        while self.peek() and (self.peek().isalnum() or self.peek() == '_'):
            self.advance()
        name = self.source[start:self.pos]
        self.emit('KEYWORD' if name in KEYWORDS else 'NAME', name, line, column, start)

    def read_string(self) -> None:
        line, column, start = self.line, self.column, self.pos
        quote = self.peek()
        triple = self.source.startswith(quote * 3, self.pos)
        self.advance(3 if triple else 1)
        chars: List[str] = []
        while True:
            c = self.peek()
            if c == '':
                kind = 'triple-quoted string literal' if triple else 'string literal'
                raise self.error(f'unterminated {kind}', line, column)
            if c == '\\':
                escaped = self.peek(1)
                if escaped == '':
                    raise self.error('unterminated string literal', line, column)
                self.advance(2)
                if escaped == '\n':
                    continue
                chars.append(ESCAPES.get(escaped, '\\' + escaped))
                continue
            if triple:
                if self.source.startswith(quote * 3, self.pos):
                    self.advance(3)
                    break
            elif c == quote:
                self.advance()
                break
            elif c == '\n':
                raise self.error('unterminated string literal', line, column)
            chars.append(c)
            self.advance()
        self.emit('STRING', ''.join(chars), line, column, start)

    def read_operator(self) -> None:
        line, column, start = self.line, self.column, self.pos
        pair = self.source[self.pos:self.pos + 2]
        if pair in TWO_CHAR_OPERATORS:
            self.advance(2)
            self.emit('OP', pair, line, column, start)
            return
        c = self.peek()
        if c in OPERATOR_CHARS:
            self.advance()
            self.emit('OP', c, line, column, start)
            return
        if c in DELIMITER_CHARS:
            self.advance()
            token = self.emit('DELIM', c, line, column, start)
            if c in BRACKETS:
                self.brackets.append(token)
            elif c in ')]}':
                if not self.brackets:
                    raise self.error(f"unmatched '{c}'", line, column)
                opener = self.brackets.pop()
                if BRACKETS[opener.value] != c:
                    raise self.error(f"closing parenthesis '{c}' does not match opening parenthesis '{opener.value}'",
                                     line, column)
            return
        raise self.error(f'unexpected character {c!r}', line, column)


def tokenize(source: str) -> List[Token]:
    """Convert source text into a list of tokens terminated by ENDMARKER.

    Raises LexError, carrying the offending line and column, on malformed
    input.
    """
    return Tokenizer(source).tokenize()
