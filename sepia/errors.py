from typing import Any, Optional


class SepiaError(Exception):
    """Base class for errors surfaced by the tokenizer, parser and evaluator."""
    stage = 'error'

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"line {self.line}, column {self.column}: {self.message}"


class LexError(SepiaError):
    """Malformed literal, bad indentation or unterminated string."""
    stage = 'lexical error'


class ParseError(SepiaError):
    """Unexpected token, incomplete construct or invalid grammar shape."""
    stage = 'syntax error'

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None,
                 expected: Optional[str] = None, found: Optional[str] = None):
        super().__init__(message, line, column)
        self.expected = expected
        self.found = found


class ExecutionError(SepiaError):
    """An exception raised by the program that no handler caught."""
    stage = 'runtime error'

    def __init__(self, message: str, line: Optional[int], column: Optional[int], exception: Any):
        super().__init__(message, line, column)
        self.exception = exception


class Thrown(Exception):
    """Internal exception used to propagate a Sepia exception out of an expression.

    Statement execution turns it into a ``Raised`` signal; a ``Raised``
    signal leaving a function body is turned back into ``Thrown`` at the
    call site.
    """
    def __init__(self, value: Any, line: Optional[int] = None, column: Optional[int] = None):
        super().__init__('thrown')
        self.value = value
        self.line = line
        self.column = column
