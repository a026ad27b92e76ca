# Sepia language package
# This package provides a tokenizer, parser and tree-walking interpreter for Sepia.
from .errors import SepiaError, LexError, ParseError, ExecutionError
from .interpreter import parse_program, run_program, Interpreter
from .lexer import tokenize
from .parser import parse
from .session import Session

__all__ = [
    'tokenize',
    'parse',
    'parse_program',
    'run_program',
    'Interpreter',
    'Session',
    'SepiaError',
    'LexError',
    'ParseError',
    'ExecutionError',
]
