from typing import Optional, TextIO

from .environment import Environment
from .interpreter import Interpreter, parse_program
from .limits import DEFAULT_MAX_DEPTH
from .signals import Signal


class Session:
    """A sequence of source units sharing one global scope.

    Each call to `run_source` tokenizes, parses and runs one unit. Names the
    unit binds at module level stay visible to later units. A unit with a
    lexical or syntax error runs no statements at all; a unit that raises
    keeps the bindings it made before the exception.
    """
    def __init__(self, debug_level: int = 0, debug_file: str = 'debug.txt',
                 max_depth: int = DEFAULT_MAX_DEPTH, stdout: Optional[TextIO] = None):
        self.max_depth = max_depth
        self.interpreter = Interpreter(debug_level=debug_level, debug_file=debug_file,
                                       max_depth=max_depth, stdout=stdout)
        self.globals: Environment = self.interpreter.global_env

    def run_source(self, source: str) -> Signal:
        program = parse_program(source, self.max_depth)
        return self.interpreter.run(program, self.globals)

    def run_file(self, path: str) -> Signal:
        with open(path, 'r', encoding='utf-8') as f:
            source = f.read()
        return self.run_source(source)

    def close(self):
        self.interpreter.close()

    def __enter__(self) -> 'Session':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
