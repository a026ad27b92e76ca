"""CLI entry point for the Sepia interpreter.

Usage:
    python -m sepia [-v|-vv|-vvv] [--max-depth N] <program_file>
    python -m sepia [-v...] -c <source>

Options:
  -v            Increase debug verbosity (can be repeated)
  -c SOURCE     Run SOURCE instead of reading a program file
  --max-depth   Limit on parser nesting and call depth (default 100)

Debug information is written to `debug.txt` in the current directory when
verbosity is greater than zero. The exit status is 0 when the program runs
to completion and 1 on a lexical, syntax or uncaught runtime error.
"""

import argparse
import sys
from pathlib import Path

from .errors import SepiaError
from .limits import DEFAULT_MAX_DEPTH
from .session import Session


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Sepia language interpreter")
    parser.add_argument('-v', action='count', default=0, help='increase debug verbosity (can be repeated)')
    parser.add_argument('-c', metavar='SOURCE', dest='source', help='program passed in as a string')
    parser.add_argument('--max-depth', type=int, default=DEFAULT_MAX_DEPTH,
                        help='maximum parser nesting and call depth')
    parser.add_argument('program', nargs='?', help='Sepia program file to execute')
    args = parser.parse_args(argv)

    if args.source is not None:
        source = args.source
    else:
        if not args.program:
            parser.error('missing program file; or use -c SOURCE')
        program_file = Path(args.program)
        if not program_file.exists():
            print(f"Error: file {program_file} not found", file=sys.stderr)
            sys.exit(1)
        with open(program_file, 'r', encoding='utf-8') as f:
            source = f.read()

    with Session(debug_level=args.v, max_depth=args.max_depth) as session:
        try:
            session.run_source(source)
        except SepiaError as e:
            sys.stdout.flush()
            print(f"{e.stage.capitalize()}: {e}", file=sys.stderr)
            sys.exit(1)


if __name__ == '__main__':
    main()
