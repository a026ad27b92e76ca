from pathlib import Path

import pytest

EXAMPLES = Path(__file__).resolve().parent.parent / 'examples'


@pytest.fixture
def example_source():
    """Return the source text of examples/<name>.sep."""
    def load(name: str) -> str:
        with open(EXAMPLES / f'{name}.sep', 'r', encoding='utf-8') as f:
            return f.read()
    return load
