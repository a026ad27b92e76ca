from dataclasses import dataclass
from typing import Any, Optional


@dataclass(eq=False)
class BuiltinFunction:
    """A function implemented by the host. `arity` None means the function checks its own arguments."""
    name: str
    arity: Optional[int]
    fn: Any

    def __repr__(self) -> str:
        return f"<builtin {self.name}>"
