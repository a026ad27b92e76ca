from typing import Any, Dict, FrozenSet, Optional

from .exceptions import throw


class Environment:
    """A scope mapping names to values.

    Scoping is two-level. A 'function' or 'class' scope falls back to its
    module's global scope, never to an enclosing function. The 'module'
    scope falls back to the 'builtins' scope, which has no parent.

    A function scope carries the result of `sepia.symbols.analyze_function`:
    reading one of its `local_names` before it is bound raises
    UnboundLocalError instead of falling through to the global scope, and
    writing one of its `global_names` goes to the global scope.
    """
    def __init__(self, parent: Optional['Environment'] = None, kind: str = 'module',
                 local_names: FrozenSet[str] = frozenset(), global_names: FrozenSet[str] = frozenset()):
        self.parent = parent
        self.kind = kind
        self.values: Dict[str, Any] = {}
        self.local_names = local_names
        self.global_names = global_names

    @property
    def global_scope(self) -> 'Environment':
        env = self
        while env.kind in ('function', 'class') and env.parent is not None:
            env = env.parent
        return env

    def get(self, name: str) -> Any:
        if name in self.values:
            return self.values[name]
        if self.kind == 'function' and name in self.local_names:
            throw('UnboundLocalError', f"local variable '{name}' referenced before assignment")
        if self.parent is not None:
            return self.parent.get(name)
        throw('NameError', f"name '{name}' is not defined")

    def set(self, name: str, value: Any) -> None:
        if name in self.global_names:
            self.global_scope.values[name] = value
        else:
            self.values[name] = value

    def delete(self, name: str) -> None:
        target = self.global_scope if name in self.global_names else self
        if name not in target.values:
            throw('NameError', f"name '{name}' is not defined")
        del target.values[name]

    def __contains__(self, name: str) -> bool:
        return name in self.values
