"""Bounded undo/redo history.

The web session stores the manager as a plain dict (``to_dict``), so the
states it holds must themselves be JSON-serializable.
"""
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")

DEFAULT_MAX_SIZE = 50


class UndoRedoManager(Generic[T]):
    def __init__(self, initial_state: T, max_size: int = DEFAULT_MAX_SIZE):
        self.states: List[T] = [initial_state]
        self.index = 0
        self.max_size = max(1, max_size)

    def add_state(self, state: T) -> None:
        """Record ``state`` as current. Anything that could have been redone is discarded."""
        self.states = self.states[: self.index + 1]
        self.states.append(state)
        self.index += 1
        if len(self.states) > self.max_size:
            self.states.pop(0)
            self.index -= 1

    def can_undo(self) -> bool:
        return self.index > 0

    def can_redo(self) -> bool:
        return self.index < len(self.states) - 1

    def undo(self) -> Optional[T]:
        if not self.can_undo():
            return None
        self.index -= 1
        return self.states[self.index]

    def redo(self) -> Optional[T]:
        if not self.can_redo():
            return None
        self.index += 1
        return self.states[self.index]

    def current(self) -> T:
        return self.states[self.index]

    def clear(self) -> None:
        self.states = [self.current()]
        self.index = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"states": list(self.states), "index": self.index, "max_size": self.max_size}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "UndoRedoManager":
        states = list(d["states"])
        if not states:
            raise ValueError("undo history must hold at least one state")
        manager = cls(states[0], int(d.get("max_size") or DEFAULT_MAX_SIZE))
        manager.states = states
        manager.index = min(max(int(d.get("index", len(states) - 1)), 0), len(states) - 1)
        return manager
