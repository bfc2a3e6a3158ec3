"""
Conversation context kept between questions of one session
"""

import threading
from dataclasses import dataclass
from typing import List, Optional, Tuple

DEFAULT_MAX_TURNS = 20


@dataclass(frozen=True)
class ConversationTurn:
    """One question and what was generated for it (SQL or an explanation)"""
    question: str
    answer: str


class ConversationContext:
    """Ordered short-term memory for the model.

    Holds at most ``max_turns`` turns, evicting the oldest first; pass
    ``max_turns=None`` to keep everything until ``clear()``.
    """

    def __init__(self, max_turns: Optional[int] = DEFAULT_MAX_TURNS):
        if max_turns is not None and max_turns < 1:
            raise ValueError("max_turns must be positive or None")
        self.max_turns = max_turns
        self._turns: List[ConversationTurn] = []
        self._lock = threading.Lock()

    def append(self, question: str, answer: str) -> None:
        with self._lock:
            self._turns.append(ConversationTurn(question, answer))
            if self.max_turns is not None and len(self._turns) > self.max_turns:
                self._turns = self._turns[-self.max_turns:]

    def snapshot(self) -> Tuple[ConversationTurn, ...]:
        with self._lock:
            return tuple(self._turns)

    def window(self, size: int) -> Tuple[ConversationTurn, ...]:
        """The trailing ``size`` turns"""
        if size <= 0:
            return ()
        with self._lock:
            return tuple(self._turns[-size:])

    def clear(self) -> None:
        with self._lock:
            self._turns = []

    def __len__(self) -> int:
        return len(self._turns)

    def __bool__(self) -> bool:
        return True
