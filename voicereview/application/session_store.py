"""
Review Conversation Store
=========================

Holds at most one active ReviewSession per sender. The controller only
talks to the SessionStore interface, so an in-memory dict can be swapped
for a shared or persistent store without touching the state machine.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..domain.models import ReviewSession


class SessionStore(ABC):

    @abstractmethod
    def get(self, sender: str) -> Optional[ReviewSession]:
        ...

    @abstractmethod
    def put(self, session: ReviewSession) -> None:
        """Insert or replace the session for session.sender."""
        ...

    @abstractmethod
    def delete(self, sender: str) -> None:
        ...

    @abstractmethod
    def senders(self) -> List[str]:
        """Snapshot of the senders with an active session."""
        ...

    def __contains__(self, sender: str) -> bool:
        return self.get(sender) is not None


class InMemorySessionStore(SessionStore):
    """Process-local store; sessions are lost on restart."""

    def __init__(self):
        self._sessions: Dict[str, ReviewSession] = {}

    def get(self, sender: str) -> Optional[ReviewSession]:
        return self._sessions.get(sender)

    def put(self, session: ReviewSession) -> None:
        self._sessions[session.sender] = session

    def delete(self, sender: str) -> None:
        self._sessions.pop(sender, None)

    def senders(self) -> List[str]:
        return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)
