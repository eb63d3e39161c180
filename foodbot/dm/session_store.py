from typing import Dict

from foodbot.dm.dialogue_engine import Session


class InMemorySessionStore:
    def __init__(self):
        self._data: Dict[str, Session] = {}

    def get(self, session_id: str) -> Session:
        return self._data.setdefault(session_id, Session())

    def set(self, session_id: str, session: Session) -> None:
        self._data[session_id] = session

    def clear(self, session_id: str) -> None:
        self._data.pop(session_id, None)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._data
