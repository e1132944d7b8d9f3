import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum


class State(str, Enum):
    IDLE = "IDLE"

    CREATE_WAIT_LOCATION = "CREATE_WAIT_LOCATION"
    CREATE_WAIT_DATE = "CREATE_WAIT_DATE"
    CREATE_WAIT_TIME = "CREATE_WAIT_TIME"
    CREATE_WAIT_ORG2_NAME = "CREATE_WAIT_ORG2_NAME"

    JOIN_WAIT_SECOND_PLAYER = "JOIN_WAIT_SECOND_PLAYER"


@dataclass
class Session:
    state: State = State.IDLE
    data: dict = field(default_factory=dict)
    updated_at: datetime = field(default_factory=datetime.now)

    def advance(self, state, **data):
        self.state = state
        self.data.update(data)
        self.touch()

    def touch(self):
        self.updated_at = datetime.now()


class SessionStore:
    """Per-user conversation progress. Lives in memory for the process lifetime."""

    def __init__(self):
        self._sessions = {}

    def get(self, user_id):
        if user_id not in self._sessions:
            self._sessions[user_id] = Session()
        return self._sessions[user_id]

    def reset(self, user_id):
        self._sessions[user_id] = Session()
        return self._sessions[user_id]

    def evict_idle(self, max_idle: timedelta, now=None):
        now = now or datetime.now()
        stale = [
            user_id for user_id, session in self._sessions.items()
            if now - session.updated_at > max_idle
        ]
        for user_id in stale:
            del self._sessions[user_id]
        if stale:
            logging.info(f"Evicted {len(stale)} abandoned sessions")
        return len(stale)

    def __len__(self):
        return len(self._sessions)
