"""Realtime fan-out of game events to Socket.IO subscribers.

The registry maps a game code to the socket ids subscribed to it. A code's
entry is created by its first subscriber and removed when the last one
leaves. Delivery is best effort: clients also poll the state endpoints, so
an event emitted while nobody listens is simply dropped.
"""

import enum
import threading
from typing import Dict, Set

from flask import current_app


class EventType(str, enum.Enum):
    PHASE_CHANGED = 'phase_changed'
    ANSWER_REVEALED = 'answer_revealed'
    ROUND_RESULTS = 'round_results'
    VOTING_STARTED = 'voting_started'
    VOTE_TICK = 'vote_tick'
    VOTING_ENDED = 'voting_ended'
    NEXT_ROUND = 'next_round'
    GAME_ENDED = 'game_ended'
    STATE_CHANGED = 'state_changed'


def room_for(game_code: str) -> str:
    return f"game:{game_code.upper()}"


class GameNotifier:
    def __init__(self, socketio=None, namespace='/ws'):
        self.socketio = socketio
        self.namespace = namespace
        self._rooms: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()

    def init_app(self, app, socketio=None):
        if socketio is not None:
            self.socketio = socketio
        # Socket ids belong to the server being (re)bound
        with self._lock:
            self._rooms.clear()
        app.extensions['game_notifier'] = self

    def subscribe(self, game_code: str, sid: str) -> str:
        code = game_code.upper()
        with self._lock:
            self._rooms.setdefault(code, set()).add(sid)
        return room_for(code)

    def unsubscribe(self, game_code: str, sid: str) -> None:
        code = game_code.upper()
        with self._lock:
            sids = self._rooms.get(code)
            if sids is None:
                return
            sids.discard(sid)
            if not sids:
                del self._rooms[code]

    def drop_connection(self, sid: str) -> None:
        """Remove a disconnected socket from every game it followed."""
        with self._lock:
            for code in list(self._rooms):
                sids = self._rooms[code]
                sids.discard(sid)
                if not sids:
                    del self._rooms[code]

    def subscriber_count(self, game_code: str) -> int:
        with self._lock:
            return len(self._rooms.get(game_code.upper(), ()))

    def has_room(self, game_code: str) -> bool:
        with self._lock:
            return game_code.upper() in self._rooms

    def broadcast(self, game_code: str, event: EventType, payload=None) -> bool:
        """Emit ``event`` to every subscriber of ``game_code``.

        Returns False when nobody is subscribed.
        """
        if not self.has_room(game_code):
            return False
        message = {'type': event.value, 'game_code': game_code.upper()}
        message.update(payload or {})
        self.socketio.emit(event.value, message, to=room_for(game_code), namespace=self.namespace)
        return True


def get_notifier() -> GameNotifier:
    return current_app.extensions['game_notifier']
