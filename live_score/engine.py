# live_score/engine.py
from __future__ import annotations

import logging
import secrets
import threading
import time
from typing import Any, Callable, Dict, Optional

from live_score.broadcast import BroadcastHub
from live_score.config import DEFAULT_ASSET, DEFAULT_OVERS
from live_score.models import (
    EXTRA_NONE,
    AppState,
    BallEvent,
    Innings,
    Match,
    MatchEvent,
    Player,
    Team,
)
from live_score.overs_math import scoreline
from live_score.store import PersistenceFailure, StateStore

log = logging.getLogger(__name__)


class MatchStateError(Exception):
    """Base class for rejected match operations (no state was mutated)."""
    pass


class InvalidReference(MatchStateError):
    """A referenced team id is not in the roster."""
    pass


class NoActiveMatch(MatchStateError):
    """No current match exists."""
    pass


class MatchNotLive(MatchStateError):
    """Ball recorded while there is no live match."""
    pass


def new_id() -> str:
    # 8 url-safe characters
    return secrets.token_urlsafe(6)


def now_ms() -> int:
    return int(time.time() * 1000)


class MatchEngine:
    """
    Owns the authoritative in-memory state and the current-match pointer.

    Every mutating operation runs validate -> mutate -> persist -> emit inside
    one critical section. Persistence failures are logged and absorbed: the
    in-memory change and the broadcast stand.
    """

    def __init__(
        self,
        store: StateStore,
        hub: Optional[BroadcastHub] = None,
        *,
        id_factory: Callable[[], str] = new_id,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._hub = hub if hub is not None else BroadcastHub()
        self._new_id = id_factory
        self._clock = clock
        self._lock = threading.RLock()
        self._state: AppState = store.load()

    @property
    def hub(self) -> BroadcastHub:
        return self._hub

    # =========================================================
    # READS
    # =========================================================

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return self._state.to_dict()

    def current_match(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            m = self._state.current_match
            return m.to_dict() if m else None

    def scoreline(self) -> Dict[str, Any]:
        with self._lock:
            m = self._state.current_match
            if m is None:
                raise NoActiveMatch("no_match")
            return scoreline(m)

    # =========================================================
    # ROSTER
    # =========================================================

    def add_team(self, name: Optional[str] = None, short: Optional[str] = None, logo: Optional[str] = None) -> Dict[str, Any]:
        with self._lock:
            team_id = self._new_id()
            team = Team(
                id=team_id,
                name=name or f"Team {team_id}",
                short=short or "",
                logo=logo or DEFAULT_ASSET,
            )
            self._state.teams.append(team)
            self._persist("add_team")
            return team.to_dict()

    def add_player(
        self,
        name: Optional[str] = None,
        role: Optional[str] = None,
        jersey: Optional[str] = None,
        team_id: Optional[str] = None,
        photo: Optional[str] = None,
    ) -> Dict[str, Any]:
        # team_id is a weak reference, not checked against the roster
        with self._lock:
            player_id = self._new_id()
            player = Player(
                id=player_id,
                name=name or f"Player {player_id}",
                role=role or "",
                jersey=jersey or "",
                team_id=team_id or None,
                photo=photo or DEFAULT_ASSET,
            )
            self._state.players.append(player)
            self._persist("add_player")
            return player.to_dict()

    # =========================================================
    # MATCH LIFECYCLE
    # =========================================================

    def create_match(self, team_a_id: str, team_b_id: str, overs: Optional[int] = None) -> Dict[str, Any]:
        with self._lock:
            if self._state.find_team(team_a_id) is None or self._state.find_team(team_b_id) is None:
                raise InvalidReference("invalid teams")

            match = Match(
                id=self._new_id(),
                team_a_id=team_a_id,
                team_b_id=team_b_id,
                overs=int(overs or DEFAULT_OVERS),
            )
            # Replaces any previous current match; its history entry is kept as-is
            self._state.matches.append(match)
            self._state.current_match = match

            log.info("Match %s created: %s vs %s, %d overs", match.id, team_a_id, team_b_id, match.overs)
            return self._commit("match_created", match)

    def start_innings(self, batting_team: Optional[str]) -> Dict[str, Any]:
        with self._lock:
            match = self._state.current_match
            if match is None:
                raise NoActiveMatch("no_match")

            match.innings = Innings(batting_team=batting_team)
            match.status = "live"

            log.info("Match %s: innings started, %s batting", match.id, batting_team)
            return self._commit("start_innings", match)

    def record_ball(self, runs: int = 0, is_wicket: bool = False, extra: Optional[str] = None) -> Dict[str, Any]:
        """
        Append one delivery to the live innings.

        Returns the event body: ``{"match": ..., "lastBall": ...}``.
        """
        with self._lock:
            match = self._state.current_match
            if match is None or not match.is_live:
                raise MatchNotLive("no_live_match")

            ball = BallEvent(
                id=self._new_id(),
                runs=int(runs or 0),
                is_wicket=bool(is_wicket),
                extra=extra or EXTRA_NONE,
                time=self._clock(),
            )
            match.innings.apply(ball)

            log.debug(
                "Match %s: ball %s runs=%d wicket=%s extra=%r -> %d/%d (%d.%d)",
                match.id, ball.id, ball.runs, ball.is_wicket, ball.extra,
                match.innings.runs, match.innings.wickets, match.innings.overs, match.innings.balls,
            )
            return self._commit("ball", match, ball)

    def reset_match(self) -> None:
        """Clear the current-match pointer. Past matches stay in the history."""
        with self._lock:
            if self._state.current_match is None:
                return
            log.info("Match %s cleared as current match", self._state.current_match.id)
            self._state.current_match = None
            self._persist("reset_match")
            self._hub.publish(MatchEvent(type="match_reset", match=None).to_dict())

    # =========================================================
    # INTERNALS (caller holds the lock)
    # =========================================================

    def _commit(self, event_type: str, match: Match, ball: Optional[BallEvent] = None) -> Dict[str, Any]:
        self._persist(event_type)

        event = MatchEvent(
            type=event_type,
            match=match.to_dict(),
            last_ball=ball.to_dict() if ball is not None else None,
        )
        # Published under the lock so subscribers see events in commit order
        self._hub.publish(event.to_dict())

        body: Dict[str, Any] = {"match": event.match}
        if event.last_ball is not None:
            body["lastBall"] = event.last_ball
        return body

    def _persist(self, reason: str) -> bool:
        try:
            self._store.save(self._state)
            return True
        except PersistenceFailure as e:
            log.error("State not persisted after %s: %s", reason, e)
            return False
