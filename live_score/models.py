# live_score/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Literal

# -----------------------------
# Match lifecycle / delivery tags
# -----------------------------
MatchStatus = Literal["not_started", "live", "completed"]

EXTRA_NONE = ""
EXTRA_WIDE = "wide"
EXTRA_NO_BALL = "no-ball"

# Deliveries that do not count toward the over and carry one automatic run
ILLEGAL_EXTRAS = frozenset({EXTRA_WIDE, EXTRA_NO_BALL})

BALLS_PER_OVER = 6


def is_legal_delivery(extra: str) -> bool:
    return extra not in ILLEGAL_EXTRAS


def _unknown_keys(data: Dict[str, Any], known: frozenset) -> Dict[str, Any]:
    # Fields written by other tools sharing db.json; carried through untouched
    return {k: v for k, v in data.items() if k not in known}


TEAM_KEYS = frozenset({"id", "name", "short", "logo"})
PLAYER_KEYS = frozenset({"id", "name", "role", "jersey", "teamId", "photo", "stats"})


# -----------------------------
# Roster
# -----------------------------
@dataclass
class Team:
    id: str
    name: str
    short: str = ""
    logo: str = ""
    extras: Dict[str, Any] = field(default_factory=dict, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {**self.extras, "id": self.id, "name": self.name, "short": self.short, "logo": self.logo}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Team":
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            short=data.get("short") or "",
            logo=data.get("logo") or "",
            extras=_unknown_keys(data, TEAM_KEYS),
        )


@dataclass
class PlayerStats:
    runs: int = 0
    balls: int = 0
    wickets: int = 0


@dataclass
class Player:
    """
    Roster entry. ``team_id`` is a weak reference and may point nowhere.
    Stats are carried as-is; ball recording does not update them.
    """
    id: str
    name: str
    role: str = ""
    jersey: str = ""
    team_id: Optional[str] = None
    photo: str = ""
    stats: PlayerStats = field(default_factory=PlayerStats)
    extras: Dict[str, Any] = field(default_factory=dict, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.extras,
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "jersey": self.jersey,
            "teamId": self.team_id,
            "photo": self.photo,
            "stats": {"runs": self.stats.runs, "balls": self.stats.balls, "wickets": self.stats.wickets},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Player":
        stats = data.get("stats") or {}
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            role=data.get("role") or "",
            jersey=str(data.get("jersey") or ""),
            team_id=data.get("teamId"),
            photo=data.get("photo") or "",
            stats=PlayerStats(
                runs=int(stats.get("runs", 0)),
                balls=int(stats.get("balls", 0)),
                wickets=int(stats.get("wickets", 0)),
            ),
            extras=_unknown_keys(data, PLAYER_KEYS),
        )


# -----------------------------
# Ball-by-ball
# -----------------------------
@dataclass(frozen=True)
class BallEvent:
    id: str
    runs: int
    is_wicket: bool
    extra: str
    time: int  # epoch milliseconds

    @property
    def legal(self) -> bool:
        return is_legal_delivery(self.extra)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "runs": self.runs,
            "isWicket": self.is_wicket,
            "extra": self.extra,
            "time": self.time,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BallEvent":
        return cls(
            id=str(data["id"]),
            runs=int(data.get("runs", 0)),
            is_wicket=bool(data.get("isWicket", False)),
            extra=data.get("extra") or EXTRA_NONE,
            time=int(data.get("time", 0)),
        )


@dataclass
class Innings:
    """
    One side's batting turn.

    ``overs`` counts completed overs, ``balls`` the legal deliveries bowled in
    the over in progress (0-5). ``balls_log`` is append-only, in recording order.
    """
    batting_team: Optional[str] = None
    runs: int = 0
    wickets: int = 0
    overs: int = 0
    balls: int = 0
    balls_log: List[BallEvent] = field(default_factory=list)

    @property
    def legal_balls(self) -> int:
        return self.overs * BALLS_PER_OVER + self.balls

    def apply(self, ball: BallEvent) -> None:
        """
        Scoring rule:
        - wide / no-ball: runs + 1 to the total, no ball consumed, wicket flag ignored
        - anything else: runs to the total, wicket counted, ball consumed (rollover at 6)
        """
        if ball.legal:
            self.runs += ball.runs
            if ball.is_wicket:
                self.wickets += 1
            self.balls += 1
            if self.balls >= BALLS_PER_OVER:
                self.overs += 1
                self.balls = 0
        else:
            self.runs += ball.runs + 1

        self.balls_log.append(ball)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "battingTeam": self.batting_team,
            "runs": self.runs,
            "wickets": self.wickets,
            "overs": self.overs,
            "balls": self.balls,
            "ballsLog": [b.to_dict() for b in self.balls_log],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Innings":
        return cls(
            batting_team=data.get("battingTeam"),
            runs=int(data.get("runs", 0)),
            wickets=int(data.get("wickets", 0)),
            overs=int(data.get("overs", 0)),
            balls=int(data.get("balls", 0)),
            balls_log=[BallEvent.from_dict(b) for b in data.get("ballsLog") or []],
        )


# -----------------------------
# Match
# -----------------------------
@dataclass
class Match:
    id: str
    team_a_id: str
    team_b_id: str
    overs: int
    innings: Innings = field(default_factory=Innings)
    status: MatchStatus = "not_started"

    @property
    def is_live(self) -> bool:
        return self.status == "live"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "teamAId": self.team_a_id,
            "teamBId": self.team_b_id,
            "overs": self.overs,
            "innings": self.innings.to_dict(),
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Match":
        return cls(
            id=str(data["id"]),
            team_a_id=str(data.get("teamAId") or ""),
            team_b_id=str(data.get("teamBId") or ""),
            overs=int(data.get("overs", 0)),
            innings=Innings.from_dict(data.get("innings") or {}),
            status=data.get("status") or "not_started",
        )


# -----------------------------
# Whole persisted blob
# -----------------------------
@dataclass
class AppState:
    teams: List[Team] = field(default_factory=list)
    players: List[Player] = field(default_factory=list)
    matches: List[Match] = field(default_factory=list)
    current_match: Optional[Match] = None

    def find_team(self, team_id: Optional[str]) -> Optional[Team]:
        if not team_id:
            return None
        for t in self.teams:
            if t.id == team_id:
                return t
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "teams": [t.to_dict() for t in self.teams],
            "players": [p.to_dict() for p in self.players],
            "matches": [m.to_dict() for m in self.matches],
            "currentMatch": self.current_match.to_dict() if self.current_match else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppState":
        matches = [Match.from_dict(m) for m in data.get("matches") or []]

        current = None
        raw_current = data.get("currentMatch")
        if raw_current:
            current = Match.from_dict(raw_current)
            # currentMatch is authoritative; keep the history entry pointing at it
            for idx, m in enumerate(matches):
                if m.id == current.id:
                    matches[idx] = current
                    break
            else:
                matches.append(current)

        return cls(
            teams=[Team.from_dict(t) for t in data.get("teams") or []],
            players=[Player.from_dict(p) for p in data.get("players") or []],
            matches=matches,
            current_match=current,
        )


# -----------------------------
# Broadcast events
# -----------------------------
EventType = Literal["match_created", "start_innings", "ball", "match_reset"]


@dataclass(frozen=True)
class MatchEvent:
    """
    One committed transition. ``match`` and ``last_ball`` are wire dicts taken
    at commit time, so later mutations never leak into an already-built event.
    """
    type: EventType
    match: Optional[Dict[str, Any]]
    last_ball: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type, "match": self.match}
        if self.last_ball is not None:
            out["lastBall"] = self.last_ball
        return out
