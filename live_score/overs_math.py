# live_score/overs_math.py
from __future__ import annotations

from typing import Any, Dict

from live_score.models import BALLS_PER_OVER, Match


def balls_to_overs(balls: int) -> str:
    """118 -> "19.4" """
    if balls < 0:
        raise ValueError("Balls cannot be negative")
    return f"{balls // BALLS_PER_OVER}.{balls % BALLS_PER_OVER}"


def run_rate(runs: int, balls: int) -> float:
    """Runs per over; 0.0 before the first legal ball."""
    if balls <= 0:
        return 0.0
    return runs / (balls / BALLS_PER_OVER)


def scoreline(match: Match) -> Dict[str, Any]:
    """
    Compact summary of the current innings for scoreboards.

    ``ballsRemaining`` is measured against the match overs limit and floors at
    0; scoring is open-ended, so legal balls past the limit are still counted.
    """
    inn = match.innings
    legal = inn.legal_balls
    limit = match.overs * BALLS_PER_OVER

    return {
        "matchId": match.id,
        "status": match.status,
        "battingTeam": inn.batting_team,
        "score": f"{inn.runs}/{inn.wickets}",
        "runs": inn.runs,
        "wickets": inn.wickets,
        "overs": balls_to_overs(legal),
        "oversLimit": match.overs,
        "runRate": round(run_rate(inn.runs, legal), 2),
        "ballsRemaining": max(0, limit - legal),
        "deliveries": len(inn.balls_log),
    }
