# tests/test_engine.py
import logging
import threading

import pytest

from live_score.engine import InvalidReference, MatchEngine, MatchNotLive, NoActiveMatch
from live_score.store import MemoryStore


def innings(engine):
    return engine.current_match()["innings"]


# ---------------------------------------------------------
# Create match
# ---------------------------------------------------------

def test_create_match_starts_not_started_with_empty_innings(engine):
    out = engine.create_match("IND", "AUS", 20)
    match = out["match"]

    assert match["status"] == "not_started"
    assert match["teamAId"] == "IND"
    assert match["teamBId"] == "AUS"
    assert match["overs"] == 20
    assert match["innings"] == {
        "battingTeam": None,
        "runs": 0,
        "wickets": 0,
        "overs": 0,
        "balls": 0,
        "ballsLog": [],
    }
    assert engine.snapshot()["currentMatch"] == match


def test_create_match_defaults_overs_to_twenty(engine):
    match = engine.create_match("IND", "AUS")["match"]
    assert match["overs"] == 20


def test_create_match_unknown_team_keeps_current_pointer(engine):
    first = engine.create_match("IND", "AUS", 20)["match"]

    with pytest.raises(InvalidReference):
        engine.create_match("IND", "NZ", 20)

    with pytest.raises(InvalidReference):
        engine.create_match("", "AUS", 20)

    snap = engine.snapshot()
    assert snap["currentMatch"]["id"] == first["id"]
    assert len(snap["matches"]) == 1


def test_create_match_replaces_current_and_keeps_history(live_engine):
    live_engine.record_ball(4)
    old_id = live_engine.current_match()["id"]

    new = live_engine.create_match("AUS", "IND", 10)["match"]

    snap = live_engine.snapshot()
    assert snap["currentMatch"]["id"] == new["id"] != old_id
    assert [m["id"] for m in snap["matches"]] == [old_id, new["id"]]
    # history entry keeps the scoring done before replacement
    assert snap["matches"][0]["innings"]["runs"] == 4


# ---------------------------------------------------------
# Start innings
# ---------------------------------------------------------

def test_start_innings_requires_current_match(engine):
    with pytest.raises(NoActiveMatch):
        engine.start_innings("IND")
    assert engine.snapshot()["currentMatch"] is None


def test_start_innings_goes_live_and_resets(live_engine):
    live_engine.record_ball(6)
    match = live_engine.start_innings("AUS")["match"]

    assert match["status"] == "live"
    assert match["innings"]["battingTeam"] == "AUS"
    assert match["innings"]["runs"] == 0
    assert match["innings"]["ballsLog"] == []


def test_start_innings_accepts_unknown_batting_team(engine):
    engine.create_match("IND", "AUS", 20)
    match = engine.start_innings("NOT-A-TEAM")["match"]
    assert match["innings"]["battingTeam"] == "NOT-A-TEAM"


# ---------------------------------------------------------
# Record ball: rejections
# ---------------------------------------------------------

def test_record_ball_without_match(engine):
    with pytest.raises(MatchNotLive):
        engine.record_ball(1)
    assert engine.snapshot()["currentMatch"] is None


def test_record_ball_before_innings_started(engine):
    engine.create_match("IND", "AUS", 20)

    with pytest.raises(MatchNotLive):
        engine.record_ball(1)

    assert innings(engine)["ballsLog"] == []


def test_record_ball_after_reset(live_engine):
    live_engine.reset_match()
    with pytest.raises(MatchNotLive):
        live_engine.record_ball(1)


# ---------------------------------------------------------
# Record ball: scoring rule
# ---------------------------------------------------------

def test_boundary_then_wide_scenario(live_engine):
    live_engine.record_ball(4, False, "")
    live_engine.record_ball(0, False, "wide")

    inn = innings(live_engine)
    assert inn["runs"] == 5
    assert inn["wickets"] == 0
    assert inn["overs"] == 0
    assert inn["balls"] == 1
    assert len(inn["ballsLog"]) == 2


def test_six_singles_complete_an_over(live_engine):
    for _ in range(6):
        live_engine.record_ball(1, False, "")

    inn = innings(live_engine)
    assert inn["runs"] == 6
    assert inn["overs"] == 1
    assert inn["balls"] == 0
    assert len(inn["ballsLog"]) == 6


def test_legal_ball_counters_follow_div_mod(live_engine):
    for n in range(1, 20):
        live_engine.record_ball(0)
        inn = innings(live_engine)
        assert inn["balls"] == n % 6
        assert inn["overs"] == n // 6


@pytest.mark.parametrize("extra", ["wide", "no-ball"])
def test_illegal_delivery_adds_one_and_no_ball(live_engine, extra):
    live_engine.record_ball(1)
    before = innings(live_engine)

    live_engine.record_ball(2, False, extra)
    after = innings(live_engine)

    assert after["runs"] == before["runs"] + 3
    assert after["balls"] == before["balls"]
    assert after["overs"] == before["overs"]


def test_wicket_on_no_ball_not_counted(live_engine):
    live_engine.record_ball(0, True, "no-ball")
    assert innings(live_engine)["wickets"] == 0


def test_wicket_on_legal_ball(live_engine):
    live_engine.record_ball(0, True, "")
    live_engine.record_ball(1, True, "bye")
    inn = innings(live_engine)
    assert inn["wickets"] == 2
    assert inn["balls"] == 2
    assert inn["runs"] == 1


def test_scoring_keeps_going_past_limits(engine):
    engine.create_match("IND", "AUS", 1)
    engine.start_innings("IND")

    for _ in range(14):
        engine.record_ball(0, True)

    match = engine.current_match()
    assert match["status"] == "live"
    assert match["innings"]["wickets"] == 14
    assert match["innings"]["overs"] == 2


def test_balls_log_in_call_order(live_engine):
    calls = [(1, False, ""), (0, False, "wide"), (4, False, "no-ball"), (0, True, ""), (2, False, "leg-bye")]
    for runs, wicket, extra in calls:
        live_engine.record_ball(runs, wicket, extra)

    log = innings(live_engine)["ballsLog"]
    assert [(b["runs"], b["isWicket"], b["extra"]) for b in log] == calls
    assert len({b["id"] for b in log}) == len(calls)
    assert [b["time"] for b in log] == sorted(b["time"] for b in log)


def test_record_ball_returns_match_and_last_ball(live_engine):
    out = live_engine.record_ball(3, False, None)

    assert out["lastBall"]["runs"] == 3
    assert out["lastBall"]["extra"] == ""
    assert out["match"]["innings"]["ballsLog"][-1] == out["lastBall"]


def test_snapshot_is_detached_from_engine_state(live_engine):
    snap = live_engine.snapshot()
    snap["currentMatch"]["innings"]["runs"] = 999
    snap["currentMatch"]["innings"]["ballsLog"].append({"id": "x"})

    inn = innings(live_engine)
    assert inn["runs"] == 0
    assert inn["ballsLog"] == []


# ---------------------------------------------------------
# Reset
# ---------------------------------------------------------

def test_reset_match_clears_pointer_only(live_engine):
    match_id = live_engine.current_match()["id"]
    live_engine.reset_match()
    live_engine.reset_match()

    snap = live_engine.snapshot()
    assert snap["currentMatch"] is None
    assert [m["id"] for m in snap["matches"]] == [match_id]

    with pytest.raises(NoActiveMatch):
        live_engine.scoreline()


# ---------------------------------------------------------
# Roster
# ---------------------------------------------------------

def test_add_team_and_player_defaults(engine):
    team = engine.add_team()
    player = engine.add_player(name="Smriti", role="bat", jersey="18", team_id=team["id"])

    assert team["name"] == f"Team {team['id']}"
    assert team["logo"] == "/public/assets/logo.png"
    assert player["teamId"] == team["id"]
    assert player["stats"] == {"runs": 0, "balls": 0, "wickets": 0}

    snap = engine.snapshot()
    assert snap["teams"][-1] == team
    assert snap["players"] == [player]


def test_new_team_usable_in_create_match(engine):
    team = engine.add_team(name="New Zealand", short="NZ")
    match = engine.create_match(team["id"], "IND", 5)["match"]
    assert match["teamAId"] == team["id"]


def test_ball_recording_leaves_player_stats_alone(live_engine):
    player = live_engine.add_player(name="Rohit", team_id="IND")
    live_engine.record_ball(6)
    assert live_engine.snapshot()["players"][0]["stats"] == player["stats"]


# ---------------------------------------------------------
# Persistence
# ---------------------------------------------------------

def test_every_mutation_is_persisted(store, engine):
    engine.create_match("IND", "AUS", 20)
    engine.start_innings("IND")
    engine.record_ball(2)

    assert store.save_count == 3
    assert store.data["currentMatch"]["innings"]["runs"] == 2


def test_engine_restores_from_store(store, live_engine):
    live_engine.record_ball(4)
    live_engine.record_ball(1, False, "wide")

    restored = MatchEngine(store)
    assert restored.snapshot() == live_engine.snapshot()

    restored.record_ball(1)
    assert restored.current_match()["innings"]["runs"] == 7


def test_persistence_failure_keeps_in_memory_change(roster_state, hub, caplog):
    failing = MemoryStore(roster_state, fail_saves=True)
    engine = MatchEngine(failing, hub)

    with caplog.at_level(logging.ERROR, logger="live_score"):
        match = engine.create_match("IND", "AUS", 20)["match"]
        engine.start_innings("IND")
        engine.record_ball(4)

    assert engine.current_match()["id"] == match["id"]
    assert engine.current_match()["innings"]["runs"] == 4
    assert "not persisted" in caplog.text
    assert failing.data["currentMatch"] is None


# ---------------------------------------------------------
# Concurrency
# ---------------------------------------------------------

def test_concurrent_record_ball_does_not_lose_updates(live_engine):
    threads_n = 8
    per_thread = 60

    def worker():
        for _ in range(per_thread):
            live_engine.record_ball(1)

    threads = [threading.Thread(target=worker) for _ in range(threads_n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    total = threads_n * per_thread
    inn = innings(live_engine)
    assert inn["runs"] == total
    assert inn["overs"] == total // 6
    assert inn["balls"] == total % 6
    assert len(inn["ballsLog"]) == total
