from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import pytest

from breath.engine.actions import DeclineExtraAction, PassAction, PlayCardAction
from breath.engine.match import new_match, step
from breath.engine.serialize import (
    action_from_dict,
    action_to_dict,
    card_from_dict,
    card_to_dict,
    sanitize_snapshot,
    snapshot,
    state_update,
)
from breath.engine.types import ImpactKind
from breath.services.telemetry import TelemetryService

SEED = "v1.DoAKBCEoK"


def test_snapshot_is_plain_json() -> None:
    state = new_match([SEED], match_id="m1")
    step(state, PlayCardAction(player=0, card_id="D0"))
    snap = snapshot(state)

    assert json.loads(json.dumps(snap)) == snap
    assert snap["match_id"] == "m1"
    assert snap["phase"] == "awaiting_reveal"
    assert snap["deck_counts"] == [15]
    players = snap["players"]
    assert isinstance(players, dict)
    assert players["p1"]["revealed"]["id"] == "D0"
    assert players["p1"]["hand_count"] == 2


def test_sanitize_hides_the_opponent() -> None:
    state = new_match([SEED])
    step(state, PlayCardAction(player=0, card_id="D0"))
    snap = snapshot(state)

    for_p2 = sanitize_snapshot(snap, "p2")
    p1_view = for_p2["players"]["p1"]  # type: ignore[index]
    assert p1_view["hand"] == []
    assert p1_view["hand_count"] == 2
    assert p1_view["revealed"] is None
    assert p1_view["has_revealed"] is True
    assert len(for_p2["players"]["p2"]["hand"]) == 3  # type: ignore[index]
    assert "action_log" not in for_p2

    for_p1 = sanitize_snapshot(snap, "p1")
    assert for_p1["players"]["p1"]["revealed"]["id"] == "D0"  # type: ignore[index]

    spectator = sanitize_snapshot(snap, "spectator")
    assert spectator["players"]["p1"]["hand"] == []  # type: ignore[index]
    assert spectator["players"]["p2"]["hand"] == []  # type: ignore[index]
    # the source snapshot is untouched
    assert len(snap["players"]["p1"]["hand"]) == 2  # type: ignore[index]


def test_state_update_message() -> None:
    state = new_match([SEED], match_id="m2")
    step(state, PlayCardAction(player=0, card_id="D0"))
    res = step(state, PlayCardAction(player=1, card_id="o1"))

    msg = state_update(state, "p1", res.events, res.log)
    assert msg["type"] == "state_update"
    assert msg["match_id"] == "m2"
    assert "extra_granted_p2" in msg["events"]  # type: ignore[operator]
    assert msg["log_delta"] == list(res.log)


def test_action_and_card_dicts() -> None:
    assert action_from_dict(action_to_dict(DeclineExtraAction(player=1))) == DeclineExtraAction(player=1)
    assert action_to_dict(PlayCardAction(player=0, card_id="D0")) == {"type": "play_card", "player": 0, "card_id": "D0"}
    with pytest.raises(ValueError):
        action_from_dict({"type": "shout", "player": 0})
    with pytest.raises(ValueError):
        action_from_dict({"type": "pass"})

    state = new_match([SEED])
    card = state.players[1].hand[0]
    assert card_from_dict(card_to_dict(card)) == card


def test_telemetry_records_match_lifecycle(tmp_path: Path) -> None:
    path = tmp_path / "telemetry" / "events.jsonl"
    telemetry = TelemetryService(path)
    state = new_match([SEED])
    telemetry.match_started(state)

    action = PassAction(player=0)
    telemetry.step_applied(state, action, step(state, action))

    records = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [r["type"] for r in records] == ["match_start", "step"]
    assert records[0]["payload"]["seeds"] == [SEED]
    assert records[1]["payload"]["action"] == {"type": "pass", "player": 0}
    assert records[1]["payload"]["ok"] is True
    assert all("ts" in r for r in records)


def test_telemetry_marks_game_over(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    telemetry = TelemetryService(path)
    state = new_match([SEED])
    state.players[1] = replace(state.players[1], breath=2)
    step(state, PlayCardAction(player=0, card_id="D0"))
    action = PlayCardAction(player=1, card_id="K3")
    result = step(state, action)
    telemetry.step_applied(state, action, result)

    records = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert records[-1]["type"] == "game_over"
    assert records[-1]["payload"]["defeated"] == "p2"
    assert ImpactKind.DEFEAT_P2.value in records[0]["payload"]["events"]
