from __future__ import annotations

from typing import Literal, Mapping, Sequence

from .actions import (
    Action,
    CancelRevealAction,
    ChoosePostureAction,
    DeclineExtraAction,
    PassAction,
    PlayCardAction,
)
from .match import MatchState
from .types import Card, ImpactKind, PlayerState

Role = Literal["p1", "p2", "spectator"]


def card_to_dict(c: Card) -> dict[str, object]:
    return {"id": c.id, "type": c.type, "requires": c.requires, "target": c.target, "final": c.final}


def card_from_dict(raw: Mapping[str, object]) -> Card:
    return Card(
        id=str(raw["id"]),
        type=raw["type"],  # type: ignore[arg-type]
        requires=raw.get("requires"),  # type: ignore[arg-type]
        target=raw.get("target"),  # type: ignore[arg-type]
        final=raw.get("final"),  # type: ignore[arg-type]
    )


def action_to_dict(a: Action) -> dict[str, object]:
    if isinstance(a, PlayCardAction):
        return {"type": "play_card", "player": a.player, "card_id": a.card_id}
    if isinstance(a, PassAction):
        return {"type": "pass", "player": a.player}
    if isinstance(a, CancelRevealAction):
        return {"type": "cancel_reveal", "player": a.player}
    if isinstance(a, DeclineExtraAction):
        return {"type": "decline_extra", "player": a.player}
    if isinstance(a, ChoosePostureAction):
        return {"type": "choose_posture", "player": a.player, "posture": a.posture}
    # should be unreachable
    return {"type": "unknown"}


def action_from_dict(raw: Mapping[str, object]) -> Action:
    t = raw.get("type")
    player = raw.get("player")
    if not isinstance(player, int):
        raise ValueError("Action is missing an integer player.")
    if t == "play_card":
        return PlayCardAction(player=player, card_id=str(raw["card_id"]))
    if t == "pass":
        return PassAction(player=player)
    if t == "cancel_reveal":
        return CancelRevealAction(player=player)
    if t == "decline_extra":
        return DeclineExtraAction(player=player)
    if t == "choose_posture":
        return ChoosePostureAction(player=player, posture=raw["posture"])  # type: ignore[arg-type]
    raise ValueError(f"Unknown action type: {t!r}")


def _player_to_dict(p: PlayerState) -> dict[str, object]:
    return {
        "name": p.name,
        "posture": p.posture,
        "breath": p.breath,
        "hand": [card_to_dict(c) for c in p.hand],
        "hand_count": len(p.hand),
        "revealed": card_to_dict(p.revealed) if p.revealed is not None else None,
    }


def snapshot(state: MatchState) -> dict[str, object]:
    """Return a JSON-serializable canonical snapshot of the current match state."""
    return {
        "match_id": state.match_id,
        "phase": state.phase.value,
        "priority_owner": state.priority_owner,
        "game_over": state.game_over,
        "extra_pending": state.extra_pending,
        "passed": list(state.passed),
        "deck_counts": [len(d) for d in state.decks],
        "discard_count": len(state.discard),
        "log": list(state.log),
        "players": {
            "p1": _player_to_dict(state.players[0]),
            "p2": _player_to_dict(state.players[1]),
        },
        "action_log": [action_to_dict(a) for a in state.action_log],
    }


def sanitize_snapshot(snap: Mapping[str, object], role: Role) -> dict[str, object]:
    """Copy of ``snap`` safe to send to ``role``.

    Hands are emptied except the viewer's own. A card staged by the other
    side is hidden until the round resolves; ``hand_count`` and
    ``has_revealed`` stay visible. The action log is dropped.
    """
    players = snap["players"]
    assert isinstance(players, Mapping)
    out_players: dict[str, object] = {}
    for side in ("p1", "p2"):
        src = players[side]
        assert isinstance(src, Mapping)
        mine = side == role
        hand = src["hand"]
        assert isinstance(hand, list)
        out_players[side] = {
            **src,
            "hand": [dict(c) for c in hand] if mine else [],
            "revealed": dict(src["revealed"]) if mine and src["revealed"] is not None else None,
            "has_revealed": src["revealed"] is not None,
        }
    log = snap["log"]
    assert isinstance(log, list)
    out = {k: v for k, v in snap.items() if k != "action_log"}
    out.update(players=out_players, log=list(log))
    return out


def state_update(
    state: MatchState,
    role: Role,
    events: Sequence[ImpactKind],
    log_delta: Sequence[str],
) -> dict[str, object]:
    return {
        "type": "state_update",
        "match_id": state.match_id,
        "role": role,
        "snapshot": sanitize_snapshot(snapshot(state), role),
        "events": [e.value for e in events],
        "log_delta": list(log_delta),
    }
