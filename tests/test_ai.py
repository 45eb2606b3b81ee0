from __future__ import annotations

import random

from breath.engine.actions import ChoosePostureAction, DeclineExtraAction, PassAction, PlayCardAction
from breath.engine.ai import (
    AISpec,
    CpuPlayer,
    choose_card_for_ai,
    choose_card_for_ai_predictive,
    choose_posture_for_ai,
)
from breath.engine.match import MatchConfig, Phase, new_match, step
from breath.engine.predictor import Predictor
from breath.engine.types import Card, PlayerState


def _card(card_id: str, type_: str, **kw: str) -> Card:
    return Card(id=card_id, type=type_, **kw)  # type: ignore[arg-type]


def _player(posture: str = "A", hand=(), breath: int = 3) -> PlayerState:
    return PlayerState(name="P", posture=posture, breath=breath, hand=tuple(hand))  # type: ignore[arg-type]


ATTACK_B = _card("atkB", "attack", requires="A", target="B", final="A")
ATTACK_C = _card("atkC", "attack", requires="A", target="C", final="A")
GUARD_B = _card("defB", "defense", requires="A", target="B", final="A")
DODGE_C = _card("dodC", "dodge", target="C", final="C")
LOCKED = _card("lock", "attack", requires="C", target="B", final="C")


def test_heuristic_prefers_snipe_then_guard_then_evade() -> None:
    opp = _player(posture="B")
    assert choose_card_for_ai(_player(hand=[ATTACK_C, GUARD_B, ATTACK_B]), opp) == ATTACK_B
    assert choose_card_for_ai(_player(hand=[ATTACK_C, DODGE_C, GUARD_B]), opp) == GUARD_B
    assert choose_card_for_ai(_player(hand=[ATTACK_C, DODGE_C]), opp) == DODGE_C
    assert choose_card_for_ai(_player(hand=[LOCKED, ATTACK_C]), opp) == ATTACK_C


def test_heuristic_returns_none_when_nothing_is_playable() -> None:
    assert choose_card_for_ai(_player(hand=[LOCKED]), _player(posture="B")) is None
    assert choose_card_for_ai(_player(hand=[ATTACK_B], breath=0), _player(posture="B")) is None


def test_posture_choice_follows_card_requirements() -> None:
    hand = [LOCKED, LOCKED, ATTACK_B]
    assert choose_posture_for_ai(hand) == "C"
    # dodges fit anywhere; the final posture breaks the tie
    assert choose_posture_for_ai([DODGE_C]) == "C"
    assert choose_posture_for_ai([]) == "A"


def test_predictor_learns_a_habit() -> None:
    predictor = Predictor(rng=random.Random(0))
    for _ in range(10):
        predictor.observe(posture=0, breath=3, action="attack")

    probs = predictor.predict(posture=0, breath=3)
    assert max(probs, key=probs.__getitem__) == "attack"
    assert abs(sum(probs.values()) - 1.0) < 1e-9

    choice = predictor.choose_action(0, 3, ["attack", "defense", "dodge"])
    assert choice.pick == "defense"
    assert [s.type for s in choice.scored][0] == "defense"


def test_predictor_expects_a_draw_when_out_of_breath() -> None:
    probs = Predictor(rng=random.Random(0)).predict(posture=1, breath=0)
    assert probs["draw"] > 0.99


def test_predictor_snapshot_and_reset() -> None:
    predictor = Predictor(rng=random.Random(0))
    predictor.observe(posture=2, breath=3, action="dodge")
    saved = predictor.snapshot()
    predictor.observe(posture=2, breath=3, action="dodge")
    assert predictor.snapshot() != saved

    predictor.reset(saved)
    assert predictor.snapshot() == saved
    predictor.reset()
    assert predictor.snapshot().count == {"attack": 1.0, "defense": 1.0, "dodge": 1.0, "draw": 1.0}

    # out-of-range postures are ignored
    predictor.observe(posture=5, breath=3, action="attack")
    assert predictor.snapshot().count["attack"] == 1.0


def test_predictive_choice_guards_against_attackers() -> None:
    predictor = Predictor(rng=random.Random(3))
    for _ in range(10):
        predictor.observe(posture=1, breath=3, action="attack")
    ai = _player(hand=[ATTACK_C, GUARD_B, DODGE_C])
    assert choose_card_for_ai_predictive(ai, _player(posture="B"), predictor) == GUARD_B
    assert choose_card_for_ai_predictive(_player(hand=[LOCKED]), _player(posture="B"), predictor) is None


def test_cpu_waits_for_its_turn_and_picks_postures() -> None:
    state = new_match(["v1.DoAKBCEoK"], config=MatchConfig(choose_postures=True))
    cpu = CpuPlayer(player=1, spec=AISpec(difficulty=0))
    action = cpu.choose(state)
    assert isinstance(action, ChoosePostureAction)
    assert action.player == 1

    step(state, ChoosePostureAction(player=1, posture="B"))
    assert cpu.choose(state) is None


def test_cpu_counters_in_extra_window() -> None:
    state = new_match(["v1.DoAKBCEoK"])
    cpu = CpuPlayer(player=1, spec=AISpec(difficulty=0))
    step(state, PlayCardAction(player=0, card_id="D0"))
    step(state, PlayCardAction(player=1, card_id="o1"))
    assert state.phase == Phase.EXTRA_WINDOW

    action = cpu.choose(state)
    assert action == PlayCardAction(player=1, card_id="K3")
    assert cpu.take_turn(state) is not None
    assert state.phase == Phase.IDLE


def test_cpu_declines_without_a_counter() -> None:
    # p2 holds only defenses, so there is nothing to counter with
    state = new_match(["v1.DoAoBo"])
    step(state, PlayCardAction(player=0, card_id="D0"))
    step(state, PlayCardAction(player=1, card_id="o1"))
    assert state.phase == Phase.EXTRA_WINDOW

    cpu = CpuPlayer(player=1, spec=AISpec(difficulty=0))
    assert cpu.choose(state) == DeclineExtraAction(player=1)


def test_cpu_observes_opponent_actions() -> None:
    state = new_match(["v1.DoAKBCEoK"])
    cpu = CpuPlayer(player=1, spec=AISpec(difficulty=1), rng=random.Random(1))
    assert cpu.predictor is not None
    before = cpu.predictor.snapshot().count["attack"]

    cpu.observe(state, PlayCardAction(player=0, card_id="D0"))
    after = cpu.predictor.snapshot()
    assert after.count["attack"] > before * 0.9
    assert after.heat["attack"][0] > 1.0

    cpu.observe(state, PassAction(player=0))
    assert cpu.predictor.snapshot().heat["draw"][0] > 1.0
    # own actions are not learned from
    snap = cpu.predictor.snapshot()
    cpu.observe(state, PassAction(player=1))
    assert cpu.predictor.snapshot() == snap


def test_heuristic_cpu_has_no_predictor() -> None:
    assert CpuPlayer(player=0, spec=AISpec(difficulty=0)).predictor is None
