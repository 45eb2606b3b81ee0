from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Callable, Sequence

from .actions import Action, ChoosePostureAction, DeclineExtraAction, PassAction, PlayCardAction
from .match import MatchState, Phase, StepResult, pending_players, step
from .predictor import OpponentAction, Predictor, posture_index
from .rules import auto_counter, can_play_card
from .types import POSTURES, Card, PlayerState, Posture


@dataclass(frozen=True)
class AISpec:
    """AI tuning parameters.

    difficulty:
      0 = heuristic (snipe, then guard, then evade)
      1+ = predictive, driven by a ``Predictor``
    """

    difficulty: int = 1
    decay: float = 0.9
    alpha: float = 0.4
    noise: float = 0.12


def _playable(player: PlayerState) -> list[Card]:
    return [c for c in player.hand if can_play_card(player, c)]


def choose_card_for_ai(player: PlayerState, opponent: PlayerState) -> Card | None:
    """Pick a playable card, or ``None`` when nothing in hand can be played."""
    playable = _playable(player)
    if not playable:
        return None
    for card in playable:
        if card.type == "attack" and card.target == opponent.posture:
            return card
    for card in playable:
        if card.type == "defense" and card.target == opponent.posture:
            return card
    for card in playable:
        if card.type == "dodge" and card.final is not None and card.final != player.posture:
            return card
    return playable[0]


def choose_posture_for_ai(hand: Sequence[Card]) -> Posture:
    best: Posture = "A"
    best_score = -1.0
    for p in POSTURES:
        score = 0.0
        for card in hand:
            if card.requires is None or card.requires == p:
                score += 1
                # staying put after the card keeps defenses lined up
                if card.final == p:
                    score += 0.25
        if score > best_score:
            best_score = score
            best = p
    return best


def _first(cards: list[Card], pred: Callable[[Card], bool]) -> Card | None:
    for c in cards:
        if pred(c):
            return c
    return None


def choose_card_for_ai_predictive(
    ai: PlayerState, opponent: PlayerState, predictor: Predictor
) -> Card | None:
    """Pick a card by expected value against the predicted opponent action.

    Returns ``None`` when drawing scores best or nothing is playable; the
    caller treats that as a pass.
    """
    playable = _playable(ai)
    options: list[OpponentAction] = list(dict.fromkeys(c.type for c in playable))
    if not options:
        return None

    pick = predictor.choose_action(posture_index(opponent.posture), opponent.breath, options).pick
    if pick == "attack":
        return (
            _first(playable, lambda c: c.type == "attack" and c.target == opponent.posture)
            or _first(playable, lambda c: c.type == "attack")
            or playable[0]
        )
    if pick == "defense":
        return (
            _first(playable, lambda c: c.type == "defense" and c.target == opponent.posture)
            or _first(playable, lambda c: c.type == "defense")
            or playable[0]
        )
    if pick == "dodge":
        return (
            _first(playable, lambda c: c.type == "dodge" and c.final is not None and c.final != ai.posture)
            or _first(playable, lambda c: c.type == "dodge")
            or playable[0]
        )
    return None


@dataclass
class CpuPlayer:
    """Drives one seat of a ``MatchState`` through ``step()``.

    The predictor is owned by this instance; create one CPU per match.
    """

    player: int
    spec: AISpec = field(default_factory=AISpec)
    rng: random.Random = field(default_factory=random.Random)
    predictor: Predictor | None = None

    def __post_init__(self) -> None:
        if self.predictor is None and self.spec.difficulty >= 1:
            self.predictor = Predictor(
                decay=self.spec.decay,
                alpha=self.spec.alpha,
                noise=self.spec.noise,
                rng=self.rng,
            )

    def observe(self, state: MatchState, action: Action) -> None:
        """Record an opponent action before it is applied."""
        if self.predictor is None or action.player == self.player:
            return
        opp = state.players[action.player]
        kind: OpponentAction
        if isinstance(action, PassAction):
            kind = "draw"
        elif isinstance(action, PlayCardAction):
            card = opp.find_card(action.card_id)
            if card is None:
                return
            kind = card.type
        else:
            return
        self.predictor.observe(posture_index(opp.posture), opp.breath, kind)

    def choose(self, state: MatchState) -> Action | None:
        if self.player not in pending_players(state):
            return None
        me = state.players[self.player]
        opp = state.players[state.opponent(self.player)]

        if state.phase == Phase.SETUP:
            return ChoosePostureAction(player=self.player, posture=choose_posture_for_ai(me.hand))
        if state.phase == Phase.EXTRA_WINDOW:
            counter = auto_counter(me, opp)
            if counter is None:
                return DeclineExtraAction(player=self.player)
            return PlayCardAction(player=self.player, card_id=counter.id)

        if self.predictor is not None:
            card = choose_card_for_ai_predictive(me, opp, self.predictor)
        else:
            card = choose_card_for_ai(me, opp)
        if card is None:
            return PassAction(player=self.player)
        return PlayCardAction(player=self.player, card_id=card.id)

    def take_turn(self, state: MatchState) -> StepResult | None:
        action = self.choose(state)
        if action is None:
            return None
        return step(state, action)
