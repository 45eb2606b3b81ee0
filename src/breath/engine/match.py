from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Sequence

from .actions import (
    Action,
    CancelRevealAction,
    ChoosePostureAction,
    DeclineExtraAction,
    PassAction,
    PlayCardAction,
)
from .constants import HAND_SIZE, INITIAL_HAND_SIZE, MAX_BREATH
from .deck import SeedOrRng, draw_cards, initial_hand_setup, make_deck, refill_hand
from .rules import can_play_card, has_any_available_move, mark_defeat, resolve_round, resolve_single_action
from .types import POSTURES, Card, DefeatTag, ImpactKind, PlayerState, Posture, Priority, Side

logger = logging.getLogger(__name__)

SIDES: tuple[Side, Side] = ("p1", "p2")


@dataclass(frozen=True)
class MatchConfig:
    hand_size: int = HAND_SIZE
    initial_hand: int = INITIAL_HAND_SIZE
    starting_postures: tuple[Posture, Posture] = ("A", "B")
    # when set, both players pick a posture before the first round
    choose_postures: bool = False
    player_names: tuple[str, str] = ("Player 1", "Player 2")


class Phase(str, Enum):
    SETUP = "setup"
    IDLE = "idle"
    AWAITING_REVEAL = "awaiting_reveal"
    EXTRA_WINDOW = "extra_window"
    GAME_OVER = "game_over"


@dataclass
class StepResult:
    ok: bool
    events: tuple[ImpactKind, ...] = ()
    log: tuple[str, ...] = ()
    error: str | None = None


def _rejected(message: str) -> StepResult:
    return StepResult(ok=False, error=message)


@dataclass
class MatchState:
    config: MatchConfig
    seeds: tuple[SeedOrRng, ...]
    players: list[PlayerState]
    # one shared deck, or one deck per player
    decks: list[tuple[Card, ...]]
    match_id: str = "local"
    priority_owner: Priority = 0
    passed: list[bool] = field(default_factory=lambda: [False, False])
    posture_chosen: list[bool] = field(default_factory=lambda: [True, True])
    extra_pending: int | None = None
    game_over: DefeatTag = None
    discard: list[Card] = field(default_factory=list)
    log: list[str] = field(default_factory=list)  # newest first
    action_log: list[Action] = field(default_factory=list)
    event_log: list[ImpactKind] = field(default_factory=list)

    def opponent(self, player: int) -> int:
        return 1 - player

    @property
    def shared_deck(self) -> bool:
        return len(self.decks) == 1

    def deck_for(self, player: int) -> tuple[Card, ...]:
        return self.decks[0 if self.shared_deck else player]

    def set_deck(self, player: int, deck: tuple[Card, ...]) -> None:
        self.decks[0 if self.shared_deck else player] = deck

    def deck_count(self, player: int) -> int:
        return len(self.deck_for(player))

    @property
    def phase(self) -> Phase:
        if self.game_over is not None:
            return Phase.GAME_OVER
        if not all(self.posture_chosen):
            return Phase.SETUP
        if self.extra_pending is not None:
            return Phase.EXTRA_WINDOW
        if any(p.revealed is not None for p in self.players) or any(self.passed):
            return Phase.AWAITING_REVEAL
        return Phase.IDLE


def pending_players(state: MatchState) -> list[int]:
    """Players the match is waiting on."""
    phase = state.phase
    if phase == Phase.GAME_OVER:
        return []
    if phase == Phase.SETUP:
        return [i for i in (0, 1) if not state.posture_chosen[i]]
    if phase == Phase.EXTRA_WINDOW:
        assert state.extra_pending is not None
        return [state.extra_pending]
    return [i for i in (0, 1) if state.players[i].revealed is None and not state.passed[i]]


def playable_cards(state: MatchState, player: int) -> list[Card]:
    ps = state.players[player]
    return [c for c in ps.hand if can_play_card(ps, c)]


def _push_log(state: MatchState, lines: Iterable[str]) -> None:
    state.log[:0] = list(lines)


def _record(state: MatchState, events: tuple[ImpactKind, ...], lines: Sequence[str]) -> None:
    _push_log(state, lines)
    state.event_log.extend(events)


def _regen_without_priority(state: MatchState) -> list[str]:
    idx = state.opponent(state.priority_owner)
    ps = state.players[idx]
    if ps.breath >= MAX_BREATH:
        return []
    state.players[idx] = replace(ps, breath=min(MAX_BREATH, ps.breath + 1))
    return [f"{ps.name} catches their breath (+1)."]


def _finish_round(state: MatchState, events: tuple[ImpactKind, ...], lines: tuple[str, ...]) -> StepResult:
    """Close the round: refill hands (p1 first) and apply the no-move loss."""
    state.extra_pending = None
    state.passed = [False, False]
    for i in (0, 1):
        r = refill_hand(state.players[i].hand, state.deck_for(i), state.config.hand_size)
        state.players[i] = state.players[i].with_hand(r.hand)
        state.set_deck(i, r.deck)

    loser: DefeatTag = None
    for i in (0, 1):
        if not has_any_available_move(state.players[i], state.deck_count(i), state.config.hand_size):
            loser = mark_defeat(loser, SIDES[i])
    if loser is None:
        return StepResult(ok=True, events=events or (ImpactKind.NONE,), log=lines)

    if loser == "both":
        extra_lines = ["Both players have no available moves. Double defeat."]
        extra_events = (ImpactKind.DEFEAT_P1, ImpactKind.DEFEAT_P2)
    else:
        name = state.players[SIDES.index(loser)].name
        extra_lines = [f"{name} has no available moves and loses."]
        extra_events = (ImpactKind.defeat(loser),)
    state.game_over = loser
    _record(state, extra_events, extra_lines)
    return StepResult(ok=True, events=events + extra_events, log=lines + tuple(extra_lines))


def _after_single(state: MatchState, events: tuple[ImpactKind, ...], lines: tuple[str, ...], defeated: DefeatTag, granted: Side | None, *, regen: bool) -> StepResult:
    if defeated is not None:
        state.game_over = defeated
        state.extra_pending = None
        return StepResult(ok=True, events=events, log=lines)
    if granted is not None:
        state.extra_pending = SIDES.index(granted)
        state.passed = [False, False]
        return StepResult(ok=True, events=events, log=lines)
    if regen:
        regen_lines = _regen_without_priority(state)
        _push_log(state, regen_lines)
        lines = lines + tuple(regen_lines)
    return _finish_round(state, events, lines)


def _resolve_round(state: MatchState) -> StepResult:
    p1, p2 = state.players
    res = resolve_round(p1, p2, state.priority_owner, counter=None)
    state.players = [res.p1, res.p2]
    state.priority_owner = res.next_priority_owner
    state.discard.extend(res.consumed_cards.all())
    _record(state, res.events, res.log)
    if res.defeated is not None:
        state.game_over = res.defeated
        return StepResult(ok=True, events=res.events, log=res.log)
    if res.extra_granted_to is not None:
        state.extra_pending = SIDES.index(res.extra_granted_to)
        return StepResult(ok=True, events=res.events, log=res.log)
    return _finish_round(state, res.events, res.log)


def _resolve_lone(state: MatchState, actor: int, prior: tuple[str, ...] = ()) -> StepResult:
    target = state.opponent(actor)
    res = resolve_single_action(state.players[actor], state.players[target], SIDES[actor])
    state.players[actor] = res.actor
    state.players[target] = res.target
    state.discard.extend(res.consumed_cards.all())
    _record(state, res.events, res.log)
    return _after_single(state, res.events, prior + res.log, res.defeated, res.extra_granted_to, regen=True)


def _resolve_extra(state: MatchState, actor: int, card: Card) -> StepResult:
    target = state.opponent(actor)
    res = resolve_single_action(
        state.players[actor].with_revealed(card),
        state.players[target],
        SIDES[actor],
        free=True,
    )
    state.players[actor] = res.actor
    state.players[target] = res.target
    state.discard.extend(res.consumed_cards.all())
    _record(state, res.events, res.log)
    return _after_single(state, res.events, res.log, res.defeated, res.extra_granted_to, regen=False)


def _choose_posture(state: MatchState, action: ChoosePostureAction) -> StepResult:
    if state.posture_chosen[action.player]:
        return _rejected("Posture already chosen.")
    if action.posture not in POSTURES:
        return _rejected("Unknown posture.")
    ps = state.players[action.player]
    state.players[action.player] = replace(ps, posture=action.posture)
    state.posture_chosen[action.player] = True
    line = f"{ps.name} takes posture {action.posture}."
    _push_log(state, [line])
    return StepResult(ok=True, log=(line,))


def _play_card(state: MatchState, action: PlayCardAction) -> StepResult:
    if state.phase == Phase.SETUP:
        return _rejected("Choose a posture first.")
    p = action.player
    ps = state.players[p]

    if state.extra_pending is not None:
        if state.extra_pending != p:
            return _rejected("Not your counter window.")
        card = ps.find_card(action.card_id)
        if card is None:
            return _rejected("Card is not in your hand.")
        if not can_play_card(ps, card):
            return _rejected("Posture requirement or breath not met.")
        return _resolve_extra(state, p, card)

    if ps.revealed is not None:
        return _rejected("A card is already revealed this round.")
    if state.passed[p]:
        return _rejected("You already passed this round.")
    card = ps.find_card(action.card_id)
    if card is None:
        return _rejected("Card is not in your hand.")
    if not can_play_card(ps, card):
        return _rejected("Posture requirement or breath not met.")

    state.players[p] = ps.without_card(card.id).with_revealed(card)
    opp = state.opponent(p)
    if state.players[opp].revealed is not None:
        return _resolve_round(state)
    if state.passed[opp]:
        return _resolve_lone(state, p)
    return StepResult(ok=True)


def _pass(state: MatchState, action: PassAction) -> StepResult:
    if state.phase == Phase.SETUP:
        return _rejected("Choose a posture first.")
    if state.extra_pending is not None:
        return _rejected("A counter window is open.")
    p = action.player
    ps = state.players[p]
    if ps.revealed is not None:
        return _rejected("A card is already revealed this round.")
    if state.passed[p]:
        return _rejected("You already passed this round.")

    lines: list[str] = []
    if len(ps.hand) < state.config.hand_size and state.deck_count(p) > 0:
        drawn = draw_cards(state.deck_for(p), 1)
        state.set_deck(p, drawn.deck)
        state.players[p] = ps.with_hand(ps.hand + drawn.drawn)
        lines.append(f"{ps.name} draws a card.")
    lines.append(f"{ps.name} passes.")
    state.passed[p] = True
    _push_log(state, lines)

    opp = state.opponent(p)
    if state.passed[opp]:
        tail = _regen_without_priority(state) + ["Both players passed."]
        _push_log(state, tail)
        return _finish_round(state, (), tuple(lines + tail))
    if state.players[opp].revealed is not None:
        return _resolve_lone(state, opp, tuple(lines))
    return StepResult(ok=True, log=tuple(lines))


def _cancel_reveal(state: MatchState, action: CancelRevealAction) -> StepResult:
    if state.extra_pending is not None:
        return _rejected("A counter window is open.")
    p = action.player
    ps = state.players[p]
    if ps.revealed is None:
        return _rejected("No revealed card to take back.")
    state.players[p] = replace(ps, hand=ps.hand + (ps.revealed,), revealed=None)
    line = f"{ps.name} takes back their card."
    _push_log(state, [line])
    return StepResult(ok=True, log=(line,))


def _decline_extra(state: MatchState, action: DeclineExtraAction) -> StepResult:
    if state.extra_pending != action.player:
        return _rejected("Not your counter window.")
    line = f"{state.players[action.player].name} lets the extra action go."
    _push_log(state, [line])
    return _finish_round(state, (), (line,))


def step(state: MatchState, action: Action) -> StepResult:
    """Apply a single action to the match state.

    This mutates ``state`` in place; the rules engine it calls never does.
    Invalid actions are rejected with ``ok=False`` and leave the state as it was.
    """
    if state.game_over is not None:
        return _rejected("Match already ended.")
    if action.player not in (0, 1):
        return _rejected("Unknown player.")

    # Log first so replay has a full record of attempted actions
    state.action_log.append(action)
    before = state.phase

    if isinstance(action, PlayCardAction):
        result = _play_card(state, action)
    elif isinstance(action, PassAction):
        result = _pass(state, action)
    elif isinstance(action, CancelRevealAction):
        result = _cancel_reveal(state, action)
    elif isinstance(action, DeclineExtraAction):
        result = _decline_extra(state, action)
    elif isinstance(action, ChoosePostureAction):
        result = _choose_posture(state, action)
    else:
        return _rejected("Unknown action.")

    after = state.phase
    if after != before:
        logger.debug("match %s: %s -> %s", state.match_id, before.value, after.value)
    return result


def new_match(
    seeds: Sequence[SeedOrRng],
    config: MatchConfig | None = None,
    match_id: str = "local",
) -> MatchState:
    """Start a match from one shared deck seed or one seed per player."""
    cfg = config or MatchConfig()
    if len(seeds) not in (1, 2):
        raise ValueError("Provide one shared deck seed or one seed per player.")

    if len(seeds) == 1:
        deal = initial_hand_setup(make_deck(seeds[0]), cfg.initial_hand)
        decks = [deal.deck]
        hands = [deal.p1_hand, deal.p2_hand]
    else:
        decks = []
        hands = []
        for seed in seeds:
            d = draw_cards(make_deck(seed), cfg.initial_hand)
            decks.append(d.deck)
            hands.append(d.drawn)

    players = [
        PlayerState(
            name=cfg.player_names[i],
            posture=cfg.starting_postures[i],
            breath=MAX_BREATH,
            hand=hands[i],
        )
        for i in (0, 1)
    ]
    chosen = not cfg.choose_postures
    state = MatchState(
        config=cfg,
        seeds=tuple(seeds),
        players=players,
        decks=decks,
        match_id=match_id,
        posture_chosen=[chosen, chosen],
    )
    logger.debug("match %s started (%s deck)", match_id, "shared" if state.shared_deck else "split")
    return state


def replay(
    seeds: Sequence[SeedOrRng],
    actions: Iterable[Action],
    config: MatchConfig | None = None,
    match_id: str = "local",
) -> MatchState:
    state = new_match(seeds, config=config, match_id=match_id)
    for a in actions:
        step(state, a)
        if state.game_over is not None:
            break
    return state
