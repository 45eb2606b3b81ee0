from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable, Optional

from .constants import ATTACK_COST, ATTACK_DAMAGE, DEFENSE_COST, DODGE_COST, HAND_SIZE, MAX_BREATH
from .types import (
    Card,
    CardType,
    ConsumedCards,
    DefeatTag,
    ImpactKind,
    PlayerState,
    Posture,
    Priority,
    ResolveResult,
    Side,
    SingleActionResult,
    extra_side,
    other_side,
)

# Picks the free counter for a perfect block: (granted player, opponent) -> card from hand
CounterPolicy = Callable[[PlayerState, PlayerState], Optional[Card]]

_COST_BY_TYPE: dict[CardType, int] = {
    "attack": ATTACK_COST,
    "defense": DEFENSE_COST,
    "dodge": DODGE_COST,
}


class RulesError(RuntimeError):
    pass


def cost_of(card: Card) -> int:
    return _COST_BY_TYPE[card.type]


def can_play_card(state: PlayerState, card: Card) -> bool:
    requirement_ok = card.requires is None or card.requires == state.posture
    return requirement_ok and state.breath >= cost_of(card)


def has_any_available_move(state: PlayerState, deck_count: int, hand_size: int = HAND_SIZE) -> bool:
    """A move is a playable card in hand, or room in hand plus a card to draw."""
    can_play = any(can_play_card(state, c) for c in state.hand)
    can_draw = len(state.hand) < hand_size and deck_count > 0
    return can_play or can_draw


def mark_defeat(current: DefeatTag, who: Side) -> DefeatTag:
    if current is None:
        return who
    if current == who:
        return current
    return "both"


def auto_counter(player: PlayerState, opponent: PlayerState) -> Card | None:
    """Default counter: an attack from hand aimed at the opponent's posture."""
    for card in player.hand:
        if card.type != "attack":
            continue
        if card.requires is not None and card.requires != player.posture:
            continue
        if card.target == opponent.posture:
            return card
    return None


@dataclass
class _Table:
    """Scratch state for one resolution; discarded once the result is built."""

    players: dict[Side, PlayerState]
    # posture each side held when the cards were revealed
    opening: dict[Side, Posture]
    events: list[ImpactKind] = field(default_factory=list)
    log: list[str] = field(default_factory=list)
    defeated: DefeatTag = None

    @staticmethod
    def open(p1: PlayerState, p2: PlayerState) -> "_Table":
        return _Table(players={"p1": p1, "p2": p2}, opening={"p1": p1.posture, "p2": p2.posture})

    def stance(self, side: Side) -> Posture:
        # Defense and dodge move their player only after the exchange they answer
        player = self.players[side]
        if player.revealed is not None and not player.revealed.is_aggressive:
            return self.opening[side]
        return player.posture

    def check_breath(self, side: Side) -> None:
        player = self.players[side]
        if player.breath <= 0:
            self.log.append(f"{player.name} ran out of breath!")
            self.events.append(ImpactKind.defeat(side))
            self.defeated = mark_defeat(self.defeated, side)

    def final_events(self) -> tuple[ImpactKind, ...]:
        return tuple(self.events) if self.events else (ImpactKind.NONE,)


def _apply_final(table: _Table, side: Side, card: Card) -> None:
    player = table.players[side]
    if card.final is not None and card.final != player.posture:
        table.players[side] = replace(player, posture=card.final)
        table.log.append(f"{player.name} switches to {card.final}.")


def _strike(table: _Table, who: Side, card: Card) -> None:
    target_id = other_side(who)
    actor = table.players[who]
    target = table.players[target_id]
    guard = target.revealed
    stance = table.stance(target_id)
    landing = guard.final if guard is not None and guard.type == "dodge" else stance

    if (
        guard is not None
        and guard.type == "dodge"
        and stance == card.target
        and guard.final != card.target
    ):
        table.log.append(f"{target.name} dodges out of target {card.target}.")
        table.events.append(ImpactKind.dodged(target_id))
    elif landing != card.target:
        table.log.append(
            f"{actor.name} attacks {card.target}, but {target.name} is in posture {landing}; attack fails."
        )
    elif guard is not None and guard.type == "defense" and guard.target == card.target:
        table.log.append(f"{target.name} blocks target {card.target}.")
        table.events.append(ImpactKind.blocked(target_id))
    else:
        table.players[target_id] = replace(target, breath=target.breath - ATTACK_DAMAGE)
        table.log.append(f"{actor.name} hits {ATTACK_DAMAGE} on {target.name}.")
        table.events.append(ImpactKind.hits(who))
        table.check_breath(target_id)
    _apply_final(table, who, card)


def _act(table: _Table, who: Side, *, free: bool) -> None:
    actor = table.players[who]
    card = actor.revealed
    if card is None:
        raise RulesError(f"{actor.name} has no revealed card to resolve.")

    if free:
        table.log.append(f"{actor.name} performs a counter (free).")
    else:
        table.players[who] = replace(actor, breath=actor.breath - cost_of(card))
        table.log.append(f"{actor.name} spends {cost_of(card)} ({card.type}).")

    target_id = other_side(who)
    opposing = table.players[target_id].revealed

    if card.type == "attack":
        _strike(table, who, card)
    elif card.type == "defense":
        if opposing is not None and opposing.type == "attack" and opposing.target == card.target:
            table.log.append(f"{actor.name} blocks successfully and gains an extra action!")
            table.events.append(ImpactKind.extra_granted(who))
        else:
            table.log.append(f"{actor.name} defends {card.target}, but no matching attack.")
        _apply_final(table, who, card)
    else:
        _apply_final(table, who, card)
        moved = table.players[who]
        if opposing is not None and opposing.type == "attack" and opposing.target == moved.posture:
            table.log.append(f"{moved.name} ends up in the attack target after dodge.")


def _acting_order(p1: PlayerState, p2: PlayerState, priority_owner: Priority) -> tuple[Side, Side]:
    assert p1.revealed is not None and p2.revealed is not None
    a, b = p1.revealed, p2.revealed
    # A defense or dodge answering an attack goes first regardless of priority
    if not a.is_aggressive and b.is_aggressive:
        return ("p1", "p2")
    if not b.is_aggressive and a.is_aggressive:
        return ("p2", "p1")
    return ("p1", "p2") if priority_owner == 0 else ("p2", "p1")


def _play_counter(table: _Table, side: Side, counter: CounterPolicy, consumed: dict[Side, list[Card]]) -> None:
    target_id = other_side(side)
    player = table.players[side].with_revealed(None)
    opponent = table.players[target_id].with_revealed(None)
    card = counter(player, opponent)
    if card is None:
        return
    if player.find_card(card.id) is None:
        raise RulesError(f"Counter card {card.id!r} is not in {player.name}'s hand.")
    consumed[side].append(card)
    table.players[side] = player.without_card(card.id).with_revealed(card)
    table.players[target_id] = opponent
    _act(table, side, free=True)
    table.check_breath(side)


def resolve_round(
    p1: PlayerState,
    p2: PlayerState,
    priority_owner: Priority,
    *,
    counter: CounterPolicy | None = auto_counter,
) -> ResolveResult:
    """Resolve a round where both players revealed a card.

    A perfect block is followed at once by the defender's free counter when
    ``counter`` picks one; pass ``counter=None`` to leave the extra action to
    the caller.
    """
    if p1.revealed is None or p2.revealed is None:
        raise RulesError("resolve_round requires both players to have revealed cards.")

    table = _Table.open(p1, p2)
    consumed: dict[Side, list[Card]] = {"p1": [p1.revealed], "p2": [p2.revealed]}

    for who in _acting_order(p1, p2, priority_owner):
        if table.defeated:
            break
        _act(table, who, free=False)
        table.check_breath(who)

    granted = extra_side(tuple(table.events))
    if granted is not None and not table.defeated and counter is not None:
        _play_counter(table, granted, counter, consumed)

    if not table.defeated:
        for side in ("p1", "p2"):
            player = table.players[side]
            table.players[side] = replace(player, breath=min(MAX_BREATH, player.breath + 1))
        table.log.append("End of round: Both players +1 breath.")

    next_priority: Priority = 1 if priority_owner == 0 else 0

    out: dict[Side, PlayerState] = {}
    for side in ("p1", "p2"):
        played = {c.id for c in consumed[side]}
        player = table.players[side]
        out[side] = replace(player, hand=tuple(c for c in player.hand if c.id not in played), revealed=None)

    return ResolveResult(
        p1=out["p1"],
        p2=out["p2"],
        events=table.final_events(),
        log=tuple(table.log),
        next_priority_owner=next_priority,
        defeated=table.defeated,
        consumed_cards=ConsumedCards(p1=tuple(consumed["p1"]), p2=tuple(consumed["p2"])),
    )


def resolve_single_action(
    actor_state: PlayerState,
    target_state: PlayerState,
    actor_id: Side,
    *,
    free: bool = False,
) -> SingleActionResult:
    """One side acts alone: a lone reveal against a pass, or an extra action."""
    card = actor_state.revealed
    if card is None:
        raise RulesError(f"{actor_state.name} has no revealed card to resolve.")

    target_id = other_side(actor_id)
    players: dict[Side, PlayerState] = {actor_id: actor_state.without_card(card.id), target_id: target_state}
    table = _Table.open(players["p1"], players["p2"])

    _act(table, actor_id, free=free)
    table.check_breath(actor_id)

    consumed: dict[Side, tuple[Card, ...]] = {actor_id: (card,), target_id: ()}
    return SingleActionResult(
        actor=table.players[actor_id].with_revealed(None),
        target=table.players[target_id],
        events=table.final_events(),
        log=tuple(table.log),
        defeated=table.defeated,
        consumed_cards=ConsumedCards(p1=consumed["p1"], p2=consumed["p2"]),
    )
