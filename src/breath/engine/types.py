from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Literal, Optional

Posture = Literal["A", "B", "C"]
CardType = Literal["attack", "defense", "dodge"]
Side = Literal["p1", "p2"]
Priority = Literal[0, 1]  # 0 = p1, 1 = p2
DefeatTag = Optional[Literal["p1", "p2", "both"]]

POSTURES: tuple[Posture, ...] = ("A", "B", "C")


class ImpactKind(str, Enum):
    NONE = "none"
    P1_HITS = "p1_hits"
    P2_HITS = "p2_hits"
    BLOCKED_P1 = "blocked_p1"
    BLOCKED_P2 = "blocked_p2"
    DODGED_P1 = "dodged_p1"
    DODGED_P2 = "dodged_p2"
    EXTRA_GRANTED_P1 = "extra_granted_p1"
    EXTRA_GRANTED_P2 = "extra_granted_p2"
    DEFEAT_P1 = "defeat_p1"
    DEFEAT_P2 = "defeat_p2"
    # reserved, not emitted by the current rules
    MISS_P1 = "miss_p1"
    MISS_P2 = "miss_p2"
    EXTRA_P1 = "extra_p1"
    EXTRA_P2 = "extra_p2"
    STEAL_P1 = "steal_p1"
    STEAL_P2 = "steal_p2"
    SPEND_P1 = "spend_p1"
    SPEND_P2 = "spend_p2"
    GAIN_P1 = "gain_p1"
    GAIN_P2 = "gain_p2"

    @staticmethod
    def hits(side: Side) -> "ImpactKind":
        return ImpactKind.P1_HITS if side == "p1" else ImpactKind.P2_HITS

    @staticmethod
    def blocked(side: Side) -> "ImpactKind":
        return ImpactKind.BLOCKED_P1 if side == "p1" else ImpactKind.BLOCKED_P2

    @staticmethod
    def dodged(side: Side) -> "ImpactKind":
        return ImpactKind.DODGED_P1 if side == "p1" else ImpactKind.DODGED_P2

    @staticmethod
    def extra_granted(side: Side) -> "ImpactKind":
        return ImpactKind.EXTRA_GRANTED_P1 if side == "p1" else ImpactKind.EXTRA_GRANTED_P2

    @staticmethod
    def defeat(side: Side) -> "ImpactKind":
        return ImpactKind.DEFEAT_P1 if side == "p1" else ImpactKind.DEFEAT_P2


def other_side(side: Side) -> Side:
    return "p2" if side == "p1" else "p1"


@dataclass(frozen=True)
class Card:
    id: str
    type: CardType
    requires: Posture | None = None
    target: Posture | None = None
    final: Posture | None = None

    @property
    def is_aggressive(self) -> bool:
        return self.type == "attack"

    def with_id(self, card_id: str) -> "Card":
        return replace(self, id=card_id)


@dataclass(frozen=True)
class PlayerState:
    """One side of the table.

    Instances are never mutated; use the ``with_*`` helpers or
    ``dataclasses.replace`` to derive the next state.
    """

    name: str
    posture: Posture
    breath: int
    hand: tuple[Card, ...] = ()
    revealed: Card | None = None

    def with_revealed(self, card: Card | None) -> "PlayerState":
        return replace(self, revealed=card)

    def with_hand(self, hand: tuple[Card, ...]) -> "PlayerState":
        return replace(self, hand=tuple(hand))

    def without_card(self, card_id: str) -> "PlayerState":
        return replace(self, hand=tuple(c for c in self.hand if c.id != card_id))

    def find_card(self, card_id: str) -> Card | None:
        for c in self.hand:
            if c.id == card_id:
                return c
        return None


@dataclass(frozen=True)
class ConsumedCards:
    p1: tuple[Card, ...] = ()
    p2: tuple[Card, ...] = ()

    def all(self) -> tuple[Card, ...]:
        return self.p1 + self.p2


@dataclass(frozen=True)
class ResolveResult:
    p1: PlayerState
    p2: PlayerState
    events: tuple[ImpactKind, ...]
    log: tuple[str, ...]
    next_priority_owner: Priority
    defeated: DefeatTag
    consumed_cards: ConsumedCards

    @property
    def extra_granted_to(self) -> Side | None:
        return extra_side(self.events)


@dataclass(frozen=True)
class SingleActionResult:
    actor: PlayerState
    target: PlayerState
    events: tuple[ImpactKind, ...]
    log: tuple[str, ...]
    defeated: DefeatTag
    consumed_cards: ConsumedCards

    @property
    def extra_granted_to(self) -> Side | None:
        return extra_side(self.events)


def extra_side(events: tuple[ImpactKind, ...]) -> Side | None:
    if ImpactKind.EXTRA_GRANTED_P1 in events:
        return "p1"
    if ImpactKind.EXTRA_GRANTED_P2 in events:
        return "p2"
    return None
