from __future__ import annotations

from dataclasses import dataclass

from .types import Posture


@dataclass(frozen=True)
class ChoosePostureAction:
    player: int
    posture: Posture


@dataclass(frozen=True)
class PlayCardAction:
    player: int
    card_id: str


@dataclass(frozen=True)
class PassAction:
    """Skip revealing this round; draws one card when the hand has room."""

    player: int


@dataclass(frozen=True)
class CancelRevealAction:
    player: int


@dataclass(frozen=True)
class DeclineExtraAction:
    player: int


Action = ChoosePostureAction | PlayCardAction | PassAction | CancelRevealAction | DeclineExtraAction
