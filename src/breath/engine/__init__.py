"""Deterministic, headless rules engine for Breath!.

IMPORTANT: This package must never import the CLI, services or any I/O code.
"""

from .actions import Action, CancelRevealAction, ChoosePostureAction, DeclineExtraAction, PassAction, PlayCardAction
from .deck import (
    CardEncodingError,
    SeedError,
    card_to_idx,
    draw_cards,
    encode_deck_to_v1,
    idx_to_card,
    initial_hand_setup,
    make_deck,
    refill_hand,
    validate_seed,
)
from .match import MatchConfig, MatchState, Phase, StepResult, new_match, replay, step
from .rules import RulesError, can_play_card, has_any_available_move, resolve_round, resolve_single_action
from .types import Card, ImpactKind, PlayerState, Posture

__all__ = [
    "Action",
    "CancelRevealAction",
    "Card",
    "CardEncodingError",
    "ChoosePostureAction",
    "DeclineExtraAction",
    "ImpactKind",
    "MatchConfig",
    "MatchState",
    "PassAction",
    "Phase",
    "PlayCardAction",
    "PlayerState",
    "Posture",
    "RulesError",
    "SeedError",
    "StepResult",
    "can_play_card",
    "card_to_idx",
    "draw_cards",
    "encode_deck_to_v1",
    "has_any_available_move",
    "idx_to_card",
    "initial_hand_setup",
    "make_deck",
    "new_match",
    "refill_hand",
    "replay",
    "resolve_round",
    "resolve_single_action",
    "step",
    "validate_seed",
]
