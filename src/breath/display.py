"""Text rendering for the CLI: cards, players and the table."""

from __future__ import annotations

from typing import Sequence

from breath.engine.constants import MAX_BREATH
from breath.engine.match import MatchState, Phase
from breath.engine.rules import can_play_card
from breath.engine.types import Card, PlayerState


def format_card(card: Card) -> str:
    if card.type == "dodge":
        return f"[{card.id}] dodge -> {card.final}"
    req = card.requires or "-"
    return f"[{card.id}] {card.type} req {req} | target {card.target} | ends {card.final}"


def render_deck(deck: Sequence[Card]) -> str:
    return "\n".join(f"{i:>2}. {format_card(c)}" for i, c in enumerate(deck, start=1))


def render_player(p: PlayerState, *, deck_count: int, show_hand: bool, marker: str = "") -> list[str]:
    lines = [f"  {p.name}: posture {p.posture}  breath {'*' * p.breath}{'.' * max(0, MAX_BREATH - p.breath)}  "
             f"hand {len(p.hand)}  deck {deck_count}{marker}"]
    if p.revealed is not None and show_hand:
        lines.append(f"      revealed: {format_card(p.revealed)}")
    elif p.revealed is not None:
        lines.append("      revealed: (face down)")
    if show_hand:
        for i, c in enumerate(p.hand, start=1):
            flag = " " if can_play_card(p, c) else "x"
            lines.append(f"    {flag}{i}. {format_card(c)}")
    return lines


def render_table(state: MatchState, viewer: int | None) -> str:
    """Board view for ``viewer`` (0, 1, or ``None`` to show both hands)."""
    lines = [f"\n{'=' * 50}", f"  Phase: {state.phase.value}  |  Priority: {state.players[state.priority_owner].name}"]
    if state.phase == Phase.EXTRA_WINDOW and state.extra_pending is not None:
        lines.append(f"  {state.players[state.extra_pending].name} may counter for free.")
    lines.append("=" * 50)
    for i, p in enumerate(state.players):
        marker = " <<" if i == state.priority_owner else ""
        lines.extend(render_player(p, deck_count=state.deck_count(i), show_hand=viewer is None or viewer == i, marker=marker))
    return "\n".join(lines)
