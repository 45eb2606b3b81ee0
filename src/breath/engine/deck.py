from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence, Union

from .constants import DECK_SIZE, HAND_SIZE, INITIAL_HAND_SIZE
from .rng import Rng, seed_to_rng, shuffle
from .types import POSTURES, Card, CardType

logger = logging.getLogger(__name__)

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
SEED_PREFIX = "v1."
CANONICAL_COUNT = 57
# 21 cards plus an optional checksum character
MAX_PAYLOAD = DECK_SIZE + 1

SeedOrRng = Union[str, int, Callable[[], float], None]


class SeedError(ValueError):
    pass


class CardEncodingError(ValueError):
    pass


def _combination_card(card_type: CardType, idx: int, rem: int) -> Card:
    return Card(
        id=ALPHABET[idx],
        type=card_type,
        requires=POSTURES[rem // 9],
        target=POSTURES[(rem % 9) // 3],
        final=POSTURES[rem % 3],
    )


def idx_to_card(idx: int) -> Card:
    """Canonical card for ``idx``.

    0-26 attack, 27-53 defense, 54-56 dodge. Anything else wraps into the
    alphabet and falls back to a dodge towards A.
    """
    if 0 <= idx < 27:
        return _combination_card("attack", idx, idx)
    if 27 <= idx < 54:
        return _combination_card("defense", idx, idx - 27)
    if 54 <= idx < CANONICAL_COUNT:
        final = POSTURES[idx - 54]
        return Card(id=ALPHABET[idx], type="dodge", target=final, final=final)
    return Card(id=ALPHABET[idx % len(ALPHABET)], type="dodge", target="A", final="A")


def card_to_idx(card: Card) -> int | None:
    for i in range(CANONICAL_COUNT):
        c = idx_to_card(i)
        if c.type != card.type:
            continue
        if c.type == "dodge":
            if c.final == card.final and c.target == card.target:
                return i
        elif c.requires == card.requires and c.target == card.target and c.final == card.final:
            return i
    return None


def checksum_char(payload: str) -> str:
    total = 0
    for ch in payload:
        v = ALPHABET.find(ch)
        if v == -1:
            raise SeedError(f"Character {ch!r} is not part of the seed alphabet.")
        total += v
    return ALPHABET[total % 64]


def strip_checksum(payload: str) -> tuple[str, bool]:
    """Return ``(payload, had_checksum)``.

    The last character is consumed only when it matches the checksum of the
    characters before it; otherwise the whole string stays literal.
    """
    if len(payload) < 2:
        return payload, False
    body, check = payload[:-1], payload[-1]
    try:
        expected = checksum_char(body)
    except SeedError:
        return payload, False
    if expected == check:
        return body, True
    return payload, False


@dataclass(frozen=True)
class SeedCheck:
    seed: str
    payload: str
    has_checksum: bool


def validate_seed(seed: str) -> SeedCheck:
    """Validation layer in front of the decoder. Raises ``SeedError``."""
    s = seed.strip()
    if not s.startswith(SEED_PREFIX):
        raise SeedError(f"Seed must start with {SEED_PREFIX!r}.")
    raw = s[len(SEED_PREFIX):]
    if not raw:
        raise SeedError("Seed payload is empty.")
    if len(raw) > MAX_PAYLOAD:
        raise SeedError(f"Seed payload has {len(raw)} characters (max {MAX_PAYLOAD}).")
    bad = sorted({ch for ch in raw if ch not in ALPHABET})
    if bad:
        raise SeedError(f"Seed contains invalid characters: {''.join(bad)}")
    payload, had_checksum = strip_checksum(raw)
    return SeedCheck(seed=s, payload=payload, has_checksum=had_checksum)


def _decode_payload(raw: str) -> list[Card]:
    payload, had_checksum = strip_checksum(raw)
    if not had_checksum and len(raw) >= 2:
        logger.debug("seed payload %r has no valid checksum; decoding it literally", raw)

    deck: list[Card] = []
    used: set[int] = set()
    for pos, ch in enumerate(payload):
        if len(deck) >= DECK_SIZE:
            break
        idx = ALPHABET.find(ch)
        if idx == -1:
            logger.warning("skipping unknown seed character %r at position %d", ch, pos)
            continue
        deck.append(idx_to_card(idx).with_id(f"{ch}{pos}"))
        used.add(idx)

    # Pad with the unused canonical cards in order
    for idx in range(CANONICAL_COUNT):
        if len(deck) >= DECK_SIZE:
            break
        if idx in used:
            continue
        deck.append(idx_to_card(idx).with_id(f"{ALPHABET[idx]}{len(deck)}"))
        used.add(idx)

    wrap = 0
    while len(deck) < DECK_SIZE:
        idx = wrap % CANONICAL_COUNT
        deck.append(idx_to_card(idx).with_id(f"{ALPHABET[idx]}{len(deck)}"))
        wrap += 1

    return deck[:DECK_SIZE]


def _random_deck(rng: Rng) -> list[Card]:
    indices = list(range(CANONICAL_COUNT))
    shuffle(indices, rng)
    return [
        idx_to_card(idx).with_id(f"x{pos}{ALPHABET[idx]}")
        for pos, idx in enumerate(indices[:DECK_SIZE])
    ]


def make_deck(seed_or_rng: SeedOrRng = None) -> list[Card]:
    """Build a 21-card deck.

    A ``v1.`` string decodes literally; any other string, an int, a float
    generator or ``None`` samples 21 distinct canonical cards.
    """
    if callable(seed_or_rng):
        return _random_deck(seed_or_rng)
    if isinstance(seed_or_rng, str):
        s = seed_or_rng.strip()
        if s.startswith(SEED_PREFIX) and len(s) > len(SEED_PREFIX):
            return _decode_payload(s[len(SEED_PREFIX):])
    return _random_deck(seed_to_rng(seed_or_rng))


def encode_deck_to_v1(deck: Sequence[Card], with_checksum: bool = True) -> str:
    chars: list[str] = []
    for card in deck[:DECK_SIZE]:
        idx = card_to_idx(card)
        if idx is None:
            raise CardEncodingError(f"Card {card.id!r} has no canonical index.")
        chars.append(ALPHABET[idx])
    payload = "".join(chars)
    if with_checksum and payload:
        payload += checksum_char(payload)
    return SEED_PREFIX + payload


@dataclass(frozen=True)
class DrawResult:
    deck: tuple[Card, ...]
    drawn: tuple[Card, ...]


@dataclass(frozen=True)
class RefillResult:
    hand: tuple[Card, ...]
    deck: tuple[Card, ...]


def draw_cards(deck: Iterable[Card], count: int) -> DrawResult:
    remaining = tuple(deck)
    n = max(0, min(count, len(remaining)))
    return DrawResult(deck=remaining[n:], drawn=remaining[:n])


def refill_hand(hand: Iterable[Card], deck: Iterable[Card], size: int = HAND_SIZE) -> RefillResult:
    current = tuple(hand)
    need = max(0, size - len(current))
    if need == 0:
        return RefillResult(hand=current, deck=tuple(deck))
    res = draw_cards(deck, need)
    return RefillResult(hand=current + res.drawn, deck=res.deck)


@dataclass(frozen=True)
class DealResult:
    deck: tuple[Card, ...]
    p1_hand: tuple[Card, ...]
    p2_hand: tuple[Card, ...]


def initial_hand_setup(deck: Iterable[Card], initial_size: int = INITIAL_HAND_SIZE) -> DealResult:
    """Deal alternately (p1, p2, p1, ...) from the front of one shared deck."""
    remaining = list(deck)
    p1_hand: list[Card] = []
    p2_hand: list[Card] = []
    for _ in range(initial_size):
        if remaining:
            p1_hand.append(remaining.pop(0))
        if remaining:
            p2_hand.append(remaining.pop(0))
    return DealResult(deck=tuple(remaining), p1_hand=tuple(p1_hand), p2_hand=tuple(p2_hand))
