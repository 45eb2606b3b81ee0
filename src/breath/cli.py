"""CLI entry point: deck / katas / play / replay subcommands."""

from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from pathlib import Path
from typing import Callable, Sequence

from breath.display import render_deck, render_table
from breath.engine.actions import Action, ChoosePostureAction, DeclineExtraAction, PassAction, PlayCardAction
from breath.engine.ai import AISpec, CpuPlayer
from breath.engine.deck import SeedError, encode_deck_to_v1, make_deck, validate_seed
from breath.engine.match import MatchConfig, MatchState, Phase, new_match, pending_players, step
from breath.engine.serialize import card_to_dict, snapshot
from breath.engine.types import POSTURES
from breath.logging_config import setup_logging
from breath.paths import get_paths
from breath.services.content import ContentError, ContentService
from breath.services.protocol import MessageDecoder, ProtocolError
from breath.services.telemetry import TelemetryService

logger = logging.getLogger(__name__)

Prompt = Callable[[str], str]


def _content() -> ContentService:
    paths = get_paths()
    return ContentService(paths.data_dir, paths.schema_dir)


def _resolve_seeds(args: argparse.Namespace) -> list[str | None]:
    seeds: list[str | None] = list(args.seed or [])
    if args.kata:
        kata = _content().load_katas().by_name(args.kata)
        if kata is None:
            raise ContentError(f"Unknown kata: {args.kata}")
        seeds = [kata.seed] + seeds
    if len(seeds) > 2:
        raise SeedError("Give at most two seeds (one shared deck or one per player).")
    return seeds or [None]


def _cmd_deck_decode(args: argparse.Namespace) -> int:
    check = validate_seed(args.seed)
    deck = make_deck(check.seed)
    if args.json:
        print(json.dumps([card_to_dict(c) for c in deck], indent=2))
        return 0
    print(render_deck(deck))
    print(f"checksum: {'yes' if check.has_checksum else 'no'}")
    return 0


def _cmd_deck_random(args: argparse.Namespace) -> int:
    seed: str | int | None = args.seed
    # digit-only seeds feed the generator as numbers
    if seed is not None and seed.isdigit():
        seed = int(seed)
    deck = make_deck(seed)
    print(encode_deck_to_v1(deck, with_checksum=not args.no_checksum))
    return 0


def _cmd_deck_validate(args: argparse.Namespace) -> int:
    check = validate_seed(args.seed)
    suffix = " (with checksum)" if check.has_checksum else ""
    print(f"ok: {len(check.payload)} cards{suffix}")
    return 0


def _cmd_katas(args: argparse.Namespace) -> int:
    catalog = _content().load_katas()
    katas = catalog.katas
    if args.beginner:
        beginner = catalog.beginner()
        katas = (beginner,) if beginner is not None else ()
    for k in katas:
        print(f"{k.name}: {k.seed}")
        if k.description:
            print(f"    {k.description}")
    return 0


def _ask_human(state: MatchState, player: int, prompt: Prompt) -> Action:
    ps = state.players[player]
    phase = state.phase
    if phase == Phase.SETUP:
        while True:
            raw = prompt(f"{ps.name}, choose a posture (A/B/C): ").strip().upper()
            if raw in POSTURES:
                return ChoosePostureAction(player=player, posture=raw)  # type: ignore[arg-type]

    extra = phase == Phase.EXTRA_WINDOW
    hint = "d = decline" if extra else "p = pass"
    while True:
        raw = prompt(f"{ps.name}, pick a card number ({hint}): ").strip().lower()
        if extra and raw == "d":
            return DeclineExtraAction(player=player)
        if not extra and raw == "p":
            return PassAction(player=player)
        if raw.isdigit() and 1 <= int(raw) <= len(ps.hand):
            return PlayCardAction(player=player, card_id=ps.hand[int(raw) - 1].id)


def _run_match(
    state: MatchState,
    cpus: Sequence[CpuPlayer | None],
    *,
    prompt: Prompt,
    telemetry: TelemetryService | None,
    max_steps: int,
) -> None:
    humans = [i for i in (0, 1) if cpus[i] is None]
    viewer = humans[0] if len(humans) == 1 else None
    steps = 0
    while state.game_over is None and steps < max_steps:
        who = pending_players(state)[0]
        cpu = cpus[who]
        if cpu is None:
            print(render_table(state, viewer if viewer is not None else who))
            action = _ask_human(state, who, prompt)
        else:
            action = cpu.choose(state)
            assert action is not None
        for other in cpus:
            if other is not None:
                other.observe(state, action)
        result = step(state, action)
        steps += 1
        if telemetry is not None:
            telemetry.step_applied(state, action, result)
        if not result.ok:
            print(f"  ! {result.error}")
            continue
        for line in result.log:
            print(f"  {line}")

    print(render_table(state, None))
    if state.game_over is None:
        print(f"Stopped after {max_steps} steps.")
    elif state.game_over == "both":
        print("Double defeat.")
    else:
        loser = 0 if state.game_over == "p1" else 1
        print(f"{state.players[1 - loser].name} wins.")


def _cmd_play(args: argparse.Namespace, prompt: Prompt | None = None) -> int:
    seeds = _resolve_seeds(args)
    names = ("You", "CPU") if args.mode == "hvc" else ("Player 1", "Player 2")
    config = MatchConfig(choose_postures=args.choose_postures, player_names=names)
    state = new_match(seeds, config=config, match_id=args.match_id)

    rng = random.Random(args.ai_seed)
    spec = AISpec(difficulty=args.difficulty)
    cpus: list[CpuPlayer | None]
    if args.mode == "hvh":
        cpus = [None, None]
    elif args.mode == "hvc":
        cpus = [None, CpuPlayer(player=1, spec=spec, rng=rng)]
    else:
        cpus = [CpuPlayer(player=0, spec=spec, rng=rng), CpuPlayer(player=1, spec=spec, rng=rng)]

    telemetry = TelemetryService(Path(args.telemetry)) if args.telemetry else None
    if telemetry is not None:
        telemetry.match_started(state)

    try:
        _run_match(state, cpus, prompt=prompt or input, telemetry=telemetry, max_steps=args.max_steps)
    except (EOFError, KeyboardInterrupt):
        print("\nBye.")
    return 0


def _cmd_replay(args: argparse.Namespace) -> int:
    seeds = _resolve_seeds(args)
    state = new_match(seeds, match_id=args.match_id)
    decoder = MessageDecoder(_content())
    path = Path(args.messages)
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except FileNotFoundError as e:
        raise ProtocolError(f"Missing message file: {path}") from e
    except UnicodeDecodeError as e:
        raise ProtocolError(f"{path} is not UTF-8 text: {e}") from e

    for lineno, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            action = decoder.decode(line, match_id=state.match_id)
        except ProtocolError as e:
            raise ProtocolError(f"{path}:{lineno}: {e}") from e
        result = step(state, action)
        if not result.ok:
            logger.info("%s:%d rejected: %s", path, lineno, result.error)
        if state.game_over is not None:
            break
    print(json.dumps(snapshot(state), indent=2))
    return 0


def _add_seed_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--seed", action="append", help="Deck seed; give twice for one deck per player")
    p.add_argument("--kata", default=None, help="Use a named kata seed for the shared deck")
    p.add_argument("--match-id", default="local")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="breath", description="Breath! card game")
    parser.add_argument("--log-level", default="WARNING", help="DEBUG, INFO, WARNING, ERROR")
    parser.add_argument("--log-json", action="store_true", help="One JSON object per log record")
    sub = parser.add_subparsers(dest="command")

    # --- deck ---
    p_deck = sub.add_parser("deck", help="Decode, generate or validate deck seeds")
    deck_sub = p_deck.add_subparsers(dest="deck_command")
    p_dec = deck_sub.add_parser("decode", help="Print the 21 cards of a v1 seed")
    p_dec.add_argument("seed")
    p_dec.add_argument("--json", action="store_true")
    p_rand = deck_sub.add_parser("random", help="Generate a random deck and print its v1 seed")
    p_rand.add_argument("--seed", default=None, help="Seed for the random generator")
    p_rand.add_argument("--no-checksum", action="store_true")
    p_val = deck_sub.add_parser("validate", help="Check a v1 seed")
    p_val.add_argument("seed")

    # --- katas ---
    p_katas = sub.add_parser("katas", help="List preset kata seeds")
    p_katas.add_argument("--beginner", action="store_true", help="Only the beginner kata")

    # --- play ---
    p_play = sub.add_parser("play", help="Play a match in the terminal")
    _add_seed_args(p_play)
    p_play.add_argument("--mode", choices=["hvc", "hvh", "cvc"], default="hvc",
                        help="hvc=Human vs CPU, hvh=hot-seat, cvc=CPU vs CPU")
    p_play.add_argument("--difficulty", type=int, default=1, help="0=heuristic, 1=predictive")
    p_play.add_argument("--ai-seed", type=int, default=None)
    p_play.add_argument("--choose-postures", action="store_true")
    p_play.add_argument("--max-steps", type=int, default=500)
    p_play.add_argument("--telemetry", default=None, help="Append JSONL telemetry to this path")

    # --- replay ---
    p_replay = sub.add_parser("replay", help="Replay a JSONL file of client messages")
    _add_seed_args(p_replay)
    p_replay.add_argument("messages", help="Path to the JSONL message file")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level, format_json=args.log_json)

    if args.command is None or (args.command == "deck" and args.deck_command is None):
        parser.print_help()
        return 1

    try:
        if args.command == "deck":
            handler = {
                "decode": _cmd_deck_decode,
                "random": _cmd_deck_random,
                "validate": _cmd_deck_validate,
            }[args.deck_command]
            return handler(args)
        if args.command == "katas":
            return _cmd_katas(args)
        if args.command == "play":
            return _cmd_play(args)
        if args.command == "replay":
            return _cmd_replay(args)
    except (SeedError, ContentError, ProtocolError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
