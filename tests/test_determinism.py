from __future__ import annotations

import json
import random

import pytest

from breath.engine.ai import AISpec, CpuPlayer
from breath.engine.match import new_match, pending_players, replay, step
from breath.engine.rng import mulberry32, seed_to_rng, shuffle, xmur3
from breath.engine.serialize import snapshot


def _play_out(seeds: list[str], difficulty: int, ai_seed: int, max_steps: int = 300):
    state = new_match(seeds)
    rng = random.Random(ai_seed)
    cpus = [CpuPlayer(player=i, spec=AISpec(difficulty=difficulty), rng=rng) for i in (0, 1)]
    actions = []
    for _ in range(max_steps):
        if state.game_over is not None:
            break
        who = pending_players(state)[0]
        action = cpus[who].choose(state)
        assert action is not None
        cpus[1 - who].observe(state, action)
        actions.append(action)
        res = step(state, action)
        assert res.ok, res.error
    return state, actions


def test_engine_determinism_replay() -> None:
    seeds = ["v1.AJSbkt234s"]
    state1, actions = _play_out(seeds, difficulty=0, ai_seed=1)
    state2 = replay(seeds, actions)
    assert snapshot(state1) == snapshot(state2)
    # snapshots are plain JSON
    json.dumps(snapshot(state1))


def test_predictive_cpu_replay_with_split_decks() -> None:
    seeds = ["alpha", "beta"]
    state1, actions = _play_out(seeds, difficulty=1, ai_seed=99)
    state2 = replay(seeds, actions)
    assert snapshot(state1) == snapshot(state2)


def test_heuristic_cpus_finish_a_match() -> None:
    state, _ = _play_out(["v1.ERServ234ERServ234ERSv"], difficulty=0, ai_seed=5)
    assert state.game_over in ("p1", "p2", "both")


def test_string_and_int_seeds_are_reproducible() -> None:
    a = seed_to_rng("kata")
    b = seed_to_rng("kata")
    assert [a() for _ in range(5)] == [b() for _ in range(5)]

    c = mulberry32(xmur3("kata")())
    d = seed_to_rng("kata")
    assert c() == d()

    values = [seed_to_rng(7)() for _ in range(3)]
    assert len(set(values)) == 1
    assert all(0.0 <= v < 1.0 for v in values)


def test_seed_to_rng_rejects_other_types() -> None:
    for bad in (True, 1.5, ["x"]):
        with pytest.raises(TypeError):
            seed_to_rng(bad)  # type: ignore[arg-type]


def test_shuffle_is_a_permutation() -> None:
    items = list(range(57))
    shuffle(items, seed_to_rng("perm"))
    assert sorted(items) == list(range(57))
    assert items != list(range(57))
