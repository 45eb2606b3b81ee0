from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Literal, Sequence

from .types import Posture

OpponentAction = Literal["attack", "defense", "dodge", "draw"]
ACTIONS: tuple[OpponentAction, ...] = ("attack", "defense", "dodge", "draw")

# Row: my action, column: what the opponent does
EV_MATRIX: dict[OpponentAction, dict[OpponentAction, float]] = {
    "attack": {"attack": -0.3, "defense": -1.2, "dodge": -0.8, "draw": 0.8},
    "defense": {"attack": 1.6, "defense": 0.1, "dodge": -0.2, "draw": 0.2},
    "dodge": {"attack": 0.8, "defense": 0.0, "dodge": 0.0, "draw": 0.1},
    "draw": {"attack": -0.9, "defense": -0.3, "dodge": -0.1, "draw": 0.0},
}

_EPS = 1e-6


def posture_index(posture: Posture) -> int:
    return {"A": 0, "B": 1, "C": 2}[posture]


def _normalize(values: dict[OpponentAction, float]) -> dict[OpponentAction, float]:
    total = sum(values.values()) or 1.0
    return {k: v / total for k, v in values.items()}


def _clamp(values: dict[OpponentAction, float]) -> dict[OpponentAction, float]:
    clamped = {k: max(v, _EPS) for k, v in values.items()}
    return _normalize(clamped)


def _fresh_counts() -> dict[OpponentAction, float]:
    return {a: 1.0 for a in ACTIONS}


def _fresh_heat() -> dict[OpponentAction, list[float]]:
    return {a: [1.0, 1.0, 1.0] for a in ACTIONS}


@dataclass
class PredictorState:
    count: dict[OpponentAction, float] = field(default_factory=_fresh_counts)
    heat: dict[OpponentAction, list[float]] = field(default_factory=_fresh_heat)
    heat_posture: list[float] = field(default_factory=lambda: [1.0, 1.0, 1.0])

    def copy(self) -> "PredictorState":
        return PredictorState(
            count=dict(self.count),
            heat={k: list(v) for k, v in self.heat.items()},
            heat_posture=list(self.heat_posture),
        )


@dataclass(frozen=True)
class ScoredAction:
    type: OpponentAction
    ev: float


@dataclass(frozen=True)
class Choice:
    pick: OpponentAction
    scored: tuple[ScoredAction, ...]
    probs: dict[OpponentAction, float]


class Predictor:
    """Online model of what the opponent tends to do in each posture.

    Counts decay on every observation, so recent habits dominate. ``alpha``
    mixes the overall action frequency with the posture-conditional one and
    ``noise`` jitters expected values for a bit of exploration.
    """

    def __init__(
        self,
        decay: float = 0.9,
        alpha: float = 0.4,
        noise: float = 0.12,
        rng: random.Random | None = None,
    ) -> None:
        self.decay = decay
        self.alpha = alpha
        self.noise = noise
        self._rng = rng or random.Random()
        self._state = PredictorState()

    def _decay_all(self) -> None:
        s = self._state
        for k in s.count:
            s.count[k] *= self.decay
        for row in s.heat.values():
            for i in range(len(row)):
                row[i] *= self.decay
        for i in range(len(s.heat_posture)):
            s.heat_posture[i] *= self.decay

    def observe(self, posture: int, breath: int, action: OpponentAction) -> None:
        if posture < 0 or posture > 2:
            return
        self._decay_all()
        self._state.count[action] += 1
        self._state.heat[action][posture] += 1
        self._state.heat_posture[posture] += 1

    def predict(self, posture: int, breath: int) -> dict[OpponentAction, float]:
        if breath <= 0:
            return _clamp({"attack": 0.0, "defense": 0.0, "dodge": 0.0, "draw": 1.0})
        base = _normalize(dict(self._state.count))
        by_posture = _normalize({a: self._state.heat[a][posture] for a in ACTIONS})
        p = {a: self.alpha * base[a] + (1 - self.alpha) * by_posture[a] for a in ACTIONS}
        if breath == 1:
            # low on breath: attacks get rarer
            p["attack"] *= 0.6
            p["defense"] *= 1.2
            p["dodge"] *= 1.2
            p["draw"] *= 1.1
        return _clamp(p)

    def choose_action(self, posture: int, breath: int, options: Sequence[OpponentAction]) -> Choice:
        probs = self.predict(posture, breath)
        scored: list[ScoredAction] = []
        for mine in dict.fromkeys(options):
            ev = sum(probs[theirs] * EV_MATRIX[mine][theirs] for theirs in ACTIONS)
            ev *= (1 - self.noise) + self._rng.random() * self.noise * 2
            scored.append(ScoredAction(type=mine, ev=ev))
        scored.sort(key=lambda s: s.ev, reverse=True)
        pick: OpponentAction = scored[0].type if scored else "draw"
        return Choice(pick=pick, scored=tuple(scored), probs=probs)

    def reset(self, prior: PredictorState | None = None) -> None:
        self._state = prior.copy() if prior is not None else PredictorState()

    def snapshot(self) -> PredictorState:
        return self._state.copy()
