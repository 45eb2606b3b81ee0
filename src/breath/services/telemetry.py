from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping

from breath.engine.actions import Action
from breath.engine.match import MatchState, StepResult
from breath.engine.serialize import action_to_dict


@dataclass
class TelemetryService:
    path: Path

    def log(self, event_type: str, payload: Mapping[str, object]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        rec = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "type": event_type,
            "payload": dict(payload),
        }
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")

    def match_started(self, state: MatchState) -> None:
        self.log(
            "match_start",
            {
                "match_id": state.match_id,
                "seeds": [s if isinstance(s, (str, int)) else None for s in state.seeds],
                "shared_deck": state.shared_deck,
                "players": [p.name for p in state.players],
            },
        )

    def step_applied(self, state: MatchState, action: Action, result: StepResult) -> None:
        self.log(
            "step",
            {
                "match_id": state.match_id,
                "action": action_to_dict(action),
                "ok": result.ok,
                "error": result.error,
                "events": [e.value for e in result.events],
            },
        )
        if result.ok and state.game_over is not None:
            self.log(
                "game_over",
                {
                    "match_id": state.match_id,
                    "defeated": state.game_over,
                    "actions": len(state.action_log),
                },
            )
