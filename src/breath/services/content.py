from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from jsonschema import Draft202012Validator

from breath.engine.deck import SeedError, validate_seed


class ContentError(RuntimeError):
    pass


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ContentError(f"Missing content file: {path}") from e
    except json.JSONDecodeError as e:
        raise ContentError(f"Invalid JSON in {path}: {e}") from e


def validate_json(instance: object, schema: object, *, context: str) -> None:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: list(e.path))
    if errors:
        lines = [f"Schema validation failed for {context}:"]
        for err in errors[:10]:
            loc = "/".join(str(p) for p in err.absolute_path)
            lines.append(f"- {loc}: {err.message}")
        raise ContentError("\n".join(lines))


def _require_str(obj: Mapping[str, object], key: str) -> str:
    v = obj.get(key)
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


@dataclass(frozen=True)
class Kata:
    name: str
    seed: str
    description: str = ""
    beginner: bool = False


@dataclass(frozen=True)
class KataCatalog:
    katas: tuple[Kata, ...]

    def by_name(self, name: str) -> Kata | None:
        wanted = name.strip().lower()
        for k in self.katas:
            if k.name.lower() == wanted:
                return k
        return None

    def beginner(self) -> Kata | None:
        for k in self.katas:
            if k.beginner:
                return k
        return None


class ContentService:
    def __init__(self, data_dir: Path, schema_dir: Path) -> None:
        self._data_dir = data_dir
        self._schema_dir = schema_dir

    def load_schema(self, name: str) -> object:
        return _load_json(self._schema_dir / f"{name}.schema.json")

    def load_katas(self) -> KataCatalog:
        path = self._data_dir / "katas.json"
        raw = _load_json(path)
        validate_json(raw, self.load_schema("katas"), context=str(path))
        if not isinstance(raw, dict):
            raise ContentError("katas.json must be an object")
        raw_katas = raw.get("katas")
        if not isinstance(raw_katas, list):
            raise ContentError("katas.json.katas must be a list")

        katas: list[Kata] = []
        seen: set[str] = set()
        for item in raw_katas:
            if not isinstance(item, dict):
                continue
            name = _require_str(item, "name")
            seed = _require_str(item, "seed")
            try:
                validate_seed(seed)
            except SeedError as e:
                raise ContentError(f"Kata {name!r} has an invalid seed: {e}") from e
            if name.lower() in seen:
                raise ContentError(f"Duplicate kata name: {name}")
            seen.add(name.lower())
            description = item.get("description", "")
            katas.append(
                Kata(
                    name=name,
                    seed=seed,
                    description=description if isinstance(description, str) else "",
                    beginner=item.get("beginner") is True,
                )
            )
        return KataCatalog(katas=tuple(katas))

    def beginner_kata(self) -> Kata | None:
        return self.load_katas().beginner()

    def validate_all(self) -> None:
        # Load is validation (schema + parse)
        _ = self.load_katas()
        _ = self.load_schema("client_message")
