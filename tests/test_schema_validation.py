from __future__ import annotations

import json
from pathlib import Path

import pytest

from breath.engine.actions import ChoosePostureAction, PassAction, PlayCardAction
from breath.engine.constants import DECK_SIZE
from breath.engine.deck import make_deck, validate_seed
from breath.paths import get_paths
from breath.services.content import ContentError, ContentService, validate_json
from breath.services.protocol import MessageDecoder, ProtocolError


def _content() -> ContentService:
    paths = get_paths()
    return ContentService(paths.data_dir, paths.schema_dir)


def test_content_schemas_validate() -> None:
    _content().validate_all()


def test_katas_load_and_decode() -> None:
    catalog = _content().load_katas()
    assert len(catalog.katas) >= 1
    for kata in catalog.katas:
        assert len(make_deck(kata.seed)) == DECK_SIZE
        assert validate_seed(kata.seed).has_checksum, kata.name

    beginner = _content().beginner_kata()
    assert beginner is not None
    assert beginner.seed == "v1.ERServ234ERServ234ERSv"
    assert catalog.by_name("beginner kata") == beginner


def test_bad_kata_file_is_rejected(tmp_path: Path) -> None:
    (tmp_path / "katas.json").write_text(
        json.dumps({"version": 1, "katas": [{"name": "Broken", "seed": "v2.ABC"}]}),
        encoding="utf-8",
    )
    content = ContentService(tmp_path, get_paths().schema_dir)
    with pytest.raises(ContentError) as exc:
        content.load_katas()
    assert "Schema validation failed" in str(exc.value)


def test_missing_and_malformed_content(tmp_path: Path) -> None:
    content = ContentService(tmp_path, get_paths().schema_dir)
    with pytest.raises(ContentError, match="Missing content file"):
        content.load_katas()

    (tmp_path / "katas.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(ContentError, match="Invalid JSON"):
        content.load_katas()


def test_validate_json_reports_locations() -> None:
    schema = {"type": "object", "properties": {"n": {"type": "integer"}}}
    with pytest.raises(ContentError) as exc:
        validate_json({"n": "x"}, schema, context="sample")
    assert "- n:" in str(exc.value)


def test_client_messages_decode_to_actions() -> None:
    decoder = MessageDecoder(_content())
    assert decoder.decode('{"type": "play_card", "player": 0, "card_id": "D0"}') == PlayCardAction(
        player=0, card_id="D0"
    )
    assert decoder.decode({"type": "pass", "player": 1, "match_id": "m1"}, match_id="m1") == PassAction(player=1)
    assert decoder.decode({"type": "choose_posture", "player": 1, "posture": "C"}) == ChoosePostureAction(
        player=1, posture="C"
    )


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        '{"type": "play_card", "player": 0}',
        '{"type": "pass", "player": 2}',
        '{"type": "shout", "player": 0}',
        '{"type": "choose_posture", "player": 0, "posture": "D"}',
        '{"type": "pass", "player": 0, "extra": true}',
    ],
)
def test_invalid_client_messages_are_rejected(raw: str) -> None:
    with pytest.raises(ProtocolError):
        MessageDecoder(_content()).decode(raw)


def test_message_for_another_match_is_rejected() -> None:
    decoder = MessageDecoder(_content())
    with pytest.raises(ProtocolError, match="not 'local'"):
        decoder.decode({"type": "pass", "player": 0, "match_id": "other"}, match_id="local")


def test_non_utf8_bytes_are_rejected() -> None:
    with pytest.raises(ProtocolError, match="not valid JSON"):
        MessageDecoder(_content()).decode(b'{"type": "pass", "player": 0, "match_id": "\xff"}')
