from __future__ import annotations

import json
from typing import Mapping

from breath.engine.actions import Action
from breath.engine.serialize import action_from_dict
from breath.services.content import ContentError, ContentService, validate_json


class ProtocolError(ValueError):
    pass


class MessageDecoder:
    """Turns inbound client messages into engine actions.

    Messages are JSON objects checked against ``client_message.schema.json``
    before they reach the engine.
    """

    def __init__(self, content: ContentService) -> None:
        self._schema = content.load_schema("client_message")

    def decode(self, raw: str | bytes | Mapping[str, object], *, match_id: str | None = None) -> Action:
        if isinstance(raw, (str, bytes)):
            try:
                msg: object = json.loads(raw)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise ProtocolError(f"Message is not valid JSON: {e}") from e
        else:
            msg = dict(raw)

        try:
            validate_json(msg, self._schema, context="client message")
        except ContentError as e:
            raise ProtocolError(str(e)) from e
        assert isinstance(msg, dict)

        if match_id is not None and msg.get("match_id", match_id) != match_id:
            raise ProtocolError(f"Message is for match {msg['match_id']!r}, not {match_id!r}.")
        return action_from_dict(msg)
