"""JSON framing for the push channel (one message per frame)."""

import time
from typing import Any, Dict, Mapping, Optional

import orjson


def now_ms() -> int:
    return int(time.time() * 1000)


class ChannelMessageCodec:
    @staticmethod
    def encode_outbound(*, message_type: str, data: Optional[Mapping[str, Any]] = None) -> str:
        """Client -> server: ``{type, data, timestamp}``."""
        return orjson.dumps(
            {'type': message_type, 'data': dict(data or {}), 'timestamp': now_ms()}
        ).decode()

    @staticmethod
    def encode_inbound(
        *, message_type: str, payload: Optional[Mapping[str, Any]] = None, timestamp: Optional[int] = None
    ) -> str:
        """Server -> client: ``{type, payload, timestamp}``."""
        return orjson.dumps(
            {
                'type': message_type,
                'payload': dict(payload or {}),
                'timestamp': timestamp if timestamp is not None else now_ms(),
            }
        ).decode()

    @staticmethod
    def decode(*, raw_data: str | bytes) -> Dict[str, Any]:
        try:
            message = orjson.loads(raw_data)
        except orjson.JSONDecodeError as e:
            raise ValueError(f'Malformed frame: {e}') from e

        if not isinstance(message, dict):
            raise ValueError('Frame must be a JSON object')
        if not isinstance(message.get('type'), str) or not message['type']:
            raise ValueError('Frame is missing a string "type"')
        return message
