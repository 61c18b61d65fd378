from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from .errors import MessageError
from .protocol import PoolCommand


@dataclass(frozen=True)
class PoolRequest:
    """Message sent from client to pool: the request id with the command flattened in."""
    id: int
    command: PoolCommand

    def to_json_line(self) -> bytes:
        obj = {"id": self.id, "method": self.command.method, "params": self.command.params()}
        return (json.dumps(obj, separators=(",", ":")) + "\n").encode("utf-8")


def parse_json_line(line: bytes) -> Any:
    try:
        return json.loads(line.decode("utf-8").strip())
    except (UnicodeDecodeError, ValueError) as e:
        raise MessageError(f"bad JSON line: {e}") from e
