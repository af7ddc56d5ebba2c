"""JSON-lines protocol messages exchanged with the game client."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Request:
    """Incoming request from the game client."""
    id: int
    method: str
    params: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> Request:
        return cls(
            id=data.get("id", 0),
            method=data["method"],
            params=data.get("params") or {},
        )


@dataclass
class Response:
    """Reply to one request: either a result or an error message."""
    id: int
    result: Optional[dict] = None
    error: Optional[str] = None


    def to_json_line(self) -> str:
        d: dict = {"id": self.id}
        if self.error is not None:
            d["error"] = self.error
        else:
            d["result"] = self.result
        return json.dumps(d, ensure_ascii=False) + "\n"


@dataclass
class Notification:
    """Server-initiated event such as a level change (no id, no reply)."""
    method: str
    params: dict = field(default_factory=dict)

    def to_json_line(self) -> str:
        return json.dumps({"method": self.method, "params": self.params}, ensure_ascii=False) + "\n"
