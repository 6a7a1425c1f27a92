# ctxroute/p2p/messages.py
from __future__ import annotations
from dataclasses import dataclass, asdict, is_dataclass, field
from typing import Dict, List
import json


# ===== contact-trace events (what the runtime feeds a router) =====
@dataclass
class ConnectionUp:
    t: float
    a: str
    b: str


@dataclass
class ConnectionDown:
    t: float
    a: str
    b: str


@dataclass
class MessageSeen:
    t: float
    holder: str
    peer: str
    message_id: str
    destination: str
    ttl: float
    hop_count: int


_EVENT_REGISTRY = {}
def _register_event(cls):
    _EVENT_REGISTRY[cls.__name__] = cls
    return cls

for _cls in [ConnectionUp, ConnectionDown, MessageSeen]:
    _register_event(_cls)


class EventCodec:
    """One event per line: {"type": <class name>, "data": {...}}."""
    @staticmethod
    def encode(event) -> dict:
        if not is_dataclass(event):
            raise TypeError(f"EventCodec.encode expects a dataclass, got {type(event)}")
        return {"type": event.__class__.__name__, "data": asdict(event)}

    @staticmethod
    def decode(obj):
        if not isinstance(obj, dict) or "type" not in obj or "data" not in obj:
            raise TypeError("EventCodec.decode expects {'type':..., 'data':...}")
        cls = _EVENT_REGISTRY.get(obj["type"])
        if cls is None:
            raise ValueError(f"Unknown event type: {obj['type']}")
        return cls(**obj["data"])

    @staticmethod
    def dump(event) -> str:
        return json.dumps(EventCodec.encode(event)) + "\n"

    @staticmethod
    def load(line: str):
        return EventCodec.decode(json.loads(line))

    @staticmethod
    def read_trace(path: str) -> List[object]:
        with open(path, "r") as f:
            return [EventCodec.load(line) for line in f if line.strip()]

    @staticmethod
    def write_trace(path: str, events):
        with open(path, "w") as f:
            for ev in events:
                f.write(EventCodec.dump(ev))


# ===== per-host message priorities =====
@dataclass(order=True)
class MessagePriority:
    priority: float
    message_id: str = field(compare=False)


class MessageListTable:
    """Priority score (usually 0.0 or 1.0) of each message a host carries."""
    def __init__(self, owner_id: str):
        self.owner_id = owner_id
        self.priorities: Dict[str, float] = {}

    def update(self, message_id: str, priority: float):
        self.priorities[message_id] = float(priority)

    def get(self, message_id: str) -> float:
        return self.priorities.get(message_id, 0.0)

    def remove(self, message_id: str):
        self.priorities.pop(message_id, None)

    def contains(self, message_id: str) -> bool:
        return message_id in self.priorities

    def ranked(self) -> List[MessagePriority]:
        """Highest priority first."""
        return sorted((MessagePriority(p, mid) for mid, p in self.priorities.items()), reverse=True)
