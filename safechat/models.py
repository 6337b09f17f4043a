from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class ChatData:
    actor_id: str
    display_name: str
    message: str
    timestamp: float  # epoch seconds


@dataclass(frozen=True)
class ActorWarning:
    actor_id: str
    text: str


@dataclass(frozen=True)
class ViolationRecord:
    actor_id: str
    display_name: str
    check_name: str
    message: str
    timestamp: float
    count: int
    punished: bool


@dataclass(frozen=True)
class CheckRegistered:
    name: str
    priority: int
    check: object


@dataclass
class Decision:
    allowed: bool = True
    failed_checks: List[str] = field(default_factory=list)
    punishments: List[str] = field(default_factory=list)
    warnings: List[ActorWarning] = field(default_factory=list)
    log_entries: List[ViolationRecord] = field(default_factory=list)
