"""
Template resolution for punishment commands and warning messages.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Tuple

from safechat.models import ChatData

PLAYER_PLACEHOLDER = "{PLAYER}"
PLAYER_ID_PLACEHOLDER = "{PLAYER_ID}"
PREFIX_PLACEHOLDER = "{PREFIX}"
CHECK_PLACEHOLDER = "{CHECK}"


@dataclass(frozen=True)
class Localization:
    """Message strings shared by every check: the chat prefix and the
    warning templates keyed by check name."""

    prefix: str = "[SafeChat]"
    warnings: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)

    def warnings_for(self, check_name: str) -> List[str]:
        return list(self.warnings.get(check_name, ()))


def resolve_placeholders(template: str, data: ChatData, prefix: str, extra: Dict[str, str] = None) -> str:
    """Substitute the standard placeholders in ``template``.

    Text without placeholders comes back unchanged; unknown braces are kept.
    """
    if not template:
        return ""
    resolved = (
        template.replace(PLAYER_PLACEHOLDER, data.display_name or data.actor_id)
        .replace(PLAYER_ID_PLACEHOLDER, data.actor_id)
        .replace(PREFIX_PLACEHOLDER, prefix)
    )
    for key, value in (extra or {}).items():
        resolved = resolved.replace(key, value)
    return resolved
