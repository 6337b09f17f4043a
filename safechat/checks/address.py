from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Tuple

from safechat.checks.base import SPLIT_SPACE, CheckSettings, ConfiguredCheck, Priority
from safechat.engine.state import ActorMessageState
from safechat.errors import ConfigError
from safechat.models import ChatData
from safechat.placeholders import Localization

MINIMUM_DOMAIN_CHARS = 6
MINIMUM_ADDRESS_CHARS = 7

DOMAIN_REGEX = re.compile(r"(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]*[a-zA-Z0-9])?\.)+[a-zA-Z]{2,}")
IPV4_REGEX = re.compile(
    r"(?<![\d.])(?:(?:25[0-5]|2[0-4]\d|1\d\d|[1-9]?\d)\.){3}(?:25[0-5]|2[0-4]\d|1\d\d|[1-9]?\d)(?![\d.]*\d)"
)


@dataclass(frozen=True)
class AddressSettings:
    allowed_domains: Tuple[str, ...] = ()
    allowed_addresses: Tuple[str, ...] = ()

    def __post_init__(self):
        for domain in self.allowed_domains:
            if not domain or SPLIT_SPACE.search(domain):
                raise ConfigError(f"Malformed allowed domain: {domain!r}")
        for address in self.allowed_addresses:
            if not IPV4_REGEX.fullmatch(address):
                raise ConfigError(f"Malformed allowed address: {address!r}")


class AddressCheck(ConfiguredCheck):
    """Flags domains and IPv4 addresses that are not allow-listed.

    Domains are accepted when they *contain* an allowed entry, so
    ``sub.example.com`` passes with ``example.com`` allowed. Addresses must
    match an allowed entry exactly.
    """

    name = "Address"
    bypass_permission = "safechat.bypass.address"
    priority = Priority.LOW

    def __init__(self, settings: CheckSettings, address: AddressSettings, localization: Localization):
        super().__init__(settings, localization)
        self.allowed_domains = tuple(d.lower() for d in address.allowed_domains)
        self.allowed_addresses = address.allowed_addresses

    def test(self, data: ChatData, state: ActorMessageState) -> bool:
        text = data.message
        tokens = SPLIT_SPACE.split(text.strip())

        if len(text) >= MINIMUM_DOMAIN_CHARS:
            for token in tokens:
                if len(token) < MINIMUM_DOMAIN_CHARS:
                    continue
                for match in DOMAIN_REGEX.finditer(token):
                    found = match.group().lower()
                    if not any(allowed in found for allowed in self.allowed_domains):
                        return True

        if len(text) >= MINIMUM_ADDRESS_CHARS:
            for token in tokens:
                if len(token) < MINIMUM_ADDRESS_CHARS:
                    continue
                for match in IPV4_REGEX.finditer(token):
                    if match.group() not in self.allowed_addresses:
                        return True

        return False
