"""
Bundled chat checks.
"""
from safechat.checks.address import AddressCheck, AddressSettings
from safechat.checks.base import Check, CheckSettings, Priority
from safechat.checks.blacklist import BlacklistSettings, WordsBlacklistCheck
from safechat.checks.caps import CapsCheck, CapsSettings
from safechat.checks.flood import FloodCheck, FloodSettings
from safechat.checks.repetition import RepetitionCheck, RepetitionSettings

__all__ = [
    'Check', 'CheckSettings', 'Priority',
    'AddressCheck', 'AddressSettings',
    'FloodCheck', 'FloodSettings',
    'RepetitionCheck', 'RepetitionSettings',
    'CapsCheck', 'CapsSettings',
    'WordsBlacklistCheck', 'BlacklistSettings',
]
