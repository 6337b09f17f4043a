class SafeChatError(Exception):
    """Base error for the chat guard."""


class ConfigError(SafeChatError):
    """Raised at setup time when a check's settings are missing or invalid."""


class DuplicateCheckError(SafeChatError):
    """Raised when a check name is registered twice."""
