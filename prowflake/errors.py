class ProwflakeError(Exception):
    """Base class for every error raised by prowflake."""


class NetworkError(ProwflakeError):
    """Transport failure or non-success HTTP status."""


class NotFoundError(ProwflakeError):
    """An expected entry is missing from a directory listing."""


class ParseError(ProwflakeError):
    """A completion record or test report does not have the expected shape."""


class PersistenceError(ProwflakeError):
    """A cache file could not be written or decoded."""


class ConfigError(ProwflakeError):
    pass
