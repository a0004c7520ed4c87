"""
Exceptions raised by the Blueflood publisher.
"""


class PublisherError(Exception):
    """Base class for errors surfaced from a publish call."""


class ConfigError(PublisherError):
    """Required configuration is missing or cannot be parsed."""


class ContentError(PublisherError):
    """The host payload could not be decoded into measurements."""
