"""
Blueflood publisher: forwards collected measurements to a Blueflood ingest endpoint.
"""
from .dispatcher import BatchDispatcher, DispatchOutcome
from .errors import ConfigError, ContentError, PublisherError
from .measurement import Measurement, WireRecord, decode_measurements, key
from .normalizer import CollectionClock, ValueKind, classify_value, normalize
from .policy import ConfigPolicy, ConfigRule, PublisherConfig, get_config_policy, resolve_config
from .publisher import BluefloodPublisher, PluginMeta, meta

__version__ = "0.1.0"

__all__ = [
    'BatchDispatcher',
    'BluefloodPublisher',
    'CollectionClock',
    'ConfigError',
    'ConfigPolicy',
    'ConfigRule',
    'ContentError',
    'DispatchOutcome',
    'Measurement',
    'PluginMeta',
    'PublisherConfig',
    'PublisherError',
    'ValueKind',
    'WireRecord',
    'classify_value',
    'decode_measurements',
    'get_config_policy',
    'key',
    'meta',
    'normalize',
    'resolve_config',
]
