"""
Publisher entry points called by the host collection framework.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Union

from .dispatcher import BatchDispatcher
from .errors import ContentError
from .measurement import Measurement, WireRecord, decode_measurements
from .normalizer import CollectionClock, normalize
from .policy import ConfigPolicy, PublisherConfig, get_config_policy, resolve_config

logger = logging.getLogger(__name__)

PLUGIN_NAME = 'blueflood'
PLUGIN_VERSION = 1
PLUGIN_TYPE = 'publisher'
JSON_CONTENT_TYPE = 'application/json'


@dataclass(frozen=True)
class PluginMeta:
    """Metadata the host uses to discover the publisher."""
    name: str
    version: int
    type: str
    accept_content_types: List[str] = field(default_factory=list)
    return_content_types: List[str] = field(default_factory=list)


def meta() -> PluginMeta:
    """Meta information about this publisher."""
    return PluginMeta(
        name=PLUGIN_NAME,
        version=PLUGIN_VERSION,
        type=PLUGIN_TYPE,
        accept_content_types=[JSON_CONTENT_TYPE],
        return_content_types=[JSON_CONTENT_TYPE],
    )


class BluefloodPublisher:
    """Publishes measurements to a Blueflood ingest endpoint."""

    def __init__(self, dispatcher: Optional[BatchDispatcher] = None):
        """
        Initialize the publisher.

        Args:
            dispatcher (BatchDispatcher, optional): Sends the batches. Defaults
                to a dispatcher with its own thread pool.
        """
        self.dispatcher = dispatcher or BatchDispatcher()

    def get_config_policy(self) -> ConfigPolicy:
        return get_config_policy()

    def wire_records(self, measurements: Iterable[Measurement],
                     ttl_in_seconds: int) -> Iterator[WireRecord]:
        """
        Normalize measurements lazily, in input order, skipping dropped ones.

        Args:
            measurements (Iterable): Measurements to normalize
            ttl_in_seconds (int): TTL stamped on every record

        Yields:
            WireRecord: One record per accepted measurement
        """
        clock = CollectionClock()
        for measurement in measurements:
            record = normalize(measurement, ttl_in_seconds, clock)
            if record is not None:
                yield record

    def publish(self, measurements: Iterable[Union[Measurement, Mapping[str, Any]]],
                config: Union[PublisherConfig, Mapping[str, Any], None]) -> None:
        """
        Publish measurements to the configured Blueflood server.

        Returns as soon as every batch has been handed off; the outcome of
        each ingest request is only logged.

        Args:
            measurements (Iterable): Measurements to publish
            config: Resolved config, or the host's raw config map

        Raises:
            ConfigError: If the server is missing or the config is malformed
            ContentError: If a decoded measurement object is malformed
        """
        if not isinstance(config, PublisherConfig):
            config = resolve_config(config)

        # Every item is decoded before the first batch is handed off
        measurements = [
            m if isinstance(m, Measurement) else Measurement.from_dict(m)
            for m in measurements
        ]

        batches = self.dispatcher.accumulate(
            self.wire_records(measurements, config.ttl_in_seconds),
            config.rollup_num,
            config.server,
            config.timeout,
        )
        logger.debug("Handed off %d batches to %s", batches, config.server)

    def publish_content(self, content_type: str, content: Union[bytes, str],
                        config: Union[PublisherConfig, Mapping[str, Any], None]) -> None:
        """
        Decode a host payload and publish the measurements it contains.

        Args:
            content_type (str): Encoding of the payload
            content (bytes or str): JSON array of measurement objects
            config: Resolved config, or the host's raw config map

        Raises:
            ContentError: If the content type is unknown or the payload can't be decoded
            ConfigError: If the server is missing or the config is malformed
        """
        if content_type != JSON_CONTENT_TYPE:
            logger.warning("Error unknown content type '%s'", content_type)
            raise ContentError(f"Unknown content type '{content_type}'")

        try:
            measurements = decode_measurements(content)
        except ContentError as e:
            logger.warning("%s", e)
            raise
        self.publish(measurements, config)

    def close(self, wait: bool = True) -> None:
        """
        Release the dispatcher's worker threads.

        Args:
            wait (bool): Block until in-flight ingest requests finish
        """
        self.dispatcher.close(wait=wait)

