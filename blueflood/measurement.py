"""
Measurements handed to the publisher and the wire records built from them.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from .errors import ContentError


def key(namespace: Sequence[str]) -> str:
    """
    Join the elements of a namespace with '.' to form a metric name.

    Args:
        namespace (Sequence[str]): Namespace segments, e.g. ('host', 'cpu', 'util')

    Returns:
        str: The dotted metric name, e.g. 'host.cpu.util'
    """
    return '.'.join(namespace)


def parse_namespace(namespace: Union[str, Sequence[str], None]) -> Any:
    """Split a '/host/cpu/util' style namespace into segments; other shapes pass through."""
    if namespace is None:
        return ()
    if isinstance(namespace, str):
        stripped = namespace.strip('/')
        return tuple(stripped.split('/')) if stripped else ()
    return namespace


class Measurement(BaseModel):
    """
    A single measurement supplied by the host collection framework.

    The decoded JSON form may carry the payload as 'data' or 'value', and the
    namespace as a list of segments or a '/'-separated string.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    namespace: Tuple[str, ...] = Field(
        default=(),
        description="Ordered path segments identifying the metric"
    )
    value: Any = Field(
        default=None,
        validation_alias=AliasChoices('data', 'value'),
        description="Raw payload; coerced to a number when published"
    )
    timestamp: Optional[datetime] = Field(
        default=None,
        description="When the host collected the value (not sent to Blueflood)"
    )
    tags: Dict[str, str] = Field(default_factory=dict)

    @field_validator('namespace', mode='before')
    @classmethod
    def _split_namespace(cls, v: Any) -> Any:
        return parse_namespace(v)

    @field_validator('tags', mode='before')
    @classmethod
    def _stringify_tags(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, dict):
            return {str(k): str(val) for k, val in v.items()}
        return v

    @property
    def name(self) -> str:
        return key(self.namespace)

    @classmethod
    def from_dict(cls, data: Any) -> 'Measurement':
        """
        Build a measurement from its decoded JSON form.

        Args:
            data (dict): Decoded measurement object

        Returns:
            Measurement: The measurement

        Raises:
            ContentError: If the object cannot be interpreted as a measurement
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ContentError(f"Invalid measurement: {e}")


_MEASUREMENT_LIST = TypeAdapter(List[Measurement])


def decode_measurements(content: Union[bytes, str]) -> List[Measurement]:
    """
    Decode a JSON array of measurement objects.

    Args:
        content (bytes or str): The encoded payload

    Returns:
        list: The decoded measurements

    Raises:
        ContentError: If the payload isn't a JSON array of measurement objects
    """
    try:
        return _MEASUREMENT_LIST.validate_json(content)
    except ValidationError as e:
        raise ContentError(f"Error decoding JSON content: {e}")


@dataclass(frozen=True)
class WireRecord:
    """One entry in a Blueflood ingest request."""
    metric_name: str
    metric_value: Union[int, float]
    ttl_in_seconds: int
    collection_time: int

    def to_json(self) -> Dict[str, Any]:
        """
        Format the record using Blueflood's ingest field names.

        Returns:
            dict: The record ready for JSON serialization
        """
        return {
            'collectionTime': self.collection_time,
            'ttlInSeconds': self.ttl_in_seconds,
            'metricValue': self.metric_value,
            'metricName': self.metric_name,
        }
