"""
Converts measurements into Blueflood wire records.
"""
import logging
import math
import numbers
from datetime import datetime
from enum import Enum
from typing import Any, Optional

import pytz

from .measurement import Measurement, WireRecord, key

logger = logging.getLogger(__name__)


class ValueKind(str, Enum):
    """Shapes a measurement value can take."""
    INTEGER = "integer"
    FLOAT = "float"
    TEXT = "text"
    UNSUPPORTED = "unsupported"


def classify_value(value: Any) -> ValueKind:
    """
    Work out which kind of value a measurement carries.

    Args:
        value: The raw measurement value

    Returns:
        ValueKind: The kind of the value
    """
    # bool is an Integral but is not a metric value
    if isinstance(value, bool):
        return ValueKind.UNSUPPORTED
    if isinstance(value, numbers.Integral):
        return ValueKind.INTEGER
    if isinstance(value, numbers.Real):
        return ValueKind.FLOAT
    if isinstance(value, str):
        return ValueKind.TEXT
    return ValueKind.UNSUPPORTED


def now_millis() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(datetime.now(pytz.UTC).timestamp() * 1000)


class CollectionClock:
    """
    Stamps collection times for the records of a single publish call.

    Never goes backwards, even if the wall clock does.
    """

    def __init__(self, source=now_millis):
        self._source = source
        self._last = 0

    def now(self) -> int:
        self._last = max(self._last, self._source())
        return self._last


def normalize(measurement: Measurement, ttl_in_seconds: int,
              clock: Optional[CollectionClock] = None) -> Optional[WireRecord]:
    """
    Convert a measurement into a wire record.

    Measurements with an empty namespace or a value that can't be turned
    into a finite number are dropped.

    Args:
        measurement (Measurement): The measurement to convert
        ttl_in_seconds (int): TTL stamped on the record
        clock (CollectionClock, optional): Source of the collection time.
            Defaults to the current wall clock.

    Returns:
        WireRecord: The record, or None if the measurement was dropped
    """
    metric_name = key(measurement.namespace)
    if not metric_name:
        return None

    value = measurement.value
    kind = classify_value(value)

    if kind is ValueKind.INTEGER:
        metric_value = int(value)
    elif kind is ValueKind.FLOAT:
        metric_value = float(value)
        if math.isnan(metric_value):
            logger.warning("Dropping metric '%s': value is NaN", metric_name)
            return None
        if math.isinf(metric_value):
            logger.warning("Dropping metric '%s': value is infinite", metric_name)
            return None
    elif kind is ValueKind.TEXT:
        # Padding and digit separators are not part of a metric value
        if value != value.strip() or '_' in value:
            logger.debug("Dropping metric '%s': non-numeric value %r", metric_name, value)
            return None
        try:
            metric_value = float(value)
        except ValueError:
            logger.debug("Dropping metric '%s': non-numeric value %r", metric_name, value)
            return None
        if not math.isfinite(metric_value):
            logger.warning("Dropping metric '%s': value %r is not finite", metric_name, value)
            return None
    else:
        logger.warning("Unknown data received for metric '%s': Type %s",
                       metric_name, type(value).__name__)
        return None

    collection_time = clock.now() if clock is not None else now_millis()
    return WireRecord(
        metric_name=metric_name,
        metric_value=metric_value,
        ttl_in_seconds=ttl_in_seconds,
        collection_time=collection_time,
    )
