"""
Config policy exposed to the host so it can validate publisher settings.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_ROLLUP_NUM = 100
DEFAULT_TTL_IN_SECONDS = 172800  # 48 hours
DEFAULT_TIMEOUT = 0


@dataclass(frozen=True)
class PublisherConfig:
    """Settings resolved for a single publish call."""
    server: str
    rollup_num: int = DEFAULT_ROLLUP_NUM
    ttl_in_seconds: int = DEFAULT_TTL_IN_SECONDS
    timeout: int = DEFAULT_TIMEOUT


@dataclass(frozen=True)
class ConfigRule:
    """A single key the host is allowed to configure."""
    key: str
    type: type
    required: bool = False
    default: Any = None
    minimum: Optional[int] = None
    description: str = ''

    def process(self, raw: Mapping[str, Any]) -> Any:
        """
        Resolve this rule's value from the host config map.

        Args:
            raw (Mapping): Config values supplied by the host

        Returns:
            Any: The coerced value, or the default when the key is absent

        Raises:
            ConfigError: If a required key is missing or the value is malformed
        """
        value = raw.get(self.key)
        if value is None:
            if self.required:
                raise ConfigError(f"Missing required config key '{self.key}'")
            return self.default

        if self.type is int:
            value = self._to_int(value)
        elif not isinstance(value, str) or not value.strip():
            raise ConfigError(f"Config key '{self.key}' must be a non-empty string")

        if self.minimum is not None and value < self.minimum:
            raise ConfigError(f"Config key '{self.key}' must be >= {self.minimum}, got {value}")
        return value

    def _to_int(self, value: Any) -> int:
        # bool is an int subclass but never a meaningful setting here
        if isinstance(value, bool):
            raise ConfigError(f"Config key '{self.key}' must be an integer, got {value!r}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                pass
        raise ConfigError(f"Config key '{self.key}' must be an integer, got {value!r}")


class ConfigPolicy:
    """Ordered collection of config rules."""

    def __init__(self, rules: Optional[List[ConfigRule]] = None):
        self.rules: Dict[str, ConfigRule] = {}
        for rule in rules or []:
            self.add(rule)

    def add(self, rule: ConfigRule) -> None:
        self.rules[rule.key] = rule

    def get(self, key: str) -> Optional[ConfigRule]:
        return self.rules.get(key)

    def process(self, raw: Optional[Mapping[str, Any]]) -> PublisherConfig:
        """
        Validate a host config map and build the resolved publisher config.

        Args:
            raw (Mapping): Config values supplied by the host

        Returns:
            PublisherConfig: The resolved configuration

        Raises:
            ConfigError: If any rule rejects its value
        """
        if raw is None:
            raw = {}
        values = {key: rule.process(raw) for key, rule in self.rules.items()}
        return PublisherConfig(
            server=values['server'],
            rollup_num=values['rollupNum'],
            ttl_in_seconds=values['ttlInSeconds'],
            timeout=values['timeout'],
        )


def get_config_policy() -> ConfigPolicy:
    """
    Build the config policy for the Blueflood publisher.

    Returns:
        ConfigPolicy: Rules for server, rollupNum, ttlInSeconds and timeout
    """
    return ConfigPolicy([
        ConfigRule(
            'server', str, required=True,
            description='Blueflood host address',
        ),
        ConfigRule(
            'rollupNum', int, default=DEFAULT_ROLLUP_NUM, minimum=1,
            description='Configurable value to break up blueflood ingest requests into chunks of metrics',
        ),
        ConfigRule(
            'ttlInSeconds', int, default=DEFAULT_TTL_IN_SECONDS, minimum=0,
            description='Blueflood ingest setting for number of seconds before data expires in blueflood ingest',
        ),
        ConfigRule(
            'timeout', int, default=DEFAULT_TIMEOUT, minimum=0,
            description='Number of seconds to time out requests to the blueflood server',
        ),
    ])


def resolve_config(raw: Optional[Mapping[str, Any]]) -> PublisherConfig:
    """
    Resolve a host config map against the publisher's config policy.

    Args:
        raw (Mapping): Config values supplied by the host

    Returns:
        PublisherConfig: The resolved configuration
    """
    try:
        return get_config_policy().process(raw)
    except ConfigError as e:
        logger.error("Config policy not satisfied: %s", e)
        raise
