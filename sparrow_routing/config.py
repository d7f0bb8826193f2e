"""
Sparrow Routing - Configuration

Environment-driven settings for the resolver and its providers, plus the
startup checks that refuse unusable configurations.
"""

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Tuple

from .core.models import ProviderSlot


class ConfigurationError(ValueError):
    """Settings cannot produce a working resolver."""
    pass


@dataclass
class CacheConfig:
    """Configuration for the route cache."""
    # Maximum age at which an entry is still served (seconds)
    ttl_seconds: float = 300.0

    # Maximum number of entries held
    max_size: int = 50


@dataclass
class HealthConfig:
    """Configuration for provider health tracking."""
    # Consecutive failures that mark a provider unhealthy
    failure_threshold: int = 3


@dataclass
class ProviderEndpoint:
    """Connection settings of one provider slot."""
    name: str
    base_url: Optional[str] = None
    api_key: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url)


@dataclass
class RoutingSettings:
    """Everything needed to build a RouteResolver."""
    cache: CacheConfig = field(default_factory=CacheConfig)
    health: HealthConfig = field(default_factory=HealthConfig)
    providers: List[ProviderEndpoint] = field(default_factory=list)
    provider_timeout_seconds: float = 10.0
    structured_provider: Optional[str] = ProviderSlot.TERTIARY.value
    use_stub_providers: bool = False
    log_level: str = "INFO"
    log_format: str = "json"

    def provider_names(self) -> List[str]:
        return [endpoint.name for endpoint in self.providers]

    def configured_providers(self) -> List[ProviderEndpoint]:
        """Endpoints a resolver would actually call, most preferred first."""
        if self.use_stub_providers:
            return list(self.providers)
        return [endpoint for endpoint in self.providers if endpoint.is_configured]


TRUE_VALUES = {"1", "true", "yes", "on"}
NO_STRUCTURED_PROVIDER = {"", "none", "off"}


def _get(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _get_bool(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    raw = _get(env, name)
    if raw is None:
        return default
    return raw.lower() in TRUE_VALUES


def load_settings(env: Optional[Mapping[str, str]] = None) -> RoutingSettings:
    """
    Read settings from the environment.

    Args:
        env: Variables to read (defaults to ``os.environ``)

    Raises:
        ConfigurationError: a numeric variable does not parse
    """
    env = os.environ if env is None else env

    providers = []
    for slot in ProviderSlot:
        prefix = slot.value.upper()
        providers.append(
            ProviderEndpoint(
                name=slot.value,
                base_url=_get(env, f"{prefix}_ROUTING_URL"),
                api_key=_get(env, f"{prefix}_ROUTING_API_KEY"),
            )
        )

    structured = env.get("STRUCTURED_ROUTING_PROVIDER")
    if structured is None:
        structured_provider: Optional[str] = ProviderSlot.TERTIARY.value
    elif structured.strip().lower() in NO_STRUCTURED_PROVIDER:
        structured_provider = None
    else:
        structured_provider = structured.strip().lower()

    return RoutingSettings(
        cache=CacheConfig(
            ttl_seconds=_get_float(env, "ROUTE_CACHE_TTL_SECONDS", 300.0),
            max_size=_get_int(env, "ROUTE_CACHE_MAX_SIZE", 50),
        ),
        health=HealthConfig(
            failure_threshold=_get_int(env, "PROVIDER_FAILURE_THRESHOLD", 3),
        ),
        providers=providers,
        provider_timeout_seconds=_get_float(env, "PROVIDER_TIMEOUT_SECONDS", 10.0),
        structured_provider=structured_provider,
        use_stub_providers=_get_bool(env, "USE_STUB_PROVIDERS"),
        log_level=(_get(env, "LOG_LEVEL") or "INFO").upper(),
        log_format=(_get(env, "LOG_FORMAT") or "json").lower(),
    )


def check_settings(settings: RoutingSettings) -> Tuple[List[str], List[str]]:
    """
    Inspect settings without raising.

    Returns:
        (errors, warnings)
    """
    errors: List[str] = []
    warnings: List[str] = []

    if settings.cache.ttl_seconds <= 0:
        errors.append("ROUTE_CACHE_TTL_SECONDS must be > 0")
    if settings.cache.max_size <= 0:
        errors.append("ROUTE_CACHE_MAX_SIZE must be > 0")
    if settings.health.failure_threshold <= 0:
        errors.append("PROVIDER_FAILURE_THRESHOLD must be > 0")
    if settings.provider_timeout_seconds <= 0:
        errors.append("PROVIDER_TIMEOUT_SECONDS must be > 0")

    active = [endpoint.name for endpoint in settings.configured_providers()]
    if not active:
        errors.append(
            "No routing provider configured: set PRIMARY_ROUTING_URL (or another "
            "*_ROUTING_URL), or USE_STUB_PROVIDERS=true for local runs"
        )

    structured = settings.structured_provider
    if structured is not None:
        if structured not in settings.provider_names():
            errors.append(
                f"STRUCTURED_ROUTING_PROVIDER {structured!r} is not one of "
                f"{', '.join(settings.provider_names())}"
            )
        elif active and structured not in active:
            warnings.append(
                f"STRUCTURED_ROUTING_PROVIDER {structured!r} has no URL; "
                "structured requests use standard resolution"
            )

    if not settings.use_stub_providers:
        for endpoint in settings.configured_providers():
            if not endpoint.api_key:
                warnings.append(f"{endpoint.name.upper()}_ROUTING_API_KEY is not set")

    if settings.log_format not in {"json", "text"}:
        warnings.append(f"LOG_FORMAT {settings.log_format!r} is not json or text; using text")

    return errors, warnings


def validate_settings(settings: RoutingSettings) -> List[str]:
    """
    Fail closed on unusable settings.

    Returns:
        Warnings that do not prevent startup

    Raises:
        ConfigurationError: listing every blocking problem
    """
    errors, warnings = check_settings(settings)
    if errors:
        raise ConfigurationError("; ".join(errors))
    return warnings
