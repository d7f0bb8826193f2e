"""
Sparrow Routing - Configuration Tests

Verifies:
- Environment parsing and defaults
- Fail-closed validation
- Resolver construction from settings
"""

import pytest

from sparrow_routing.adapters.http_adapter import HttpRouteProvider
from sparrow_routing.adapters.stub_adapter import StubRouteProvider
from sparrow_routing.config import (
    CacheConfig,
    ConfigurationError,
    HealthConfig,
    ProviderEndpoint,
    RoutingSettings,
    check_settings,
    load_settings,
    validate_settings,
)
from sparrow_routing.routing.factory import build_providers, create_resolver


# ============================================================
# Loading Tests
# ============================================================

class TestLoadSettings:
    """Test reading settings from an environment mapping."""

    def test_defaults(self):
        settings = load_settings({})

        assert settings.cache == CacheConfig(ttl_seconds=300.0, max_size=50)
        assert settings.health == HealthConfig(failure_threshold=3)
        assert settings.provider_timeout_seconds == 10.0
        assert settings.structured_provider == "tertiary"
        assert settings.use_stub_providers is False
        assert settings.provider_names() == ["primary", "secondary", "tertiary"]
        assert settings.configured_providers() == []

    def test_reads_environment(self):
        settings = load_settings({
            "ROUTE_CACHE_TTL_SECONDS": "120",
            "ROUTE_CACHE_MAX_SIZE": "10",
            "PROVIDER_FAILURE_THRESHOLD": "5",
            "PROVIDER_TIMEOUT_SECONDS": "2.5",
            "PRIMARY_ROUTING_URL": "https://primary.example.com",
            "PRIMARY_ROUTING_API_KEY": "pk",
            "TERTIARY_ROUTING_URL": "https://tertiary.example.com",
            "STRUCTURED_ROUTING_PROVIDER": "Primary",
            "LOG_LEVEL": "debug",
        })

        assert settings.cache.ttl_seconds == 120.0
        assert settings.cache.max_size == 10
        assert settings.health.failure_threshold == 5
        assert settings.provider_timeout_seconds == 2.5
        assert settings.structured_provider == "primary"
        assert settings.log_level == "DEBUG"
        assert [e.name for e in settings.configured_providers()] == ["primary", "tertiary"]
        assert settings.providers[0].api_key == "pk"

    @pytest.mark.parametrize("value", ["", "none", "OFF"])
    def test_structured_provider_disabled(self, value):
        assert load_settings({"STRUCTURED_ROUTING_PROVIDER": value}).structured_provider is None

    def test_stub_mode_uses_every_slot(self):
        settings = load_settings({"USE_STUB_PROVIDERS": "true"})
        assert [e.name for e in settings.configured_providers()] == ["primary", "secondary", "tertiary"]

    def test_non_numeric_value(self):
        with pytest.raises(ConfigurationError, match="ROUTE_CACHE_MAX_SIZE"):
            load_settings({"ROUTE_CACHE_MAX_SIZE": "many"})


# ============================================================
# Validation Tests
# ============================================================

class TestValidateSettings:
    """Test fail-closed validation."""

    def _settings(self, **overrides):
        base = dict(
            providers=[ProviderEndpoint("primary", "https://p.example.com", "key")],
            structured_provider=None,
        )
        base.update(overrides)
        return RoutingSettings(**base)

    def test_valid(self):
        assert validate_settings(self._settings()) == []

    def test_no_provider(self):
        settings = load_settings({})
        with pytest.raises(ConfigurationError, match="No routing provider"):
            validate_settings(settings)

    @pytest.mark.parametrize(
        "overrides,needle",
        [
            ({"cache": CacheConfig(ttl_seconds=0)}, "ROUTE_CACHE_TTL_SECONDS"),
            ({"cache": CacheConfig(max_size=0)}, "ROUTE_CACHE_MAX_SIZE"),
            ({"health": HealthConfig(failure_threshold=0)}, "PROVIDER_FAILURE_THRESHOLD"),
            ({"provider_timeout_seconds": -1}, "PROVIDER_TIMEOUT_SECONDS"),
            ({"structured_provider": "quaternary"}, "STRUCTURED_ROUTING_PROVIDER"),
        ],
    )
    def test_invalid(self, overrides, needle):
        with pytest.raises(ConfigurationError, match=needle):
            validate_settings(self._settings(**overrides))

    def test_reports_every_error(self):
        errors, _ = check_settings(
            self._settings(cache=CacheConfig(ttl_seconds=0, max_size=0))
        )
        assert len(errors) == 2

    def test_warnings(self):
        settings = load_settings({"PRIMARY_ROUTING_URL": "https://p.example.com"})
        warnings = validate_settings(settings)

        assert any("PRIMARY_ROUTING_API_KEY" in w for w in warnings)
        assert any("STRUCTURED_ROUTING_PROVIDER" in w for w in warnings)


# ============================================================
# Factory Tests
# ============================================================

class TestCreateResolver:
    """Test building resolvers from settings."""

    def test_stub_resolver(self, metrics, tracing):
        settings = load_settings({"USE_STUB_PROVIDERS": "1"})
        resolver = create_resolver(settings, metrics=metrics, tracing=tracing)

        assert resolver.provider_names == ["primary", "secondary", "tertiary"]
        assert all(isinstance(resolver.get_provider(n), StubRouteProvider) for n in resolver.provider_names)
        assert resolver.structured_provider == "tertiary"
        assert resolver.preference_ranks == {"primary": 3, "secondary": 2, "tertiary": 1}

    def test_http_resolver_only_configured_slots(self, metrics, tracing):
        settings = load_settings({
            "SECONDARY_ROUTING_URL": "https://s.example.com",
            "SECONDARY_ROUTING_API_KEY": "sk",
            "PROVIDER_TIMEOUT_SECONDS": "3",
            "ROUTE_CACHE_MAX_SIZE": "7",
        })
        resolver = create_resolver(settings, metrics=metrics, tracing=tracing)

        assert resolver.provider_names == ["secondary"]
        provider = resolver.get_provider("secondary")
        assert isinstance(provider, HttpRouteProvider)
        assert provider.config.timeout == 3.0
        assert resolver.preference_ranks == {"secondary": 2}
        # Tertiary has no URL, so structured requests go straight to standard resolution
        assert resolver.structured_provider is None
        assert resolver.cache.max_size == 7

    def test_invalid_settings_raise(self, metrics, tracing):
        with pytest.raises(ConfigurationError):
            create_resolver(load_settings({}), metrics=metrics, tracing=tracing)

    def test_build_providers_stub(self):
        providers = build_providers(load_settings({"USE_STUB_PROVIDERS": "yes"}))
        assert [p.name for p in providers] == ["primary", "secondary", "tertiary"]

    @pytest.mark.asyncio
    async def test_stub_resolver_resolves(self, metrics, tracing, origin, destination):
        settings = load_settings({"USE_STUB_PROVIDERS": "true"})

        async with create_resolver(settings, metrics=metrics, tracing=tracing) as resolver:
            best = await resolver.get_best(origin, destination)

        assert best.success is True
        assert best.route.provider == "primary"
        assert best.route.distance_meters > 0

    @pytest.mark.asyncio
    async def test_configured_ttl_reaches_resolver(
        self, metrics, tracing, fake_clock, origin, destination
    ):
        settings = load_settings({
            "USE_STUB_PROVIDERS": "1",
            "ROUTE_CACHE_TTL_SECONDS": "10",
            "PROVIDER_FAILURE_THRESHOLD": "5",
        })
        resolver = create_resolver(settings, metrics=metrics, tracing=tracing, clock=fake_clock)

        assert resolver.cache.ttl_seconds == 10.0
        assert resolver.health.config.failure_threshold == 5

        await resolver.resolve(origin, destination)
        fake_clock.advance(9)
        assert (await resolver.resolve(origin, destination)).from_cache is True

        fake_clock.advance(60)
        result = await resolver.resolve(origin, destination)
        assert result.from_cache is False
        assert result.provider == "primary"
