"""Tests for the target resolver."""

from unittest.mock import Mock

import pytest

from netreach.core.errors import CreationFailedError, InitFailedError, ResolveError
from netreach.core.resolver import TargetResolver, describe_target
from netreach.providers.base import DEFAULT_ROUTE_ADDRESS
from netreach.providers.memory import MemoryProvider


@pytest.fixture
def provider():
    return MemoryProvider()


def test_resolve_hostname(provider):
    handle = TargetResolver(provider).resolve("example.com")

    assert handle.target == "example.com"
    assert provider.handles == [handle]


@pytest.mark.parametrize("hostname", [None, ""])
def test_resolve_default_route(provider, hostname):
    handle = TargetResolver(provider).resolve(hostname)

    assert handle.target == DEFAULT_ROUTE_ADDRESS


def test_resolve_uses_matching_provider_call():
    provider = Mock()
    resolver = TargetResolver(provider)

    resolver.resolve("example.com")
    resolver.resolve()

    provider.create_with_name.assert_called_once_with("example.com")
    provider.create_with_address.assert_called_once_with("0.0.0.0")


@pytest.mark.parametrize("hostname", ["bad host", "-leading.example.com", "a" * 64 + ".com"])
def test_refused_hostname_raises_creation_failed(provider, hostname):
    with pytest.raises(CreationFailedError) as exc_info:
        TargetResolver(provider).resolve(hostname)

    assert exc_info.value.hostname == hostname
    assert isinstance(exc_info.value, ResolveError)
    assert provider.handles == []


def test_refused_default_route_raises_init_failed(provider):
    provider.refuse_creation = True

    with pytest.raises(InitFailedError):
        TargetResolver(provider).resolve(None)


def test_no_retry_on_failure():
    provider = Mock()
    provider.create_with_name.return_value = None

    with pytest.raises(CreationFailedError):
        TargetResolver(provider).resolve("example.com")

    assert provider.create_with_name.call_count == 1


def test_describe_target():
    assert describe_target("example.com") == "example.com"
    assert describe_target(None) == "default route"
