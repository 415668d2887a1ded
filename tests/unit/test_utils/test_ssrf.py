"""Unit tests for the outbound URL guard — DNS is always faked."""
from __future__ import annotations

import socket

import pytest

from cronwatch.utils import ssrf
from cronwatch.utils.exceptions import UnsafeURLError
from cronwatch.utils.ssrf import is_blocked_address, validate_url_not_internal


@pytest.mark.unit
@pytest.mark.parametrize(
    "address",
    [
        "127.0.0.1",
        "10.1.2.3",
        "172.16.0.1",
        "192.168.1.10",
        "169.254.169.254",
        "100.64.0.1",
        "0.0.0.0",
        "224.0.0.1",
        "::1",
        "fe80::1%eth0",
        "fc00::1",
        "::ffff:127.0.0.1",
        "::ffff:10.0.0.1",
    ],
)
def test_blocked_addresses(address: str) -> None:
    assert is_blocked_address(address) is True


@pytest.mark.unit
@pytest.mark.parametrize("address", ["93.184.216.34", "1.1.1.1", "2606:4700:4700::1111"])
def test_public_addresses(address: str) -> None:
    assert is_blocked_address(address) is False


@pytest.mark.unit
@pytest.mark.parametrize(
    "url",
    [
        "ftp://example.com/file",
        "file:///etc/passwd",
        "http://localhost:8000/hook",
        "http://LOCALHOST./hook",
        "http://metadata.google.internal/computeMetadata/v1/",
        "http://instance-data/latest",
        "http://127.0.0.1/hook",
        "http://[::1]/hook",
        "http://169.254.169.254/latest/meta-data",
    ],
)
async def test_rejects_unsafe_urls(url: str) -> None:
    with pytest.raises(UnsafeURLError):
        await validate_url_not_internal(url)


@pytest.mark.unit
async def test_accepts_public_host(public_dns) -> None:
    await validate_url_not_internal("https://hooks.example.com/services/abc")


@pytest.mark.unit
async def test_rejects_host_resolving_to_private(monkeypatch) -> None:
    async def fake_resolve(hostname, port=None):
        return ["93.184.216.34", "10.0.0.7"]

    monkeypatch.setattr(ssrf, "resolve_host", fake_resolve)
    with pytest.raises(UnsafeURLError) as exc_info:
        await validate_url_not_internal("https://rebind.example.com/hook")
    assert "10.0.0.7" in exc_info.value.reason


@pytest.mark.unit
async def test_rejects_unresolvable_host(monkeypatch) -> None:
    async def fake_resolve(hostname, port=None):
        raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")

    monkeypatch.setattr(ssrf, "resolve_host", fake_resolve)
    with pytest.raises(UnsafeURLError) as exc_info:
        await validate_url_not_internal("https://does-not-exist.invalid/hook")
    assert "could not be resolved" in exc_info.value.reason


@pytest.mark.unit
async def test_rejects_empty_resolution(monkeypatch) -> None:
    async def fake_resolve(hostname, port=None):
        return []

    monkeypatch.setattr(ssrf, "resolve_host", fake_resolve)
    with pytest.raises(UnsafeURLError):
        await validate_url_not_internal("https://empty.example.com/hook")
