import pytest

from threatdesk.services.enrichment.core_service.fallback_service import (
    FallbackReputationProvider,
    is_private_address,
)


@pytest.mark.parametrize(
    "ip",
    ["10.0.0.5", "172.16.4.4", "172.31.255.1", "192.168.1.100"],
)
def test_private_ranges_are_whitelisted_with_zero_score(ip):
    rep = FallbackReputationProvider().generate(ip)

    assert rep.is_whitelisted is True
    assert rep.abuse_confidence_score == 0
    assert rep.total_reports == 0
    assert rep.raw_payload["stub"] is True


@pytest.mark.parametrize("ip", ["172.15.0.1", "172.32.0.1", "8.8.8.8", "not-an-ip"])
def test_is_private_address_negative(ip):
    assert is_private_address(ip) is False


@pytest.mark.parametrize(
    "ip, score, reports",
    [
        ("203.0.113.250", 75, 50),   # 250 % 25 == 0, 250 % 50 == 0
        ("203.0.113.201", 76, 51),
        ("198.51.100.150", 25, 20),  # 150 % 25 == 0, 150 % 20 == 10
        ("198.51.100.101", 26, 11),
        ("198.51.100.44", 14, 4),
        ("198.51.100.100", 10, 0),
    ],
)
def test_public_addresses_are_banded_by_last_octet(ip, score, reports):
    rep = FallbackReputationProvider().generate(ip)

    assert rep.abuse_confidence_score == score
    assert rep.total_reports == reports
    assert rep.is_whitelisted is False
    assert rep.country_code == "US"


def test_bands_cover_expected_ranges():
    gen = FallbackReputationProvider()
    for octet in range(256):
        score = gen.generate(f"198.51.100.{octet}").abuse_confidence_score
        if octet > 200:
            assert 75 <= score <= 99
        elif octet > 100:
            assert 25 <= score <= 49
        else:
            assert 0 <= score <= 14


def test_generation_is_deterministic():
    gen = FallbackReputationProvider()
    assert gen.generate("203.0.113.222") == gen.generate("203.0.113.222")
