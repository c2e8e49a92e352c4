"""Tests for webhook endpoint URL validation."""

import pytest

from eventlane_service.core.validators.webhooks import InvalidEndpointError, validate_endpoint_url


class TestValidateEndpointUrl:
    def test_accepts_https_url(self) -> None:
        assert validate_endpoint_url("https://hooks.example.com/in") == "https://hooks.example.com/in"

    def test_strips_whitespace(self) -> None:
        assert validate_endpoint_url("  https://example.com/x ") == "https://example.com/x"

    @pytest.mark.parametrize(
        "url",
        ["http://example.com/hook", "ftp://example.com", "example.com/hook", "", "https://"],
    )
    def test_rejects_non_https_or_hostless(self, url: str) -> None:
        with pytest.raises(InvalidEndpointError):
            validate_endpoint_url(url)

    def test_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            validate_endpoint_url("http://example.com")

    @pytest.mark.parametrize(
        "url",
        [
            "https://127.0.0.1/hook",
            "https://10.1.2.3/hook",
            "https://192.168.0.10:8443/hook",
            "https://169.254.169.254/latest",
            "https://0.0.0.0/",
            "https://[::1]/hook",
        ],
    )
    def test_blocks_internal_ip_literals(self, url: str) -> None:
        with pytest.raises(InvalidEndpointError):
            validate_endpoint_url(url)

    def test_private_ip_allowed_when_not_blocking(self) -> None:
        assert validate_endpoint_url("https://10.0.0.5/hook", block_private=False) == "https://10.0.0.5/hook"

    def test_public_ip_literal_allowed(self) -> None:
        assert validate_endpoint_url("https://93.184.216.34/hook") == "https://93.184.216.34/hook"

    def test_rejects_invalid_port(self) -> None:
        with pytest.raises(InvalidEndpointError):
            validate_endpoint_url("https://example.com:99999/hook")
