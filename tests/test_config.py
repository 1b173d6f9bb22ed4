import pytest
from pydantic import ValidationError

from ai_proxy.config import Provider, Settings, check_gateway_api_key
from ai_proxy.credentials import CredentialStore

from conftest import GATEWAY_KEY, build_settings


class TestSettings:
    def test_provider_from_environment(self, monkeypatch):
        monkeypatch.setenv("AI_API_PROVIDER", "anthropic")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "ak-env")
        settings = Settings()
        assert settings.AI_API_PROVIDER is Provider.ANTHROPIC
        assert settings.ANTHROPIC_API_KEY == "ak-env"

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("AI_API_PROVIDER", raising=False)
        settings = Settings()
        assert settings.AI_API_PROVIDER is Provider.OPENAI
        assert settings.PROXY_TIMEOUT == 60
        assert settings.MODELS_TIMEOUT == 30
        assert settings.MODELS_CACHE_TTL == 1800

    def test_unsupported_provider_rejected(self):
        with pytest.raises(ValidationError):
            build_settings(AI_API_PROVIDER="mistral")


class TestGatewayKey:
    @pytest.mark.parametrize("header, expected", [
        (f"Bearer {GATEWAY_KEY}", True),
        (f"bearer {GATEWAY_KEY}", True),
        ("Bearer wrong", False),
        (GATEWAY_KEY, False),
        ("", False),
        (None, False),
    ])
    def test_check_gateway_api_key(self, header, expected):
        assert check_gateway_api_key(header, build_settings()) is expected

    def test_unset_key_never_matches(self):
        assert check_gateway_api_key("Bearer anything", build_settings(GATEWAY_API_KEY=None)) is False


class TestCredentialStore:
    def test_active_provider_key(self):
        store = CredentialStore(build_settings(AI_API_PROVIDER="anthropic", ANTHROPIC_API_KEY="ak"))
        assert store.provider is Provider.ANTHROPIC
        assert store.api_key(Provider.ANTHROPIC) == "ak"
        assert store.api_key(Provider.OPENAI) == "sk-test"
        assert store.has_credential()

    def test_blank_key_is_missing(self):
        store = CredentialStore(build_settings(OPENAI_API_KEY="   "))
        assert not store.has_credential()
        assert "OPENAI_API_KEY" in store.missing_credential_notice()

    def test_no_notice_when_configured(self):
        assert CredentialStore(build_settings()).missing_credential_notice() is None
