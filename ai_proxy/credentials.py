"""Read-only access to the configured provider and its API credentials."""

from typing import Optional

from .config import Provider, Settings, get_settings


class CredentialStore:
    """Accessor for provider selection and per-provider API keys."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings: Settings = settings or get_settings()

    @property
    def provider(self) -> Provider:
        return self.settings.AI_API_PROVIDER

    def api_key(self, provider: Provider) -> str:
        if provider is Provider.ANTHROPIC:
            return self.settings.ANTHROPIC_API_KEY or ""
        return self.settings.OPENAI_API_KEY or ""

    def has_credential(self, provider: Optional[Provider] = None) -> bool:
        return bool(self.api_key(provider or self.provider).strip())

    def missing_credential_notice(self) -> Optional[str]:
        """Warning text shown to operators when the active provider has no key."""
        if self.has_credential():
            return None
        env_name = "ANTHROPIC_API_KEY" if self.provider is Provider.ANTHROPIC else "OPENAI_API_KEY"
        return (
            f"No API key configured for provider '{self.provider.value}'. "
            f"Set {env_name} to enable the AI API proxy."
        )
