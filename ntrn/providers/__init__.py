"""AI provider integration: provider specs, settings files, HTTP client and manager."""

from ntrn.providers.manager import AIProviderManager
from ntrn.providers.models import PROVIDERS, AIResponse, ProviderSpec

__all__ = ["AIProviderManager", "AIResponse", "PROVIDERS", "ProviderSpec"]
