"""Data models for AI providers."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ProviderSpec:
    """Static description of a supported LLM vendor."""

    key: str
    name: str
    base_url: str
    model: str
    key_name: str
    rpm: int
    rps: float
    recommended: bool = False
    features: tuple[str, ...] = ()
    description: str = ""


@dataclass
class AIResponse:
    """Result of a single completion request."""

    content: str
    tokens_used: int = 0
    provider: str = ""
    model: str = ""
    raw: dict = field(default_factory=dict, repr=False)


MISTRAL = ProviderSpec(
    key="MISTRAL",
    name="Mistral AI",
    base_url="https://api.mistral.ai/v1/chat/completions",
    model="mistral-large-latest",
    key_name="MISTRAL_API_KEY",
    rpm=60,
    rps=1,
    recommended=True,
    features=("code-generation", "debugging", "analysis", "professional-conversion"),
    description="Strong code generation for React Native conversions",
)

GEMINI = ProviderSpec(
    key="GEMINI",
    name="Gemini 2.0 Flash",
    base_url=(
        "https://generativelanguage.googleapis.com/v1beta/models/"
        "gemini-2.0-flash:generateContent"
    ),
    model="gemini-2.0-flash",
    key_name="GEMINI_API_KEY",
    rpm=60,
    rps=1,
    features=("code-generation", "analysis", "explanation"),
    description="Fast general-purpose model with good Next.js understanding",
)

# Insertion order is the order shown to the user; the first entry is the default.
PROVIDERS: dict[str, ProviderSpec] = {
    MISTRAL.key: MISTRAL,
    GEMINI.key: GEMINI,
}

DEFAULT_PROVIDER = MISTRAL.key


def other_provider(key: str | None) -> ProviderSpec:
    """Return the provider that is not *key* (Mistral when *key* is unset)."""
    return GEMINI if key == MISTRAL.key else MISTRAL
