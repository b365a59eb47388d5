"""AIProviderManager: provider selection, API-key setup and guarded AI calls."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol

import click
import httpx
import structlog

from ntrn.exceptions import ProviderNotConfiguredError
from ntrn.providers.client import REQUEST_TIMEOUT, ProviderClient
from ntrn.providers.models import DEFAULT_PROVIDER, PROVIDERS, AIResponse, ProviderSpec, other_provider
from ntrn.providers.rate_limiter import is_overload_error, is_rate_limit_error
from ntrn.providers.settings import (
    AI_CONFIG_FILENAME,
    ENV_FILENAME,
    MIN_API_KEY_LENGTH,
    AIConfig,
    is_usable_key,
    load_ai_config,
    load_env_file,
    ntrn_home,
    save_ai_config,
    save_api_key,
)

log = structlog.get_logger("ntrn.providers")


class Prompter(Protocol):
    """Interactive questions asked during provider setup."""

    def choose_provider(self, providers: list[ProviderSpec], default: str) -> str | None: ...

    def ask_api_key(self, spec: ProviderSpec) -> str | None: ...

    def confirm(self, message: str, default: bool = False) -> bool: ...

    def info(self, message: str) -> None: ...


class ClickPrompter:
    """Terminal prompts backed by click."""

    def choose_provider(self, providers: list[ProviderSpec], default: str) -> str | None:
        for spec in providers:
            tag = " (recommended)" if spec.recommended else ""
            click.echo(f"  {spec.key:<8} {spec.name}{tag}: {spec.rpm}/min, {spec.rps:g}/sec")
            if spec.description:
                click.echo(f"           {spec.description}")
        return click.prompt(
            "Choose your AI provider",
            type=click.Choice([p.key for p in providers], case_sensitive=False),
            default=default,
        ).upper()

    def ask_api_key(self, spec: ProviderSpec) -> str | None:
        value = click.prompt(
            f"Enter your {spec.name} API key",
            hide_input=True,
            default="",
            show_default=False,
        )
        value = value.strip()
        if len(value) < MIN_API_KEY_LENGTH:
            click.echo(f"API key must be at least {MIN_API_KEY_LENGTH} characters.", err=True)
            return None
        return value

    def confirm(self, message: str, default: bool = False) -> bool:
        return click.confirm(message, default=default)

    def info(self, message: str) -> None:
        click.echo(message)


class AIProviderManager:
    """Own the selected provider and route every AI request through it."""

    def __init__(
        self,
        config_path: str | Path | None = None,
        env_path: str | Path | None = None,
        *,
        prompter: Prompter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        home = ntrn_home()
        self.config_path = Path(config_path) if config_path else home / AI_CONFIG_FILENAME
        self.env_path = Path(env_path) if env_path else home / ENV_FILENAME
        self.prompter: Prompter = prompter or ClickPrompter()
        self.config: AIConfig = AIConfig()
        self.client: ProviderClient | None = None
        self._retired: list[ProviderClient] = []
        self._active_key: str | None = None
        self._transport = transport
        self._timeout = timeout
        self._initialized = False

    # ── lifecycle ──────────────────────────────────────────────────────────

    def initialize(self) -> None:
        if self._initialized:
            return
        load_env_file(self.env_path)
        self.config = load_ai_config(self.config_path)

        selected = self.config.selected_provider
        if selected in PROVIDERS:
            spec = PROVIDERS[selected]
            api_key = os.environ.get(spec.key_name)
            if api_key:
                self._activate(spec, api_key)
                log.info("provider.loaded", provider=spec.key)
        self._initialized = True

    async def close(self) -> None:
        for client in self._retired:
            await client.close()
        self._retired.clear()
        if self.client is not None:
            await self.client.close()
            self.client = None

    async def __aenter__(self) -> AIProviderManager:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── setup ──────────────────────────────────────────────────────────────

    @property
    def selected(self) -> ProviderSpec | None:
        return PROVIDERS.get(self.config.selected_provider or "")

    def ensure_api_keys(self) -> bool:
        """Make sure a provider is selected and has a usable API key.

        Prompts interactively when needed. Raises
        :class:`ProviderNotConfiguredError` when the user supplies no key.
        """
        self.initialize()

        spec = self.selected
        if spec is not None:
            api_key = os.environ.get(spec.key_name)
            if is_usable_key(api_key):
                self._activate(spec, api_key)
                return True

        choice = self.prompter.choose_provider(list(PROVIDERS.values()), DEFAULT_PROVIDER)
        if not choice or choice not in PROVIDERS:
            log.info("provider.default_selected", provider=DEFAULT_PROVIDER)
            choice = DEFAULT_PROVIDER
        spec = PROVIDERS[choice]

        existing = os.environ.get(spec.key_name)
        if is_usable_key(existing):
            self.prompter.info(f"Found existing {spec.name} API key")
            self._select(spec, existing)
            return True

        api_key = self.prompter.ask_api_key(spec)
        if not api_key:
            raise ProviderNotConfiguredError(f"An API key for {spec.name} is required")
        save_api_key(self.env_path, spec.key_name, api_key)
        self._select(spec, api_key)
        self.prompter.info(f"{spec.name} configured. Keys are stored in {self.env_path}")

        other = other_provider(spec.key)
        if not os.environ.get(other.key_name) and self.prompter.confirm(
            f"Also configure {other.name}? (optional, for later use)", default=False
        ):
            other_key = self.prompter.ask_api_key(other)
            if other_key:
                save_api_key(self.env_path, other.key_name, other_key)
                self.prompter.info(f"{other.name} also configured")
        return True

    def switch_provider(self) -> bool:
        """Flip between Mistral and Gemini, prompting for a key when missing."""
        self.initialize()
        target = other_provider(self.config.selected_provider)

        api_key = os.environ.get(target.key_name)
        if not api_key:
            if not self.prompter.confirm(
                f"{target.name} is not configured. Configure it now?", default=True
            ):
                return False
            api_key = self.prompter.ask_api_key(target)
            if not api_key:
                return False
            save_api_key(self.env_path, target.key_name, api_key)

        self._select(target, api_key)
        log.info("provider.switched", provider=target.key)
        return True

    # ── calls ──────────────────────────────────────────────────────────────

    async def call_ai(
        self,
        prompt: str,
        *,
        task: str = "code-generation",
        temperature: float = 0.1,
        max_tokens: int = 8192,
    ) -> AIResponse:
        if self.client is None:
            raise ProviderNotConfiguredError(
                "No AI provider configured. Run `ntrn provider setup` first."
            )

        spec = self.client.spec
        log.info("provider.call", provider=spec.key, task=task)
        try:
            return await self.client.generate(
                prompt, temperature=temperature, max_tokens=max_tokens
            )
        except Exception as exc:
            log.error("provider.call_failed", provider=spec.key, task=task, error=str(exc))
            if is_rate_limit_error(exc):
                log.warning(
                    "provider.rate_limited",
                    provider=spec.key,
                    rpm=spec.rpm,
                    rps=spec.rps,
                )
            elif is_overload_error(exc):
                log.warning("provider.overloaded", provider=spec.key)
            other = other_provider(spec.key)
            if os.environ.get(other.key_name):
                log.info(
                    "provider.switch_hint",
                    available=other.key,
                    hint="run `ntrn provider switch`",
                )
            raise

    # ── internal ───────────────────────────────────────────────────────────

    def _select(self, spec: ProviderSpec, api_key: str) -> None:
        self.config.selected_provider = spec.key
        save_ai_config(self.config, self.config_path)
        self._activate(spec, api_key)

    def _activate(self, spec: ProviderSpec, api_key: str) -> None:
        if self.client is not None:
            if self.client.spec.key == spec.key and self._active_key == api_key:
                return
            self._retired.append(self.client)
        self.client = ProviderClient(
            spec, api_key, timeout=self._timeout, transport=self._transport
        )
        self._active_key = api_key
