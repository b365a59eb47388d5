"""CLI entry point: ntrn.

Subcommands:
    ntrn convert ./my-next-app ./my-expo-app   # Full AI conversion
    ntrn analyze ./my-next-app [--json]        # Analysis only, no AI
    ntrn fix ./my-expo-app                     # Regex runtime fixes only
    ntrn provider setup | switch | show        # Manage the AI provider
"""

from __future__ import annotations

import asyncio
import json
import os
import re
import shutil
import sys
from pathlib import Path
from typing import Any

import click

from ntrn import __version__
from ntrn.analysis.analyzer import IntelligentProjectAnalyzer, render_summary
from ntrn.analysis.composition import ComponentCompositionMapper
from ntrn.analysis.config_analyzer import ConfigurationAnalyzer
from ntrn.analysis.structure import scan_structure
from ntrn.conversion.converter import ProfessionalConverter, render_conversion_summary
from ntrn.core.config import load_conversion_config
from ntrn.core.logging import setup_logging
from ntrn.exceptions import NtrnError
from ntrn.fixer import RuntimeErrorFixer
from ntrn.progress import ProgressTracker
from ntrn.providers.manager import AIProviderManager
from ntrn.providers.models import PROVIDERS
from ntrn.providers.settings import AI_CONFIG_FILENAME, ENV_FILENAME, ntrn_home

_PROJECT_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _manager(ctx: click.Context, timeout: float | None = None) -> AIProviderManager:
    config_dir: Path = ctx.obj["config_dir"]
    kwargs: dict[str, Any] = {}
    if timeout is not None:
        kwargs["timeout"] = timeout
    return AIProviderManager(
        config_dir / AI_CONFIG_FILENAME, config_dir / ENV_FILENAME, **kwargs
    )


@click.group()
@click.version_option(__version__, prog_name="ntrn")
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding ai-config.json and .env (default: $NTRN_HOME or ~/.ntrn)",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write JSON-lines logs to this file (default: $NTRN_LOG_FILE)",
)
@click.pass_context
def main(
    ctx: click.Context, verbose: bool, config_dir: Path | None, log_file: Path | None
) -> None:
    """ntrn: convert Next.js projects into React Native (Expo) apps."""
    setup_logging(verbose=verbose, log_file=log_file)
    ctx.ensure_object(dict)
    ctx.obj["config_dir"] = config_dir or ntrn_home()


# ── convert ──


@main.command("convert")
@click.argument("source", required=False, type=click.Path(path_type=Path))
@click.argument("dest", required=False, type=click.Path(path_type=Path))
@click.option("--force", is_flag=True, help="Overwrite the destination without asking")
@click.option("--no-ai-fix", is_flag=True, help="Skip the AI repair pass on invalid output")
@click.pass_context
def convert(
    ctx: click.Context, source: Path | None, dest: Path | None, force: bool, no_ai_fix: bool
) -> None:
    """Convert the Next.js project SOURCE into an Expo project at DEST."""
    if source is None:
        source = Path(click.prompt("Path to your Next.js project", default="."))
    if not source.is_dir():
        _fail(f"Next.js project not found: {source}")
    if dest is None:
        dest = Path(click.prompt("Name of the React Native project", default="my-expo-app"))
    if not _PROJECT_NAME_RE.match(dest.name):
        _fail("Project name may only contain letters, numbers, hyphens and underscores")

    if dest.exists():
        if not force and not click.confirm(f"{dest} already exists. Overwrite?", default=False):
            click.echo("Aborted.")
            return
        shutil.rmtree(dest)

    config = load_conversion_config(source)
    manager = _manager(ctx, timeout=config.ai.timeout)
    try:
        manager.ensure_api_keys()
    except (NtrnError, ValueError) as exc:
        _fail(str(exc))

    tracker = ProgressTracker()
    converter = ProfessionalConverter(
        source, dest, manager, config=config, tracker=tracker, ai_fix=not no_ai_fix
    )

    async def _run():
        async with manager:
            return await converter.convert()

    try:
        summary = asyncio.run(_run())
    except NtrnError as exc:
        _echo_pipeline(tracker, err=True)
        _fail(str(exc))
    except OSError as exc:
        _echo_pipeline(tracker, err=True)
        _fail(f"Could not write {dest}: {exc}")

    _echo_pipeline(tracker)
    click.echo("\nConversion results:")
    for line in render_conversion_summary(summary):
        click.echo(f"  {line}")
    click.echo(f"\nNext steps:\n  cd {dest}\n  npm install\n  npx expo start")


def _echo_pipeline(tracker: ProgressTracker, err: bool = False) -> None:
    click.echo("\nPipeline summary:", err=err)
    for line in tracker.summary_lines():
        click.echo(line, err=err)


# ── analyze ──


@main.command("analyze")
@click.argument("source", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Print the full analysis as JSON")
def analyze(source: Path, as_json: bool) -> None:
    """Analyze the Next.js project SOURCE without calling any AI provider."""
    try:
        analysis = IntelligentProjectAnalyzer(source).analyze()
    except NtrnError as exc:
        _fail(str(exc))
    configuration = ConfigurationAnalyzer(source).analyze()
    structure = scan_structure(source)
    mapper = ComponentCompositionMapper()
    graph = mapper.build_graph(structure)
    trees = mapper.visualize(graph, structure.paths("pages"))

    if as_json:
        payload = analysis.to_dict()
        payload["configuration"] = configuration.to_dict()
        payload["composition"] = trees
        click.echo(json.dumps(payload, indent=2, default=str))
        return

    for line in render_summary(analysis):
        click.echo(line)
    click.echo("Configuration:")
    click.echo(f"  Routing:    {configuration.routing.type}")
    click.echo(f"  TypeScript: {'yes' if configuration.typescript_config.exists else 'no'}")
    click.echo(f"  Tailwind:   {'yes' if configuration.tailwind_config.exists else 'no'}")
    click.echo(f"  API routes: {len(configuration.api_routes)}")
    if trees:
        click.echo("Component composition:")
        for tree in trees:
            _echo_tree(tree, indent=1)


def _echo_tree(node: dict[str, Any], indent: int) -> None:
    click.echo(f"{'  ' * indent}{node['component_name']}")
    for child in node.get("children", []):
        _echo_tree(child, indent + 1)


# ── fix ──


@main.command("fix")
@click.argument("project", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--no-backup", is_flag=True, help="Do not write <file>.backup copies")
def fix(project: Path, no_backup: bool) -> None:
    """Apply the regex runtime fixes to an existing Expo project."""
    report = RuntimeErrorFixer(project, backups=not no_backup).fix_project()
    click.echo(f"Fixed files: {len(report.fixed_files)}")
    for rel in report.fixed_files:
        click.echo(f"  [+] {rel}")
    if report.package_json_updated:
        click.echo("  [+] package.json")
    for rel, error in report.errors.items():
        click.echo(f"  [!] {rel}: {error}", err=True)


# ── provider ──


@main.group("provider")
def provider() -> None:
    """Manage the AI provider (Mistral or Gemini)."""


@provider.command("setup")
@click.pass_context
def provider_setup(ctx: click.Context) -> None:
    """Choose a provider and store its API key."""
    manager = _manager(ctx)
    try:
        manager.ensure_api_keys()
    except (NtrnError, ValueError) as exc:
        _fail(str(exc))
    click.echo(f"Selected provider: {manager.selected.name}")


@provider.command("switch")
@click.pass_context
def provider_switch(ctx: click.Context) -> None:
    """Switch between Mistral and Gemini."""
    manager = _manager(ctx)
    try:
        switched = manager.switch_provider()
    except (NtrnError, ValueError) as exc:
        _fail(str(exc))
    if not switched:
        click.echo("Provider unchanged.")
        return
    click.echo(f"Switched to {manager.selected.name}")


@provider.command("show")
@click.pass_context
def provider_show(ctx: click.Context) -> None:
    """Show the selected provider and which API keys are present."""
    manager = _manager(ctx)
    manager.initialize()
    selected = manager.selected
    click.echo(f"Selected provider: {selected.name if selected else 'none'}")
    click.echo(f"Config: {manager.config_path}")
    for spec in PROVIDERS.values():
        has_key = bool(os.environ.get(spec.key_name))
        marker = "+" if has_key else "-"
        tag = " (recommended)" if spec.recommended else ""
        click.echo(f"  [{marker}] {spec.name}{tag}: {spec.model}, {spec.rpm} requests/min")


if __name__ == "__main__":
    main()
