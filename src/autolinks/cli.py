"""CLI for the autolinks engine."""

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .app_logging import setup_logging
from .config import find_config_file, get_config, load_config, reset_config, save_default_config
from .exceptions import ConfigurationError
from .formatting import encode_html_weak, escape_markdown, get_superscript
from .integrations import GitRemote
from .provider import AutolinksProvider
from .references import Autolink, serialize_autolink
from .remotes import parse_remote_url
from .schema import OutputFormat


console = Console()


def _prepare(config: Optional[Path], verbose: bool) -> None:
    """Load configuration and configure logging for a command."""
    config_path = config or find_config_file()
    if config_path:
        try:
            load_config(config_path)
            if verbose:
                console.print(f"Loaded config from: {config_path}")
        except ConfigurationError as e:
            console.print(f"[yellow]Warning:[/yellow] Could not load config: {escape(e.message)}")
            reset_config()
    else:
        reset_config()

    cfg = get_config()
    setup_logging(
        level='DEBUG' if verbose else cfg.logging.level,
        dev_mode=cfg.logging.rich,
    )


def _resolve_remote(remote_url: Optional[str]) -> Optional[GitRemote]:
    if not remote_url:
        return None

    remote = parse_remote_url(remote_url)
    if remote.provider is None:
        console.print(f"[yellow]Warning:[/yellow] Unrecognized remote, provider references disabled: {escape(remote_url)}")
    return remote


def _source_name(autolink: Autolink) -> str:
    if autolink.provider is None:
        return 'custom'
    return getattr(autolink.provider, 'name', None) or str(getattr(autolink.provider, 'id', 'unknown'))


@click.group()
@click.version_option(version="0.1.0", prog_name="autolinks")
def main():
    """Autolinks.

    Find issue and pull request references in commit messages and branch
    names, and render them as links.
    """
    pass


@main.command(name='linkify')
@click.argument('text')
@click.option(
    '--format', '-f', 'output_format',
    type=click.Choice([f.value for f in OutputFormat]),
    default=OutputFormat.PLAINTEXT.value,
    help='Output format'
)
@click.option(
    '--remote', '-r',
    type=str,
    help='Git remote URL whose issue references should be linked, e.g. https://github.com/owner/repo'
)
@click.option(
    '--config', '-c',
    type=click.Path(exists=True, path_type=Path),
    help='Path to configuration YAML file'
)
@click.option(
    '--verbose', '-v',
    is_flag=True,
    help='Enable debug logging'
)
def linkify_cmd(text: str, output_format: str, remote: Optional[str], config: Optional[Path], verbose: bool):
    """Render the references in TEXT as links.

    Markdown and HTML output escape TEXT before linking and list footnotes
    after the rendered text.

    Example:
        autolinks linkify "Fixes #42" --format markdown --remote https://github.com/owner/repo
    """
    _prepare(config, verbose)
    fmt = OutputFormat(output_format)

    if fmt == OutputFormat.MARKDOWN:
        text = escape_markdown(text)
    elif fmt == OutputFormat.HTML:
        text = encode_html_weak(text)

    git_remote = _resolve_remote(remote)
    provider = AutolinksProvider()
    try:
        footnotes: Optional[dict[int, str]] = None if fmt == OutputFormat.PLAINTEXT else {}
        result = provider.linkify(
            text,
            fmt,
            remotes=[git_remote] if git_remote is not None else None,
            footnotes=footnotes,
        )
    finally:
        provider.dispose()

    click.echo(result)
    if footnotes:
        click.echo()
        for index, footnote in footnotes.items():
            click.echo(f"{get_superscript(index)} {footnote}")


@main.command(name='extract')
@click.argument('text')
@click.option(
    '--remote', '-r',
    type=str,
    help='Git remote URL whose issue references should be recognized'
)
@click.option(
    '--config', '-c',
    type=click.Path(exists=True, path_type=Path),
    help='Path to configuration YAML file'
)
@click.option(
    '--json', 'as_json',
    is_flag=True,
    help='Print the autolinks as JSON'
)
@click.option(
    '--verbose', '-v',
    is_flag=True,
    help='Enable debug logging'
)
def extract_cmd(text: str, remote: Optional[str], config: Optional[Path], as_json: bool, verbose: bool):
    """List the autolinks found in a commit message.

    Example:
        autolinks extract "Fixes #42 and JIRA-7" --remote git@github.com:owner/repo.git
    """
    _prepare(config, verbose)
    git_remote = _resolve_remote(remote)

    provider = AutolinksProvider()
    try:
        autolinks = asyncio.run(provider.get_autolinks(text, git_remote))
    finally:
        provider.dispose()

    if as_json:
        records = [serialize_autolink(a).model_dump(mode='json') for a in autolinks.values()]
        click.echo(json.dumps(records, indent=2))
        return

    if not autolinks:
        console.print("[dim]No autolinks found[/dim]")
        return

    _print_autolinks(autolinks.values())


@main.command(name='branch')
@click.argument('name')
@click.option(
    '--remote', '-r',
    type=str,
    help='Git remote URL whose issue references should be recognized'
)
@click.option(
    '--config', '-c',
    type=click.Path(exists=True, path_type=Path),
    help='Path to configuration YAML file'
)
@click.option(
    '--json', 'as_json',
    is_flag=True,
    help='Print the autolink as JSON'
)
@click.option(
    '--verbose', '-v',
    is_flag=True,
    help='Enable debug logging'
)
def branch_cmd(name: str, remote: Optional[str], config: Optional[Path], as_json: bool, verbose: bool):
    """Show the issue a branch NAME refers to.

    Example:
        autolinks branch feature/JIRA-1234-login
    """
    _prepare(config, verbose)
    git_remote = _resolve_remote(remote)

    provider = AutolinksProvider()
    try:
        autolinks = asyncio.run(provider.get_branch_autolinks(name, git_remote))
    finally:
        provider.dispose()

    if as_json:
        records = [serialize_autolink(a).model_dump(mode='json') for a in autolinks.values()]
        click.echo(json.dumps(records, indent=2))
        if not autolinks:
            sys.exit(1)
        return

    if not autolinks:
        console.print("[dim]No autolink found[/dim]")
        sys.exit(1)

    _print_autolinks(autolinks.values())


@main.command(name='init-config')
@click.option(
    '--out', '-o',
    type=click.Path(path_type=Path),
    default='autolinks.yaml',
    help='Output path for the configuration file'
)
@click.option(
    '--force', '-f',
    is_flag=True,
    help='Overwrite existing config file'
)
def init_config(out: Path, force: bool):
    """Generate a starter configuration file.

    Example:
        autolinks init-config --out autolinks.yaml
    """
    if out.exists() and not force:
        console.print(f"[red]Error:[/red] Config file already exists: {out}")
        console.print("Use --force to overwrite")
        sys.exit(1)

    try:
        save_default_config(out)
    except OSError as e:
        console.print(f"[red]Error creating config:[/red] {e}")
        sys.exit(1)

    console.print(f"[green]✓[/green] Config file created: {out}")
    console.print("\nEdit this file to customize:")
    console.print("  • autolinks - Custom reference prefixes and their URL templates")
    console.print("  • cache.refset_ttl_seconds - How long reference sets stay cached")
    console.print("  • enrichment.pause_timeout_seconds - How long to wait for issue details")


def _print_autolinks(autolinks) -> None:
    """Print autolinks as a table."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("Reference", style="cyan")
    table.add_column("URL")
    table.add_column("Title")
    table.add_column("Source", style="dim")

    for autolink in autolinks:
        table.add_row(
            escape(f"{autolink.prefix or ''}{autolink.id}"),
            escape(autolink.url or ''),
            escape(autolink.title or ''),
            escape(_source_name(autolink)),
        )

    console.print(table)


if __name__ == '__main__':
    main()
