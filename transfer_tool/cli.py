"""
Command-line interface for the audio transfer tool.

Validates recordings and uploads them to object storage, either as one
resampled object or as independently playable parts.
"""

import os
import sys
import time
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, DownloadColumn, Progress, TextColumn, TimeRemainingColumn
from rich.prompt import Prompt
from rich.table import Table

from shared.config import TransferConfig, default_config_path, load_config, save_config
from shared.constants import DEFAULT_BROKER_URL, DEFAULT_BUCKET_NAME, DEFAULT_STORE_ENDPOINT, ENV_PREFIX
from shared.exceptions import TransferError, TransferToolError
from shared.logging_config import setup_logging
from shared.models import ResampleTarget, StorageProvider
from .audio import AudioInspector
from .credentials import CredentialBroker
from .pipeline import TransferPipeline
from .provider_factory import StorageProviderFactory

console = Console()


def _load(config_path):
    """Environment wins over the saved config file."""
    path = Path(config_path) if config_path else default_config_path()
    if not os.getenv(ENV_PREFIX + 'APP_KEY') and not path.exists():
        raise click.ClickException(
            f"Configuration not found at {path}. Run 'configure' or set {ENV_PREFIX}APP_KEY."
        )
    try:
        if os.getenv(ENV_PREFIX + 'APP_KEY'):
            return TransferConfig.from_env()
        return load_config(path)
    except (ValueError, KeyError) as e:
        raise click.ClickException(f"Error loading config: {e}")


def _fail(error: TransferToolError):
    if isinstance(error, TransferError) and error.object_key:
        console.print(f"[red]❌ {error}[/red] [dim]({error.object_key})[/dim]")
    else:
        console.print(f"[red]❌ {error}[/red]")
    sys.exit(1)


def _progress():
    return Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TimeRemainingColumn(),
        console=console,
    )


@click.group()
@click.version_option(version="1.0.0")
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), default=None,
              help='Path to config.json (default: ~/.config/voicedrop/config.json)')
@click.option('--log-level', default=None, help='DEBUG, INFO, WARNING or ERROR')
@click.pass_context
def cli(ctx, config_path, log_level):
    """
    🎙  Audio transfer tool

    Prepares large recordings and uploads them to object storage
    for speech recognition.
    """
    setup_logging('transfer_tool', log_level)
    ctx.obj = {'config_path': config_path}


@cli.command()
@click.option('--provider', type=click.Choice([p.value for p in StorageProvider]), default='oss')
@click.option('--broker-url', default=DEFAULT_BROKER_URL, help='Credential broker base URL')
@click.option('--endpoint', default=DEFAULT_STORE_ENDPOINT, help='Store endpoint or base directory')
@click.option('--bucket', default=DEFAULT_BUCKET_NAME)
@click.option('--region', default=None)
@click.pass_context
def configure(ctx, provider, broker_url, endpoint, bucket, region):
    """Save app credentials and store settings."""
    app_key = Prompt.ask("App key").strip()
    app_secret = Prompt.ask("App secret", password=True).strip()

    config = TransferConfig(
        app_key=app_key,
        app_secret=app_secret,
        broker_url=broker_url,
        provider=StorageProvider(provider),
        endpoint=endpoint,
        bucket=bucket,
        region=region,
    )
    path = save_config(config, ctx.obj['config_path'])
    console.print(f"\n[green]✓[/green] Configuration saved to: {path}")
    console.print(f"[green]✓[/green] Provider: {StorageProviderFactory.get_provider_name(config.provider)}")


@cli.command()
@click.argument('audio_path', type=click.Path())
def inspect(audio_path):
    """Validate an audio file and show its header."""
    try:
        meta = AudioInspector.validate(audio_path)
    except TransferToolError as e:
        _fail(e)

    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Path", meta.path)
    table.add_row("Size", f"{meta.size_bytes / 1024 / 1024:.2f} MB")
    table.add_row("Format", meta.extension)
    if meta.is_wav_container:
        table.add_row("Sample rate", f"{meta.sample_rate_hz} Hz")
        table.add_row("Channels", str(meta.channels))
        table.add_row("Bit depth", f"{meta.bits_per_sample} bit")
        table.add_row("Audio data", f"{meta.data_size_bytes / 1024 / 1024:.2f} MB")
    console.print(table)


@cli.command()
@click.pass_context
def token(ctx):
    """Check that the credential broker issues credentials."""
    config = _load(ctx.obj['config_path'])
    try:
        credentials = CredentialBroker.from_config(config).fetch()
    except TransferToolError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Access key: [cyan]{credentials.access_key_id}[/cyan]")
    console.print(f"[green]✓[/green] Expires: {credentials.expiration or 'never'}")


@cli.command()
@click.argument('audio_path', type=click.Path())
@click.option('--key', 'object_key', default=None, help='Object key (default: audio/<ts>_<name>.wav)')
@click.option('--sample-rate', default=16000, type=click.IntRange(1, None))
@click.option('--channels', default=1, type=click.IntRange(1, 8))
@click.option('--bits', default='16', type=click.Choice(['8', '16', '24', '32']))
@click.pass_context
def upload(ctx, audio_path, object_key, sample_rate, channels, bits):
    """
    Rewrite the WAV header for speech recognition and upload the file.
    """
    config = _load(ctx.obj['config_path'])
    target = ResampleTarget(sample_rate_hz=sample_rate, channels=channels, bits_per_sample=int(bits))
    try:
        with _progress() as progress:
            result = TransferPipeline(config).resample_and_upload(audio_path, object_key, target, progress)
    except TransferToolError as e:
        _fail(e)

    console.print(Panel.fit(
        f"[bold green]✅ Upload complete[/bold green]\n\n"
        f"Key: {result.object_key}\n"
        f"ETag: {result.etag}\n"
        f"Parts: {result.parts}\n\n"
        f"[cyan]{result.url}[/cyan]",
        border_style="green"
    ))


@cli.command()
@click.argument('audio_path', type=click.Path())
@click.option('--key', 'object_key', default=None, help='Object key (default: file name)')
@click.pass_context
def multipart(ctx, audio_path, object_key):
    """Upload a file unchanged in 5MB parts."""
    config = _load(ctx.obj['config_path'])
    try:
        with _progress() as progress:
            result = TransferPipeline(config).multipart_upload(audio_path, object_key, progress)
    except TransferToolError as e:
        _fail(e)
    console.print(f"[green]✓[/green] {result.object_key} ({result.parts} parts)")
    console.print(f"[cyan]{result.url}[/cyan]")


@cli.command()
@click.argument('audio_path', type=click.Path())
@click.option('--request-id', default=None, help='Request id used in object keys (default: unix time)')
@click.pass_context
def split(ctx, audio_path, request_id):
    """
    Split a WAV recording into playable parts and upload each one.
    """
    config = _load(ctx.obj['config_path'])
    request_id = request_id or str(int(time.time()))
    console.print(f"Request ID: [cyan]{request_id}[/cyan]\n")
    try:
        with _progress() as progress:
            result = TransferPipeline(config).split_and_upload(audio_path, request_id, progress)
    except TransferToolError as e:
        _fail(e)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("#", style="cyan", width=4)
    table.add_column("Key", style="green")
    table.add_column("URL")
    for i, (key, url) in enumerate(zip(result.object_keys, result.urls), start=1):
        table.add_row(str(i), key, url)
    console.print(table)
    console.print(f"\n[green]✓[/green] {result.total_parts} parts uploaded for request {result.request_id}")
