"""
Command-line interface for the content sync job.

Usage:
    cyberlab-sync sync                   # Sync all sources into the store
    cyberlab-sync sync --source news     # Sync a subset
    cyberlab-sync sync --dry-run         # Run against an in-memory store
    cyberlab-sync check-config           # Validate configuration
    cyberlab-sync doc-id URL             # Print the document id for a URL
    cyberlab-sync show-platform offsec   # Read a platform document

Exit codes for `sync`: 0 when at least one source succeeded or was
skipped, 1 when every source failed, 2 when required configuration is
missing or a variable cannot be parsed.
"""

import asyncio
import json
import sys

import click

from src.config.settings import ConfigurationError, Settings, load_settings
from src.observability.logging import setup_logging

EXIT_CONFIG_ERROR = 2

SOURCE_NAMES = ("news", "tryhackme", "hackthebox", "offsec")


def _load_settings(require_store: bool = True) -> Settings:
    """Build settings once; exit before any network call if configuration is unusable."""
    try:
        settings = load_settings()
        if require_store:
            settings.validate_required()
    except ConfigurationError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(EXIT_CONFIG_ERROR)
    return settings


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, debug: bool) -> None:
    """CyberLab content sync - news feed and platform stats."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@main.command()
@click.option(
    "--source",
    "sources",
    multiple=True,
    type=click.Choice(SOURCE_NAMES),
    help="Only sync this source (can repeat)",
)
@click.option("--dry-run", is_flag=True, help="Write to an in-memory store instead of Appwrite")
@click.pass_context
def sync(ctx: click.Context, sources: tuple[str, ...], dry_run: bool) -> None:
    """Sync every source once and print the summary."""
    from src.services.sync_service import SyncService
    from src.storage.document_store import AppwriteDocumentStore, MemoryDocumentStore

    settings = _load_settings(require_store=not dry_run)
    setup_logging(settings, debug=ctx.obj["debug"])

    async def run():
        store = MemoryDocumentStore() if dry_run else AppwriteDocumentStore.from_settings(settings)
        async with store:
            service = SyncService(settings, store, sources=sources or None)
            report = await service.run()

        if dry_run:
            click.echo(f"Dry run: {len(store)} documents would be written")
        return report

    report = asyncio.run(run())
    click.echo(report.render())
    sys.exit(report.exit_code)


@main.command("check-config")
def check_config() -> None:
    """Validate configuration and show which sources would run."""
    settings = _load_settings(require_store=False)

    missing = settings.missing_required
    if missing:
        click.echo(f"✗ Missing required env vars: {', '.join(missing)}")
    else:
        click.echo(f"✓ Store: {settings.appwrite_endpoint} (database {settings.appwrite_database_id})")
        click.echo(
            f"  Collections: news={settings.appwrite_collection_id}, "
            f"platforms={settings.appwrite_platform_collection_id}"
        )

    sources = {
        "news": bool(settings.rss_feed_url),
        "tryhackme": settings.tryhackme_configured,
        "hackthebox": settings.hackthebox_configured,
        "offsec": settings.offsec_configured,
    }
    for name, configured in sources.items():
        click.echo(f"  {'✓' if configured else '⊘'} {name.upper()}: {'configured' if configured else 'will be skipped'}")

    if missing:
        sys.exit(EXIT_CONFIG_ERROR)


@main.command("doc-id")
@click.argument("url")
def doc_id(url: str) -> None:
    """Print the document id an article URL is stored under."""
    from src.ingestion.identity import make_doc_id

    click.echo(make_doc_id(url))


@main.command("show-platform")
@click.argument("platform", type=click.Choice(SOURCE_NAMES[1:]))
@click.pass_context
def show_platform(ctx: click.Context, platform: str) -> None:
    """Print the stored stats document for a platform."""
    from src.storage.document_store import AppwriteDocumentStore, DocumentNotFound, StoreError

    settings = _load_settings()
    setup_logging(settings, debug=ctx.obj["debug"])

    async def run():
        async with AppwriteDocumentStore.from_settings(settings) as store:
            return await store.get_document(settings.appwrite_platform_collection_id, platform)

    try:
        document = asyncio.run(run())
    except DocumentNotFound:
        click.echo(f"⊘ {platform}: not yet synced")
        return
    except StoreError as e:
        click.echo(f"✗ {platform}: {e}", err=True)
        sys.exit(1)

    click.echo(json.dumps(document, indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
