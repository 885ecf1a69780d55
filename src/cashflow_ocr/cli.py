"""Command-line interface for classifying inbound financial media."""

import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

import click
from dateutil.parser import isoparse

from .config import AppConfig, ClassifierConfig, DEFAULT_TIMEZONE
from .exceptions import OCRError
from .export import LedgerExporter
from .ledger import LedgerStore
from .models import MediaMetadata
from .pipeline import ClassificationPipeline

# stdout carries the JSON result, so logs go to stderr
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stderr)
    ]
)
logger = logging.getLogger(__name__)


def _parse_received_at(ctx, param, value):
    if value is None:
        return None
    try:
        return isoparse(value)
    except ValueError:
        raise click.BadParameter(f"not an ISO-8601 timestamp: {value}")


def _build_pipeline(ctx, notify: bool) -> ClassificationPipeline:
    config: AppConfig = ctx.obj['config']
    return ClassificationPipeline.from_config(
        config,
        classifier_config=ClassifierConfig.from_yaml(ctx.obj['rules']),
        notify=notify,
    )


@click.group()
@click.option('--data-dir', default='data', type=click.Path(path_type=Path),
              help='Directory holding the category logs, totals and dedup registry')
@click.option('--outbox', 'outbox_dir', default='outbox', type=click.Path(path_type=Path),
              help='Directory where pending notifications are queued')
@click.option('--inbox-dir', default='inbox', type=click.Path(path_type=Path),
              help='Directory the run command reads media from')
@click.option('--timezone', 'tz', default=DEFAULT_TIMEZONE, help='Operational timezone for daily totals')
@click.option('--recipient', default='operator', help='Who notifications are addressed to')
@click.option('--rules', default=None, type=click.Path(exists=True, path_type=Path),
              help='Path to classifier rules file (defaults to the packaged rules)')
@click.option('--debug', is_flag=True, help='Enable debug output')
@click.pass_context
def cli(ctx, data_dir: Path, outbox_dir: Path, inbox_dir: Path, tz: str, recipient: str, rules: Path,
        debug: bool):
    """Classify invoices and transfer receipts and keep daily COP totals."""
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)

    ctx.ensure_object(dict)
    ctx.obj['config'] = AppConfig(
        data_dir=data_dir,
        outbox_dir=outbox_dir,
        inbox_dir=inbox_dir,
        timezone=tz,
        recipient=recipient,
    )
    ctx.obj['rules'] = rules


@cli.command()
@click.argument('media_path', type=click.Path(path_type=Path))
@click.option('--source', default='unknown', help='Channel the media came from (dm, group, ...)')
@click.option('--sender', default='unknown', help='Who sent the media')
@click.option('--message-id', default=None, help='Id of the message carrying the media')
@click.option('--received-at', default=None, callback=_parse_received_at,
              help='ISO-8601 time the media was received (defaults to now)')
@click.option('--no-notify', is_flag=True, help='Do not queue a notification in the outbox')
@click.pass_context
def process(ctx, media_path: Path, source: str, sender: str, message_id: str,
            received_at: datetime, no_notify: bool):
    """
    Classify one media file and print the result as JSON.

    Example:
        cashflow process ./inbox/IMG-001.jpg --source dm --sender +573001234567
    """
    try:
        pipeline = _build_pipeline(ctx, notify=not no_notify)
        metadata = MediaMetadata(
            source=source,
            sender=sender,
            received_at=received_at,
            message_id=message_id,
        )
        result = asyncio.run(pipeline.process(media_path, metadata))
        click.echo(json.dumps(result.to_dict(), ensure_ascii=False))

    except OCRError as e:
        logger.error(f"Processing failed: {e}")
        click.echo(f"Error: {e}", err=True)
        click.echo(f"{media_path.name} is already registered as seen; sending it again will be "
                   f"reported as DUPLICATE. Review it by hand.", err=True)
        sys.exit(1)

    except Exception as e:
        logger.error(f"Processing failed: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option('--inbox', 'inbox_dir', default=None, type=click.Path(exists=True, file_okay=False, path_type=Path),
              help='Directory with media files to process (defaults to --inbox-dir)')
@click.option('--no-notify', is_flag=True, help='Do not queue notifications in the outbox')
@click.pass_context
def run(ctx, inbox_dir: Path, no_notify: bool):
    """
    Process every file in the inbox, one at a time.

    Handled files move to <inbox>/processed; failed files stay where they are.
    """
    inbox_dir = inbox_dir or ctx.obj['config'].inbox_dir
    if not inbox_dir.is_dir():
        raise click.UsageError(f"Inbox directory not found: {inbox_dir}")

    try:
        pipeline = _build_pipeline(ctx, notify=not no_notify)
        summary = asyncio.run(pipeline.process_inbox(inbox_dir))
    except Exception as e:
        logger.error(f"Inbox run failed: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo("=" * 50, err=True)
    click.echo("PROCESSING SUMMARY", err=True)
    click.echo("=" * 50, err=True)
    click.echo(f"Total files found: {summary.total}", err=True)
    click.echo(f"Processed: {summary.processed}", err=True)
    click.echo(f"Duplicates: {summary.duplicates}", err=True)
    click.echo(f"Failed: {summary.failed}", err=True)
    for path, reason in summary.failures.items():
        click.echo(f"  - {Path(path).name}: {reason}", err=True)

    click.echo(json.dumps(summary.to_dict(), ensure_ascii=False))


@cli.command()
@click.option('--day', default=None, help='DayKey (YYYY-MM-DD), defaults to today')
@click.option('--all', 'show_all', is_flag=True, help='Print every recorded day')
@click.pass_context
def totals(ctx, day: str, show_all: bool):
    """Print daily totals as JSON."""
    ledger = LedgerStore.from_config(ctx.obj['config'])

    if show_all:
        output = {key: value.to_dict() for key, value in ledger.all_totals().items()}
    else:
        key = day or ledger.get_day_key(datetime.now(timezone.utc))
        output = {key: ledger.get_day_totals(key).to_dict()}

    click.echo(json.dumps(output, ensure_ascii=False))


@cli.command('rebuild-totals')
@click.pass_context
def rebuild_totals(ctx):
    """Recompute the totals file from the category logs."""
    ledger = LedgerStore.from_config(ctx.obj['config'])
    days = ledger.rebuild_totals()
    click.echo(f"Rebuilt totals for {len(days)} days into {ctx.obj['config'].totals_path}", err=True)
    click.echo(json.dumps({key: value.to_dict() for key, value in days.items()}, ensure_ascii=False))


@cli.command()
@click.option('--out', 'output_path', required=True, type=click.Path(dir_okay=False, path_type=Path),
              help='Excel file to write')
@click.pass_context
def export(ctx, output_path: Path):
    """Export daily totals and category logs to Excel."""
    try:
        ledger = LedgerStore.from_config(ctx.obj['config'])
        LedgerExporter(output_path).export(ledger)
    except Exception as e:
        logger.error(f"Export failed: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Excel: {output_path}", err=True)


if __name__ == '__main__':
    cli()
