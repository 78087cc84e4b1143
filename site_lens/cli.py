# === FILE: site_lens/cli.py ===
#!/usr/bin/env python3
"""
Command line entry point for SiteLens.

Commands:
  crawl      Crawl a site, screenshot every page and save a baseline
  baselines  List saved baselines grouped by hostname
  compare    Re-capture a baseline's pages and report visual changes
  config     Show the effective configuration

Global options:
  --config PATH       YAML/JSON config (default: configs/default.yaml if present)
  --log-level LEVEL   Logging level (DEBUG, INFO, ...)
  --log-file PATH     Log file (stdout only when omitted)
  --log-format FORMAT Logging format string

Example:
  site-lens crawl https://example.com
  site-lens compare example.com-20261018T101500 --html result/report.html
"""
import asyncio
import sys
from datetime import datetime
from pathlib import Path

import click
from pydantic import ValidationError

from site_lens import __version__
from site_lens.config import LensConfig, load_config
from site_lens.engine import Engine
from site_lens.errors import SiteLensError
from site_lens.logger import init_logging
from site_lens.report.html_report import render_html
from site_lens.report.json_report import render_json
from site_lens.report.text_report import render_compare_text, render_crawl_text, write_report

CONTEXT_SETTINGS = dict(help_option_names=["--help"])
_STAMP = "%Y-%m-%d_%H-%M-%S"


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='SiteLens, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Path to a YAML or JSON config file.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Logging level'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Log file (stdout only when omitted)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(message)s',
    show_default=True,
    help='Logging format string'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """SiteLens: visual regression testing for whole websites."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Failed to load configuration: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('crawl', context_settings=CONTEXT_SETTINGS)
@click.argument('url', required=False)
@click.option('--max-pages', '-l', 'max_pages', type=click.IntRange(min=1), default=None,
              help='Stop after this many pages (overrides max_pages)')
@click.option('--max-depth', '-d', 'max_depth', type=click.IntRange(min=0), default=None,
              help='Maximum link hops from the start URL (overrides max_depth)')
@click.option('--report/--no-report', default=True, show_default=True,
              help='Write the crawl report to the result directory')
@click.option('--print', 'print_report', is_flag=True, help='Print the crawl report to stdout')
@click.pass_context
def crawl(ctx, url, max_pages, max_depth, report, print_report):
    """Crawl URL and save every page's screenshot as a new baseline."""
    cfg = ctx.obj['config']
    overrides = {k: v for k, v in (('max_pages', max_pages), ('max_depth', max_depth)) if v is not None}
    if overrides:
        try:
            cfg = LensConfig.model_validate({**cfg.model_dump(), **overrides})
        except ValidationError as e:
            print_error(f"Invalid option: {e}")
    target = url or (str(cfg.base_url) if cfg.base_url else None)
    if not target:
        print_error('No URL given and base_url is not configured')

    click.echo(f'Starting crawl for: {target}')
    try:
        run = asyncio.run(Engine(cfg).create_baseline(target))
    except KeyboardInterrupt:
        print_error('Crawl cancelled; no baseline was saved')
    except (SiteLensError, ValueError) as e:
        print_error(f'Crawl failed: {e}')

    manifest = run.manifest
    click.echo(f'Baseline saved: {run.baseline.identifier}')
    click.echo(
        f'Summary: {len(manifest.pages)} total pages, {len(manifest.successful)} captured, '
        f'{len(manifest.errors)} error pages'
    )

    text = render_crawl_text(manifest, baseline_path=run.baseline.path)
    if print_report:
        click.echo(text)
    if report:
        name = f"report_{run.baseline.hostname}_{datetime.now().strftime(_STAMP)}.txt"
        try:
            saved = write_report(text, Path(cfg.result_dir) / name)
        except SiteLensError as e:
            print_error(f'Failed to save report: {e}')
        click.echo(f'Report saved to: {saved}')


@cli.command('baselines', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def baselines(ctx):
    """List saved baselines."""
    cfg = ctx.obj['config']
    grouped = Engine(cfg).store.list()
    if not grouped:
        click.echo('No baselines found.')
        return
    for hostname, items in grouped.items():
        click.echo(f'Website: {hostname}')
        for b in items:
            click.echo(f'  {b.identifier}  (date: {b.stamp})')


@cli.command('compare', context_settings=CONTEXT_SETTINGS)
@click.argument('identifier')
@click.option('--json', '-j', 'json_output', default=None,
              type=click.Path(writable=True, dir_okay=False, path_type=Path),
              help='Also save a JSON report')
@click.option('--html', '-h', 'html_output', default=None,
              type=click.Path(writable=True, dir_okay=False, path_type=Path),
              help='Also save an HTML report')
@click.option('--template', '-t', 'template_dir', default=None,
              type=click.Path(exists=True, file_okay=False, path_type=Path),
              help='Directory with a custom report.html.j2')
@click.option('--fail-on-change', is_flag=True,
              help='Exit with status 2 when any page changed or errored')
@click.pass_context
def compare(ctx, identifier, json_output, html_output, template_dir, fail_on_change):
    """Compare the current site against baseline IDENTIFIER."""
    cfg = ctx.obj['config']
    try:
        run = asyncio.run(Engine(cfg).compare(identifier))
    except KeyboardInterrupt:
        print_error('Comparison cancelled')
    except SiteLensError as e:
        print_error(f'Comparison failed: {e}')

    summary = run.summary
    now = datetime.now()
    text = render_compare_text(summary, identifier=identifier, manifest=run.manifest, generated_at=now)
    try:
        saved = write_report(
            text, Path(cfg.result_dir) / f"compare_{identifier}_{now.strftime(_STAMP)}.txt"
        )
        click.echo(text)
        click.echo(f'Report saved to: {saved}')
        if json_output:
            saved_json = render_json(summary, json_output, identifier=identifier, manifest=run.manifest,
                                     generated_at=now)
            click.echo(f'JSON report: {saved_json}')
        if html_output:
            saved_html = render_html(summary, html_output, identifier=identifier, manifest=run.manifest,
                                     template_dir=template_dir, generated_at=now)
            click.echo(f'HTML report: {saved_html}')
    except SiteLensError as e:
        print_error(f'Failed to save report: {e}')

    if fail_on_change and (summary.changed or summary.errored):
        sys.exit(2)


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Show the effective configuration as JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
