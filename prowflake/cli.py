import logging
import sys
from datetime import datetime, timezone

import click

from prowflake.analyze import run_analysis, new_job
from prowflake.catalog import BuildCatalog
from prowflake.config import load_config
from prowflake.output import render_report
from prowflake.remote import RemoteArtifactFetcher
from prowflake.storage import SQLiteHistoryStore


@click.group()
@click.version_option(version="0.1.0")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose):
    """Flaky test detection for periodic Prow jobs"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.option("--config", "-c", default="prowflake.yml", help="Config file path")
@click.option("--refresh", is_flag=True, help="Ignore cached history and analyze again")
@click.option("--output-dir", "-o", default=None, help="Also write JSON and markdown reports here")
def report(config, refresh, output_dir):
    """Analyze the configured jobs and print their flakiest tests"""
    try:
        cfg = load_config(config)
        jobs = run_analysis(cfg, refresh=refresh, output_dir=output_dir)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for job in jobs:
        click.echo(render_report(job.name, job.history))


@main.command()
@click.argument("job_name")
@click.option("--config", "-c", default="prowflake.yml", help="Config file path")
def show(job_name, config):
    """Print the cached report of a job"""
    try:
        cfg = load_config(config)
        job = new_job(job_name, cfg)
        found = SQLiteHistoryStore(cfg.get_cache_dir()).load(job)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not found:
        click.echo(f"No cached history for {job_name}", err=True)
        sys.exit(1)

    click.echo(render_report(job.name, job.history))


@main.command()
@click.argument("job_name")
@click.option("--config", "-c", default="prowflake.yml", help="Config file path")
@click.option("--count", "-n", type=int, default=None, help="Number of builds (defaults to the config window)")
def builds(job_name, config, count):
    """List the most recent finished builds of a job"""
    try:
        cfg = load_config(config)
        job = new_job(job_name, cfg)
        catalog = BuildCatalog(RemoteArtifactFetcher(timeout=cfg.http_timeout), cfg)
        selected = catalog.discover_builds(job, count if count is not None else cfg.build_window_size)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for build in selected:
        finished_at = datetime.fromtimestamp(build.finished.timestamp, tz=timezone.utc)
        click.echo(
            f"{build.id}\t{finished_at:%Y-%m-%d %H:%M}\t{build.finished.result}\t{build.finished.revision}"
        )


@main.command("clear-cache")
@click.argument("job_name")
@click.option("--config", "-c", default="prowflake.yml", help="Config file path")
def clear_cache(job_name, config):
    """Delete the cached history of a job"""
    try:
        cfg = load_config(config)
        removed = SQLiteHistoryStore(cfg.get_cache_dir()).clear(job_name)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if removed:
        click.echo(f"Cache cleared for {job_name}")
    else:
        click.echo(f"No cache for {job_name}")


if __name__ == "__main__":
    main()
