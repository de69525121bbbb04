import logging
import re
from pathlib import Path
from typing import List, Optional

from prowflake.catalog import BuildCatalog
from prowflake.config import FlakeConfig
from prowflake.errors import ProwflakeError
from prowflake.models import Job
from prowflake.output import write_report_json, write_summary
from prowflake.parsers import TestResultParser
from prowflake.remote import RemoteArtifactFetcher
from prowflake.scoring import FlakeAnalyzer
from prowflake.storage import SQLiteHistoryStore


logger = logging.getLogger(__name__)


def job_names(config: FlakeConfig) -> List[str]:
    return [
        template.format(version=version)
        for version in config.versions
        for template in config.job_name_templates
    ]


def new_job(name: str, config: FlakeConfig) -> Job:
    return Job(name=name, base_url=config.base_url)


def analyze_job(
    name: str,
    config: FlakeConfig,
    fetcher: Optional[RemoteArtifactFetcher] = None,
    store: Optional[SQLiteHistoryStore] = None,
    refresh: bool = False,
) -> Optional[Job]:
    """Return the job with its flake history, or None when it has to be skipped.

    A cached history is returned as is, without touching the network. Only a
    complete analysis pass is written back to the cache.
    """
    store = store or SQLiteHistoryStore(config.get_cache_dir())
    job = new_job(name, config)

    if not refresh and store.load(job):
        return job

    fetcher = fetcher or RemoteArtifactFetcher(timeout=config.http_timeout)
    catalog = BuildCatalog(fetcher, config)
    analyzer = FlakeAnalyzer(TestResultParser(fetcher, config), config.ignored_test_names)

    # per-build failures are skipped inside; anything reaching here aborts the whole job
    try:
        catalog.discover_builds(job, config.build_window_size)
        if not job.builds:
            logger.warning("%s - No finished builds found, skipping", job.name)
            return None
        analyzer.analyze(job)
    except ProwflakeError as e:
        logger.error("%s - Analysis failed, skipping: %s", job.name, e)
        return None

    store.save(job)
    return job


def report_basename(job_name: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]", "_", job_name)


def run_analysis(
    config: FlakeConfig,
    refresh: bool = False,
    output_dir: Optional[str] = None,
    fetcher: Optional[RemoteArtifactFetcher] = None,
    store: Optional[SQLiteHistoryStore] = None,
) -> List[Job]:
    store = store or SQLiteHistoryStore(config.get_cache_dir())
    fetcher = fetcher or RemoteArtifactFetcher(timeout=config.http_timeout)

    output_path = None
    if output_dir:
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

    jobs = []
    for name in job_names(config):
        job = analyze_job(name, config, fetcher=fetcher, store=store, refresh=refresh)
        if job is None:
            continue

        if output_path is not None:
            basename = report_basename(job.name)
            write_report_json(job.name, job.history, output_path / f"{basename}.json")
            write_summary(job.name, job.history, output_path / f"{basename}.md")

        jobs.append(job)

    return jobs
