import logging
from typing import List, Iterable

from prowflake.config import FlakeConfig
from prowflake.errors import NetworkError, NotFoundError, ParseError
from prowflake.models import Job, Build, CompletionRecord
from prowflake.remote import RemoteArtifactFetcher, BUILD_DIR_PATTERN


logger = logging.getLogger(__name__)


def sort_build_ids(build_ids: Iterable[str], order: str = "numeric") -> List[str]:
    """Sort build identifiers oldest first.

    ``lexicographic`` compares identifiers as opaque strings, so "10" sorts
    before "9". ``numeric`` compares digit-only identifiers as integers and
    puts anything else after them.
    """
    if order == "lexicographic":
        return sorted(build_ids)
    if order != "numeric":
        raise ValueError(f"Unknown build id order: {order}")

    def key(build_id: str):
        if build_id.isdigit():
            return (0, int(build_id), build_id)
        return (1, 0, build_id)

    return sorted(build_ids, key=key)


class BuildCatalog:
    def __init__(self, fetcher: RemoteArtifactFetcher, config: FlakeConfig):
        self.fetcher = fetcher
        self.config = config

    def list_build_ids(self, job: Job) -> List[str]:
        return self.fetcher.scrape_listing(f"{job.url}/", BUILD_DIR_PATTERN)

    def fetch_completion_record(self, build: Build) -> CompletionRecord:
        url = f"{build.artifacts_url}/{self.config.test_step}/finished.json"
        return CompletionRecord.from_dict(self.fetcher.fetch_json(url))

    def discover_builds(self, job: Job, window_size: int) -> List[Build]:
        """Select the last ``window_size`` finished builds of ``job``, newest first.

        Builds without a readable finished.json are still running (or were
        aborted) and are skipped. Fewer builds are returned when the listing
        runs out of candidates.
        """
        job.builds = []
        if window_size <= 0:
            return job.builds

        logger.info("%s - Listing builds", job.name)
        try:
            build_ids = self.list_build_ids(job)
        except (NetworkError, NotFoundError) as e:
            logger.warning("%s - Unable to list builds: %s", job.name, e)
            return job.builds

        ordered = sort_build_ids(build_ids, self.config.build_id_order)

        for build_id in reversed(ordered):
            candidate = Build(job=job, id=build_id)
            try:
                finished = self.fetch_completion_record(candidate)
            except (NetworkError, NotFoundError, ParseError) as e:
                logger.debug("%s - Skipping build %s: %s", job.name, build_id, e)
                continue

            job.builds.append(Build(job=job, id=build_id, finished=finished))
            if len(job.builds) >= window_size:
                break

        logger.info(
            "%s - Found %d builds, selected last %d", job.name, len(build_ids), len(job.builds)
        )
        return job.builds
