import logging
from typing import Iterable, Optional, Tuple, AbstractSet

from prowflake.errors import NetworkError, NotFoundError, ParseError
from prowflake.models import Job, History, TestSuite, TestTrack
from prowflake.parsers import TestResultParser


logger = logging.getLogger(__name__)

# A pass -> fail -> pass flap adds up to exactly 1.0
TRANSITION_WEIGHT = 0.5


class FlakeAccumulator:
    """Folds per-build test suites into a History, one build at a time.

    Builds must be observed in a consistent order (newest first). A test that
    has not been seen yet is assumed to have been passing before the window.
    """

    def __init__(self, history: Optional[History] = None, ignored: AbstractSet[str] = frozenset()):
        self.history = history if history is not None else History()
        self.ignored = ignored

    def observe(self, suite: TestSuite):
        tests = self.history.tests
        for tc in suite.test_cases:
            if tc.is_ignored(self.ignored):
                continue

            track = tests.get(tc.name)
            if track is None:
                track = tests[tc.name] = TestTrack(previous_passed=True)

            if tc.is_passed != track.previous_passed:
                track.flake_score += TRANSITION_WEIGHT
            track.previous_passed = tc.is_passed

        self.history.builds_analyzed += 1

    def set_window(self, newest_ts: int, oldest_ts: int):
        self.history.to_ts = newest_ts
        self.history.from_ts = oldest_ts


def analyze_suites(
    suites: Iterable[TestSuite],
    ignored: AbstractSet[str] = frozenset(),
    window: Optional[Tuple[int, int]] = None,
) -> History:
    """Build a History from already-fetched suites, newest first.

    ``window`` is an optional ``(from_ts, to_ts)`` pair.
    """
    accumulator = FlakeAccumulator(ignored=ignored)
    for suite in suites:
        accumulator.observe(suite)
    if window is not None:
        accumulator.set_window(newest_ts=window[1], oldest_ts=window[0])
    return accumulator.history


class FlakeAnalyzer:
    def __init__(self, parser: TestResultParser, ignored: AbstractSet[str] = frozenset()):
        self.parser = parser
        self.ignored = ignored

    def analyze(self, job: Job) -> History:
        accumulator = FlakeAccumulator(ignored=self.ignored)
        if not job.builds:
            job.history = accumulator.history
            return job.history

        newest, oldest = job.builds[0], job.builds[-1]
        logger.info("%s - Parsing tests for builds [%s, %s]", job.name, newest.id, oldest.id)

        for build in job.builds:
            try:
                suite = self.parser.fetch_suite(build)
            except (NetworkError, NotFoundError) as e:
                logger.info("%s - Skipping build %s without tests: %s", job.name, build.id, e)
                continue
            except ParseError as e:
                logger.warning("%s - Skipping build %s with unreadable report: %s", job.name, build.id, e)
                continue

            accumulator.observe(suite)

        accumulator.set_window(
            newest_ts=newest.finished.timestamp if newest.finished else 0,
            oldest_ts=oldest.finished.timestamp if oldest.finished else 0,
        )

        job.history = accumulator.history
        logger.info(
            "%s - Analyzed %d of %d builds, %d tests tracked",
            job.name,
            job.history.builds_analyzed,
            len(job.builds),
            len(job.history.tests),
        )
        return job.history
