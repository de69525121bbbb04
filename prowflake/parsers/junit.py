import logging

from lxml import etree

from prowflake.config import FlakeConfig
from prowflake.models import Build, TestCase, TestSuite
from prowflake.errors import ParseError
from prowflake.remote import RemoteArtifactFetcher, report_file_pattern


logger = logging.getLogger(__name__)


def parse_junit_xml(data: bytes) -> TestSuite:
    try:
        root = etree.fromstring(data)
    except etree.XMLSyntaxError as e:
        raise ParseError(f"Invalid JUnit XML: {e}") from e

    if root.tag == "testsuite":
        return _parse_testsuite(root)

    if root.tag == "testsuites":
        merged = TestSuite(name=root.get("name", ""))
        for testsuite in root.iterchildren("testsuite"):
            suite = _parse_testsuite(testsuite)
            merged.tests += suite.tests
            merged.skipped += suite.skipped
            merged.failures += suite.failures
            merged.time += suite.time
            merged.properties.update(suite.properties)
            merged.test_cases.extend(suite.test_cases)
        return merged

    raise ParseError(f"Unexpected JUnit root element <{root.tag}>")


def _parse_testsuite(testsuite_elem) -> TestSuite:
    suite = TestSuite(
        name=testsuite_elem.get("name", ""),
        tests=_int_attr(testsuite_elem, "tests"),
        skipped=_int_attr(testsuite_elem, "skipped"),
        failures=_int_attr(testsuite_elem, "failures"),
        time=_float_attr(testsuite_elem, "time"),
    )

    for prop in testsuite_elem.iter("property"):
        if prop.get("name"):
            suite.properties[prop.get("name")] = prop.get("value", "")

    for testcase in testsuite_elem.iterchildren("testcase"):
        suite.test_cases.append(_parse_testcase(testcase))

    return suite


def _parse_testcase(testcase) -> TestCase:
    name = testcase.get("name")
    if not name:
        raise ParseError(f"<testcase> without a name at line {testcase.sourceline}")

    skipped_message = None
    failure_text = None
    system_out = None

    skipped = testcase.find("skipped")
    failure = testcase.find("failure")
    error = testcase.find("error")

    if skipped is not None:
        skipped_message = skipped.get("message", "")
    if failure is not None:
        failure_text = failure.text or failure.get("message", "")
    elif error is not None:
        failure_text = error.text or error.get("message", "")

    system_out_elem = testcase.find("system-out")
    if system_out_elem is not None:
        system_out = system_out_elem.text

    return TestCase(
        name=name,
        skipped_message=skipped_message,
        failure=failure_text,
        system_out=system_out,
    )


def _int_attr(elem, name: str) -> int:
    # declared totals are informational only
    try:
        return int(float(elem.get(name, 0)))
    except (TypeError, ValueError):
        return 0


def _float_attr(elem, name: str) -> float:
    try:
        return float(elem.get(name, 0))
    except (TypeError, ValueError):
        return 0.0


class TestResultParser:
    """Locates and decodes the JUnit report of one build."""

    __test__ = False

    def __init__(self, fetcher: RemoteArtifactFetcher, config: FlakeConfig):
        self.fetcher = fetcher
        self.config = config
        self.report_pattern = report_file_pattern(config.report_pattern)

    def junit_url(self, build: Build) -> str:
        return f"{build.artifacts_url}/{self.config.test_step}/artifacts/junit/"

    def find_report(self, build: Build) -> str:
        # the report filename embeds a timestamp, so it has to be scraped
        junit_url = self.junit_url(build)
        filenames = self.fetcher.scrape_listing(junit_url, self.report_pattern)
        return f"{junit_url}{filenames[0]}"

    def fetch_suite(self, build: Build) -> TestSuite:
        report_url = self.find_report(build)
        logger.debug("%s - Fetching report %s", build.job.name, report_url)
        return parse_junit_xml(self.fetcher.fetch_bytes(report_url))
