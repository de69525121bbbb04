import json
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from prowflake.config import FlakeConfig
from prowflake.errors import NetworkError
from prowflake.remote import RemoteArtifactFetcher


FIXTURES_DIR = Path(__file__).parent / "fixtures"

BASE_URL = "https://gcsweb.example/gcs/origin-ci-test/logs"
JOB_NAME = "periodic-ci-openshift-release-master-nightly-4.10-e2e-metal-ipi"
STEP = "baremetalds-e2e-test"


def listing_html(dirs=(), files=()) -> bytes:
    rows = ['<div class="pure-u-2-5"><a href="../"><img src="/icons/back.png"> ..</a></div>']
    for d in dirs:
        rows.append(
            f'<div class="pure-u-2-5"><a href="{d}/"><img src="/icons/dir.png"> {d}/</a></div>'
            '<div class="pure-u-1-5">-</div>'
        )
    for name in files:
        rows.append(
            f'<div class="pure-u-2-5"><a href="{name}"><img src="/icons/file.png"> {name}</a></div>'
            '<div class="pure-u-1-5">1024</div>'
        )
    return ("<html><body>\n" + "\n".join(rows) + "\n</body></html>").encode("utf-8")


def junit_xml(results: Dict[str, bool], skipped: List[str] = ()) -> bytes:
    cases = []
    for name, passed in results.items():
        if name in skipped:
            cases.append(f'<testcase name="{name}"><skipped message="skip"></skipped></testcase>')
        elif passed:
            cases.append(f'<testcase name="{name}"></testcase>')
        else:
            cases.append(f'<testcase name="{name}"><failure>boom</failure></testcase>')
    failures = sum(1 for passed in results.values() if not passed)
    return (
        f'<testsuite name="openshift-tests" tests="{len(results)}" failures="{failures}" time="10">'
        + "".join(cases)
        + "</testsuite>"
    ).encode("utf-8")


class FakeFetcher(RemoteArtifactFetcher):
    """Serves canned responses keyed by URL; anything else is a network failure."""

    def __init__(self, files: Optional[Dict[str, bytes]] = None):
        super().__init__()
        self.files = dict(files or {})
        self.requested = []

    def fetch_bytes(self, url):
        self.requested.append(url)
        if url not in self.files:
            raise NetworkError(f"Failed to fetch {url}: HTTP 404")
        return self.files[url]


class FakeRemote:
    """Lays out a Prow job's artifacts the way gcsweb exposes them."""

    def __init__(self, job_name: str = JOB_NAME, base_url: str = BASE_URL):
        self.job_name = job_name
        self.base_url = base_url
        self.build_ids = []
        self.fetcher = FakeFetcher()

    @property
    def job_url(self):
        return f"{self.base_url}/{self.job_name}"

    def step_url(self, build_id):
        safe_name = self.job_name[self.job_name.find("e2e"):]
        return f"{self.job_url}/{build_id}/artifacts/{safe_name}/{STEP}"

    def add_build(self, build_id, timestamp=None, results=None, finished=True, report=None):
        self.build_ids.append(build_id)
        self.fetcher.files[f"{self.job_url}/"] = listing_html(dirs=self.build_ids)

        if finished:
            record = {
                "timestamp": timestamp if timestamp is not None else 1600000000 + int(build_id) * 3600,
                "passed": True,
                "result": "SUCCESS",
                "revision": f"rev-{build_id}",
            }
            self.fetcher.files[f"{self.step_url(build_id)}/finished.json"] = json.dumps(record).encode()

        if report is None and results is not None:
            report = junit_xml(results)
        if report is not None:
            junit_dir = f"{self.step_url(build_id)}/artifacts/junit/"
            self.fetcher.files[junit_dir] = listing_html(files=["junit_e2e_20211104-031520.xml"])
            self.fetcher.files[f"{junit_dir}junit_e2e_20211104-031520.xml"] = report


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def config(tmp_path):
    return FlakeConfig(
        base_url=BASE_URL,
        job_name_templates=["periodic-ci-openshift-release-master-nightly-{version}-e2e-metal-ipi"],
        versions=["4.10"],
        build_window_size=10,
        test_step=STEP,
        cache_dir=str(tmp_path / "cache"),
    )
