from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Any, Iterable

from prowflake.errors import ParseError


SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class CompletionRecord:
    """Contents of the finished.json artifact published by every completed build."""

    timestamp: int
    passed: bool
    result: str = ""
    revision: str = ""

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CompletionRecord":
        timestamp = d.get("timestamp")
        # an absent status means the build finished without passing
        passed = d.get("passed", False)
        # bool is an int subclass, a boolean timestamp is still garbage
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise ParseError(f"Invalid completion timestamp: {timestamp!r}")
        if not isinstance(passed, bool):
            raise ParseError(f"Invalid completion status: {passed!r}")
        return cls(
            timestamp=timestamp,
            passed=passed,
            result=str(d.get("result") or ""),
            revision=str(d.get("revision") or ""),
        )


@dataclass
class TestCase:
    name: str
    skipped_message: Optional[str] = None
    failure: Optional[str] = None
    system_out: Optional[str] = None

    __test__ = False

    @property
    def is_skipped(self) -> bool:
        return self.skipped_message is not None

    @property
    def is_failure(self) -> bool:
        return self.failure is not None

    @property
    def is_passed(self) -> bool:
        # skipped tests count as passed
        return not self.is_failure

    def is_ignored(self, ignored: Iterable[str]) -> bool:
        return self.name in ignored


@dataclass
class TestSuite:
    name: str = ""
    tests: int = 0
    skipped: int = 0
    failures: int = 0
    time: float = 0.0
    properties: Dict[str, str] = field(default_factory=dict)
    test_cases: List[TestCase] = field(default_factory=list)

    __test__ = False


@dataclass
class TestTrack:
    previous_passed: bool = True
    flake_score: float = 0.0

    __test__ = False

    def to_dict(self):
        return asdict(self)


@dataclass
class History:
    from_ts: int = 0
    to_ts: int = 0
    builds_analyzed: int = 0
    tests: Dict[str, TestTrack] = field(default_factory=dict)

    @property
    def window_days(self) -> float:
        return (self.to_ts - self.from_ts) / SECONDS_PER_DAY

    def flakiness(self, name: str) -> float:
        track = self.tests.get(name)
        if track is None or self.builds_analyzed == 0:
            return 0.0
        return track.flake_score / self.builds_analyzed

    def to_dict(self):
        return {
            "from_ts": self.from_ts,
            "to_ts": self.to_ts,
            "builds_analyzed": self.builds_analyzed,
            "tests": {name: track.to_dict() for name, track in self.tests.items()},
        }


@dataclass
class Job:
    name: str
    base_url: str = ""
    builds: List["Build"] = field(default_factory=list)
    history: History = field(default_factory=History)

    @property
    def safe_name(self) -> str:
        # artifacts are stored under the part of the job name starting at "e2e"
        index = self.name.find("e2e")
        if index < 0:
            return self.name
        return self.name[index:]

    @property
    def url(self) -> str:
        return f"{self.base_url}/{self.name}"


@dataclass(frozen=True)
class Build:
    job: Job = field(compare=False, repr=False)
    id: str
    finished: Optional[CompletionRecord] = None

    @property
    def artifacts_url(self) -> str:
        return f"{self.job.url}/{self.id}/artifacts/{self.job.safe_name}"


@dataclass
class FlakyTest:
    name: str
    flakiness: float
    flake_score: float

    def to_dict(self):
        return asdict(self)
