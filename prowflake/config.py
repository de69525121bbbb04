import re
from pathlib import Path
import yaml
from typing import Dict, Any, List, FrozenSet, Optional
from dataclasses import dataclass, field

from prowflake.errors import ConfigError


DEFAULT_BASE_URL = "https://gcsweb-ci.apps.ci.l2s4.p1.openshiftapps.com/gcs/origin-ci-test/logs"
DEFAULT_JOB_NAME_TEMPLATES = [
    "periodic-ci-openshift-release-master-nightly-{version}-e2e-metal-ipi",
]
DEFAULT_VERSIONS = ["4.10"]
DEFAULT_IGNORED_TEST_NAMES = [
    "[sig-arch] Monitor cluster while tests execute",
]
BUILD_ID_ORDERS = ("numeric", "lexicographic")


@dataclass
class FlakeConfig:
    base_url: str = DEFAULT_BASE_URL
    job_name_templates: List[str] = field(default_factory=lambda: list(DEFAULT_JOB_NAME_TEMPLATES))
    versions: List[str] = field(default_factory=lambda: list(DEFAULT_VERSIONS))
    build_window_size: int = 10
    ignored_test_names: FrozenSet[str] = field(default_factory=lambda: frozenset(DEFAULT_IGNORED_TEST_NAMES))
    test_step: str = "baremetalds-e2e-test"
    report_pattern: str = r"junit_.*\.xml"
    build_id_order: str = "numeric"
    cache_dir: str = ".prowflake"
    http_timeout: Optional[float] = 60

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FlakeConfig":
        config = cls(
            base_url=str(d.get("base_url", DEFAULT_BASE_URL)).rstrip("/"),
            job_name_templates=_string_list(d, "job_name_templates", DEFAULT_JOB_NAME_TEMPLATES),
            versions=_string_list(d, "versions", DEFAULT_VERSIONS),
            build_window_size=d.get("build_window_size", 10),
            ignored_test_names=frozenset(
                _string_list(d, "ignored_test_names", DEFAULT_IGNORED_TEST_NAMES)
            ),
            test_step=d.get("test_step", "baremetalds-e2e-test"),
            report_pattern=d.get("report_pattern", r"junit_.*\.xml"),
            build_id_order=d.get("build_id_order", "numeric"),
            cache_dir=d.get("cache_dir", ".prowflake"),
            http_timeout=d.get("http_timeout", 60),
        )
        config.validate()
        return config

    def validate(self):
        if isinstance(self.build_window_size, bool) or not isinstance(self.build_window_size, int):
            raise ConfigError(f"build_window_size must be an integer, got {self.build_window_size!r}")
        if self.build_window_size <= 0:
            raise ConfigError(f"build_window_size must be positive, got {self.build_window_size}")
        if self.build_id_order not in BUILD_ID_ORDERS:
            raise ConfigError(
                f"build_id_order must be one of {', '.join(BUILD_ID_ORDERS)}, got {self.build_id_order!r}"
            )
        if self.http_timeout is not None and not isinstance(self.http_timeout, (int, float)):
            raise ConfigError(f"http_timeout must be a number, got {self.http_timeout!r}")
        for name in ("test_step", "report_pattern", "cache_dir"):
            if not isinstance(getattr(self, name), str) or not getattr(self, name):
                raise ConfigError(f"{name} must be a non-empty string")
        try:
            re.compile(self.report_pattern)
        except re.error as e:
            raise ConfigError(f"report_pattern is not a valid regular expression: {e}")

    def get_cache_dir(self) -> Path:
        return Path(self.cache_dir)


def _string_list(d: Dict[str, Any], key: str, default: List[str]) -> List[str]:
    value = d.get(key, default)
    if isinstance(value, str) or not isinstance(value, (list, tuple, set)):
        raise ConfigError(f"{key} must be a list of strings, got {value!r}")
    for item in value:
        if not isinstance(item, str):
            raise ConfigError(f"{key} must be a list of strings, got item {item!r}; quote it in YAML")
    return list(value)


def load_config(config_path: str = "prowflake.yml") -> FlakeConfig:
    path = Path(config_path)
    if not path.exists():
        return FlakeConfig()

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config file {config_path}: expected a mapping")

    return FlakeConfig.from_dict(data)
