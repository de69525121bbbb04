import json
import logging
import re
from typing import List, Optional, Pattern, Union, Dict, Any

import requests

from prowflake.errors import NetworkError, NotFoundError, ParseError


logger = logging.getLogger(__name__)

# gcsweb renders one entry per line: an icon followed by the entry name
LISTING_ENTRY_PREFIX = r'<div class="pure-u-2-5">.*<img src="/icons/{icon}.png"> '

BUILD_DIR_PATTERN = re.compile(LISTING_ENTRY_PREFIX.format(icon="dir") + r"(\d+)")


def report_file_pattern(name_pattern: str) -> Pattern[str]:
    """Listing pattern capturing file entries whose name matches ``name_pattern``."""
    return re.compile(LISTING_ENTRY_PREFIX.format(icon="file") + f"({name_pattern})")


class RemoteArtifactFetcher:
    """Blocking access to the remote artifact store.

    No retries and no caching happen here: a failed request surfaces as
    NetworkError and the caller decides whether the build is skipped.
    """

    def __init__(self, session: Optional[requests.Session] = None, timeout: Optional[float] = None):
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch_bytes(self, url: str) -> bytes:
        logger.debug("GET %s", url)
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise NetworkError(f"Failed to fetch {url}: {e}") from e

        if not response.ok:
            raise NetworkError(f"Failed to fetch {url}: HTTP {response.status_code}")

        return response.content

    def fetch_json(self, url: str) -> Dict[str, Any]:
        body = self.fetch_bytes(url)
        try:
            data = json.loads(body)
        except ValueError as e:
            raise ParseError(f"Invalid JSON in {url}: {e}") from e

        if not isinstance(data, dict):
            raise ParseError(f"Invalid JSON in {url}: expected an object")
        return data

    def scrape_listing(self, url: str, pattern: Union[str, Pattern[str]]) -> List[str]:
        body = self.fetch_bytes(url).decode("utf-8", errors="replace")

        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        matches = [m.group(1) for m in regex.finditer(body)]
        if not matches:
            raise NotFoundError(f"No entry matching {regex.pattern!r} in {url}")

        return matches
