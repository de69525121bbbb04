from prowflake.remote.fetcher import (
    RemoteArtifactFetcher,
    BUILD_DIR_PATTERN,
    report_file_pattern,
)
