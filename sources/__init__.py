"""HTTP-facing steps: classify, extract, fetch."""

from .classifier import classify, has_artifact_extension
from .extractor import extract_artifact_url, find_embedded_artifact, normalize_source, try_extract
from .fetcher import fetch_artifact, try_fetch
from .http import build_client

__all__ = [
    "build_client",
    "classify",
    "extract_artifact_url",
    "fetch_artifact",
    "find_embedded_artifact",
    "has_artifact_extension",
    "normalize_source",
    "try_extract",
    "try_fetch",
]
