"""Loading, downloading and caching of the ``features.json`` metadata document."""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any

import requests

from windows_features.config import MetadataLoadError, ResolverConfig
from windows_features.index.feature_index import FeatureIndex, build_feature_index

logger = logging.getLogger(__name__)

METADATA_FILENAME = "features.json"
DOWNLOAD_TIMEOUT = 60

# Process-wide index cache, keyed by metadata location
_index_cache: dict[str, FeatureIndex] = {}
_index_lock = threading.Lock()


def metadata_cache_path(config: ResolverConfig) -> Path:
    return Path(config.cache_dir) / METADATA_FILENAME


def _parse_document(text: str, origin: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MetadataLoadError(f"Failed to parse {origin}: {e}") from e


def load_metadata(path: str | Path) -> Any:
    """Read and parse a local features.json file."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise MetadataLoadError(f"Failed to read {path}: {e}") from e
    return _parse_document(text, str(path))


def download_metadata(url: str, destination: str | Path) -> Any:
    """Download features.json and store it at ``destination``.

    The body is parsed before anything is written, so a bad response never
    replaces a cached copy.
    """
    destination = Path(destination)
    logger.info(f"Downloading {METADATA_FILENAME} from {url}")
    try:
        response = requests.get(url, timeout=DOWNLOAD_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        raise MetadataLoadError(f"Failed to download {url}: {e}") from e

    document = _parse_document(response.text, url)

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = destination.with_name(destination.name + ".tmp")
        tmp_path.write_text(response.text, encoding="utf-8")
        os.replace(tmp_path, destination)
    except OSError as e:
        raise MetadataLoadError(f"Failed to write {destination}: {e}") from e
    return document


def resolve_metadata(config: ResolverConfig) -> tuple[Any, str]:
    """Return (document, origin) according to the configured source.

    An explicit metadata path always wins. Otherwise the cached download is
    used, unless it is missing or a refresh was requested.
    """
    if config.metadata_path:
        logger.debug(f"Using metadata file {config.metadata_path}")
        return load_metadata(config.metadata_path), str(config.metadata_path)

    cached = metadata_cache_path(config)
    if cached.exists() and not config.refresh:
        logger.info(f"{METADATA_FILENAME} already exists locally at {cached}")
        return load_metadata(cached), str(cached)

    return download_metadata(config.metadata_url, cached), config.metadata_url


def _cache_key(config: ResolverConfig) -> str:
    if config.metadata_path:
        return str(Path(config.metadata_path).resolve())
    return str(metadata_cache_path(config).resolve())


def get_index(config: ResolverConfig) -> FeatureIndex:
    """Return the shared FeatureIndex for the configured metadata, building it once."""
    key = _cache_key(config)
    with _index_lock:
        if config.refresh:
            _index_cache.pop(key, None)
        index = _index_cache.get(key)
        if index is None:
            document, origin = resolve_metadata(config)
            index = build_feature_index(document)
            logger.debug(f"Loaded {origin} with {len(index)} namespaces")
            _index_cache[key] = index
        return index


def invalidate_index_cache() -> None:
    """Drop every cached FeatureIndex; the next get_index() rebuilds."""
    with _index_lock:
        _index_cache.clear()


def clear_cached_metadata(config: ResolverConfig) -> bool:
    """Delete the downloaded features.json. Returns True if a file was removed."""
    invalidate_index_cache()
    cached = metadata_cache_path(config)
    try:
        cached.unlink()
    except FileNotFoundError:
        return False
    return True
