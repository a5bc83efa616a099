from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Iterable

from .globs import filter_paths
from .listing import ListingDescriptor

logger = logging.getLogger(__name__)

CACHE_VERSION = 1


class CacheReadError(ValueError):
    """Raised internally when the persisted listing cache cannot be used."""


def load_lock(path: Path) -> dict:
    if not path.exists():
        raise CacheReadError(f"{path} does not exist")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise CacheReadError(f"{path} is unreadable: {exc}") from exc
    if not isinstance(data, dict):
        raise CacheReadError(f"{path} does not hold a mapping")
    return data


def write_lock(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=path.name + ".", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2, ensure_ascii=False)
            fh.write("\n")
        os.replace(tmp_name, path)
    finally:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)


def _clean_listing_map(raw: object) -> dict[str, list[str]]:
    if not isinstance(raw, dict):
        raise CacheReadError("listingMap is not a mapping")
    cleaned: dict[str, list[str]] = {}
    for key, value in raw.items():
        if not isinstance(key, str) or not isinstance(value, list):
            continue
        cleaned[key] = [str(glob) for glob in value if isinstance(glob, str)]
    return cleaned


def descriptor_globs(descriptors: Iterable[ListingDescriptor]) -> list[str]:
    globs: list[str] = []
    for descriptor in descriptors:
        for glob in descriptor.listing.contents:
            if glob not in globs:
                globs.append(glob)
    return globs


class ListingCache:
    """Maps listing pages (project relative) to the content globs they were built from.

    The map is loaded lazily and flushed to disk after every mutation. A
    missing or corrupt file loads as an empty map, which makes incremental
    renders add no listing pages; callers must prefer a full render when
    they cannot trust the cache.
    """

    def __init__(self, root: Path, path: Path):
        self.root = Path(root)
        self.path = Path(path)
        self._lock = threading.RLock()
        self._listing_map: dict[str, list[str]] | None = None

    @property
    def listing_map(self) -> dict[str, list[str]]:
        with self._lock:
            if self._listing_map is None:
                self._listing_map = self._read()
            return self._listing_map

    def _read(self) -> dict[str, list[str]]:
        try:
            data = load_lock(self.path)
            if data.get("version") != CACHE_VERSION:
                raise CacheReadError(f"unsupported cache version {data.get('version')!r}")
            return _clean_listing_map(data.get("listingMap", {}))
        except CacheReadError as exc:
            if self.path.exists():
                logger.warning("Listing cache ignored, treating as empty: %s", exc)
            else:
                logger.debug("No listing cache at %s", self.path)
            return {}

    def _flush(self) -> None:
        write_lock(self.path, {"version": CACHE_VERSION, "listingMap": self.listing_map})

    def globs_for(self, listing_page: str) -> list[str] | None:
        globs = self.listing_map.get(listing_page)
        return list(globs) if globs is not None else None

    def record_listing(self, listing_page: str, descriptors: Iterable[ListingDescriptor]) -> list[str]:
        globs = descriptor_globs(descriptors)
        with self._lock:
            # merge into what is on disk; other writers may have recorded pages since our load
            self._listing_map = self._read()
            self._listing_map[listing_page] = globs
            self._flush()
        logger.debug("Cached %d glob(s) for listing page %s", len(globs), listing_page)
        return globs

    def clear_all(self) -> None:
        with self._lock:
            self._listing_map = {}
            self._flush()
        logger.debug("Listing cache cleared")

    def affected_listings(self, changed_files: Iterable[str | Path]) -> list[str]:
        files = list(changed_files)
        with self._lock:
            entries = list(self.listing_map.items())
        affected: list[str] = []
        for listing_page, globs in entries:
            if not globs:
                continue
            if filter_paths(self.root, files, globs).include and listing_page not in affected:
                affected.append(listing_page)
        return affected


_registry: dict[Path, ListingCache] = {}
_registry_lock = threading.Lock()


def shared_listing_cache(root: Path, path: Path) -> ListingCache:
    """The process-wide cache for a cache file; every project context on it shares one lock."""
    key = Path(path).resolve()
    with _registry_lock:
        cache = _registry.get(key)
        if cache is None:
            cache = _registry[key] = ListingCache(root, key)
        return cache
