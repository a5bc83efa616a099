from __future__ import annotations

import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .cache import ListingCache, shared_listing_cache
from .config import DEFAULTS, resolve_config
from .globs import resolve_path_globs

logger = logging.getLogger(__name__)

RESOURCES_DIR = Path(__file__).resolve().parent / "resources"


def resource_path(*parts: str) -> Path:
    return RESOURCES_DIR.joinpath(*parts)


@dataclass(frozen=True)
class Format:
    name: str = "html"
    output_ext: str = "html"
    self_contained: bool = False
    metadata: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)


class ProjectContext:
    def __init__(self, directory: Path, config: dict | None = None):
        self.dir = Path(directory).resolve()
        self.config = dict(DEFAULTS) if config is None else config
        self._listing_cache: ListingCache | None = None

    @classmethod
    def load(cls, directory: Path, config_path: Path | None = None, overrides: dict | None = None) -> ProjectContext:
        directory = Path(directory)
        return cls(directory, resolve_config(directory, config_path, overrides))

    @property
    def output_dir(self) -> Path:
        return self.dir / str(self.config.get("output") or DEFAULTS["output"])

    @property
    def cache_dir(self) -> Path:
        return self.dir / str(self.config.get("cache_dir") or DEFAULTS["cache_dir"])

    @property
    def listing_cache(self) -> ListingCache:
        if self._listing_cache is None:
            self._listing_cache = shared_listing_cache(self.dir, self.cache_dir / "listing-cache.json")
        return self._listing_cache

    @property
    def files(self) -> list[Path]:
        ignore = [
            self.output_dir.relative_to(self.dir).as_posix() + "/**",
            self.cache_dir.relative_to(self.dir).as_posix() + "/**",
        ]
        globs = list(self.config.get("render") or DEFAULTS["render"])
        resolved = resolve_path_globs(self.dir, globs, ignore)
        return [self.dir / rel for rel in resolved.include]

    def relative(self, path: Path | str) -> str:
        path = Path(path)
        if not path.is_absolute():
            path = self.dir / path
        return path.resolve().relative_to(self.dir).as_posix()

    def output_path(self, source: Path, fmt: Format) -> Path:
        rel = Path(self.relative(source))
        return self.output_dir / rel.with_suffix("." + fmt.output_ext)


class TempContext:
    def __init__(self, prefix: str = "sitelist-"):
        self.base_dir = Path(tempfile.mkdtemp(prefix=prefix))
        self._counter = 0

    def create_file(self, suffix: str = "", prefix: str = "file") -> Path:
        self._counter += 1
        if suffix and not suffix.startswith("."):
            suffix = "." + suffix
        path = self.base_dir / f"{prefix}-{self._counter}{suffix}"
        path.touch()
        return path

    def cleanup(self) -> None:
        if self.base_dir.exists():
            shutil.rmtree(self.base_dir, ignore_errors=True)

    def __enter__(self) -> TempContext:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cleanup()
