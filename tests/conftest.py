import sys
from pathlib import Path

import pytest

# Ensure the repo root is on sys.path for absolute imports.
REPO_ROOT = Path(__file__).resolve().parents[1]
repo_root_str = str(REPO_ROOT)
if repo_root_str not in sys.path:
    sys.path.insert(0, repo_root_str)


@pytest.fixture
def write_file():
    def write(path: Path, text: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return write


@pytest.fixture
def blog_project(tmp_path: Path, write_file):
    """A project with a listing page under blog/ and two posts."""
    write_file(
        tmp_path / "blog" / "index.md",
        "---\ntitle: Blog\nlisting:\n  contents: posts/*.md\n  categories: true\n  feed: true\n---\n\nWelcome.\n",
    )
    write_file(
        tmp_path / "blog" / "posts" / "first.md",
        "---\ntitle: First post\ndate: 2024-01-02\ncategories: [news]\n---\n\nHello from the first post.\n",
    )
    write_file(
        tmp_path / "blog" / "posts" / "second.md",
        "---\ntitle: Second post\ndate: 2024-03-04\ncategories: [news, python]\n---\n\nThe second post.\n",
    )
    write_file(tmp_path / "about.md", "# About\n\nJust a page.\n")
    return tmp_path
