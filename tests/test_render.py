from pathlib import Path

import pytest

from sitelist import cli
from sitelist.cli import render_files
from sitelist.engine import ConversionError
from sitelist.listings import ListingConfigurationError
from sitelist.project import Format, ProjectContext


def rendered_inputs(results, project):
    return sorted(project.relative(result.input) for result in results)


def test_full_render_builds_listing_page(blog_project: Path):
    project = ProjectContext.load(blog_project)

    results = render_files(project)

    assert rendered_inputs(results, project) == [
        "about.md",
        "blog/index.md",
        "blog/posts/first.md",
        "blog/posts/second.md",
    ]
    page = (project.output_dir / "blog" / "index.html").read_text(encoding="utf-8")
    assert 'id="listing"' in page
    assert 'href="posts/first.html"' in page
    assert "Second post" in page
    assert "sitelist-md-envelope" not in page
    assert 'data-category="news"' in page
    assert "window.sitelistListings" in page
    assert 'src="../site_libs/sitelist-listing/listing.js"' in page
    assert (project.output_dir / "site_libs" / "sitelist-listing" / "listing.js").exists()
    assert (project.output_dir / "site_libs" / "sitelist-base" / "sitelist-listing.css").exists()
    assert (project.output_dir / "blog" / "index.xml").exists()
    assert project.listing_cache.listing_map == {"blog/index.md": ["blog/posts/*.md"]}

    listing_result = next(r for r in results if r.input.name == "index.md")
    assert listing_result.supporting == [project.output_dir / "blog" / "index.xml"]


def test_incremental_render_adds_affected_listing_pages(blog_project: Path):
    project = ProjectContext.load(blog_project)
    render_files(project)

    results = render_files(project, ["blog/posts/first.md"])
    assert rendered_inputs(results, project) == ["blog/index.md", "blog/posts/first.md"]

    results = render_files(project, ["about.md"])
    assert rendered_inputs(results, project) == ["about.md"]


def test_full_render_clears_stale_cache_entries(blog_project: Path):
    project = ProjectContext.load(blog_project)
    project.listing_cache.listing_map["gone.md"] = ["*"]

    render_files(project)

    assert "gone.md" not in ProjectContext.load(blog_project).listing_cache.listing_map


def test_incremental_render_skips_deleted_listing_pages(blog_project: Path):
    project = ProjectContext.load(blog_project)
    render_files(project)
    (blog_project / "blog" / "index.md").unlink()

    results = render_files(project, ["blog/posts/first.md"])
    assert rendered_inputs(results, project) == ["blog/posts/first.md"]


def test_self_contained_render_inlines_and_drops_supporting_files(blog_project: Path):
    project = ProjectContext.load(blog_project)

    render_files(project, fmt=Format(self_contained=True))

    page = (project.output_dir / "blog" / "index.html").read_text(encoding="utf-8")
    assert "site_libs" not in page
    assert "<style>" in page
    assert not (project.output_dir / "site_libs").exists()
    assert not (project.output_dir / "blog" / "index.xml").exists()


def test_custom_listing_without_template_fails_before_conversion(tmp_path: Path, write_file, monkeypatch):
    write_file(tmp_path / "index.md", "---\nlisting:\n  id: posts\n  type: custom\n---\n")
    project = ProjectContext.load(tmp_path)

    def no_conversion(*args, **kwargs):
        raise AssertionError("conversion must not run")

    monkeypatch.setattr(cli, "convert_markdown_file", no_conversion)

    with pytest.raises(ListingConfigurationError, match="Listing posts"):
        render_files(project)
    assert not (project.output_dir / "index.html").exists()


def test_custom_listing_template_is_used(tmp_path: Path, write_file):
    write_file(tmp_path / "index.md", "---\nlisting:\n  contents: posts/*.md\n  type: custom\n  template: list.j2\n---\n")
    write_file(tmp_path / "list.j2", "{% for item in items %}- [{{ item.title }}]({{ item.href }})\n{% endfor %}")
    write_file(tmp_path / "posts" / "hello.md", "# Hello world\n")
    project = ProjectContext.load(tmp_path)

    render_files(project, ["index.md"])

    page = (project.output_dir / "index.html").read_text(encoding="utf-8")
    assert '<a href="posts/hello.html">Hello world</a>' in page


def test_table_listing_renders_html_table(tmp_path: Path, write_file):
    write_file(tmp_path / "index.md", "---\nlisting:\n  contents: posts/*.md\n  type: table\n---\n")
    write_file(tmp_path / "posts" / "hello.md", "---\ntitle: Hello\ndate: 2024-05-06\n---\n\nSummary text.\n")
    project = ProjectContext.load(tmp_path)

    render_files(project)

    page = (project.output_dir / "index.html").read_text(encoding="utf-8")
    assert "<table>" in page
    assert "2024-05-06" in page


def test_conversion_failure_keeps_recorded_cache_entry(blog_project: Path, monkeypatch):
    project = ProjectContext.load(blog_project)

    def broken(*args, **kwargs):
        raise ConversionError("engine exploded")

    monkeypatch.setattr(cli, "convert_markdown_file", broken)

    with pytest.raises(ConversionError):
        render_files(project, ["blog/index.md"])
    assert project.listing_cache.globs_for("blog/index.md") == ["blog/posts/*.md"]


def test_listing_heading_keeps_items_out_of_heading(tmp_path: Path, write_file):
    write_file(tmp_path / "index.md", "---\ntitle: Home\nlisting:\n  contents: posts/*.md\n---\n\n## Listing\n\nLatest posts.\n")
    write_file(tmp_path / "posts" / "hello.md", "# Hello world\n")
    project = ProjectContext.load(tmp_path)

    render_files(project)

    page = (project.output_dir / "index.html").read_text(encoding="utf-8")
    assert '<h2 id="listing-h2">Listing</h2>' in page
    assert page.count('id="listing"') == 1
    assert '<div class="sitelist-listing" id="listing">' in page or '<div id="listing" class="sitelist-listing">' in page


def test_directory_contents_are_cached_as_directory_globs(blog_project: Path, write_file):
    write_file(blog_project / "blog" / "index.md", "---\ntitle: Blog\nlisting:\n  contents: posts\n---\n")
    write_file(blog_project / "blog" / "posts" / "2024" / "third.md", "# Third post\n")
    project = ProjectContext.load(blog_project)

    render_files(project)

    assert project.listing_cache.globs_for("blog/index.md") == ["blog/posts/**"]
    results = render_files(project, ["blog/posts/2024/third.md"])
    assert rendered_inputs(results, project) == ["blog/index.md", "blog/posts/2024/third.md"]
