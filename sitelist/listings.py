from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

from .categories import add_category_sidebar
from .dom import DocumentTree
from .feed import create_feed
from .listing import Listing, ListingDescriptor, ListingItem, ListingSharedOptions, ListingType
from .pipeline import MarkdownPipeline, PipelineHandler, create_markdown_pipeline
from .project import Format, ProjectContext, TempContext, resource_path
from .reader import read_listings
from .templates import template_js_script, template_markdown_handler

logger = logging.getLogger(__name__)

LISTING_PIPELINE = "sitelist-listing-pipeline"
LISTING_DEPENDENCY = "sitelist-listing"
BASE_STYLE_DEPENDENCY = "sitelist-base"

BUNDLED_TEMPLATES = {
    ListingType.DEFAULT: "listing-default.md.j2",
    ListingType.GRID: "listing-grid.md.j2",
    ListingType.TABLE: "listing-table.md.j2",
}


class ListingConfigurationError(ValueError):
    """Raised when a listing cannot be rendered as configured."""


@dataclass(frozen=True)
class DependencyFile:
    name: str
    path: Path


@dataclass
class FormatDependency:
    name: str
    scripts: list[DependencyFile] = field(default_factory=list)
    stylesheets: list[DependencyFile] = field(default_factory=list)


@dataclass(frozen=True)
class StyleBundle:
    dependency: str
    key: str
    name: str
    path: Path


@dataclass
class HtmlPostProcessResult:
    resources: list[Path] = field(default_factory=list)
    supporting: list[Path] = field(default_factory=list)


HtmlPostProcessor = Callable[[DocumentTree], HtmlPostProcessResult]


@dataclass
class FormatExtras:
    include_in_header: list[Path] = field(default_factory=list)
    html_postprocessors: list[HtmlPostProcessor] = field(default_factory=list)
    markdown_after_body: list[str] = field(default_factory=list)
    dependencies: list[FormatDependency] = field(default_factory=list)
    style_bundles: list[StyleBundle] = field(default_factory=list)


def listing_supplemental_files(project: ProjectContext, files: Sequence[Path | str], incremental: bool) -> list[Path]:
    """Listing pages that must be re-rendered alongside ``files``.

    Incremental renders consult the listing cache: any cached listing page
    whose content globs match one of the files is added. A full render
    clears the cache instead; every listing page is rebuilt during the pass
    and records itself again.
    """
    cache = project.listing_cache
    if not incremental:
        cache.clear_all()
        return []
    matching = cache.affected_listings(files)
    return [project.dir / listing_page for listing_page in matching]


def listing_template(listing: Listing) -> tuple[Path, bool]:
    """Resolve the template for a listing; the flag is True for bundled templates."""
    if listing.type is ListingType.CUSTOM:
        if listing.template is None:
            raise ListingConfigurationError(
                f"Listing {listing.id}: type custom requires a template path, but none was given."
            )
        if not listing.template.exists():
            raise ListingConfigurationError(
                f"Listing {listing.id}: the template {listing.template} can't be found."
            )
        return listing.template, False
    return resource_path("listing", BUNDLED_TEMPLATES[listing.type]), True


def markdown_handler(fmt: Format, listing: Listing, items: Sequence[ListingItem]) -> PipelineHandler:
    template_path, bundled = listing_template(listing)
    return template_markdown_handler(template_path, listing, items, fmt.name, bundled)


def script_file_for_scripts(scripts: Sequence[str], temp: TempContext) -> Path:
    script_file = temp.create_file(suffix="html")
    script_file.write_text("<script>\n" + "\n".join(scripts) + "</script>\n", encoding="utf-8")
    return script_file


def listing_dependencies() -> list[FormatDependency]:
    script = resource_path("listing", "listing.js")
    return [FormatDependency(name=LISTING_DEPENDENCY, scripts=[DependencyFile(script.name, script)])]


def listing_style_bundle() -> StyleBundle:
    css_path = resource_path("listing", "listing.css")
    return StyleBundle(
        dependency=BASE_STYLE_DEPENDENCY,
        key=str(css_path),
        name="sitelist-listing.css",
        path=css_path,
    )


def listing_post_process(
    doc: DocumentTree,
    descriptors: Sequence[ListingDescriptor],
    options: ListingSharedOptions,
) -> None:
    if options.categories and not add_category_sidebar(doc, descriptors):
        logger.debug("No sidebar container, category list skipped")


def listing_postprocessor(
    pipeline: MarkdownPipeline,
    source: Path,
    project: ProjectContext,
    descriptors: Sequence[ListingDescriptor],
    options: ListingSharedOptions,
    fmt: Format,
) -> HtmlPostProcessor:
    def postprocess(doc: DocumentTree) -> HtmlPostProcessResult:
        pipeline.apply(doc)
        listing_post_process(doc, descriptors, options)
        result = HtmlPostProcessResult()
        if options.feed is not None:
            result.supporting.extend(create_feed(doc, source, project, descriptors, options.feed, fmt))
        return result

    return postprocess


def listing_html_dependencies(
    source: Path,
    project: ProjectContext,
    fmt: Format,
    temp: TempContext,
) -> FormatExtras | None:
    descriptors, options = read_listings(source, project, fmt)
    if not descriptors:
        return None

    # recorded before conversion; a failed render leaves a harmless entry
    project.listing_cache.record_listing(project.relative(source), descriptors)

    handlers = [markdown_handler(fmt, d.listing, d.items) for d in descriptors]
    pipeline = create_markdown_pipeline(LISTING_PIPELINE, handlers)
    scripts = [template_js_script(d.listing.id, d.listing, len(d.items)) for d in descriptors]

    return FormatExtras(
        include_in_header=[script_file_for_scripts(scripts, temp)],
        html_postprocessors=[listing_postprocessor(pipeline, source, project, descriptors, options, fmt)],
        markdown_after_body=[pipeline.markdown_after_body()],
        dependencies=listing_dependencies(),
        style_bundles=[listing_style_bundle()],
    )
