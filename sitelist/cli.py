from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Sequence

from .automation import AutomationError, extract_images_from_elements
from .config import ConfigError, find_config, load_config
from .content import extract_title, normalize_list_spacing, read_document
from .engine import ConversionError, convert_markdown_file
from .listings import (
    FormatExtras,
    ListingConfigurationError,
    listing_html_dependencies,
    listing_supplemental_files,
)
from .project import Format, ProjectContext, TempContext, resource_path
from .render import RenderResult, build_head, cleanup, read_template, write_text
from .templates import ListingTemplateError
from .utils import parse_bool, parse_int, setup_logging

logger = logging.getLogger(__name__)

LIB_DIR = "site_libs"


def render_file(source: Path, project: ProjectContext, fmt: Format, temp: TempContext, page_template: str) -> RenderResult:
    extras = listing_html_dependencies(source, project, fmt, temp) or FormatExtras()

    meta, body = read_document(source)
    title, body = extract_title(meta, body)
    markdown_input = temp.create_file(suffix="md", prefix=source.stem)
    fragments = [normalize_list_spacing(body), *extras.markdown_after_body]
    markdown_input.write_text("\n\n".join(fragments) + "\n", encoding="utf-8")

    output = project.output_path(source, fmt)
    head, copied = build_head(extras, output, project.output_dir / LIB_DIR, fmt.self_contained)
    doc = convert_markdown_file(markdown_input, page_template, title=title, head=head)

    result = RenderResult(input=source, output=output, resources=copied)
    for postprocessor in extras.html_postprocessors:
        processed = postprocessor(doc)
        result.resources.extend(processed.resources)
        result.supporting.extend(processed.supporting)

    write_text(output, doc.serialize())
    cleanup(fmt.self_contained, result.supporting)
    logger.info("Output created: %s", output)
    return result


def render_files(
    project: ProjectContext,
    files: Sequence[Path] | None = None,
    *,
    fmt: Format | None = None,
    incremental: bool | None = None,
) -> list[RenderResult]:
    """Render a project (``files is None``) or a subset of it.

    Subset renders are incremental unless told otherwise and pull in every
    cached listing page that lists one of the files.
    """
    if fmt is None:
        fmt = Format(self_contained=parse_bool(project.config.get("self_contained")))
    if files is None:
        targets = project.files
        incremental = False if incremental is None else incremental
    else:
        targets = [Path(f) if Path(f).is_absolute() else project.dir / f for f in files]
        incremental = True if incremental is None else incremental

    for listing_page in listing_supplemental_files(project, targets, incremental):
        if listing_page in targets:
            continue
        if not listing_page.exists():
            logger.info("Cached listing page %s no longer exists, skipping", listing_page)
            continue
        logger.info("Adding listing page %s", project.relative(listing_page))
        targets.append(listing_page)

    page_template = read_template(resource_path("page.html"))
    results: list[RenderResult] = []
    with TempContext() as temp:
        for source in targets:
            results.append(render_file(source, project, fmt, temp, page_template))
    return results


def add_common_args(parser: argparse.ArgumentParser, config: dict) -> None:
    def cfg_str(key: str, default: str) -> str:
        value = config.get(key)
        return default if value is None else str(value)

    parser.add_argument("--output", default=cfg_str("output", "_site"), help="Output directory for rendered pages.")
    parser.add_argument(
        "--self-contained",
        action=argparse.BooleanOptionalAction,
        default=parse_bool(config.get("self_contained", False)),
        help="Inline dependencies and drop supporting files.",
    )
    parser.add_argument(
        "--feed-limit",
        default=parse_int(config.get("feed_limit"), 20),
        type=int,
        help="Default maximum number of items in listing feeds.",
    )


def build_parser(config_path: str, config: dict) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sitelist", description="Render markdown projects with listing pages.")
    parser.add_argument("--project", default=".", help="Project root directory.")
    parser.add_argument("--config", default=config_path, help="Path to project config file (TOML/YAML/JSON).")
    parser.add_argument("--log-level", default=str(config.get("log_level") or "INFO"), help="Logging level.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    render_parser = subparsers.add_parser("render", help="Render the project or selected files.")
    render_parser.add_argument("files", nargs="*", help="Files to render incrementally (all files if omitted).")
    add_common_args(render_parser, config)

    listings_parser = subparsers.add_parser("listings", help="Show listing pages affected by changed files.")
    listings_parser.add_argument("files", nargs="+", help="Changed files, relative to the project.")

    shot_parser = subparsers.add_parser("screenshot", help="Capture page elements as images.")
    shot_parser.add_argument("url")
    shot_parser.add_argument("selector")
    shot_parser.add_argument("filenames", nargs="+")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument("--project", default=".")
    pre_parser.add_argument("--config", default="")
    pre_args, _ = pre_parser.parse_known_args(argv)
    project_dir = Path(pre_args.project)
    config_path = Path(pre_args.config) if pre_args.config else find_config(project_dir)
    try:
        config = load_config(config_path) if config_path else {}
    except ConfigError as exc:
        print(exc, file=sys.stderr)
        return 1

    parser = build_parser(str(config_path or ""), config)
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        if args.command == "screenshot":
            ok = extract_images_from_elements(args.url, args.selector, [Path(name) for name in args.filenames])
            return 0 if ok else 1

        overrides = {}
        if args.command == "render":
            overrides = {
                "output": args.output,
                "self_contained": args.self_contained,
                "feed_limit": args.feed_limit,
            }
        project = ProjectContext.load(project_dir, Path(args.config) if args.config else None, overrides)

        if args.command == "listings":
            for listing_page in listing_supplemental_files(project, args.files, incremental=True):
                print(project.relative(listing_page))
            return 0

        start = time.perf_counter()
        results = render_files(project, args.files or None)
        elapsed = time.perf_counter() - start
    except (ConfigError, ListingConfigurationError, ListingTemplateError, ConversionError, AutomationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Rendered {len(results)} file(s) in {elapsed:.2f}s.")
    print(f"Output written to: {project.output_dir}")
    return 0
