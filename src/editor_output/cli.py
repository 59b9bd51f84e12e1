"""
Publish freshly generated ember-cli output to the editor output repository.

Usage:
    # Publish v4.10.0 typescript output for every configured editor
    VARIANT=typescript GITHUB_TOKEN=... update-editor-output 4.10.0

    # Show which branches would be updated, without touching git
    update-editor-output 4.10.0 --variant javascript --dry-run
"""

from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

from src.editor_output import config
from src.editor_output import orchestrator

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    level = getattr(logging, config.log_level(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Update the online editor output branches for an ember-cli release"
    )
    parser.add_argument("version", help="Version to publish, without the leading 'v'")
    parser.add_argument(
        "--variant",
        choices=config.VALID_VARIANTS,
        default=config.variant() or None,
        help="Language variant (default: VARIANT env var)",
    )
    parser.add_argument(
        "--editor",
        dest="editors",
        action="append",
        default=None,
        help="Online editor to publish for; repeatable (default: EDITOR_OUTPUT_EDITORS or stackblitz)",
    )
    parser.add_argument(
        "--repo",
        default=None,
        help="Target GitHub repository as owner/name (default: EDITOR_OUTPUT_REPO)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the planned branches and exit",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    _configure_logging()
    args = parse_args(argv)

    if not args.version.strip():
        logger.error("a version must be provided as the first argument")
        return 1

    if args.dry_run:
        if args.variant not in config.VALID_VARIANTS:
            logger.error("a variant must be selected with --variant or VARIANT")
            return 1
        settings = config.Settings.from_env(repo=args.repo, editors=args.editors)
        try:
            jobs = orchestrator.plan(args.version, variant=args.variant, settings=settings)
        except Exception as exc:
            logger.error("planning failed: %s", exc)
            return 1
        for job in jobs:
            print(
                f"{job.editor_branch}\t{job.command} {job.name}\t"
                f"{'latest' if job.is_latest else 'tagged'}"
            )
        return 0

    try:
        config.ensure_run_configured(selected_variant=args.variant or "")
    except RuntimeError as exc:
        logger.error("%s", exc)
        return 1

    settings = config.Settings.from_env(repo=args.repo, editors=args.editors)
    summary = orchestrator.run(args.version, variant=args.variant, settings=settings)
    if not summary.succeeded:
        where = f" at {summary.failed_branch}" if summary.failed_branch else ""
        logger.error(
            "run aborted%s after publishing %d of %d branches: %s",
            where,
            len(summary.published),
            len(summary.jobs),
            summary.error,
        )
        return 1

    logger.info("Published %d branches: %s", len(summary.published), ", ".join(summary.published_branches))
    return 0


if __name__ == "__main__":
    sys.exit(main())
