# src/main.py — v3
"""CLI entry point — identify, stats, submissions, catalog commands.

Usage:
    scavy identify <image> [<image> ...] [--hint TEXT] [--provider NAME]
    scavy stats [--period hour|day] [--export-csv PATH]
    scavy submissions list [--status STATUS]
    scavy submissions approve <id> [--reviewer NAME] [--notes TEXT] [--brand B] [--model M]
    scavy submissions reject <id> --reason TEXT [--reviewer NAME]
    scavy catalog seed <devices.json>
    scavy catalog delete <device_id>
"""

from __future__ import annotations

import argparse
import asyncio
import base64
import json
import logging
import sys
from pathlib import Path

from scavy.version import __version__

logger = logging.getLogger(__name__)

_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
}


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from scavy.config.settings import load_settings

    settings = load_settings()
    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="scavy",
        description=f"scavy v{__version__} — Tiered component identification",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- identify ---
    p_identify = subparsers.add_parser(
        "identify", help="Identify the object in one or more photos",
    )
    p_identify.add_argument("images", type=Path, nargs="+", help="Image files")
    p_identify.add_argument("--hint", default=None, help="Free-text hint (brand, model, ...)")
    p_identify.add_argument(
        "--provider", choices=["openai", "gemini", "claude"], default=None,
        help="Preferred AI provider",
    )
    p_identify.add_argument("--user", default=None, help="Requesting user id")
    p_identify.set_defaults(func=_cmd_identify)

    # --- stats ---
    p_stats = subparsers.add_parser(
        "stats", help="Show latency, cache and cost statistics",
    )
    p_stats.add_argument(
        "--period", choices=["hour", "day"], default="day",
        help="Rollup bucket size (default: day)",
    )
    p_stats.add_argument(
        "--export-csv", type=Path, default=None,
        help="Also write raw scan logs to this CSV file",
    )
    p_stats.set_defaults(func=_cmd_stats)

    # --- submissions ---
    p_sub = subparsers.add_parser("submissions", help="Review submissions")
    sub_actions = p_sub.add_subparsers(dest="action", required=True)

    p_list = sub_actions.add_parser("list", help="List submissions")
    p_list.add_argument(
        "--status", choices=["pending", "approved", "rejected", "needs_more_info"], default=None,
    )
    p_list.add_argument("--limit", type=int, default=50)
    p_list.set_defaults(func=_cmd_submissions_list)

    p_approve = sub_actions.add_parser("approve", help="Approve into the catalog")
    p_approve.add_argument("submission_id", type=int)
    p_approve.add_argument("--reviewer", default="cli")
    p_approve.add_argument("--notes", default=None)
    p_approve.add_argument("--brand", default=None, help="Brand to record on the catalog device")
    p_approve.add_argument("--model", default=None, help="Model to record on the catalog device")
    p_approve.set_defaults(func=_cmd_submissions_approve)

    p_reject = sub_actions.add_parser("reject", help="Reject a submission")
    p_reject.add_argument("submission_id", type=int)
    p_reject.add_argument("--reason", required=True)
    p_reject.add_argument("--reviewer", default=None)
    p_reject.set_defaults(func=_cmd_submissions_reject)

    # --- catalog ---
    p_catalog = subparsers.add_parser("catalog", help="Manage the device catalog")
    cat_actions = p_catalog.add_subparsers(dest="action", required=True)
    p_seed = cat_actions.add_parser("seed", help="Load devices from a JSON file")
    p_seed.add_argument("file", type=Path, help="JSON list of devices with components")
    p_seed.set_defaults(func=_cmd_catalog_seed)
    p_delete = cat_actions.add_parser("delete", help="Remove a device and its components")
    p_delete.add_argument("device_id", type=int)
    p_delete.set_defaults(func=_cmd_catalog_delete)

    return parser


async def _cmd_identify(args: argparse.Namespace, settings) -> int:
    """Run one identification and print the result as JSON."""
    from scavy.api.facade import build_context, resolve
    from scavy.core.errors import InvalidImageError
    from scavy.core.models import IdentificationRequest, ImagePayload

    payloads: list[ImagePayload] = []
    for path in args.images:
        if not path.is_file():
            logger.error("File not found: %s", path)
            return 1
        payloads.append(ImagePayload(
            mime_type=_MIME_TYPES.get(path.suffix.lower(), "image/jpeg"),
            base64=base64.b64encode(path.read_bytes()).decode("ascii"),
        ))

    context = build_context(settings)
    request = IdentificationRequest(
        images=payloads, hint=args.hint, provider=args.provider, user_id=args.user,
    )
    try:
        result = await resolve(request, context)
    except InvalidImageError as exc:
        logger.error("Invalid image: %s", exc)
        return 1
    finally:
        await context.telemetry.drain()

    print(result.model_dump_json(indent=2, exclude_none=True, exclude={"raw_response"}))
    return 0 if result.error_kind is None else 2


async def _cmd_stats(args: argparse.Namespace, settings) -> int:
    """Print rollups and active alerts from the scan log."""
    from scavy.storage.database import Database
    from scavy.tracking.alerts import check_alerts
    from scavy.tracking.exporter import export_scan_logs_csv, format_rollups
    from scavy.tracking.scan_log_store import ScanLogStore
    from scavy.tracking.stats_aggregator import rollup, rollup_by_period

    store = ScanLogStore(Database(settings.database_path))
    logs = await store.list_since()

    print(format_rollups(rollup_by_period(logs, args.period), check_alerts(logs, settings)))
    if logs:
        overall = rollup(logs, bucket="all", period=args.period)
        print(f"\nOverall: {overall.total_scans} scans, "
              f"hit rate {overall.cache_hit_rate:.1%}, "
              f"cost ${overall.total_cost_usd:.4f} "
              f"(avg ${overall.avg_cost_per_scan:.5f}/scan), "
              f"saved ${overall.total_cost_saved_usd:.4f}")

    if args.export_csv:
        count = export_scan_logs_csv(logs, args.export_csv)
        print(f"\nExported {count} rows to {args.export_csv}")
    return 0


async def _cmd_submissions_list(args: argparse.Namespace, settings) -> int:
    from scavy.storage.database import Database
    from scavy.submissions.models import SubmissionStatus
    from scavy.submissions.store import SubmissionStore

    store = SubmissionStore(Database(settings.database_path))
    status = SubmissionStatus(args.status) if args.status else None
    records = await store.list_submissions(status=status, limit=args.limit)
    if not records:
        print("No submissions.")
        return 0
    for r in records:
        print(f"#{r.id:<5d} {r.status.value:16s} {r.submission_type.value:16s} "
              f"{r.raw_result.parent_object or '?':40s} items={len(r.raw_result.items)}")
    return 0


async def _cmd_submissions_approve(args: argparse.Namespace, settings) -> int:
    from scavy.api.facade import build_context

    context = build_context(settings)
    outcome = await context.submissions.approve(
        args.submission_id, reviewer=args.reviewer, notes=args.notes,
        brand=args.brand, model=args.model,
    )
    verb = "created" if outcome.device_created else "linked to existing"
    print(f"Approved #{args.submission_id}: {verb} device {outcome.device_id} "
          f"({outcome.components_added} components added)")
    return 0


async def _cmd_submissions_reject(args: argparse.Namespace, settings) -> int:
    from scavy.api.facade import build_context

    context = build_context(settings)
    await context.submissions.reject(args.submission_id, args.reason, reviewer=args.reviewer)
    print(f"Rejected #{args.submission_id}")
    return 0


async def _cmd_catalog_seed(args: argparse.Namespace, settings) -> int:
    """Insert curated devices; existing (brand, model) pairs are skipped."""
    from scavy.catalog.models import CatalogDevice
    from scavy.catalog.store import CatalogStore
    from scavy.storage.database import Database

    file_path: Path = args.file
    if not file_path.exists():
        logger.error("File not found: %s", file_path)
        return 1

    data = json.loads(file_path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("devices", [])

    store = CatalogStore(Database(settings.database_path))
    created = skipped = 0
    for entry in data:
        device = CatalogDevice.model_validate(entry)
        _, was_created = await store.add_device(device)
        if was_created:
            created += 1
        else:
            skipped += 1

    print(f"Catalog seed complete: {created} added, {skipped} already present")
    return 0


async def _cmd_catalog_delete(args: argparse.Namespace, settings) -> int:
    from scavy.catalog.store import CatalogStore
    from scavy.storage.database import Database

    store = CatalogStore(Database(settings.database_path))
    if await store.get_device(args.device_id) is None:
        logger.error("Device not found: %s", args.device_id)
        return 1
    await store.delete_device(args.device_id)
    print(f"Deleted device {args.device_id}")
    return 0


def _setup_logging(settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from scavy.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
