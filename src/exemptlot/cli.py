"""ExemptLot CLI — assess a structure, list sites, export run history."""

import argparse
import asyncio
import logging
import sys

from exemptlot.config import settings
from exemptlot.core import AssessmentOutcome, PrecheckFlags, Proposal, RunStatus, StructureKind
from exemptlot.core.zones import zone_code, zone_friendly_name
from exemptlot.ingestion.sites import DatasetError, load_dataset
from exemptlot.observability.logging import correlation_scope, setup_logging


def _setup() -> None:
    setup_logging(json_format=False, level=settings.log_level)


def _parse_precheck(value: str) -> tuple[str, bool]:
    """'heritage_item' → ('heritage_item', True); 'heritage_item=no' → ('heritage_item', False)."""
    key, _, raw = value.partition("=")
    raw = raw.strip().lower() or "true"
    if raw not in ("true", "false", "yes", "no", "1", "0"):
        raise argparse.ArgumentTypeError(f"Invalid precheck value: {value}")
    if key not in PrecheckFlags.keys():
        raise argparse.ArgumentTypeError(
            f"Unknown precheck '{key}'. Expected one of: {', '.join(PrecheckFlags.keys())}"
        )
    return key, raw in ("true", "yes", "1")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="exemptlot",
        description="Check whether an outbuilding is likely exempt development on a site.",
    )
    parser.add_argument("site_id", help="Site id from the dataset, e.g. ALB-001")
    parser.add_argument("--kind", choices=[k.value for k in StructureKind], default="shed")
    parser.add_argument("--length", type=float, required=True, help="Length in metres")
    parser.add_argument("--width", type=float, required=True, help="Width in metres")
    parser.add_argument("--height", type=float, required=True, help="Height in metres")
    parser.add_argument("--setback", type=float, required=True, help="Distance to nearest boundary in metres")
    parser.add_argument(
        "--precheck", type=_parse_precheck, action="append", default=[],
        metavar="KEY[=true|false]", help="Override a site precheck flag (repeatable)",
    )
    parser.add_argument("--dataset", choices=["curated", "full"], default=None)
    return parser


def main() -> None:
    """Run an assessment: exemptlot <site_id> --length L --width W --height H --setback S"""
    _setup()
    args = _build_parser().parse_args()
    try:
        proposal = Proposal(
            kind=args.kind,
            length_m=args.length,
            width_m=args.width,
            height_m=args.height,
            nearest_boundary_m=args.setback,
        )
    except ValueError as e:
        print(f"Invalid proposal: {e}")
        sys.exit(2)

    with correlation_scope():
        outcome = asyncio.run(_assess(args.site_id, proposal, dict(args.precheck), args.dataset))
    sys.exit(0 if outcome and outcome.status is not RunStatus.ERROR else 1)


async def _open_storage():
    """SQL-backed history and site store, or in-memory if the database is unavailable."""
    from exemptlot.storage.db import get_session_factory, init_db
    from exemptlot.storage.history import InMemoryHistoryRepository, SqlHistoryRepository
    from exemptlot.storage.sites import InMemorySiteStore, SqlSiteStore

    try:
        await init_db()
    except Exception as e:
        logging.getLogger(__name__).warning("Database unavailable (%s) — run will not be logged", e)
        return InMemoryHistoryRepository(), InMemorySiteStore()
    factory = get_session_factory()
    return SqlHistoryRepository(factory), SqlSiteStore(factory)


async def _assess(
    site_id: str,
    proposal: Proposal,
    overrides: dict[str, bool],
    dataset: str | None,
) -> AssessmentOutcome | None:
    from exemptlot.pipeline.prechecks import resolve_prechecks
    from exemptlot.pipeline.runner import AssessmentSession
    from exemptlot.storage.db import dispose_db
    from exemptlot.storage.sites import SiteCatalog

    try:
        sites = load_dataset(dataset)
    except DatasetError as e:
        print(f"Could not load sites: {e}")
        return None

    history, store = await _open_storage()
    try:
        catalog = SiteCatalog(sites, store)
        await catalog.load()
        site = catalog.get(site_id)
        if site is None:
            print(f"Unknown site: {site_id}")
            return None

        session = AssessmentSession(history=history, unknown_policy=settings.unknown_overlay_policy)
        outcome = await session.run(site, proposal, resolve_prechecks(site, overrides))
    finally:
        await dispose_db()

    print("\nExemptLot Exempt Development Check")
    print(f"{'=' * 50}")
    print(f"Site:      {site.label} ({site.id})")
    print(f"Zone:      {site.zone} — {zone_friendly_name(zone_code(site.zone))}")
    print(f"Structure: {proposal.kind.value}, {proposal.length_m:g} x {proposal.width_m:g} m "
          f"({proposal.area_m2:g} m²), {proposal.height_m:g} m high, "
          f"{proposal.nearest_boundary_m:g} m from boundary")
    print()

    if outcome is None:
        print("Run was superseded.")
        return None
    if outcome.status is RunStatus.ERROR:
        print(f"Assessment failed: {outcome.message}")
        return outcome

    if outcome.overlay is not None:
        print(f"{'─' * 50}")
        print(f"Overlays ({outcome.overlay_origin.value}): {outcome.overlay.summary()}")
        if outcome.combined:
            for note in outcome.combined.overlays.notes:
                print(f"  note: {note}")
        print()

    print(f"{'─' * 50}")
    for check in outcome.checks:
        mark = "PASS" if check.ok else "FAIL"
        print(f"  [{mark}] {check.message}")
        print(f"         {check.clause}")
        if check.citation:
            print(f"         {check.citation}")
    print()
    if outcome.status is RunStatus.BLOCKED:
        print("Site restrictions apply — speak with Council before building.")
    print(f"Verdict: {outcome.verdict.value}")
    return outcome


def sites_main() -> None:
    """List sites: exemptlot-sites [curated|full]"""
    _setup()
    dataset = sys.argv[1] if len(sys.argv) > 1 else None
    try:
        sites = load_dataset(dataset)
    except DatasetError as e:
        print(f"Could not load sites: {e}")
        sys.exit(1)

    for site in sites:
        flags = [k for k, v in site.prechecks.to_dict().items() if v]
        print(f"  {site.id:<12} {zone_code(site.zone):<5} {site.bal:<9} {site.flood_category:<14} {site.label}"
              + (f"  [{', '.join(flags)}]" if flags else ""))
    print(f"\nTotal: {len(sites)} sites")


def history_main() -> None:
    """Export run history: exemptlot-history [--format csv|json]"""
    _setup()
    parser = argparse.ArgumentParser(prog="exemptlot-history", description="Export assessment run history.")
    parser.add_argument("--format", choices=["csv", "json"], default="csv")
    args = parser.parse_args()

    async def _run() -> str:
        from exemptlot.storage.db import dispose_db, get_session_factory, init_db
        from exemptlot.storage.history import SqlHistoryRepository, entries_to_csv, entries_to_json

        await init_db()
        try:
            entries = await SqlHistoryRepository(get_session_factory()).list_entries()
        finally:
            await dispose_db()
        if not entries:
            return ""
        return entries_to_csv(entries) if args.format == "csv" else entries_to_json(entries)

    output = asyncio.run(_run())
    if not output:
        print("No log entries to export yet.", file=sys.stderr)
        sys.exit(1)
    print(output)


if __name__ == "__main__":
    main()
