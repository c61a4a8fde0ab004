"""
Offline access-control maintenance.

    campus-rbac seed
    campus-rbac sync-catalog
    campus-rbac backfill
    campus-rbac repair-orphans [--default-branch ID]
    campus-rbac drift

Each command prints its report as JSON. SIGINT/SIGTERM let the unit in
progress finish and skip the rest.
"""
import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional, Sequence
from uuid import UUID

from campus_rbac.api.v1.services.reconciliation_service import ReconciliationService
from campus_rbac.api.v1.services.seeding import seed
from campus_rbac.core.config import settings
from campus_rbac.db.session import db_manager

logger = logging.getLogger("campus_rbac.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="campus-rbac", description="Role and permission maintenance")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("seed", help="seed the permission catalog and default branch roles")
    commands.add_parser("sync-catalog", help="create RBAC roles for legacy roles lacking one")
    commands.add_parser("backfill", help="assign legacy-only users to their RBAC role")
    repair = commands.add_parser("repair-orphans", help="scope non-system global roles to a branch")
    repair.add_argument("--default-branch", type=UUID, default=None, help="branch id adopting orphan roles")
    commands.add_parser("drift", help="report legacy/RBAC differences (read-only)")
    return parser


def _install_stop_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform; Ctrl+C then aborts immediately.
            pass


async def run(command: str, default_branch: Optional[UUID] = None):
    stop_event = asyncio.Event()
    _install_stop_handlers(stop_event)

    try:
        if settings.AUTO_CREATE_TABLES:
            await db_manager.create_all()

        factory = db_manager.async_session_factory
        service = ReconciliationService(factory, stop_event=stop_event)

        if command == "seed":
            return await seed(factory)
        if command == "sync-catalog":
            return await service.sync_role_catalog()
        if command == "backfill":
            return await service.backfill_user_assignments()
        if command == "repair-orphans":
            return await service.repair_orphan_roles(default_branch)
        if command == "drift":
            return await service.detect_drift()
        raise ValueError(f"Unknown command: {command}")
    finally:
        await db_manager.dispose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose or settings.DEBUG else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )

    report = asyncio.run(run(args.command, getattr(args, "default_branch", None)))
    print(report.model_dump_json(indent=2))

    if getattr(report, "error", None):
        return 1
    if getattr(report, "stopped", False):
        logger.warning("Interrupted before completion; re-run to finish")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
