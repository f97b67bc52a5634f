"""
Maintenance Job: periodic storage hygiene.

Runs as a scheduled job (via cron or similar) to:
- retire pending invitations whose deadline has passed
- purge notifications older than the retention window

Request paths already treat an overdue invitation as expired, so this
job only keeps stored state in line with the clock.

Typical cron schedule: 0 3 * * * (daily at 3 AM)
"""

import asyncio
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ..core.config import get_settings
from ..services.invitations import InvitationEngine
from ..services.notifications import NotificationCenter


logger = logging.getLogger(__name__)


async def run_maintenance_job(
    database_url: str | None = None,
    retention_days: int | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> dict[str, Any]:
    """
    Run one maintenance pass.

    Args:
        database_url: Connection string; ignored when
            ``session_factory`` is given
        retention_days: Notification retention window (defaults to settings)
        session_factory: Existing session factory to reuse

    Returns:
        Job result summary
    """
    settings = get_settings()
    retention_days = retention_days or settings.notification_retention_days

    start_time = datetime.now(timezone.utc)
    logger.info(f"Starting maintenance job at {start_time.isoformat()}")

    engine = None
    if session_factory is None:
        if database_url:
            settings = settings.model_copy(update={"database_url": database_url})
        engine = create_async_engine(settings.database_url_async)
        session_factory = async_sessionmaker(engine, expire_on_commit=False)

    results: dict[str, Any] = {
        "started_at": start_time.isoformat(),
        "completed_at": None,
        "invitations_expired": 0,
        "notifications_purged": 0,
    }

    try:
        async with session_factory() as session:
            async with session.begin():
                # Step 1: Retire overdue invitations
                invitations = InvitationEngine(session)
                results["invitations_expired"] = await invitations.expire_overdue()

                # Step 2: Purge old notifications
                cutoff = start_time - timedelta(days=retention_days)
                results["notifications_purged"] = await NotificationCenter(
                    session
                ).purge_older_than(cutoff)

    except Exception:
        logger.exception("Maintenance job failed")
        raise

    finally:
        if engine is not None:
            await engine.dispose()

    end_time = datetime.now(timezone.utc)
    results["completed_at"] = end_time.isoformat()
    results["duration_seconds"] = (end_time - start_time).total_seconds()

    logger.info(
        f"Maintenance job completed in {results['duration_seconds']:.2f}s: "
        f"{results['invitations_expired']} invitations expired, "
        f"{results['notifications_purged']} notifications purged"
    )
    return results


# =============================================================================
# CLI ENTRY POINT
# =============================================================================


def main():
    """CLI entry point for the maintenance job."""
    import argparse

    parser = argparse.ArgumentParser(description="Run the Fluxo maintenance job")
    parser.add_argument(
        "--database-url",
        default=os.environ.get("DATABASE_URL"),
        help="Database connection string",
    )
    parser.add_argument(
        "--retention-days",
        type=int,
        default=None,
        help="Delete notifications older than this many days",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        results = asyncio.run(run_maintenance_job(
            database_url=args.database_url,
            retention_days=args.retention_days,
        ))
        print(f"Job completed: {results}")
    except Exception as e:
        print(f"Job failed: {e}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
