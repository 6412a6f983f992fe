"""Moderation engine: expiration checks, member reports and deletion.

Expiration checks run in Celery workers. Unlike submission, a fetch failure
here is returned as a failure so the job shows up as failed.
"""

import logging
import uuid
from datetime import datetime, timedelta
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncSession

from board.config import get_settings
from board.monitoring import report_exception
from board.result import Result, fail, success
from board.services import opportunity_store as store
from board.services.channels import OpportunityChannels
from board.services.content_fetcher import ContentFetcher, get_content_fetcher
from board.services.extraction import has_expired
from board.services.jobs import CHECK_EXPIRED, JobQueue, get_job_queue

logger = logging.getLogger(__name__)

# Member reports needed to take an opportunity off the board. One admin
# report is enough.
REPORTS_TO_REMOVE = 2


class ModerationEngine:
    def __init__(self, fetcher: ContentFetcher, jobs: JobQueue, cooldown: timedelta = timedelta(hours=3)):
        self.fetcher = fetcher
        self.jobs = jobs
        self.cooldown = cooldown

    async def check_for_expired_opportunity(
        self, db: AsyncSession, opportunity_id: uuid.UUID, force: bool = False,
    ) -> Result:
        """Scrape the opportunity's page and expire it if the posting is gone.

        Skipped when the opportunity is already expired or was checked less
        than ``cooldown`` ago (unless ``force``). Returns whether the
        opportunity was found to be expired.
        """
        opportunity = await store.select_for_expiration_check(db, opportunity_id, force, self.cooldown)
        if not opportunity or not opportunity.link:
            return success(False)

        link = opportunity.link
        await store.update_fields(db, opportunity_id, last_expiration_check=store.utcnow())
        await db.commit()

        try:
            content = await self.fetcher.fetch(link)
        except Exception as e:
            report_exception(e, opportunity_id=opportunity_id, link=link)
            return fail(500, "Failed to get page content.")

        expired = has_expired(content or "")
        if expired:
            await store.mark_expired(db, opportunity_id)
            await db.commit()
            logger.info(f"Opportunity {opportunity_id} has closed: {link}")

        return success(expired)

    async def check_for_expired_opportunities(self, db: AsyncSession, limit: int) -> Result:
        """Schedule a forced check for up to ``limit`` never-checked opportunities."""
        opportunity_ids = await store.list_unchecked_ids(db, limit)
        for opportunity_id in opportunity_ids:
            self.jobs.enqueue(CHECK_EXPIRED, {"opportunity_id": str(opportunity_id), "force": True})

        logger.info(f"Dispatched {len(opportunity_ids)} expiration checks")
        return success({"dispatched": len(opportunity_ids)})

    async def report_opportunity(
        self, db: AsyncSession, opportunity_id: uuid.UUID, reporter_id: uuid.UUID, reason: str,
    ) -> Result:
        """Record a member's report, and take the opportunity down if warranted."""
        if not await store.get_by_id(db, opportunity_id):
            return fail(404, "Opportunity not found.")

        try:
            await store.record_report(db, opportunity_id, reporter_id, reason)
            reports = await store.count_reports(db, opportunity_id)
            admin = await store.is_active_admin(db, reporter_id)

            removed = reports >= REPORTS_TO_REMOVE or admin
            if removed:
                await store.mark_expired(db, opportunity_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if removed:
            logger.info(f"Removed opportunity {opportunity_id} after {reports} report(s) (admin={admin})")
        return success({"removed": removed})

    async def delete_opportunity(
        self, db: AsyncSession, opportunity_id: uuid.UUID, member_id: uuid.UUID | None = None,
    ) -> Result:
        """Delete the opportunity with its tags, bookmarks and reports.

        When ``member_id`` is given, the member must be the poster or an admin.
        """
        if member_id and not await store.has_write_permission(db, opportunity_id, member_id):
            return fail(403, "You do not have permission to delete this opportunity.")

        try:
            deleted = await store.hard_delete(db, opportunity_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if deleted:
            logger.info(f"Deleted opportunity {opportunity_id}")
        return success({"id": opportunity_id})

    async def check_for_deleted_opportunity(
        self,
        db: AsyncSession,
        channel_id: str,
        message_id: str,
        deleted_at: datetime | None,
        channels: OpportunityChannels,
    ) -> None:
        """Delete the opportunity created from a Slack message that was deleted.

        Messages with replies are soft-deleted in Slack, so this runs whenever
        a message changes.
        """
        if not deleted_at:
            return

        if not await channels.contains(channel_id):
            return

        opportunity_id = await store.find_by_slack_message(db, channel_id, message_id)
        if opportunity_id:
            await self.delete_opportunity(db, opportunity_id)


@lru_cache
def get_moderation_engine() -> ModerationEngine:
    settings = get_settings()
    return ModerationEngine(
        fetcher=get_content_fetcher(),
        jobs=get_job_queue(),
        cooldown=timedelta(hours=settings.expiration_check_cooldown_hours),
    )
