"""Opportunity enrichment pipeline.

A submitted link (from the board or from a Slack message) becomes a
placeholder opportunity right away, so the poster can always edit it. The
page is then fetched and handed to the AI, which fills in the company, title,
description, expiration date and tags.

Fetch and AI trouble never loses the placeholder: fetch errors are reported
and treated as "no content", and a failed refinement leaves the placeholder
as it was.
"""

import logging
import re
import uuid
from datetime import datetime, time, timezone
from functools import lru_cache

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from board.config import get_settings
from board.models.company import Company
from board.models.opportunity import Opportunity
from board.models.slack_message import SlackMessage
from board.models.tag import OpportunityTag
from board.monitoring import report_exception
from board.result import Result, fail, success
from board.schemas.opportunity import (
    AddOpportunityInput,
    EditOpportunityInput,
    RefineOpportunityInput,
)
from board.services import opportunity_store as store
from board.services.ai import CompletionClient, get_completion_client
from board.services.company_resolver import CompanyResolver, NameCompanyResolver
from board.services.content_fetcher import ContentFetcher, get_content_fetcher
from board.services.extraction import (
    SYSTEM_PROMPT,
    ExtractionError,
    UnusableExtraction,
    build_prompt,
    has_expired,
    parse_extraction,
)
from board.services.jobs import ACTIVITY_COMPLETED, JobQueue, get_job_queue
from board.services.notifications import (
    Analytics,
    get_analytics,
    send_added_to_board_notification,
    send_refinement_notification,
)
from board.services.tag_catalog import list_tags, resolve_tag_ids

logger = logging.getLogger(__name__)

# Slack hyperlink markup: <https://example.com> or <https://example.com|label>
SLACK_LINK_PATTERN = re.compile(r"<(https?://[^\s|>]+)(?:\|[^>]+)?>")

# Pages behind a login wall; scraping them yields a sign-in page.
PROTECTED_HOSTS = ("docs.google.com", "linkedin.com")


def get_first_link_in_message(text: str) -> str | None:
    """First URL in a Slack message, or None."""
    match = SLACK_LINK_PATTERN.search(text)
    return match.group(1) if match else None


def is_protected_link(link: str) -> bool:
    return any(host in link for host in PROTECTED_HOSTS)


class OpportunityPipeline:
    """Creates opportunities and enriches them with AI-extracted details."""

    def __init__(
        self,
        fetcher: ContentFetcher,
        ai: CompletionClient,
        jobs: JobQueue,
        companies: CompanyResolver,
        analytics: Analytics,
        max_content_length: int = 10_000,
        max_tokens: int = 500,
    ):
        self.fetcher = fetcher
        self.ai = ai
        self.jobs = jobs
        self.companies = companies
        self.analytics = analytics
        self.max_content_length = max_content_length
        self.max_tokens = max_tokens

    async def _fetch_content(self, link: str) -> str:
        """Page text, or an empty string if the page could not be fetched."""
        try:
            content = await self.fetcher.fetch(link)
        except Exception as e:
            report_exception(e, link=link)
            return ""
        return (content or "").strip()

    async def add_opportunity(self, db: AsyncSession, data: AddOpportunityInput) -> Result:
        """Add a link submitted from the board.

        Returns the placeholder's id whether or not refinement worked. Fails
        with 409 if the link was already posted, and with 404 if the page
        says the opportunity is closed (the placeholder is removed).
        """
        if await store.find_by_link(db, data.link):
            return fail(409, "Someone already posted this link.")

        try:
            opportunity_id = await store.create_placeholder(db, data.link, data.posted_by)
            await db.commit()
        except IntegrityError:
            # Someone posted the same link between the check and the insert.
            await db.rollback()
            return fail(409, "Someone already posted this link.")
        logger.info(f"Created opportunity {opportunity_id} for {data.link}")

        content = await self._fetch_content(data.link)
        if not content:
            return success({"id": opportunity_id})

        if has_expired(content):
            await store.hard_delete(db, opportunity_id)
            await db.commit()
            logger.info(f"Removed closed opportunity {opportunity_id} ({data.link})")
            return fail(404, "It looks like the opportunity you are trying to add has closed.")

        try:
            result = await self.refine_opportunity(
                db,
                RefineOpportunityInput(
                    content=content[: self.max_content_length],
                    opportunity_id=opportunity_id,
                ),
            )
        except Exception as e:
            report_exception(e, opportunity_id=opportunity_id)
        else:
            if not result.ok:
                logger.warning(f"Could not refine opportunity {opportunity_id}: {result.error}")

        return success({"id": opportunity_id})

    async def create_opportunity_from_slack(
        self,
        db: AsyncSession,
        slack_channel_id: str,
        slack_message_id: str,
        send_notification: bool = True,
    ) -> Result:
        """Create an opportunity from a message posted in an opportunity channel."""
        result = await db.execute(
            select(SlackMessage.student_id, SlackMessage.text, SlackMessage.user_id).where(
                SlackMessage.channel_id == slack_channel_id,
                SlackMessage.id == slack_message_id,
            )
        )
        message = result.first()

        # The message may have been deleted right after it was posted.
        if not message or not message.text:
            return fail(404, "Could not create opportunity b/c Slack message was not found.")

        link = get_first_link_in_message(message.text)
        if not link:
            return success()

        if await store.find_by_link(db, link):
            logger.debug(f"Link already on the board, skipping: {link}")
            return success()

        content = "" if is_protected_link(link) else await self._fetch_content(link)

        try:
            opportunity_id = await store.create_placeholder(
                db,
                link,
                message.student_id,
                slack_channel_id=slack_channel_id,
                slack_message_id=slack_message_id,
            )
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.debug(f"Link was posted concurrently, skipping: {link}")
            return success()
        logger.info(f"Created opportunity {opportunity_id} from Slack message {slack_channel_id}/{slack_message_id}")

        if content:
            return await self.refine_opportunity(
                db,
                RefineOpportunityInput(
                    content=content[: self.max_content_length],
                    opportunity_id=opportunity_id,
                ),
                slack_channel_id=slack_channel_id,
                slack_user_id=message.user_id,
            )

        if send_notification and message.user_id:
            send_refinement_notification(self.jobs, opportunity_id, slack_channel_id, message.user_id)

        return success({"id": opportunity_id})

    async def refine_opportunity(
        self,
        db: AsyncSession,
        data: RefineOpportunityInput,
        slack_channel_id: str | None = None,
        slack_user_id: str | None = None,
    ) -> Result:
        """Fill in an opportunity's details from its webpage content.

        Malformed AI output fails with 400 and changes nothing. If the AI
        can't find a title and description, nothing changes either, and the
        poster is asked to paste the content by hand (when we know who they
        are on Slack).
        """
        opportunity = await store.get_by_id(db, data.opportunity_id)
        if not opportunity:
            return fail(404, "Opportunity not found.")

        tags = await list_tags(db)
        completion = await self.ai.complete(
            system=SYSTEM_PROMPT,
            prompt=build_prompt(data.content, [tag.name for tag in tags]),
            temperature=0,
            max_tokens=self.max_tokens,
        )
        if not completion.ok:
            return completion

        try:
            extraction = parse_extraction(completion.data)
        except ExtractionError as e:
            return fail(400, str(e))

        if isinstance(extraction, UnusableExtraction):
            logger.info(f"AI found no title/description for opportunity {data.opportunity_id}")
            if slack_channel_id and slack_user_id:
                send_refinement_notification(self.jobs, data.opportunity_id, slack_channel_id, slack_user_id)
            return success()

        # Read before the update, so the first refinement can be detected.
        slack_channel_id_of_post = opportunity.slack_channel_id
        slack_message_id_of_post = opportunity.slack_message_id

        try:
            company_id = None
            if extraction.company:
                company_id = await self.companies.resolve_or_create(db, extraction.company)

            values = {
                "title": extraction.title,
                "description": extraction.description,
                "company_id": company_id,
            }
            # No date means the opportunity doesn't close; keep the current one.
            if extraction.expires_at:
                values["expires_at"] = datetime.combine(extraction.expires_at, time.min, tzinfo=timezone.utc)
            await store.update_fields(db, data.opportunity_id, **values)

            first_refinement = await store.mark_refined(db, data.opportunity_id)

            if extraction.tags:
                tag_ids = await resolve_tag_ids(db, extraction.tags)
                await store.add_tag_associations(db, data.opportunity_id, tag_ids)

            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(f"Refined opportunity {data.opportunity_id}: {extraction.title!r}")

        if first_refinement and slack_channel_id_of_post and slack_message_id_of_post:
            send_added_to_board_notification(
                self.jobs, data.opportunity_id, slack_channel_id_of_post, slack_message_id_of_post,
            )

        return success({"id": data.opportunity_id, "first_refinement": first_refinement})

    async def edit_opportunity(self, db: AsyncSession, opportunity_id: uuid.UUID, data: EditOpportunityInput) -> Result:
        """Replace an opportunity's details and tag set with the member's edits."""
        if not await store.get_by_id(db, opportunity_id):
            return fail(404, "Opportunity not found.")

        tag_ids = list(dict.fromkeys(data.tags))
        known = await db.execute(select(OpportunityTag.id).where(OpportunityTag.id.in_(tag_ids)))
        if len(known.scalars().all()) != len(tag_ids):
            return fail(400, "One or more tags do not exist.")

        try:
            company_id = data.company_id
            if not company_id and data.company_name:
                company_id = await self.companies.resolve_or_create(db, data.company_name)

            await store.update_fields(
                db,
                opportunity_id,
                company_id=company_id,
                description=data.description,
                expires_at=datetime.combine(data.expires_at, time.min, tzinfo=timezone.utc),
                title=data.title,
            )
            await store.remove_tag_associations_except(db, opportunity_id, tag_ids)
            await store.add_tag_associations(db, opportunity_id, tag_ids)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(f"Edited opportunity {opportunity_id}")
        return success({"id": opportunity_id})

    async def bookmark_opportunity(self, db: AsyncSession, opportunity_id: uuid.UUID, member_id: uuid.UUID) -> Result:
        """Toggle the member's bookmark. A new bookmark rewards the poster."""
        if not await store.get_by_id(db, opportunity_id):
            return fail(404, "Opportunity not found.")

        action = await store.toggle_bookmark(db, opportunity_id, member_id)
        await db.commit()

        if action == "created":
            result = await db.execute(
                select(Company.name, Opportunity.posted_by)
                .select_from(Opportunity)
                .outerjoin(Company, Company.id == Opportunity.company_id)
                .where(Opportunity.id == opportunity_id)
            )
            row = result.first()

            if row and row.name:
                self.analytics.track("Opportunity Bookmarked", {"Company": row.name}, user=member_id)

            if row and row.posted_by:
                self.jobs.enqueue(
                    ACTIVITY_COMPLETED,
                    {
                        "opportunity_bookmarked_by": str(member_id),
                        "opportunity_id": str(opportunity_id),
                        "student_id": str(row.posted_by),
                        "type": "get_opportunity_bookmark",
                    },
                )

        return success({"bookmarked": action == "created"})


@lru_cache
def get_pipeline() -> OpportunityPipeline:
    settings = get_settings()
    return OpportunityPipeline(
        fetcher=get_content_fetcher(),
        ai=get_completion_client(),
        jobs=get_job_queue(),
        companies=NameCompanyResolver(),
        analytics=get_analytics(),
        max_content_length=settings.max_content_length,
        max_tokens=settings.ai_max_tokens,
    )
