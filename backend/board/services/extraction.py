"""AI extraction of opportunity details from webpage text.

Usage:
    from board.services.extraction import build_prompt, parse_extraction

    prompt = build_prompt(content, tag_names)
    extraction = parse_extraction(completion_text)  # raises ExtractionError
    if isinstance(extraction, UsableExtraction):
        ...
"""

import json
import logging
import textwrap
from dataclasses import dataclass
from datetime import date, datetime
from typing import Final, Union

from pydantic import ValidationError

from board.schemas.opportunity import RefineOpportunityResponse

logger = logging.getLogger(__name__)

# Case-insensitive phrases that mean the posting is gone.
EXPIRED_PHRASES: Final[tuple[str, ...]] = (
    "404",
    "closed",
    "does not exist",
    "doesn't exist",
    "expired",
    "filled",
    "no longer accepting",
    "no longer available",
    "no longer exists",
    "no longer open",
    "not accepting",
    "not available",
    "not be found",
    "not currently accepting",
    "not found",
    "not open",
    "oops",
    "removed",
    "sorry",
)

SYSTEM_PROMPT: Final[str] = textwrap.dedent("""\
    You are a helpful assistant that extracts structured data from a website's
    (likely a job posting) text content.
""")

EXTRACTION_PROMPT: Final[str] = textwrap.dedent("""\
    Your job is to analyze the given webpage and extract the following information
    and format it as JSON:

    1. "company": The name of the company offering the opportunity.
    2. "title": The title of the opportunity, max 75 characters. Do not include
       the company name in the title.
    3. "description": A brief description of the opportunity, max 400 characters.
       Extract the most relevant information including what the opportunity is,
       who it's for, when, potential compensation and any other relevant details
       to someone open to the opportunity.
    4. "expiresAt": The date that the opportunity is no longer relevant, in
       'YYYY-MM-DD' format. This should almost always be a date in the FUTURE
       (the current year is $CURRENT_YEAR). If the opportunity seemingly never
       "closes", set this to null.
    5. "tags": A list of tags that fit this opportunity, maximum 5 tags and
       minimum 1 tag. This is the MOST IMPORTANT FIELD. We have a list of existing
       tags in our database that are available to associate with this opportunity.
       If there are no relevant tags, DO NOT create new tags and instead return
       null for this field. Some rules for tags:
        - There shouldn't be more than one of the following tags: AI/ML,
          Cybersecurity, Data Science, DevOps, PM, QA, Quant, SWE or UI/UX Design.
        - There shouldn't be more than one of the following tags: Co-op,
          Early Career, Fellowship, or Internship.
        - "Early Career" should only be used for full-time roles targeted at
          recent graduates.
        - Only use "Fall", "Spring" or "Winter" tags if it is an internship/co-op
          opportunity that is in those seasons.
        - Use the "Event" tag if the opportunity is related to an event,
          conference, or short-term (< 1 week) program.

    Here's the webpage you need to analyze:

    <website_content>
      $WEBSITE_CONTENT
    </website_content>

    Here are the existing tags in our database that you can choose from:

    <tags>
      $TAGS
    </tags>

    Follow these guidelines:
    - If you cannot confidently infer a field, set it to null.
    - If the page is not found, expired, or otherwise not a valid opportunity,
      set all fields to null.
    - Double check that your output is based on the website content. Don't make
      up information that you cannot confidently infer from the website content.

    Your output should be a single JSON object containing these fields. Do not
    provide any explanation or text outside of the JSON object. Ensure your JSON
    is properly formatted and valid.

    <output>
      {
        "company": "string | null",
        "description": "string | null",
        "expiresAt": "string | null",
        "tags": "string[] | null",
        "title": "string | null"
      }
    </output>
""")


class ExtractionError(Exception):
    """The AI answered with something that isn't the expected JSON."""


@dataclass(frozen=True)
class UsableExtraction:
    """Title and description were found; the opportunity can be refined."""

    title: str
    description: str
    company: str | None = None
    expires_at: date | None = None
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class UnusableExtraction:
    """The AI couldn't find a title or a description in the page."""


Extraction = Union[UsableExtraction, UnusableExtraction]


def has_expired(content: str) -> bool:
    """Whether page content reads like a closed or missing posting."""
    lowered = content.lower()
    return any(phrase in lowered for phrase in EXPIRED_PHRASES)


def build_prompt(content: str, tag_names: list[str], today: date | None = None) -> str:
    today = today or datetime.now().date()
    return (
        EXTRACTION_PROMPT
        .replace("$CURRENT_YEAR", str(today.year))
        .replace("$WEBSITE_CONTENT", content)
        .replace("$TAGS", "\n".join(tag_names))
    )


def parse_extraction(completion: str) -> Extraction:
    """Validate the AI's JSON answer and classify it.

    Raises:
        ExtractionError: the completion is not JSON, or not the expected shape.
    """
    try:
        data = json.loads(completion)
    except json.JSONDecodeError as e:
        logger.debug("Failed to parse JSON from AI response: %r", completion)
        raise ExtractionError("Failed to parse JSON from AI response.") from e

    try:
        response = RefineOpportunityResponse.model_validate(data)
    except ValidationError as e:
        logger.warning("AI response failed validation: %s", e)
        raise ExtractionError("Failed to validate JSON from AI response.") from e

    if not response.title or not response.description:
        return UnusableExtraction()

    return UsableExtraction(
        title=response.title,
        description=response.description,
        company=response.company,
        expires_at=response.expires_at,
        tags=tuple(response.tags or ()),
    )
