"""Process-wide exception reporting."""

import logging

logger = logging.getLogger(__name__)


def report_exception(exc: BaseException, **context) -> None:
    """Record an exception that was caught and handled at its call site.

    The traceback is logged at ERROR level together with any context
    (opportunity id, link, job name) so it can be picked up by log shipping.
    """
    details = " ".join(f"{key}={value}" for key, value in context.items())
    logger.error(
        "Reported exception: %s%s",
        exc,
        f" ({details})" if details else "",
        exc_info=(type(exc), exc, exc.__traceback__),
    )
