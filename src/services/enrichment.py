"""Ordered, fail-fast enrichment pipeline run before a bookmark is persisted."""
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from services.exceptions import EnrichmentFailedError
from services.url_scraper import ContentFetcher

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnrichmentStep:
    """
    One stage of the pipeline.

    Attributes:
        field: Bookmark field the result is stored in.
        stage: Human-readable stage name used in error messages.
        fetch: Zero-argument coroutine factory producing the field value.
    """

    field: str
    stage: str
    fetch: Callable[[], Awaitable[str]]


async def run_enrichment(url: str, steps: list[EnrichmentStep]) -> dict[str, str]:
    """
    Run steps strictly in order and collect their results by field.

    The first step to raise aborts the pipeline: later steps are never started and
    EnrichmentFailedError (naming the stage and URL) is raised from the cause.
    """
    results: dict[str, str] = {}
    for step in steps:
        try:
            results[step.field] = await step.fetch()
        except Exception as e:
            logger.warning("Enrichment stage '%s' failed for URL %s: %s", step.stage, url, e)
            raise EnrichmentFailedError(step.stage, url, e) from e
    return results


def build_enrichment_steps(fetcher: ContentFetcher, url: str) -> list[EnrichmentStep]:
    """Title, then main image URL, then content summary."""
    return [
        EnrichmentStep("title", "title", lambda: fetcher.fetch_title(url)),
        EnrichmentStep("main_image_url", "main image URL", lambda: fetcher.fetch_main_image(url)),
        EnrichmentStep(
            "content_summary", "content summary", lambda: fetcher.fetch_content_summary(url),
        ),
    ]
