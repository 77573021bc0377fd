"""A reporter for generating concise run summaries."""

import logging

from vocabweave.models import RunSummary

logger = logging.getLogger(__name__)


class SummaryReporter:
    """Generates a concise summary of a document run and logs it."""

    def generate(self, summary: RunSummary) -> None:
        """Log a summary of the run to the console."""
        logger.info("--- Run Summary ---")
        if summary.status != "started":
            logger.info("Document was not processed: %s", summary.status)
            logger.info("-------------------")
            return

        logger.info("Segments processed: %d", summary.segments_processed)
        logger.info("Substitutions applied: %d", summary.substitutions)
        logger.info("  - From cache: %d", summary.cache_hits)
        logger.info("  - Newly translated via %s: %d", summary.provider or "provider", summary.provider_substitutions)
        logger.info("Word cache size: %d", summary.cache_entries)
        logger.info(
            "Words learned today: %d (total %d)",
            summary.stats.today_words,
            summary.stats.total_words,
        )
        logger.info("-------------------")
