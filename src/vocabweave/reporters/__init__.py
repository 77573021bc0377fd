"""Reporters that summarise a document run."""

from .summary_reporter import SummaryReporter

__all__ = ["SummaryReporter"]
