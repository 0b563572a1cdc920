"""Ingestion pipeline components."""

from .extractor import MessageExtractor
from .identity import extract_newsletter_name
from .limiter import InMemoryBurstLimiter
from .orchestrator import process_all
from .pagination import PaginationFetcher
from .query import build_fetch_window, build_query
from .stats import StatsReporter
from .text import html_to_text
from .writer import StoreWriter

__all__ = [
    "InMemoryBurstLimiter",
    "MessageExtractor",
    "PaginationFetcher",
    "StatsReporter",
    "StoreWriter",
    "build_fetch_window",
    "build_query",
    "extract_newsletter_name",
    "html_to_text",
    "process_all",
]
