"""Layers package initialization."""
from stockwatch.layers.extraction import ExtractionPipeline
from stockwatch.layers.fetch import FetchOrchestrator, next_fetch_tier
from stockwatch.layers.session_cache import InMemorySessionRepository
from stockwatch.layers.checker import AvailabilityChecker

__all__ = [
    "ExtractionPipeline",
    "FetchOrchestrator",
    "next_fetch_tier",
    "InMemorySessionRepository",
    "AvailabilityChecker",
]
