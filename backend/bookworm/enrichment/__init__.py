"""Asynchronous ML enrichment of stored books."""

from .pipeline import EmbeddingService, EnrichmentPipeline
from .singleflight import SingleFlight

__all__ = ["EmbeddingService", "EnrichmentPipeline", "SingleFlight"]
