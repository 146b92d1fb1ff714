"""Transaction processing pipeline: normalization, merchant resolution,
categorization, deduplication and recurring-payment detection."""

__version__ = "0.1.0"
