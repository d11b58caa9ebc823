"""TuneHost: audio file hosting with range streaming and remote ingestion."""

__version__ = "0.1.0"
