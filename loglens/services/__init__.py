"""Services layer - background tasks and external integrations."""
from .logparser import LogLineParser
from .ingestion import LogIngestionService

__all__ = ["LogLineParser", "LogIngestionService"]
