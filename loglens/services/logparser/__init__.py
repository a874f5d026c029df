"""Log line parser module - parsing only, no network operations."""
from .logparser import LogLineParser
from .schemas import LogDocument

__all__ = ["LogLineParser", "LogDocument"]
