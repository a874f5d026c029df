"""Log ingestion - tailing, batching and shipping to the search backend."""
from .service import LogIngestionService, run_ingestion_tick
from .shipper import BatchShipper
from .tailer import FileTailer, TailerState

__all__ = [
    "LogIngestionService",
    "run_ingestion_tick",
    "BatchShipper",
    "FileTailer",
    "TailerState",
]
