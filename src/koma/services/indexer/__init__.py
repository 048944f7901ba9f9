"""Event ingestion: fetch, deduplicate, persist, snapshot."""

from koma.services.indexer.categories import CATEGORIES, EventCategory
from koma.services.indexer.processor import CategoryResult, process_category
from koma.services.indexer.service import IndexerService
from koma.services.indexer.watermark import BlockWatermark

__all__ = [
    "CATEGORIES",
    "EventCategory",
    "CategoryResult",
    "process_category",
    "IndexerService",
    "BlockWatermark",
]
