"""Adapters layer - Infrastructure implementations for inventory collection.

- GraphInventoryAPI: Microsoft Graph implementation of IInventoryAPI
- GraphFieldMapper: Graph payload mapping implementation of IFieldMapper
- CsvRecordStore: Flat-file implementation of IRecordStore
"""

from .csv_record_store import CsvRecordStore
from .field_mapper import GraphFieldMapper
from .graph_api_adapter import GraphInventoryAPI

__all__ = [
    "CsvRecordStore",
    "GraphFieldMapper",
    "GraphInventoryAPI",
]
