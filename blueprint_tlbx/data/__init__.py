"""Data module: column metadata, schemas and datasets."""

from .columns import ColumnMetadata, ColumnRole, ColumnType
from .dataset import Dataset
from .schema import DatasetSchema


__all__ = ["ColumnMetadata", "ColumnRole", "ColumnType", "Dataset", "DatasetSchema"]
