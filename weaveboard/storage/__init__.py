"""Durable storage: metadata tier, binary tier and the persistence manager."""

from .binary import BinaryStore, FileBinaryStore, MemoryBinaryStore, make_key
from .metadata import FileMetadataStore, MemoryMetadataStore, MetadataStore
from .persistence import DualTierPersistence, SaveReport, StorageWarning, metadata_projection, strip_binary_fields

__all__ = [
    "BinaryStore",
    "FileBinaryStore",
    "MemoryBinaryStore",
    "make_key",
    "FileMetadataStore",
    "MemoryMetadataStore",
    "MetadataStore",
    "DualTierPersistence",
    "SaveReport",
    "StorageWarning",
    "metadata_projection",
    "strip_binary_fields",
]
