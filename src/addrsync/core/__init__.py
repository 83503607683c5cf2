"""Core module - Shared codec, config, and types."""

from addrsync.core.codec import (
    COMPRESSED_PREFIX,
    COMPRESSION_THRESHOLD,
    Compressed,
    Plain,
    decode,
    dump_records,
    encode,
    parse_records,
)
from addrsync.core.config import ServerConfig, SyncConfig
from addrsync.core.types import (
    CodecError,
    FailureKind,
    NoOwnerError,
    QuotaExceededError,
    Record,
    StoreError,
    SyncError,
    SyncResult,
    SyncStats,
    TransientStoreError,
)

__all__ = [
    # Codec
    "COMPRESSED_PREFIX",
    "COMPRESSION_THRESHOLD",
    "Compressed",
    "Plain",
    "decode",
    "dump_records",
    "encode",
    "parse_records",
    # Config
    "ServerConfig",
    "SyncConfig",
    # Types
    "CodecError",
    "FailureKind",
    "NoOwnerError",
    "QuotaExceededError",
    "Record",
    "StoreError",
    "SyncError",
    "SyncResult",
    "SyncStats",
    "TransientStoreError",
]
