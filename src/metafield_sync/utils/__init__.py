"""Shared utilities for configuration, logging, retries and global ids"""

from metafield_sync.utils.gid import legacy_id, to_gid
from metafield_sync.utils.retry import exponential_backoff_retry

__all__ = ["exponential_backoff_retry", "legacy_id", "to_gid"]
