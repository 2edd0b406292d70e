"""TreeCache: LRU-backed caching proxy around file decoding.

Decoding a large blob or source file is the expensive part of diffing the
same board description repeatedly (for example a fixed base compared against
many overlays).  ``TreeCache.load()`` decodes a file once and serves later
loads of the same, unchanged file from memory.

Entries are keyed by ``(resolved path, st_mtime_ns, st_size)``, so editing a
file produces a new key and the next load decodes it again; the stale entry
ages out of the LRU.  LRU eviction is silent when ``max_size`` is exceeded.

Each ``TreeCache`` instance maintains its own ``LRUCache``; two instances
never share state.  Cached trees are returned as-is, so callers that mutate a
loaded tree should ``clear()`` the cache afterwards.

Example::

    from devtree_diff.cache import TreeCache

    cache = TreeCache(max_size=16)
    base = cache.load("board.dtb")        # decoded
    base_again = cache.load("board.dtb")  # served from memory
    assert base is base_again
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from cachetools import LRUCache

from devtree_diff.config import DecoderConfig
from devtree_diff.decoders.selector import DecoderSelector
from devtree_diff.tree import Tree

__all__ = ["TreeCache", "read_tree_file"]

logger = logging.getLogger(__name__)

_CacheKey = tuple[str, int, int]


def read_tree_file(path: str | os.PathLike[str], selector: DecoderSelector) -> Tree:
    """Read ``path`` and decode it with the decoder ``selector`` picks.

    Raises:
        OSError: If the file cannot be read.
        NoDecoderError: If neither name nor content identifies a decoder.
    """
    file_path = Path(path)
    data = file_path.read_bytes()
    return selector.decode(data, source_id=str(file_path))


class TreeCache:
    """LRU cache of decoded trees, keyed by file identity.

    Args:
        max_size: Maximum number of trees held in memory.  Defaults to 32.
        selector: Decoder selector used on a cache miss.  Defaults to a
            ``DecoderSelector`` built from ``config``.
        config: Decoder configuration for the default selector.
    """

    def __init__(
        self,
        max_size: int = 32,
        selector: DecoderSelector | None = None,
        config: DecoderConfig | None = None,
    ) -> None:
        self._selector = selector if selector is not None else DecoderSelector(config=config)
        self._cache: LRUCache[_CacheKey, Tree] = LRUCache(maxsize=max_size)
        self.hits = 0
        self.misses = 0

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def max_size(self) -> int:
        """The maximum number of trees this cache can hold."""
        return int(self._cache.maxsize)

    @property
    def curr_size(self) -> int:
        """The current number of trees stored in the cache."""
        return int(self._cache.currsize)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @staticmethod
    def _key(path: Path) -> _CacheKey:
        resolved = path.resolve()
        stat = resolved.stat()
        return (str(resolved), stat.st_mtime_ns, stat.st_size)

    def load(self, path: str | os.PathLike[str]) -> Tree:
        """Return the decoded tree for ``path``, decoding only on a miss.

        Raises:
            OSError: If the file does not exist or cannot be read.
            DeviceTreeError: If decoding fails.  Failures are not cached.
        """
        key = self._key(Path(path))
        tree = self._cache.get(key)
        if tree is not None:
            self.hits += 1
            logger.debug(f"Tree cache hit: {key[0]}")
            return tree
        self.misses += 1
        tree = read_tree_file(path, self._selector)
        self._cache[key] = tree
        logger.debug(f"Tree cache miss: {key[0]} ({self.curr_size}/{self.max_size} cached)")
        return tree

    def clear(self) -> None:
        """Drop every cached tree and reset the hit and miss counters."""
        self._cache.clear()
        self.hits = 0
        self.misses = 0
