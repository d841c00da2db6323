from typing import Optional, Tuple


def normalize_paging(limit: Optional[int], offset: Optional[int], max_limit: int = 100, default_limit: int = 50) -> Tuple[int, int]:
    lim = limit if limit and limit > 0 else default_limit
    lim = min(lim, max_limit)
    off = offset if offset and offset > 0 else 0
    return lim, off


def parse_paging_args(args, default_limit: int = 50) -> Tuple[int, int]:
    """Read ``limit``/``offset`` from a request args mapping, ignoring junk values."""
    def _int(key: str) -> Optional[int]:
        try:
            return int(args.get(key))
        except (TypeError, ValueError):
            return None

    return normalize_paging(_int("limit"), _int("offset"), default_limit=default_limit)
