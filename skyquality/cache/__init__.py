from .coalescing import RequestCoalescingCache
from .results import SiqsResultCache, make_key

__all__ = ["RequestCoalescingCache", "SiqsResultCache", "make_key"]
