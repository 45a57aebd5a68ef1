from .single_flight import SingleFlight
from .ttl_cache import NullCache, TTLCache, normalize_url

__all__ = ["NullCache", "SingleFlight", "TTLCache", "normalize_url"]
