"""LogiTrack: inventory and order tracking API with a read-through cache and login rate limiting."""

__version__ = "1.0.0"
