from .cors import PathAwareCORSMiddleware
from .rate_limit import RateLimitMiddleware, client_ip

__all__ = ["PathAwareCORSMiddleware", "RateLimitMiddleware", "client_ip"]
