"""
Rate limiting configuration using slowapi.

Three tiers:
  • strict  – 5/min  (code send endpoint – prevents email spam)
  • auth    – 10/min (code verify endpoint – prevents brute-force)
  • default – 60/min (everything else, applied by SlowAPIMiddleware)

The limiter keys on the peer IP. Behind the storefront proxy uvicorn
rewrites the peer from X-Forwarded-For only for trusted proxy addresses
(see FORWARDED_ALLOW_IPS in main.py), so clients cannot pick their own key.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, default_limits=["60/minute"])

# Named rate strings for use in @limiter.limit() decorators
STRICT = "5/minute"     # code send (email sending)
AUTH = "10/minute"      # code verification
DEFAULT = "60/minute"   # general API
