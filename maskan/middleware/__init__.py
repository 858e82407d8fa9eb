"""
Middleware package for the Maskan Listings API.
"""

from .request_gate import RequestGateMiddleware

__all__ = ["RequestGateMiddleware"]
