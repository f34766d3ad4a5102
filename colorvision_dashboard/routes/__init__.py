"""
HTTP routers for the dashboard API.
"""

from .account import router as account_router
from .analysis import router as analysis_router
from .chat import router as chat_router
from .uploads import erg_router, fundus_router

__all__ = [
    "account_router",
    "analysis_router",
    "chat_router",
    "erg_router",
    "fundus_router",
]
