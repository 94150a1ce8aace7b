"""
FastAPI Dependencies
"""
from typing import Optional

from fastapi import Header

from ecobid.services.engine import AuctionEngine
from ecobid.services.errors import ValidationError

_engine: Optional[AuctionEngine] = None


def get_auction_engine() -> AuctionEngine:
    """Get the process-wide auction engine (singleton)"""
    global _engine

    if _engine is None:
        _engine = AuctionEngine.from_settings()

    return _engine


def set_auction_engine(engine: Optional[AuctionEngine]):
    """Replace the process-wide engine (None resets it)"""
    global _engine
    _engine = engine


def get_current_user_id(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> str:
    """Acting user, authenticated upstream"""
    if not x_user_id or not x_user_id.strip():
        raise ValidationError("X-User-Id header is required")
    return x_user_id.strip()


def get_optional_user_id(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> Optional[str]:
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()
    return None
