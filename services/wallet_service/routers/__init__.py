"""Wallet service routers."""

from services.wallet_service.routers.member import router as wallet_router

__all__ = ["wallet_router"]
