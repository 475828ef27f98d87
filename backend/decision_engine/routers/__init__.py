"""Humane Decision Engine - API Routers"""
from .letters import router as letters_router
from .templates import router as templates_router
from .receipts import router as receipts_router

__all__ = [
    "letters_router",
    "templates_router",
    "receipts_router",
]
