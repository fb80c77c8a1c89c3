"""Centralized v1 API router; every module router is included here."""

from fastapi import APIRouter

from src.modules.application.router import router as application_router
from src.modules.offer.router import router as offer_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(offer_router)
v1_router.include_router(application_router)
