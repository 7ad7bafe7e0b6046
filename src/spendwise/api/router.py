from __future__ import annotations

from fastapi import APIRouter

from spendwise.modules.expenses.api import router as expenses_router
from spendwise.modules.extraction.api import router as extraction_router

router = APIRouter()

router.include_router(extraction_router, prefix="/api")
router.include_router(expenses_router, prefix="/api")


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}
