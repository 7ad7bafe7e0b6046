from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from spendwise.modules.expenses.schemas import (
    BillResponseIn,
    CategoryOut,
    EmailTextIn,
    ExpenseDataOut,
)
from spendwise.modules.extraction.categories import (
    CATEGORY_COLORS,
    CATEGORY_ICONS,
    CategoryLabel,
)
from spendwise.modules.extraction.errors import ExtractionError
from spendwise.modules.extraction.structured import parse_structured_response
from spendwise.modules.extraction.text import extract_expense

router = APIRouter(tags=["extraction"])


@router.post("/extract/email", response_model=ExpenseDataOut)
def extract_email_endpoint(payload: EmailTextIn) -> ExpenseDataOut:
    try:
        data = extract_expense(payload.text)
    except ExtractionError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return ExpenseDataOut.from_data(data)


@router.post("/extract/bill", response_model=ExpenseDataOut)
def extract_bill_endpoint(payload: BillResponseIn) -> ExpenseDataOut:
    try:
        data = parse_structured_response(payload.completion)
    except ExtractionError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    if data is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="No structured bill data found in the response",
        )
    return ExpenseDataOut.from_data(data)


@router.get("/categories", response_model=list[CategoryOut])
def list_categories() -> list[CategoryOut]:
    return [
        CategoryOut(label=label, icon=CATEGORY_ICONS[label], color=CATEGORY_COLORS[label])
        for label in CategoryLabel
    ]
