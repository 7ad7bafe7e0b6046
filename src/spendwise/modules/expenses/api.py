from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from spendwise.api.deps import current_user_id
from spendwise.core.db import db_session
from spendwise.modules.expenses.schemas import (
    BillResponseIn,
    CategorySummaryOut,
    EmailMessageIn,
    ExpenseRecordOut,
)
from spendwise.modules.expenses.service import (
    ingest_bill_response,
    ingest_email,
    ingest_eml,
    list_expenses,
    monthly_summary,
)
from spendwise.modules.extraction.errors import ExtractionError

router = APIRouter(tags=["expenses"])


def _out(records) -> list[ExpenseRecordOut]:
    return [ExpenseRecordOut.model_validate(r, from_attributes=True) for r in records]


@router.post("/users/{user_id}/emails", response_model=list[ExpenseRecordOut])
def ingest_email_endpoint(
    payload: EmailMessageIn,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(db_session),
) -> list[ExpenseRecordOut]:
    try:
        records = ingest_email(
            session, user_id=user_id, message_id=payload.message_id, body=payload.body
        )
    except ExtractionError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    if records is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Message already processed"
        )
    return _out(records)


@router.post("/users/{user_id}/emails/upload", response_model=list[ExpenseRecordOut])
async def upload_eml_endpoint(
    upload: UploadFile = File(...),
    user_id: str = Depends(current_user_id),
    session: Session = Depends(db_session),
) -> list[ExpenseRecordOut]:
    raw = await upload.read()
    if not raw:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty upload")
    try:
        records = ingest_eml(session, user_id=user_id, raw=raw)
    except ExtractionError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    if records is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Message already processed"
        )
    return _out(records)


@router.post("/users/{user_id}/bills", response_model=list[ExpenseRecordOut])
def ingest_bill_endpoint(
    payload: BillResponseIn,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(db_session),
) -> list[ExpenseRecordOut]:
    try:
        records = ingest_bill_response(
            session, user_id=user_id, completion=payload.completion, image_url=payload.image_url
        )
    except ExtractionError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return _out(records)


@router.get("/users/{user_id}/expenses", response_model=list[ExpenseRecordOut])
def list_expenses_endpoint(
    month: str | None = None,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(db_session),
) -> list[ExpenseRecordOut]:
    return _out(list_expenses(session, user_id=user_id, month=month))


@router.get("/users/{user_id}/summary", response_model=list[CategorySummaryOut])
def monthly_summary_endpoint(
    month: str,
    user_id: str = Depends(current_user_id),
    session: Session = Depends(db_session),
) -> list[CategorySummaryOut]:
    return [
        CategorySummaryOut(
            category=s.category,
            total_amount=s.total_amount,
            count=s.count,
            expenses=_out(s.expenses),
        )
        for s in monthly_summary(session, user_id=user_id, month=month)
    ]
