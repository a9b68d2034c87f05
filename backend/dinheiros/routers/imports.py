import os
import tempfile
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from dinheiros.errors import InvalidRequestError
from dinheiros.models.transaction import (
    ExtractedTransaction,
    ImportTransactionsRequest,
    TransactionResponse,
)
from dinheiros.models_sqlalchemy import get_db
from dinheiros.models_sqlalchemy.models import User
from dinheiros.services.auth import get_current_user
from dinheiros.services.pdf_extractors import list_extractors
from dinheiros.services.transaction_service import TransactionService
from dinheiros.utils.logger import logger

router = APIRouter(prefix="/api", tags=["import"])


@router.get("/import/extractors")
async def get_extractors(current_user: User = Depends(get_current_user)) -> List[Dict[str, str]]:
    return list_extractors()


@router.post("/accounts/{account_id}/import/pdf", response_model=List[ExtractedTransaction])
async def import_pdf(
    account_id: int,
    file: UploadFile = File(...),
    extractor: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Extract transactions from an uploaded statement for review.

    Nothing is persisted here; the reviewed list goes to
    ``/accounts/{account_id}/import/transactions``.
    """
    content = await file.read()
    if not content:
        raise InvalidRequestError("uploaded file is empty")

    logger.info(
        f"PDF import: user={current_user.id} account={account_id} "
        f"extractor={extractor} file={file.filename} size={len(content)}"
    )

    fd, temp_path = tempfile.mkstemp(suffix=".pdf", prefix="dinheiros-import-")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(content)
        transactions = TransactionService(db).extract_from_pdf(
            temp_path, account_id, current_user.id, extractor_name=extractor
        )
    finally:
        os.remove(temp_path)

    return [ExtractedTransaction.model_validate(txn) for txn in transactions]


@router.post(
    "/accounts/{account_id}/import/transactions",
    response_model=List[TransactionResponse],
    status_code=201,
)
async def import_transactions(
    account_id: int,
    payload: ImportTransactionsRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not payload.transactions:
        raise InvalidRequestError("at least one transaction is required")
    created = TransactionService(db).import_transactions(
        current_user.id,
        account_id,
        [item.model_dump() for item in payload.transactions],
    )
    return [TransactionResponse.model_validate(txn) for txn in created]
