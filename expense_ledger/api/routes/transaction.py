"""
Transaction routes. Every route here requires a session token.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status

from expense_ledger.api.dependencies import (
    get_components,
    get_correlation_id,
    get_current_user_id,
)
from expense_ledger.api.schemas import AmountRequest
from expense_ledger.orchestrator import AppComponents


router = APIRouter(prefix="/api/transaction", tags=["transaction"])


@router.post("/add-income", status_code=status.HTTP_201_CREATED)
async def add_income(
    body: AmountRequest,
    user_id: str = Depends(get_current_user_id),
    components: AppComponents = Depends(get_components),
    correlation_id: UUID = Depends(get_correlation_id),
):
    transaction = await components.ledger.record_income(
        user_id,
        body.amount,
        body.description,
        correlation_id=correlation_id,
    )
    return {
        "message": "Income added successfully",
        "transaction": transaction.model_dump(mode="json"),
    }


@router.post("/add-expense", status_code=status.HTTP_201_CREATED)
async def add_expense(
    body: AmountRequest,
    user_id: str = Depends(get_current_user_id),
    components: AppComponents = Depends(get_components),
    correlation_id: UUID = Depends(get_correlation_id),
):
    transaction = await components.ledger.record_expense(
        user_id,
        body.amount,
        body.description,
        correlation_id=correlation_id,
    )
    return {
        "message": "Expense added successfully",
        "transaction": transaction.model_dump(mode="json"),
    }


@router.get("")
async def list_transactions(
    transaction_type: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
    user_id: str = Depends(get_current_user_id),
    components: AppComponents = Depends(get_components),
):
    if limit is None:
        limit = components.settings.app.default_page_size

    result = await components.ledger.list_transactions(
        user_id,
        transaction_type=transaction_type,
        page=page,
        limit=limit,
    )
    return {
        "message": "Transactions fetched successfully",
        "transactions": result.model_dump(mode="json"),
    }


@router.delete("/{transaction_id}")
async def delete_transaction(
    transaction_id: str,
    user_id: str = Depends(get_current_user_id),
    components: AppComponents = Depends(get_components),
    correlation_id: UUID = Depends(get_correlation_id),
):
    await components.ledger.delete_transaction(
        user_id,
        transaction_id,
        correlation_id=correlation_id,
    )
    return {"message": "Transaction deleted successfully"}
