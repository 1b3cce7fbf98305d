from expense_ledger.api.routes.transaction import router as transaction_router
from expense_ledger.api.routes.user import router as user_router

__all__ = ["transaction_router", "user_router"]
