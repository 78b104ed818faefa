"""FastAPI backend for the InvestIQ web client."""
import logging
import tempfile
import time
from datetime import date
from pathlib import Path
from typing import Optional, List, Dict, Any
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Depends, Header, Request, UploadFile, File, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from investiq.api.auth import AuthError
from investiq.api.finance_service import FinanceService
from investiq.config import CORS_ORIGINS, DEFAULT_TREND_MONTHS, MAX_TREND_MONTHS
from investiq.models import RecordValidationError


logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

# Global service instance (for production use)
_service: Optional[FinanceService] = None


def get_service() -> FinanceService:
    """Dependency to get the finance service."""
    global _service
    if _service is None:
        _service = FinanceService()
        _service.__enter__()
    return _service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage service lifecycle."""
    yield
    # Cleanup on shutdown
    global _service
    if _service is not None:
        _service.__exit__(None, None, None)
        _service = None


app = FastAPI(
    title="InvestIQ API",
    description="Personal finance tracking: transactions, budgets, reports and insights",
    version=API_VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Access log: method, path, status and duration for every request."""
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(f"{request.method} {request.url.path} {response.status_code} {elapsed_ms:.1f}ms")
    return response


# === Pydantic Models ===

class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=6)
    fullName: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class TransactionPayload(BaseModel):
    amount: float = Field(..., ge=0)  # magnitude; direction comes from type
    type: str = Field(..., pattern="^(income|expense)$")
    transaction_date: date
    category_name: Optional[str] = None
    description: Optional[str] = None


class BudgetPayload(BaseModel):
    category_name: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0)
    period: Optional[str] = None  # monthly, weekly, yearly ...
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class InsightRequest(BaseModel):
    message: str = ""


# === Authentication ===

def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Access token required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Access token required")
    return token.strip()


def get_current_user(
    authorization: Optional[str] = Header(None),
    service: FinanceService = Depends(get_service)
) -> Dict[str, Any]:
    """Dependency resolving the bearer token to the calling user."""
    token = _bearer_token(authorization)
    try:
        return service.identity.verify_token(token)
    except AuthError as e:
        logger.warning(f"Rejected token: {e}")
        raise HTTPException(status_code=403, detail="Invalid token")


# === Root ===

@app.get("/")
def root():
    """Server banner with an index of the API."""
    return {
        "message": "InvestIQ API Server",
        "version": API_VERSION,
        "endpoints": {
            "auth": "/api/auth",
            "transactions": "/api/transactions",
            "budgets": "/api/budgets",
            "reports": "/api/reports",
            "ai": "/api/ai",
            "health": "/api/health",
        },
        "documentation": "This is the backend API for the InvestIQ financial management application",
    }


@app.get("/api/health")
def health():
    """Liveness check."""
    return {"status": "OK", "message": "InvestIQ API is running"}


# === Auth Endpoints ===

@app.post("/api/auth/register", status_code=201)
def register(request: RegisterRequest, service: FinanceService = Depends(get_service)):
    """Create a user account."""
    try:
        user = service.identity.register(request.email, request.password, request.fullName)
    except AuthError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "User registered successfully", "user": user}


@app.post("/api/auth/login")
def login(request: LoginRequest, service: FinanceService = Depends(get_service)):
    """Exchange credentials for an access token."""
    try:
        result = service.identity.login(request.email, request.password)
    except AuthError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Login successful", **result}


@app.post("/api/auth/logout")
def logout(
    authorization: Optional[str] = Header(None),
    service: FinanceService = Depends(get_service)
):
    """Revoke the caller's access token."""
    token = _bearer_token(authorization)
    try:
        service.identity.logout(token)
    except AuthError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": "Logged out successfully"}


# === Transaction Endpoints ===

@app.get("/api/transactions")
def get_transactions(
    user: Dict[str, Any] = Depends(get_current_user),
    service: FinanceService = Depends(get_service)
):
    """Get all of the caller's transactions, newest first."""
    return service.list_transactions(user["id"])


@app.post("/api/transactions", status_code=201)
def create_transaction(
    payload: TransactionPayload,
    user: Dict[str, Any] = Depends(get_current_user),
    service: FinanceService = Depends(get_service)
):
    """Create a transaction."""
    try:
        return service.create_transaction(user["id"], payload.model_dump())
    except RecordValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/api/transactions/import")
async def import_transactions(
    file: UploadFile = File(...),
    user: Dict[str, Any] = Depends(get_current_user),
    service: FinanceService = Depends(get_service)
):
    """Import transactions from a CSV/Excel file."""
    suffix = Path(file.filename).suffix if file.filename else ".csv"
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
        content = await file.read()
        tmp.write(content)
        tmp_path = Path(tmp.name)

    try:
        return service.import_file(user["id"], tmp_path)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Failed to import file: {e}")
    finally:
        tmp_path.unlink()  # Clean up temp file


@app.put("/api/transactions/{txn_id}")
def update_transaction(
    txn_id: int,
    payload: TransactionPayload,
    user: Dict[str, Any] = Depends(get_current_user),
    service: FinanceService = Depends(get_service)
):
    """Replace a transaction's fields."""
    try:
        row = service.update_transaction(user["id"], txn_id, payload.model_dump())
    except RecordValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not row:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return row


@app.delete("/api/transactions/{txn_id}")
def delete_transaction(
    txn_id: int,
    user: Dict[str, Any] = Depends(get_current_user),
    service: FinanceService = Depends(get_service)
):
    """Delete a transaction."""
    if not service.delete_transaction(user["id"], txn_id):
        raise HTTPException(status_code=404, detail="Transaction not found")
    return {"message": "Transaction deleted successfully"}


# === Budget Endpoints ===

@app.get("/api/budgets")
def get_budgets(
    user: Dict[str, Any] = Depends(get_current_user),
    service: FinanceService = Depends(get_service)
):
    """Get all of the caller's budgets, most recent first."""
    return service.list_budgets(user["id"])


@app.post("/api/budgets", status_code=201)
def create_budget(
    payload: BudgetPayload,
    user: Dict[str, Any] = Depends(get_current_user),
    service: FinanceService = Depends(get_service)
):
    """Create a budget."""
    try:
        return service.create_budget(user["id"], payload.model_dump())
    except RecordValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.put("/api/budgets/{budget_id}")
def update_budget(
    budget_id: int,
    payload: BudgetPayload,
    user: Dict[str, Any] = Depends(get_current_user),
    service: FinanceService = Depends(get_service)
):
    """Replace a budget's fields."""
    try:
        row = service.update_budget(user["id"], budget_id, payload.model_dump())
    except RecordValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not row:
        raise HTTPException(status_code=404, detail="Budget not found")
    return row


@app.delete("/api/budgets/{budget_id}")
def delete_budget(
    budget_id: int,
    user: Dict[str, Any] = Depends(get_current_user),
    service: FinanceService = Depends(get_service)
):
    """Delete a budget."""
    if not service.delete_budget(user["id"], budget_id):
        raise HTTPException(status_code=404, detail="Budget not found")
    return {"message": "Budget deleted successfully"}


# === Report Endpoints ===

@app.get("/api/reports/monthly-summary")
def get_monthly_summary(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1900, le=9999),
    user: Dict[str, Any] = Depends(get_current_user),
    service: FinanceService = Depends(get_service)
):
    """Income, expenses and category breakdown for a month (default: current)."""
    try:
        return service.monthly_summary(user["id"], month, year)
    except RecordValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/reports/spending-trends")
def get_spending_trends(
    months: int = Query(DEFAULT_TREND_MONTHS, ge=1, le=MAX_TREND_MONTHS),
    user: Dict[str, Any] = Depends(get_current_user),
    service: FinanceService = Depends(get_service)
):
    """Monthly expense totals for the last N months, oldest first."""
    try:
        return service.spending_trends(user["id"], months)
    except RecordValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/reports/budget-vs-actual")
def get_budget_vs_actual(
    user: Dict[str, Any] = Depends(get_current_user),
    service: FinanceService = Depends(get_service)
):
    """Each budget against this month's spending in its category."""
    try:
        return service.budget_vs_actual(user["id"])
    except RecordValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


# === Assistant Endpoints ===

@app.post("/api/ai/insights")
def get_insights(
    request: InsightRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    service: FinanceService = Depends(get_service)
):
    """Canned, data-filled answer to a free-text question."""
    try:
        return service.insights(user["id"], request.message)
    except RecordValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/ai/financial-summary")
def get_financial_summary(
    user: Dict[str, Any] = Depends(get_current_user),
    service: FinanceService = Depends(get_service)
):
    """Balance, this month's totals and the top spending category."""
    try:
        return service.financial_summary(user["id"])
    except RecordValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
