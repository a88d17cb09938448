"""
HTTP API for FinMind

A thin FastAPI surface over the orchestrator flows. Routes translate
HTTP to flow calls; the exception handlers below are the only place
domain errors become status codes:

    validation errors       -> 400
    unresolved identity     -> 401
    entitlement errors      -> 402 (plan_required / quota_exhausted)
    missing account/record  -> 404
    storage failures        -> 500
"""

import time
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, Literal, Optional

import structlog
from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError, field_validator

from finmind.audit import create_correlation_id
from finmind.config import get_settings
from finmind.entitlements import AuthenticationError, EntitlementError
from finmind.models import Plan, TransactionKind, parse_loose_date
from finmind.orchestrator import AppComponents, create_app_components
from finmind.services.storage import DuplicateError, NotFoundError, StorageError

logger = structlog.get_logger()

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+$"


# =============================================================================
# REQUEST BODIES
# =============================================================================

class SignupRequest(BaseModel):
    email: str = Field(..., max_length=254, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1, max_length=72)
    display_name: Optional[str] = Field(default=None, max_length=100)
    plan: Optional[str] = None


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=254)
    password: str = Field(..., min_length=1, max_length=72)


class ProfileRequest(BaseModel):
    display_name: str = Field(..., min_length=2, max_length=100)


class BillingRequest(BaseModel):
    plan: Literal["plus", "prime"]
    billing_cycle: Optional[str] = None

    @property
    def cycle(self) -> str:
        return "yearly" if self.billing_cycle == "yearly" else "monthly"


class BalanceRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    value: Decimal = Field(..., ge=0)
    tag: Optional[str] = Field(default=None, max_length=100)


class TransactionRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    amount: Decimal
    type: TransactionKind
    category: Optional[str] = Field(default=None, max_length=100)
    occurred_on: Optional[Any] = None

    @field_validator("occurred_on")
    @classmethod
    def loose_date(cls, v: Any):
        return parse_loose_date(v)


# =============================================================================
# ERROR HANDLING
# =============================================================================

def _error_details(errors: list[dict]) -> list[dict]:
    return [
        {"loc": [str(part) for part in e.get("loc", ())], "msg": e.get("msg", "")}
        for e in errors
    ]


def _install_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "validation_error", "details": _error_details(exc.errors())},
        )

    @app.exception_handler(ValidationError)
    async def model_validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "validation_error", "details": _error_details(exc.errors())},
        )

    @app.exception_handler(AuthenticationError)
    async def authentication_handler(request: Request, exc: AuthenticationError):
        return JSONResponse(status_code=401, content={"error": "unauthorized"})

    @app.exception_handler(EntitlementError)
    async def entitlement_handler(request: Request, exc: EntitlementError):
        return JSONResponse(
            status_code=402,
            content={"error": exc.code, "message": exc.user_message},
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"error": "not_found"})

    @app.exception_handler(DuplicateError)
    async def duplicate_handler(request: Request, exc: DuplicateError):
        return JSONResponse(
            status_code=400,
            content={"error": "duplicate", "message": "Email already registered"},
        )

    @app.exception_handler(StorageError)
    async def storage_handler(request: Request, exc: StorageError):
        logger.error("storage_error", path=request.url.path, error=str(exc))
        components: AppComponents = request.app.state.components
        await components.audit_logger.log_error(
            error_type=type(exc).__name__,
            error_message=str(exc),
            details={"path": request.url.path},
        )
        content = {"error": "storage_error"}
        if components.settings.app.debug_mode:
            content["message"] = str(exc)
        return JSONResponse(status_code=500, content=content)


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_components(request: Request) -> AppComponents:
    return request.app.state.components


async def current_user_id(
    request: Request,
    authorization: Optional[str] = Header(None),
    x_user_id: Optional[str] = Header(None, alias="x-user-id"),
) -> int:
    """
    Resolve the caller from a bearer session token, or from the
    x-user-id header when development mode allows it.
    """
    components: AppComponents = request.app.state.components
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[len("bearer "):].strip()
        return await components.entitlements.resolve_session(token)
    if x_user_id and request.app.state.allow_dev_header:
        try:
            return int(x_user_id)
        except ValueError:
            raise AuthenticationError("Malformed x-user-id header")
    raise AuthenticationError("Missing bearer token")


# =============================================================================
# APPLICATION
# =============================================================================

def create_app(components: Optional[AppComponents] = None, **component_options) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        components: Pre-built components. When omitted they are created
                    on startup with create_app_components(**component_options).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "components", None) is None:
            app.state.components = await create_app_components(**component_options)
        app.state.allow_dev_header = app.state.components.settings.auth.allow_dev_header
        yield

    settings = components.settings if components else component_options.get("settings")
    settings = settings or get_settings()
    app_settings = settings.app

    app = FastAPI(
        title="FinMind",
        version="1.0.0",
        debug=app_settings.debug_mode,
        lifespan=lifespan,
    )
    app.state.components = components
    app.state.allow_dev_header = bool(components and components.settings.auth.allow_dev_header)

    origins = app_settings.cors_origins_list or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _install_exception_handlers(app)

    # -------------------------------------------------------------------------
    # Health / auth
    # -------------------------------------------------------------------------

    @app.get("/health")
    async def health(c: AppComponents = Depends(get_components)):
        return {"ok": True, "useDb": c.storage.use_db}

    @app.post("/auth/signup")
    async def signup(body: SignupRequest, c: AppComponents = Depends(get_components)):
        requested = Plan(body.plan) if body.plan in (Plan.PLUS.value, Plan.PRIME.value) else None
        account = await c.entitlements.register(
            email=body.email,
            password=body.password,
            display_name=body.display_name,
            plan=requested,
        )
        token = await c.entitlements.issue_session(account.user_id)
        return {"token": token, "user": account}

    @app.post("/auth/login")
    async def login(body: LoginRequest, c: AppComponents = Depends(get_components)):
        account = await c.entitlements.authenticate(body.email, body.password)
        token = await c.entitlements.issue_session(account.user_id)
        return {"token": token, "user": account}

    # -------------------------------------------------------------------------
    # Account / billing
    # -------------------------------------------------------------------------

    @app.get("/me")
    async def me(
        user_id: int = Depends(current_user_id),
        c: AppComponents = Depends(get_components),
    ):
        return await c.entitlements.ensure_active_plan(user_id)

    @app.put("/me")
    async def update_me(
        body: ProfileRequest,
        user_id: int = Depends(current_user_id),
        c: AppComponents = Depends(get_components),
    ):
        return await c.entitlements.rename(user_id, body.display_name)

    @app.get("/quota")
    async def quota(
        user_id: int = Depends(current_user_id),
        c: AppComponents = Depends(get_components),
    ):
        account = await c.entitlements.ensure_active_plan(user_id)
        return {
            "plan": account.plan,
            "ai_quota": account.ai_quota,
            "ai_quota_remaining": account.ai_quota_remaining,
        }

    @app.post("/billing/intent")
    async def billing_intent(body: BillingRequest, user_id: int = Depends(current_user_id)):
        return {
            "mock": True,
            "client_secret": f"mock_{body.plan}_{body.cycle}_{int(time.time() * 1000)}",
            "plan": body.plan,
            "billing_cycle": body.cycle,
        }

    @app.post("/billing/confirm")
    async def billing_confirm(
        body: BillingRequest,
        user_id: int = Depends(current_user_id),
        c: AppComponents = Depends(get_components),
    ):
        account = await c.entitlements.confirm_purchase(user_id, Plan(body.plan))
        return {"status": "ok", "plan": body.plan, "billing_cycle": body.cycle, "user": account}

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    @app.get("/summary")
    async def summary(
        user_id: int = Depends(current_user_id),
        c: AppComponents = Depends(get_components),
    ):
        return await c.records.summary(user_id)

    @app.get("/assets")
    async def list_assets(
        user_id: int = Depends(current_user_id),
        c: AppComponents = Depends(get_components),
    ):
        return await c.records.list_assets(user_id)

    @app.post("/assets")
    async def add_asset(
        body: BalanceRequest,
        user_id: int = Depends(current_user_id),
        c: AppComponents = Depends(get_components),
    ):
        return await c.records.add_asset(user_id, body.name, body.value, body.tag)

    @app.put("/assets/{asset_id}")
    async def update_asset(
        asset_id: int,
        body: BalanceRequest,
        user_id: int = Depends(current_user_id),
        c: AppComponents = Depends(get_components),
    ):
        return await c.records.update_asset(user_id, asset_id, body.name, body.value, body.tag)

    @app.delete("/assets/{asset_id}")
    async def delete_asset(
        asset_id: int,
        user_id: int = Depends(current_user_id),
        c: AppComponents = Depends(get_components),
    ):
        await c.records.delete_asset(user_id, asset_id)
        return {"ok": True}

    @app.get("/liabilities")
    async def list_liabilities(
        user_id: int = Depends(current_user_id),
        c: AppComponents = Depends(get_components),
    ):
        return await c.records.list_liabilities(user_id)

    @app.post("/liabilities")
    async def add_liability(
        body: BalanceRequest,
        user_id: int = Depends(current_user_id),
        c: AppComponents = Depends(get_components),
    ):
        return await c.records.add_liability(user_id, body.name, body.value, body.tag)

    @app.put("/liabilities/{liability_id}")
    async def update_liability(
        liability_id: int,
        body: BalanceRequest,
        user_id: int = Depends(current_user_id),
        c: AppComponents = Depends(get_components),
    ):
        return await c.records.update_liability(
            user_id, liability_id, body.name, body.value, body.tag
        )

    @app.delete("/liabilities/{liability_id}")
    async def delete_liability(
        liability_id: int,
        user_id: int = Depends(current_user_id),
        c: AppComponents = Depends(get_components),
    ):
        await c.records.delete_liability(user_id, liability_id)
        return {"ok": True}

    @app.get("/transactions")
    async def list_transactions(
        limit: int = Query(50, ge=1),
        user_id: int = Depends(current_user_id),
        c: AppComponents = Depends(get_components),
    ):
        return await c.records.list_transactions(user_id, limit)

    @app.post("/transactions")
    async def add_transaction(
        body: TransactionRequest,
        user_id: int = Depends(current_user_id),
        c: AppComponents = Depends(get_components),
    ):
        return await c.records.add_transaction(
            user_id,
            title=body.title,
            kind=body.type,
            amount=body.amount,
            category=body.category,
            occurred_on=body.occurred_on,
        )

    @app.put("/transactions/{transaction_id}")
    async def update_transaction(
        transaction_id: int,
        body: TransactionRequest,
        user_id: int = Depends(current_user_id),
        c: AppComponents = Depends(get_components),
    ):
        return await c.records.update_transaction(
            user_id,
            transaction_id,
            title=body.title,
            kind=body.type,
            amount=body.amount,
            category=body.category,
            occurred_on=body.occurred_on,
        )

    @app.delete("/transactions/{transaction_id}")
    async def delete_transaction(
        transaction_id: int,
        user_id: int = Depends(current_user_id),
        c: AppComponents = Depends(get_components),
    ):
        await c.records.delete_transaction(user_id, transaction_id)
        return {"ok": True}

    # -------------------------------------------------------------------------
    # Insights
    # -------------------------------------------------------------------------

    @app.get("/advisor/insights")
    async def advisor_insights(
        period: Optional[str] = Query(None),
        lang: str = Query("en"),
        user_id: int = Depends(current_user_id),
        c: AppComponents = Depends(get_components),
    ):
        return await c.insights.generate_insights(
            user_id,
            period=period,
            lang=lang,
            correlation_id=create_correlation_id(),
        )

    return app
