import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from app.api.endpoints import auth
from app.api.endpoints import organizations
from app.api.endpoints import projects
from app.api.endpoints import expense_accounts
from app.api.endpoints import items
from app.api.endpoints import requisitions
from app.api.endpoints import templates
from app.api.endpoints import notifications


from fastapi.middleware.cors import CORSMiddleware
from app.core.config import Settings
from app.core.logging import configure_logging
from app.services.membership_cache import MembershipCache
from app.workflow.errors import (
    ConflictError,
    InvalidTransitionError,
    MissingOrgContextError,
    PermissionDeniedError,
    UnknownRoleError,
    ValidationError,
    WorkflowError,
)

settings = Settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Requisition Workflow")
app.state.membership_cache = MembershipCache(ttl_seconds=settings.membership_cache_ttl_seconds)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS = {
    ValidationError: 400,
    MissingOrgContextError: 400,
    UnknownRoleError: 400,
    PermissionDeniedError: 403,
    InvalidTransitionError: 409,
    ConflictError: 409,
}


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)),
        400,
    )
    if isinstance(exc, InvalidTransitionError):
        # Normal navigation never offers an undefined event
        logger.warning("Unexpected transition request on %s: %s", request.url.path, exc)
    body = {"detail": str(exc), "code": exc.code}
    if isinstance(exc, ValidationError) and exc.field:
        body["field"] = exc.field
    return JSONResponse(status_code=status_code, content=body)


app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(organizations.router, prefix="/organizations", tags=["organizations"])
app.include_router(projects.router, prefix="/projects", tags=["projects"])
app.include_router(expense_accounts.router, prefix="/expense_accounts", tags=["expense_accounts"])
app.include_router(items.router, prefix="/items", tags=["items"])
app.include_router(requisitions.router, prefix="/requisitions", tags=["requisitions"])
app.include_router(templates.router, prefix="/templates", tags=["templates"])
app.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
