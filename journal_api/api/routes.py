"""API routes for the journal"""
import logging
from fastapi import APIRouter, Depends, Request, Response, status

from journal_api.api.auth import AuthenticatedUser, get_current_user
from journal_api.api.middleware import limiter
from journal_api.api.models import (
    ActionIdRequest,
    ActionWithValidation,
    AddActionRequest,
    ErrorResponse,
    FirstEntryDateResponse,
    HealthCheckResponse,
    QuickFillRequest,
    QuickFillResponse,
    RegisterActionRequest,
    RegisterActionResponse,
    ReorderActionRequest,
    SaveEntryRequest,
    SaveStructureRequest,
    SuccessResponse,
)
from journal_api.config import settings
from journal_api.exceptions import RecordNotFoundError, ValidationError
from journal_api.models import Action, JournalEntry, StructureVersion
from journal_api.services.container import ServiceContainer
from journal_api.utils.datetime_helpers import current_timestamp, validate_date_string

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/journal",
    tags=["journal"],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    }
)
health_router = APIRouter(tags=["health"])

RATE_LIMIT = settings.rate_limit


def get_container(request: Request) -> ServiceContainer:
    """Service container attached to the running application"""
    return request.app.state.container


def _checked_date(value: str) -> str:
    try:
        return validate_date_string(value)
    except ValueError as e:
        raise ValidationError(message=str(e), field="date", value=value)


# ==========================================
# Structure
# ==========================================

@router.post("/structure", response_model=StructureVersion)
@limiter.limit(RATE_LIMIT)
async def save_structure(
    request: Request,
    response: Response,
    body: SaveStructureRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Save the structure; 201 when a new version was created, 200 when updated in place"""
    version, created = await container.structure_registry.save_structure(
        user.user_id,
        body.groups,
        deleted_elements=body.deleted_elements,
        as_of_date=body.current_date,
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return version


@router.get("/structure", response_model=StructureVersion)
@limiter.limit(RATE_LIMIT)
async def get_active_structure(
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    structure = await container.structure_registry.get_active_structure(user.user_id)
    if structure is None:
        raise RecordNotFoundError(
            message="No journal structure found. Please create one first.",
            record_type="structure",
            user_id=user.user_id,
            operation="get_active_structure",
        )
    return structure


@router.get("/structure/{date}", response_model=StructureVersion)
@limiter.limit(RATE_LIMIT)
async def get_structure_for_date(
    request: Request,
    date: str,
    user: AuthenticatedUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Structure version effective on date"""
    return await container.structure_registry.get_structure_for_date(
        user.user_id, _checked_date(date)
    )


@router.get("/structure-versions", response_model=list[StructureVersion])
@limiter.limit(RATE_LIMIT)
async def list_structure_versions(
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    return await container.structure_registry.list_versions(user.user_id)


# ==========================================
# Entries
# ==========================================

@router.post("/entries", response_model=JournalEntry)
@limiter.limit(RATE_LIMIT)
async def save_entry(
    request: Request,
    response: Response,
    body: SaveEntryRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Save the entry for a date; 201 when created, 200 when updated"""
    entry, created = await container.entry_store.save_entry(user.user_id, body.date, body.values)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return entry


@router.get("/entries/{date}", response_model=JournalEntry)
@limiter.limit(RATE_LIMIT)
async def get_entry(
    request: Request,
    date: str,
    user: AuthenticatedUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Entry for date, or an empty template when nothing was recorded"""
    return await container.entry_store.get_entry(user.user_id, _checked_date(date))


@router.get("/first-entry-date", response_model=FirstEntryDateResponse)
@limiter.limit(RATE_LIMIT)
async def get_first_entry_date(
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    first_date = await container.entry_store.get_first_entry_date(user.user_id)
    if first_date is None:
        raise RecordNotFoundError(
            message="No entries found",
            record_type="entry",
            user_id=user.user_id,
            operation="get_first_entry_date",
        )
    return FirstEntryDateResponse(date=first_date)


@router.post("/entries/quick-fill", response_model=QuickFillResponse)
@limiter.limit(RATE_LIMIT)
async def quick_fill(
    request: Request,
    body: QuickFillRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Copy the previous day's values onto body.date"""
    entry = await container.entry_store.quick_fill(user.user_id, body.date)
    return QuickFillResponse(entry=entry)


# ==========================================
# Actions
# ==========================================

@router.get("/actions", response_model=list[Action])
@limiter.limit(RATE_LIMIT)
async def list_actions(
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Actions that still match the current structure"""
    return await container.action_engine.list_actions(user.user_id)


@router.get("/actions/all", response_model=list[ActionWithValidation])
@limiter.limit(RATE_LIMIT)
async def list_all_actions(
    request: Request,
    user: AuthenticatedUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Every action with its validation, so broken ones can be repaired or removed"""
    pairs = await container.action_engine.list_all_actions(user.user_id)
    return [
        ActionWithValidation(**action.model_dump(), validation=validation)
        for action, validation in pairs
    ]


@router.post("/actions/add", response_model=Action, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMIT)
async def add_action(
    request: Request,
    body: AddActionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    return await container.action_engine.add_action(
        user.user_id,
        name=body.name,
        field_id=body.field_id,
        options=body.options,
        description=body.description,
        is_daily_action=body.is_daily_action,
    )


@router.post("/actions/remove", response_model=SuccessResponse)
@limiter.limit(RATE_LIMIT)
async def remove_action(
    request: Request,
    body: ActionIdRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    await container.action_engine.remove_action(user.user_id, body.id)
    return SuccessResponse()


@router.post("/actions/register", response_model=RegisterActionResponse)
@limiter.limit(RATE_LIMIT)
async def register_action(
    request: Request,
    body: RegisterActionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    """Trigger an action against today's entry"""
    entry = await container.action_engine.register_action(user.user_id, body.id, body.value)
    return RegisterActionResponse(entry=entry)


@router.post("/actions/reorder", response_model=SuccessResponse)
@limiter.limit(RATE_LIMIT)
async def reorder_action(
    request: Request,
    body: ReorderActionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container)
):
    await container.action_engine.reorder_action(user.user_id, body.id, body.order)
    return SuccessResponse()


# ==========================================
# Health
# ==========================================

@health_router.get("/health", response_model=HealthCheckResponse)
async def health_check(container: ServiceContainer = Depends(get_container)):
    """Health check endpoint (no auth, no rate limit)"""
    store_ok = await container.store.ping()
    if not store_ok:
        logger.error("Store health check failed")

    return HealthCheckResponse(
        status="healthy" if store_ok else "degraded",
        store="connected" if store_ok else "disconnected",
        timestamp=current_timestamp()
    )
