# app/routers/approval/approval_router.py

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.models.enums.approval_status import ApprovalEntityType
from app.schemas.approval.approval_schemas import (
    ChainLevelsUpdate,
    ChainTemplateOut,
    ApproveIn,
    RejectIn,
    CommentIn,
    ApprovalListFilters,
    ApprovalRequestOut,
    ApprovalListData,
)
from app.services.approval.approval_service import (
    list_chains,
    get_chain,
    configure_chain_levels,
    list_approval_requests,
    list_pending_for_user,
    get_approval_request,
    get_request_for_entity,
    approve_request,
    reject_request,
    add_comment,
)
from app.utils.check_roles import require_role
from app.constants.roles import Role, ALL_ROLES, FINANCE_ROLES
from app.utils.response import APIResponse, success_response, page_metadata
from app.utils.logger import get_logger

logger = get_logger(__name__)

chain_router = APIRouter(prefix="/approval-chains", tags=["Approval Chains"])
router = APIRouter(prefix="/approvals", tags=["Approvals"])


# =====================================================
# CHAIN CONFIGURATION (ADMIN)
# =====================================================
@chain_router.get("", response_model=APIResponse[List[ChainTemplateOut]])
async def list_chains_api(
    db: AsyncSession = Depends(get_db),
    admin=Depends(require_role([Role.ADMIN])),
):
    return success_response("Approval chains fetched", await list_chains(db))


@chain_router.get("/{entity_type}", response_model=APIResponse[ChainTemplateOut])
async def get_chain_api(
    entity_type: ApprovalEntityType,
    db: AsyncSession = Depends(get_db),
    admin=Depends(require_role([Role.ADMIN])),
):
    return success_response("Approval chain fetched", await get_chain(db, entity_type))


@chain_router.put("/{entity_type}/levels", response_model=APIResponse[ChainTemplateOut])
async def configure_chain_levels_api(
    entity_type: ApprovalEntityType,
    payload: ChainLevelsUpdate,
    db: AsyncSession = Depends(get_db),
    admin=Depends(require_role([Role.ADMIN])),
):
    logger.info("Configure approval chain", extra={"entity_type": entity_type.value})
    chain = await configure_chain_levels(db, entity_type, payload, admin)
    return success_response("Approval chain updated", chain)


# =====================================================
# REQUESTS
# =====================================================
@router.get("", response_model=APIResponse[ApprovalListData])
async def list_approvals_api(
    filters: ApprovalListFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(FINANCE_ROLES)),
):
    data = await list_approval_requests(db, filters)
    return success_response(
        "Approval requests fetched",
        data,
        page_metadata(filters.page, filters.page_size, data.total),
    )


@router.get("/pending", response_model=APIResponse[List[ApprovalRequestOut]])
async def list_my_pending_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
):
    return success_response("Pending approvals fetched", await list_pending_for_user(db, user))


@router.get("/entity/{entity_type}/{entity_id}", response_model=APIResponse[ApprovalRequestOut])
async def get_entity_approval_api(
    entity_type: ApprovalEntityType,
    entity_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
):
    return success_response(
        "Approval request fetched",
        await get_request_for_entity(db, entity_type, entity_id),
    )


@router.get("/{request_id}", response_model=APIResponse[ApprovalRequestOut])
async def get_approval_api(
    request_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
):
    return success_response("Approval request fetched", await get_approval_request(db, request_id))


@router.post("/{request_id}/approve", response_model=APIResponse[ApprovalRequestOut])
async def approve_api(
    request_id: int,
    payload: ApproveIn,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
):
    logger.info("Approve request", extra={"request_id": request_id, "user_id": user.id})
    request = await approve_request(db, request_id, payload, user)
    return success_response("Approval recorded", request)


@router.post("/{request_id}/reject", response_model=APIResponse[ApprovalRequestOut])
async def reject_api(
    request_id: int,
    payload: RejectIn,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
):
    logger.info("Reject request", extra={"request_id": request_id, "user_id": user.id})
    request = await reject_request(db, request_id, payload, user)
    return success_response("Rejection recorded", request)


@router.post("/{request_id}/comments", response_model=APIResponse[ApprovalRequestOut], status_code=201)
async def add_comment_api(
    request_id: int,
    payload: CommentIn,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(ALL_ROLES)),
):
    request = await add_comment(db, request_id, payload, user)
    return success_response("Comment added", request)
