# app/services/approval/approval_service.py

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.approval.approval_models import (
    ApprovalChainTemplate,
    ApprovalChainLevel,
    ApprovalRequest,
    ApprovalLevelDecision,
    ApprovalHistory,
    ApprovalComment,
)
from app.models.billing.quotation_models import Quotation
from app.models.purchasing.purchase_models import PurchaseOrder
from app.models.users.user_models import User
from app.models.base.mixins import utcnow
from app.models.enums.approval_status import (
    ApprovalEntityType,
    ApprovalStatus,
    ApprovalHistoryAction,
    ApprovalCommentType,
)
from app.models.enums.quotation_status import QuotationStatus
from app.models.enums.purchase_status import PurchaseOrderStatus
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
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.utils.activity_helpers import emit_activity
from app.utils.logger import get_logger

logger = get_logger(__name__)


def _actor(user: User) -> dict:
    return dict(
        user_id=user.id,
        username=user.username,
        actor_role=user.role.capitalize(),
        actor_email=user.username,
    )


# =====================================================
# CHAIN CONFIGURATION
# =====================================================
async def _get_template(db: AsyncSession, entity_type: ApprovalEntityType) -> ApprovalChainTemplate | None:
    return (
        await db.execute(
            select(ApprovalChainTemplate)
            .where(ApprovalChainTemplate.entity_type == entity_type)
            .execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()


async def has_active_chain(db: AsyncSession, entity_type: ApprovalEntityType) -> bool:
    template = await _get_template(db, entity_type)
    return bool(template and template.is_active and template.levels)


async def list_chains(db: AsyncSession) -> list[ChainTemplateOut]:
    templates = (
        await db.execute(select(ApprovalChainTemplate).order_by(ApprovalChainTemplate.id))
    ).scalars().all()
    return [ChainTemplateOut.model_validate(t) for t in templates]


async def get_chain(db: AsyncSession, entity_type: ApprovalEntityType) -> ChainTemplateOut:
    template = await _get_template(db, entity_type)
    if not template:
        raise AppException(
            404,
            f"No approval chain configured for {entity_type.value}",
            ErrorCode.APPROVAL_CHAIN_NOT_FOUND,
        )
    return ChainTemplateOut.model_validate(template)


async def configure_chain_levels(
    db: AsyncSession,
    entity_type: ApprovalEntityType,
    payload: ChainLevelsUpdate,
    admin: User,
) -> ChainTemplateOut:
    """Replace the levels of an entity type's chain, creating the template if needed."""
    approver_ids = {level.approver_user_id for level in payload.levels}
    found = set(
        (
            await db.execute(
                select(User.id).where(User.id.in_(approver_ids), User.is_active.is_(True))
            )
        ).scalars().all()
    )
    missing = sorted(approver_ids - found)
    if missing:
        raise AppException(
            400,
            "Approvers must be active users",
            ErrorCode.VALIDATION_ERROR,
            {"missing_user_ids": missing},
        )

    template = await _get_template(db, entity_type)
    if template is None:
        template = ApprovalChainTemplate(
            entity_type=entity_type,
            name=payload.name or f"{entity_type.value} approval",
            description=payload.description,
        )
        db.add(template)
        await db.flush()
    else:
        if payload.name:
            template.name = payload.name
        if payload.description is not None:
            template.description = payload.description
        await db.execute(
            delete(ApprovalChainLevel).where(ApprovalChainLevel.template_id == template.id)
        )

    for level in sorted(payload.levels, key=lambda x: x.level_order):
        db.add(ApprovalChainLevel(template_id=template.id, **level.model_dump()))

    await emit_activity(
        db,
        code=ActivityCode.UPDATE_APPROVAL_CHAIN,
        entity_type="APPROVAL_CHAIN",
        entity_id=template.id,
        levels=len(payload.levels),
        target_type=entity_type.value,
        **_actor(admin),
    )

    await db.commit()
    logger.info("Approval chain configured", extra={"entity_type": entity_type.value})

    return ChainTemplateOut.model_validate(await _get_template(db, entity_type))


# =====================================================
# REQUEST CREATION
# =====================================================
async def create_approval_request(
    db: AsyncSession,
    *,
    entity_type: ApprovalEntityType,
    entity_id: int,
    entity_description: str,
    user: User,
) -> ApprovalRequest:
    """
    Open an approval request for an entity by snapshotting its chain template.

    Does not commit; the caller owns the transaction.
    """
    template = await _get_template(db, entity_type)
    if not template or not template.is_active or not template.levels:
        raise AppException(
            400,
            f"No approval chain configured for {entity_type.value}",
            ErrorCode.APPROVAL_CHAIN_NOT_FOUND,
        )

    exists = await db.scalar(
        select(ApprovalRequest.id).where(
            ApprovalRequest.entity_type == entity_type,
            ApprovalRequest.entity_id == entity_id,
        )
    )
    if exists:
        raise AppException(
            409,
            "An approval request already exists for this entity",
            ErrorCode.APPROVAL_ALREADY_EXISTS,
        )

    request = ApprovalRequest(
        entity_type=entity_type,
        entity_id=entity_id,
        entity_description=entity_description,
        current_level=1,
        total_levels=len(template.levels),
        status=ApprovalStatus.pending,
        submitted_by_id=user.id,
        submitted_at=utcnow(),
    )
    db.add(request)
    await db.flush()

    for level in template.levels:
        db.add(
            ApprovalLevelDecision(
                request_id=request.id,
                level_order=level.level_order,
                level_name=level.level_name,
                expected_approver_id=level.approver_user_id,
            )
        )

    db.add(
        ApprovalHistory(
            request_id=request.id,
            level_order=None,
            action=ApprovalHistoryAction.submitted,
            actor_id=user.id,
        )
    )
    await db.flush()

    await emit_activity(
        db,
        code=ActivityCode.SUBMIT_APPROVAL,
        entity_type="APPROVAL_REQUEST",
        entity_id=request.id,
        metadata={"entity_type": entity_type.value, "entity_id": entity_id},
        target_id=request.id,
        target_type=entity_type.value,
        entity_ref=entity_description,
        **_actor(user),
    )

    logger.info(
        "Approval request opened",
        extra={"request_id": request.id, "entity_type": entity_type.value, "entity_id": entity_id},
    )
    return request


# =====================================================
# LOADERS
# =====================================================
async def _load_request(
    db: AsyncSession,
    request_id: int,
    *,
    for_update: bool = False,
) -> ApprovalRequest:
    stmt = (
        select(ApprovalRequest)
        .where(ApprovalRequest.id == request_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        stmt = stmt.with_for_update()

    request = (await db.execute(stmt)).scalar_one_or_none()
    if not request:
        raise AppException(404, "Approval request not found", ErrorCode.APPROVAL_REQUEST_NOT_FOUND)
    return request


async def get_approval_request(db: AsyncSession, request_id: int) -> ApprovalRequestOut:
    return ApprovalRequestOut.model_validate(await _load_request(db, request_id))


async def get_request_for_entity(
    db: AsyncSession,
    entity_type: ApprovalEntityType,
    entity_id: int,
) -> ApprovalRequestOut:
    request = (
        await db.execute(
            select(ApprovalRequest).where(
                ApprovalRequest.entity_type == entity_type,
                ApprovalRequest.entity_id == entity_id,
            )
        )
    ).scalar_one_or_none()
    if not request:
        raise AppException(404, "Approval request not found", ErrorCode.APPROVAL_REQUEST_NOT_FOUND)
    return ApprovalRequestOut.model_validate(request)


async def list_approval_requests(db: AsyncSession, filters: ApprovalListFilters) -> ApprovalListData:
    stmt = select(ApprovalRequest)
    if filters.status:
        stmt = stmt.where(ApprovalRequest.status == filters.status)
    if filters.entity_type:
        stmt = stmt.where(ApprovalRequest.entity_type == filters.entity_type)

    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
    rows = (
        await db.execute(
            stmt.order_by(ApprovalRequest.submitted_at.desc(), ApprovalRequest.id.desc())
            .limit(filters.page_size)
            .offset((filters.page - 1) * filters.page_size)
        )
    ).scalars().all()

    return ApprovalListData(
        total=total or 0,
        items=[ApprovalRequestOut.model_validate(r) for r in rows],
    )


async def list_pending_for_user(db: AsyncSession, user: User) -> list[ApprovalRequestOut]:
    """Pending requests whose current level waits on this user."""
    stmt = (
        select(ApprovalRequest)
        .join(
            ApprovalLevelDecision,
            (ApprovalLevelDecision.request_id == ApprovalRequest.id)
            & (ApprovalLevelDecision.level_order == ApprovalRequest.current_level),
        )
        .where(
            ApprovalRequest.status == ApprovalStatus.pending,
            ApprovalLevelDecision.expected_approver_id == user.id,
        )
        .order_by(ApprovalRequest.submitted_at)
    )
    rows = (await db.execute(stmt)).scalars().all()
    return [ApprovalRequestOut.model_validate(r) for r in rows]


# =====================================================
# DECISIONS
# =====================================================
def _current_decision_for(request: ApprovalRequest, user: User) -> ApprovalLevelDecision:
    if request.status != ApprovalStatus.pending:
        raise AppException(
            400,
            f"Approval request is already {request.status.value}",
            ErrorCode.APPROVAL_ALREADY_COMPLETED,
        )

    decision = request.decision_for_level(request.current_level)
    if decision is None or decision.decision != ApprovalStatus.pending:
        raise AppException(
            400,
            "No pending approval level",
            ErrorCode.APPROVAL_ALREADY_COMPLETED,
        )

    if decision.expected_approver_id != user.id:
        if any(d.expected_approver_id == user.id for d in request.decisions):
            raise AppException(
                400,
                "Cannot approve out of order",
                ErrorCode.APPROVAL_OUT_OF_ORDER,
                {"current_level": request.current_level},
            )
        raise AppException(
            403,
            "You are not an approver for this request",
            ErrorCode.APPROVAL_NOT_APPROVER,
        )

    return decision


async def approve_request(
    db: AsyncSession,
    request_id: int,
    payload: ApproveIn,
    user: User,
) -> ApprovalRequestOut:
    request = await _load_request(db, request_id, for_update=True)
    decision = _current_decision_for(request, user)

    now = utcnow()
    decision.decision = ApprovalStatus.approved
    decision.decided_by_id = user.id
    decision.decided_at = now
    decision.comments = payload.comments

    db.add(
        ApprovalHistory(
            request_id=request.id,
            level_order=decision.level_order,
            action=ApprovalHistoryAction.approved,
            actor_id=user.id,
            comments=payload.comments,
        )
    )

    await emit_activity(
        db,
        code=ActivityCode.APPROVE_LEVEL,
        entity_type="APPROVAL_REQUEST",
        entity_id=request.id,
        level=decision.level_order,
        target_id=request.id,
        **_actor(user),
    )

    if request.current_level >= request.total_levels:
        request.status = ApprovalStatus.approved
        request.completed_at = now
        await _apply_outcome(db, request, user)
    else:
        request.current_level += 1

    await db.commit()
    logger.info(
        "Approval level approved",
        extra={"request_id": request_id, "level": decision.level_order, "status": request.status.value},
    )
    return ApprovalRequestOut.model_validate(await _load_request(db, request_id))


async def reject_request(
    db: AsyncSession,
    request_id: int,
    payload: RejectIn,
    user: User,
) -> ApprovalRequestOut:
    request = await _load_request(db, request_id, for_update=True)
    decision = _current_decision_for(request, user)

    now = utcnow()
    decision.decision = ApprovalStatus.rejected
    decision.decided_by_id = user.id
    decision.decided_at = now
    decision.comments = payload.reason

    request.status = ApprovalStatus.rejected
    request.completed_at = now

    db.add(
        ApprovalComment(
            request_id=request.id,
            author_id=user.id,
            comment_type=ApprovalCommentType.rejection,
            body=payload.reason,
        )
    )
    db.add(
        ApprovalHistory(
            request_id=request.id,
            level_order=decision.level_order,
            action=ApprovalHistoryAction.rejected,
            actor_id=user.id,
            comments=payload.reason,
        )
    )

    await emit_activity(
        db,
        code=ActivityCode.REJECT_APPROVAL,
        entity_type="APPROVAL_REQUEST",
        entity_id=request.id,
        level=decision.level_order,
        target_id=request.id,
        **_actor(user),
    )

    await _apply_outcome(db, request, user, reason=payload.reason)

    await db.commit()
    logger.info("Approval request rejected", extra={"request_id": request_id, "level": decision.level_order})
    return ApprovalRequestOut.model_validate(await _load_request(db, request_id))


async def add_comment(
    db: AsyncSession,
    request_id: int,
    payload: CommentIn,
    user: User,
) -> ApprovalRequestOut:
    request = await _load_request(db, request_id)
    db.add(
        ApprovalComment(
            request_id=request.id,
            author_id=user.id,
            comment_type=ApprovalCommentType.comment,
            body=payload.body,
        )
    )
    await db.commit()
    return ApprovalRequestOut.model_validate(await _load_request(db, request_id))


# =====================================================
# OUTCOME ON TARGET ENTITY
# =====================================================
async def _apply_outcome(
    db: AsyncSession,
    request: ApprovalRequest,
    user: User,
    reason: str | None = None,
) -> None:
    if request.entity_type == ApprovalEntityType.quotation:
        await _apply_quotation_outcome(db, request, user, reason)
    elif request.entity_type == ApprovalEntityType.purchase_order:
        await _apply_purchase_order_outcome(db, request, user)


async def _apply_quotation_outcome(
    db: AsyncSession,
    request: ApprovalRequest,
    user: User,
    reason: str | None,
) -> None:
    quotation = (
        await db.execute(
            select(Quotation).where(Quotation.id == request.entity_id).with_for_update()
        )
    ).scalar_one_or_none()
    if quotation is None or quotation.status != QuotationStatus.pending:
        logger.warning("Quotation not pending on approval outcome", extra={"quotation_id": request.entity_id})
        return

    if request.status == ApprovalStatus.approved:
        quotation.status = QuotationStatus.approved
        quotation.approved_at = request.completed_at
        quotation.approved_by_id = user.id
        code = ActivityCode.APPROVE_QUOTATION
        context = {}
    else:
        quotation.status = QuotationStatus.rejected
        quotation.rejection_reason = reason
        code = ActivityCode.REJECT_QUOTATION
        context = {"reason": reason}

    quotation.updated_by_id = user.id

    await emit_activity(
        db,
        user_id=user.id,
        username=user.username,
        code=code,
        entity_type="QUOTATION",
        entity_id=quotation.id,
        actor_email=user.username,
        target_name=quotation.reference,
        **context,
    )


async def _apply_purchase_order_outcome(
    db: AsyncSession,
    request: ApprovalRequest,
    user: User,
) -> None:
    po = (
        await db.execute(
            select(PurchaseOrder).where(PurchaseOrder.id == request.entity_id).with_for_update()
        )
    ).scalar_one_or_none()
    if po is None or po.status != PurchaseOrderStatus.draft:
        logger.warning("Purchase order not in draft on approval outcome", extra={"po_id": request.entity_id})
        return

    if request.status == ApprovalStatus.approved:
        po.approved_at = request.completed_at
        po.bump_version()
        return

    po.status = PurchaseOrderStatus.canceled
    po.bump_version()
    po.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.CHANGE_PURCHASE_ORDER_STATUS,
        entity_type="PURCHASE_ORDER",
        entity_id=po.id,
        changes={"status": [PurchaseOrderStatus.draft.value, PurchaseOrderStatus.canceled.value]},
        target_name=po.po_number,
        old_status=PurchaseOrderStatus.draft.value,
        new_status=PurchaseOrderStatus.canceled.value,
        **_actor(user),
    )
