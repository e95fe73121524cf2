# app/services/masters/company_service.py

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.masters.company_models import Company, CompanyRole
from app.models.users.user_models import User
from app.models.enums.company_role_type import CompanyRoleType
from app.schemas.masters.company_schemas import (
    CompanyCreate,
    CompanyUpdate,
    CompanyRoleCreate,
    CompanyRoleOut,
    CompanyOut,
    CompanyListData,
    CompanyListFilters,
)
from app.core.exceptions import AppException
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.utils.activity_helpers import emit_activity
from app.utils.logger import get_logger

logger = get_logger(__name__)

UPDATABLE_FIELDS = (
    "name",
    "registration_number",
    "representative",
    "business_type",
    "business_category",
    "contact_person",
    "phone",
    "email",
    "address",
    "bank_account",
    "payment_terms",
)


# =====================================================
# MAPPER
# =====================================================
def _map_company(company: Company) -> CompanyOut:
    return CompanyOut(
        id=company.id,
        name=company.name,
        registration_number=company.registration_number,
        representative=company.representative,
        business_type=company.business_type,
        business_category=company.business_category,
        contact_person=company.contact_person,
        phone=company.phone,
        email=company.email,
        address=company.address,
        bank_account=company.bank_account,
        payment_terms=company.payment_terms,
        is_active=company.is_active,
        version=company.version,
        roles=[CompanyRoleOut.model_validate(r) for r in company.roles],
        created_at=company.created_at,
        updated_at=company.updated_at,
    )


def _actor(user: User) -> dict:
    return dict(
        user_id=user.id,
        username=user.username,
        actor_role=user.role.capitalize(),
        actor_email=user.username,
    )


async def _load_company(db: AsyncSession, company_id: int) -> Company:
    company = (
        await db.execute(
            select(Company)
            .where(Company.id == company_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if not company:
        raise AppException(404, "Company not found", ErrorCode.COMPANY_NOT_FOUND)
    return company


async def get_company_with_role(
    db: AsyncSession,
    company_id: int,
    role_type: CompanyRoleType,
) -> Company:
    """Load an active company and check it carries the given role."""
    return await get_company_with_any_role(db, company_id, (role_type,))


async def get_company_with_any_role(
    db: AsyncSession,
    company_id: int,
    role_types,
) -> Company:
    company = await _load_company(db, company_id)
    if not company.is_active:
        raise AppException(
            400,
            f"Company {company.name} is inactive",
            ErrorCode.BUSINESS_RULE_VIOLATION,
        )
    if not any(company.has_role(r) for r in role_types):
        raise AppException(
            400,
            f"Company {company.name} is not registered as {' or '.join(r.value for r in role_types)}",
            ErrorCode.COMPANY_ROLE_INVALID,
        )
    return company


async def _ensure_name_free(db: AsyncSession, name: str, exclude_id: int | None = None):
    stmt = select(Company.id).where(func.lower(Company.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(Company.id != exclude_id)
    if await db.scalar(stmt):
        raise AppException(
            409,
            "Company with this name already exists",
            ErrorCode.COMPANY_NAME_EXISTS,
        )


# =====================================================
# CREATE
# =====================================================
async def create_company(db: AsyncSession, payload: CompanyCreate, user: User) -> CompanyOut:
    name = payload.name.strip()
    await _ensure_name_free(db, name)

    data = payload.model_dump(exclude={"roles"})
    data["name"] = name

    company = Company(**data, created_by_id=user.id, updated_by_id=user.id)
    db.add(company)
    await db.flush()

    for role_type in payload.roles:
        db.add(CompanyRole(company_id=company.id, role_type=role_type))
    await db.flush()

    await emit_activity(
        db,
        code=ActivityCode.CREATE_COMPANY,
        entity_type="COMPANY",
        entity_id=company.id,
        target_name=company.name,
        roles=", ".join(r.value for r in payload.roles),
        **_actor(user),
    )

    await db.commit()
    logger.info("Company created", extra={"company_id": company.id})

    return _map_company(await _load_company(db, company.id))


# =====================================================
# LIST / GET
# =====================================================
async def list_companies(db: AsyncSession, filters: CompanyListFilters) -> CompanyListData:
    stmt = select(Company)

    if filters.search:
        term = f"%{filters.search}%"
        stmt = stmt.where(
            Company.name.ilike(term)
            | Company.registration_number.ilike(term)
            | Company.contact_person.ilike(term)
        )

    if filters.role_type:
        stmt = stmt.where(
            Company.roles.any(CompanyRole.role_type == filters.role_type)
        )

    if filters.is_active is not None:
        stmt = stmt.where(Company.is_active == filters.is_active)

    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))

    companies = (
        await db.execute(
            stmt.order_by(Company.name, Company.id)
            .limit(filters.page_size)
            .offset((filters.page - 1) * filters.page_size)
        )
    ).scalars().all()

    return CompanyListData(
        total=total or 0,
        items=[_map_company(c) for c in companies],
    )


async def get_company(db: AsyncSession, company_id: int) -> CompanyOut:
    return _map_company(await _load_company(db, company_id))


# =====================================================
# UPDATE (OPTIMISTIC)
# =====================================================
async def update_company(
    db: AsyncSession,
    company_id: int,
    payload: CompanyUpdate,
    user: User,
) -> CompanyOut:
    company = await _load_company(db, company_id)

    data = payload.model_dump(exclude_unset=True, exclude={"version"})
    changes: dict = {}
    for field in UPDATABLE_FIELDS:
        if field not in data:
            continue
        new_value = data[field]
        if field == "name":
            if new_value is None:
                continue
            new_value = new_value.strip()
        old_value = getattr(company, field)
        if new_value != old_value:
            changes[field] = [old_value, new_value]

    if not changes:
        raise AppException(400, "No changes provided", ErrorCode.VALIDATION_ERROR)

    if "name" in changes:
        await _ensure_name_free(db, changes["name"][1], exclude_id=company_id)

    result = await db.execute(
        update(Company)
        .where(Company.id == company_id, Company.version == payload.version)
        .values(
            **{k: v[1] for k, v in changes.items()},
            version=Company.version + 1,
            updated_by_id=user.id,
        )
        .returning(Company.id)
    )
    if result.scalar_one_or_none() is None:
        raise AppException(
            409,
            "Company was modified by another process",
            ErrorCode.COMPANY_VERSION_CONFLICT,
        )

    await emit_activity(
        db,
        code=ActivityCode.UPDATE_COMPANY,
        entity_type="COMPANY",
        entity_id=company_id,
        changes=changes,
        target_name=changes.get("name", [company.name, company.name])[1],
        summary=", ".join(changes.keys()),
        **_actor(user),
    )

    await db.commit()
    return _map_company(await _load_company(db, company_id))


# =====================================================
# ROLES
# =====================================================
async def add_company_role(
    db: AsyncSession,
    company_id: int,
    payload: CompanyRoleCreate,
    user: User,
) -> CompanyOut:
    company = await _load_company(db, company_id)

    if company.has_role(payload.role_type):
        raise AppException(
            409,
            f"Company already has role {payload.role_type.value}",
            ErrorCode.DUPLICATE_RESOURCE,
        )

    db.add(CompanyRole(company_id=company.id, **payload.model_dump()))
    company.bump_version()
    company.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.ADD_COMPANY_ROLE,
        entity_type="COMPANY",
        entity_id=company.id,
        role_type=payload.role_type.value,
        target_name=company.name,
        **_actor(user),
    )

    await db.commit()
    return _map_company(await _load_company(db, company_id))


async def remove_company_role(
    db: AsyncSession,
    company_id: int,
    role_type: CompanyRoleType,
    user: User,
) -> CompanyOut:
    company = await _load_company(db, company_id)

    role = next((r for r in company.roles if r.role_type == role_type), None)
    if role is None:
        raise AppException(
            404,
            f"Company does not have role {role_type.value}",
            ErrorCode.NOT_FOUND,
        )

    if len(company.roles) <= 1:
        raise AppException(
            400,
            "A company must keep at least one role",
            ErrorCode.BUSINESS_RULE_VIOLATION,
        )

    await db.delete(role)
    company.bump_version()
    company.updated_by_id = user.id

    await emit_activity(
        db,
        code=ActivityCode.REMOVE_COMPANY_ROLE,
        entity_type="COMPANY",
        entity_id=company.id,
        role_type=role_type.value,
        target_name=company.name,
        **_actor(user),
    )

    await db.commit()
    return _map_company(await _load_company(db, company_id))


# =====================================================
# DEACTIVATE
# =====================================================
async def deactivate_company(
    db: AsyncSession,
    company_id: int,
    version: int,
    user: User,
) -> CompanyOut:
    company = await _load_company(db, company_id)
    if not company.is_active:
        raise AppException(400, "Company is already inactive", ErrorCode.BUSINESS_RULE_VIOLATION)

    result = await db.execute(
        update(Company)
        .where(Company.id == company_id, Company.version == version)
        .values(is_active=False, version=Company.version + 1, updated_by_id=user.id)
        .returning(Company.id)
    )
    if result.scalar_one_or_none() is None:
        raise AppException(
            409,
            "Company was modified by another process",
            ErrorCode.COMPANY_VERSION_CONFLICT,
        )

    await emit_activity(
        db,
        code=ActivityCode.DEACTIVATE_COMPANY,
        entity_type="COMPANY",
        entity_id=company_id,
        target_name=company.name,
        **_actor(user),
    )

    await db.commit()
    return _map_company(await _load_company(db, company_id))
