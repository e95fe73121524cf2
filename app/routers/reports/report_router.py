# app/routers/reports/report_router.py

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.reports.report_schemas import AgingFilters, AgingReport, ProjectFinancialSummary
from app.services.reports.report_service import (
    accounts_receivable_aging,
    accounts_payable_aging,
    project_financial_summary,
)
from app.utils.check_roles import require_role
from app.constants.roles import FINANCE_ROLES
from app.utils.response import APIResponse, success_response

router = APIRouter(prefix="/reports", tags=["Reports"])

REPORT_ROLES = FINANCE_ROLES


@router.get("/ar-aging", response_model=APIResponse[AgingReport])
async def ar_aging_api(
    filters: AgingFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(REPORT_ROLES)),
):
    report = await accounts_receivable_aging(db, filters)
    return success_response("AR aging report generated", report)


@router.get("/ap-aging", response_model=APIResponse[AgingReport])
async def ap_aging_api(
    filters: AgingFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(REPORT_ROLES)),
):
    report = await accounts_payable_aging(db, filters)
    return success_response("AP aging report generated", report)


@router.get("/projects/{project_id}/summary", response_model=APIResponse[ProjectFinancialSummary])
async def project_summary_api(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(REPORT_ROLES)),
):
    summary = await project_financial_summary(db, project_id)
    return success_response("Project summary generated", summary)
