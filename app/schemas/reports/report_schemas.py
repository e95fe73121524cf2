# app/schemas/reports/report_schemas.py

from pydantic import BaseModel
from typing import Optional, List
from decimal import Decimal
from datetime import date
from fastapi import Query


class AgingFilters(BaseModel):
    as_of: Optional[date] = Query(None)
    counterparty_id: Optional[int] = Query(None)


class AgingBucketTotal(BaseModel):
    bucket: str
    count: int
    amount: Decimal


class AgingEntry(BaseModel):
    document_id: int
    document_number: str
    counterparty_id: int
    counterparty_name: Optional[str]
    due_date: Optional[date]
    days_overdue: int
    bucket: str
    total_amount: Decimal
    outstanding: Decimal


class AgingReport(BaseModel):
    as_of: date
    total_outstanding: Decimal
    buckets: List[AgingBucketTotal]
    entries: List[AgingEntry]


class ProductProgress(BaseModel):
    product_id: int
    product_name: str
    quoted: Decimal
    delivered: Decimal
    invoiced: Decimal
    remaining_to_deliver: Decimal
    remaining_to_invoice: Decimal


class ProjectFinancialSummary(BaseModel):
    project_id: int
    job_code: str
    project_name: str
    customer_name: Optional[str]
    quotation_id: Optional[int]
    quotation_version: Optional[int]
    quoted_amount: Decimal
    invoiced_amount: Decimal
    paid_amount: Decimal
    outstanding_amount: Decimal
    purchase_order_amount: Decimal
    payable_outstanding: Decimal
    products: List[ProductProgress]
