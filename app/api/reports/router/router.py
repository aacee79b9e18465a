# app/api/reports/router/router.py
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.reports.schemas.schema_reports import DashboardResponse, SalesReportResponse
from app.api.reports.services.dependencies import get_report_service
from app.api.reports.services.service_reports import ReportService
from app.utils.logger import logger

router = APIRouter(prefix="/api/reports", tags=["Relatorios"])


@router.get("/sales", response_model=SalesReportResponse, summary="Relatório de vendas (pedidos pagos)")
def sales_report(
    start_date: Optional[date] = Query(None, description="Data inicial (inclusive)"),
    end_date: Optional[date] = Query(None, description="Data final (inclusive)"),
    svc: ReportService = Depends(get_report_service),
):
    logger.info(f"[Relatorios] Vendas - periodo={start_date}..{end_date}")
    return svc.sales_report(start_date, end_date)


@router.get("/dashboard", response_model=DashboardResponse, summary="Dashboard completo")
def dashboard(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    svc: ReportService = Depends(get_report_service),
):
    return svc.dashboard(start_date, end_date)
