from fastapi import Depends

from app.api.orders.services.dependencies import get_order_lock_coordinator
from app.api.reports.services.service_reports import ReportService
from app.database.order_lock import OrderLockCoordinator


def get_report_service(
    coordinator: OrderLockCoordinator = Depends(get_order_lock_coordinator),
) -> ReportService:
    return ReportService(coordinator)
