from datetime import date
from typing import List, Optional

from pydantic import BaseModel


class SalesSummary(BaseModel):
    total_orders: int
    total_sales: str
    total_discount: str
    net_sales: str
    average_order_value: str


class DailySales(BaseModel):
    date: date
    order_count: int
    total_sales: str
    total_discount: str
    net_sales: str


class SalesReportResponse(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    summary: SalesSummary
    daily_breakdown: List[DailySales]


class CategoryBreakdownItem(BaseModel):
    category: str
    quantity: int
    revenue: str


class TopProductItem(BaseModel):
    product_id: int
    product_name: str
    quantity: int
    revenue: str
    order_count: int


class PeakHourItem(BaseModel):
    hour: int
    order_count: int
    revenue: str


class TablePerformanceItem(BaseModel):
    table_number: int
    order_count: int
    revenue: str
    average_order_value: str


class VoidAnalysisItem(BaseModel):
    product_id: int
    product_name: str
    void_count: int
    quantity: int
    amount: str


class DashboardSummary(BaseModel):
    date: date
    paid_orders: int
    revenue: str
    open_orders: int
    confirmed_orders: int


class DashboardResponse(BaseModel):
    sales_report: SalesReportResponse
    category_breakdown: List[CategoryBreakdownItem]
    top_products: List[TopProductItem]
    peak_hours: List[PeakHourItem]
    table_performance: List[TablePerformanceItem]
    void_analysis: List[VoidAnalysisItem]
    today_summary: DashboardSummary
