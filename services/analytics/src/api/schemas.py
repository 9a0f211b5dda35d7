"""Response documents for the per-source endpoints."""

from typing import Dict, List, Optional

from src.domain.models import (
    APIGatewayMetrics,
    APIGatewaySummary,
    CamelModel,
    CostData,
    CostSummary,
    DynamoDBMetrics,
    DynamoDBSummary,
    LambdaMetrics,
    LambdaSummary,
    TimeWindow,
)


class AppInfo(CamelModel):
    id: str
    name: str
    environment: str
    app_store_configured: bool
    lambda_function_count: int
    dynamodb_table_count: int
    api_gateway: Optional[str] = None


class AppList(CamelModel):
    apps: List[AppInfo]


class LambdaReport(CamelModel):
    app_id: str
    window: TimeWindow
    functions: List[LambdaMetrics]
    failed: Dict[str, str]  # resource name -> reason
    summary: LambdaSummary


class APIGatewayReport(CamelModel):
    app_id: str
    window: TimeWindow
    metrics: APIGatewayMetrics
    summary: APIGatewaySummary


class DynamoDBReport(CamelModel):
    app_id: str
    window: TimeWindow
    tables: List[DynamoDBMetrics]
    failed: Dict[str, str]
    summary: DynamoDBSummary


class CostReport(CamelModel):
    app_id: str
    window: TimeWindow
    current: CostData
    summary: CostSummary
    forecast: Optional[CostData] = None


class DownloadsReport(CamelModel):
    app_id: str
    app_name: str
    downloads: int
    updates: int
    period: str


class RevenueReport(CamelModel):
    app_id: str
    app_name: str
    revenue: float
    active_devices: int
    arpu: float
    period: str


class TokenResponse(CamelModel):
    access_token: str
    expires_in: int  # seconds
