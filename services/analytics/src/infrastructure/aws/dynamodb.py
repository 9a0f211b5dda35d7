"""DynamoDB table metrics: DescribeTable for size, CloudWatch for traffic."""

from __future__ import annotations

from botocore.exceptions import BotoCoreError, ClientError
from src.core.logger import get_logger
from src.domain.errors import SourceUnavailableError
from src.domain.models import DynamoDBMetrics, TimeWindow

from shared.constants import CloudWatchNamespaces, MetricQueries
from shared.utils import run_blocking

from .cloudwatch import build_queries, datapoints, fetch_series, total

logger = get_logger("analytics.dynamodb")


class DynamoDBMetricsClient:
    def __init__(self, dynamodb_client, cloudwatch_client):
        self._dynamodb = dynamodb_client
        self._cloudwatch = cloudwatch_client

    async def get_table_metrics(
        self, table_name: str, window: TimeWindow
    ) -> DynamoDBMetrics:
        return await run_blocking(self._table_metrics, table_name, window)

    def _table_metrics(self, table_name: str, window: TimeWindow) -> DynamoDBMetrics:
        try:
            table = self._dynamodb.describe_table(TableName=table_name).get("Table", {})
            series = fetch_series(
                self._cloudwatch,
                build_queries(
                    CloudWatchNamespaces.DYNAMODB, table_name, MetricQueries.DYNAMODB
                ),
                window,
            )
        except (ClientError, BotoCoreError) as e:
            logger.warning(
                "dynamodb_table_metrics_failed",
                extra={"table": table_name, "error": str(e)},
            )
            raise SourceUnavailableError("dynamoDB", table_name, str(e)) from e

        throughput = table.get("ProvisionedThroughput") or {}
        return DynamoDBMetrics(
            table_name=table_name,
            consumed_read_capacity=total(series, "consumedRead"),
            consumed_write_capacity=total(series, "consumedWrite"),
            provisioned_read_capacity=float(throughput.get("ReadCapacityUnits", 0)),
            provisioned_write_capacity=float(throughput.get("WriteCapacityUnits", 0)),
            throttled_requests=total(series, "throttled"),
            user_errors=total(series, "userErrors"),
            system_errors=total(series, "systemErrors"),
            item_count=int(table.get("ItemCount", 0)),
            table_size_bytes=int(table.get("TableSizeBytes", 0)),
            datapoints=datapoints(series, "consumedRead", "ConsumedCapacityUnits"),
        )
