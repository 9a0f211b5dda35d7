"""Cost Explorer adapter: period cost, per-service breakdown and forecast."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from botocore.exceptions import BotoCoreError, ClientError
from src.core.logger import get_logger
from src.domain.errors import SourceUnavailableError
from src.domain.models import CostData, DailyCost, ServiceCost, TimeWindow

from shared.constants import CostExplorer
from shared.utils import run_blocking

logger = get_logger("analytics.cost_explorer")


def _amount(metrics: dict) -> Optional[float]:
    amount = (metrics or {}).get(CostExplorer.METRIC, {}).get("Amount")
    if amount is None:
        return None
    try:
        return float(amount)
    except (TypeError, ValueError):
        return None


def date_range(window: TimeWindow) -> tuple[str, str]:
    """Cost Explorer dates (end exclusive); never an empty range."""
    start = window.start.date()
    end = window.end.date()
    if end <= start:
        end = start + timedelta(days=1)
    return start.strftime(CostExplorer.DATE_FORMAT), end.strftime(
        CostExplorer.DATE_FORMAT
    )


def with_percentages(services: List[ServiceCost], total_cost: float) -> List[ServiceCost]:
    ranked = sorted(services, key=lambda s: s.cost, reverse=True)
    return [
        s.model_copy(
            update={"percentage": (s.cost / total_cost * 100) if total_cost > 0 else 0.0}
        )
        for s in ranked
    ]


class CostExplorerClient:
    def __init__(self, client):
        self._client = client

    async def get_cost_and_usage(self, window: TimeWindow) -> CostData:
        return await run_blocking(self._cost_and_usage, window)

    async def get_forecast(self, days: int) -> CostData:
        return await run_blocking(self._forecast, days)

    def _cost_and_usage(self, window: TimeWindow) -> CostData:
        start, end = date_range(window)
        try:
            daily = self._client.get_cost_and_usage(
                TimePeriod={"Start": start, "End": end},
                Granularity="DAILY",
                Metrics=[CostExplorer.METRIC],
            )
        except (ClientError, BotoCoreError) as e:
            logger.warning("cost_daily_query_failed", extra={"error": str(e)})
            raise SourceUnavailableError("cost", "", str(e)) from e

        daily_costs: List[DailyCost] = []
        for result in daily.get("ResultsByTime", []):
            cost = _amount(result.get("Total"))
            period_start = (result.get("TimePeriod") or {}).get("Start")
            if cost is None or period_start is None:
                continue
            daily_costs.append(DailyCost(date=period_start, cost=cost))
        total_cost = sum(d.cost for d in daily_costs)

        return CostData(
            total_cost=total_cost,
            services=with_percentages(self._service_breakdown(start, end), total_cost),
            daily_costs=daily_costs,
            period=f"{start} to {end}",
        )

    def _service_breakdown(self, start: str, end: str) -> List[ServiceCost]:
        try:
            resp = self._client.get_cost_and_usage(
                TimePeriod={"Start": start, "End": end},
                Granularity="MONTHLY",
                Metrics=[CostExplorer.METRIC],
                GroupBy=CostExplorer.GROUP_BY_SERVICE,
            )
        except (ClientError, BotoCoreError) as e:
            # Breakdown is best-effort; the period total is still valid
            logger.warning("cost_service_breakdown_failed", extra={"error": str(e)})
            return []

        by_service: dict[str, float] = {}
        for result in resp.get("ResultsByTime", []):
            for group in result.get("Groups", []):
                keys = group.get("Keys") or []
                cost = _amount(group.get("Metrics"))
                if not keys or cost is None:
                    continue
                by_service[keys[0]] = by_service.get(keys[0], 0.0) + cost
        return [ServiceCost(service_name=k, cost=v) for k, v in by_service.items()]

    def _forecast(self, days: int, today: Optional[date] = None) -> CostData:
        today = today or datetime.now(timezone.utc).date()
        start = today + timedelta(days=1)
        end = start + timedelta(days=max(days, 1))
        start_s = start.strftime(CostExplorer.DATE_FORMAT)
        end_s = end.strftime(CostExplorer.DATE_FORMAT)
        try:
            resp = self._client.get_cost_forecast(
                TimePeriod={"Start": start_s, "End": end_s},
                Metric="UNBLENDED_COST",
                Granularity="DAILY",
            )
        except (ClientError, BotoCoreError) as e:
            logger.warning("cost_forecast_failed", extra={"error": str(e)})
            raise SourceUnavailableError("cost", "forecast", str(e)) from e

        daily_costs = []
        for forecast in resp.get("ForecastResultsByTime", []):
            period_start = (forecast.get("TimePeriod") or {}).get("Start")
            mean_value = forecast.get("MeanValue")
            if period_start is None or mean_value is None:
                continue
            daily_costs.append(DailyCost(date=period_start, cost=float(mean_value)))
        total_amount = (resp.get("Total") or {}).get("Amount")
        return CostData(
            total_cost=float(total_amount) if total_amount is not None else 0.0,
            daily_costs=daily_costs,
            period=f"{start_s} to {end_s} (forecast)",
        )
