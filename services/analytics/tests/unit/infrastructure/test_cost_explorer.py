from datetime import date, datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError
from src.domain.errors import SourceUnavailableError
from src.domain.models import ServiceCost, TimeWindow
from src.infrastructure.aws.cost_explorer import (
    CostExplorerClient,
    date_range,
    with_percentages,
)

ACCESS_DENIED = ClientError(
    {"Error": {"Code": "AccessDeniedException", "Message": "denied"}},
    "GetCostAndUsage",
)


def _daily(*days):
    return {
        "ResultsByTime": [
            {
                "TimePeriod": {"Start": start},
                "Total": {"UnblendedCost": {"Amount": amount, "Unit": "USD"}},
            }
            for start, amount in days
        ]
    }


def _grouped(**costs):
    return {
        "ResultsByTime": [
            {
                "Groups": [
                    {
                        "Keys": [name],
                        "Metrics": {"UnblendedCost": {"Amount": str(amount)}},
                    }
                    for name, amount in costs.items()
                ]
            }
        ]
    }


def test_date_range_never_empty():
    start = datetime(2024, 5, 2, 1, 0, tzinfo=timezone.utc)
    window = TimeWindow(start=start, end=start + timedelta(hours=2))

    assert date_range(window) == ("2024-05-02", "2024-05-03")


def test_percentages_with_zero_total():
    services = [ServiceCost(service_name="a", cost=0.0)]

    assert with_percentages(services, 0.0)[0].percentage == 0.0


@pytest.mark.asyncio
async def test_cost_and_usage(window):
    client = MagicMock()
    client.get_cost_and_usage.side_effect = [
        _daily(("2024-05-01", "10.0"), ("2024-05-02", "30.0")),
        _grouped(AmazonDynamoDB=30.0, AWSLambda=10.0),
    ]

    data = await CostExplorerClient(client).get_cost_and_usage(window)

    assert data.total_cost == pytest.approx(40.0)
    assert [d.date for d in data.daily_costs] == ["2024-05-01", "2024-05-02"]
    assert [(s.service_name, s.percentage) for s in data.services] == [
        ("AmazonDynamoDB", pytest.approx(75.0)),
        ("AWSLambda", pytest.approx(25.0)),
    ]
    assert data.period == "2024-05-01 to 2024-05-02"
    grouped_call = client.get_cost_and_usage.call_args_list[1]
    assert grouped_call.kwargs["GroupBy"] == [{"Type": "DIMENSION", "Key": "SERVICE"}]


@pytest.mark.asyncio
async def test_breakdown_failure_keeps_total(window):
    client = MagicMock()
    client.get_cost_and_usage.side_effect = [
        _daily(("2024-05-01", "12.5")),
        ACCESS_DENIED,
    ]

    data = await CostExplorerClient(client).get_cost_and_usage(window)

    assert data.total_cost == 12.5
    assert data.services == []


@pytest.mark.asyncio
async def test_daily_failure_raises(window):
    client = MagicMock()
    client.get_cost_and_usage.side_effect = ACCESS_DENIED

    with pytest.raises(SourceUnavailableError):
        await CostExplorerClient(client).get_cost_and_usage(window)


def test_forecast():
    client = MagicMock()
    client.get_cost_forecast.return_value = {
        "Total": {"Amount": "95.5", "Unit": "USD"},
        "ForecastResultsByTime": [
            {"TimePeriod": {"Start": "2024-05-03"}, "MeanValue": "3.1"},
            {"TimePeriod": {"Start": "2024-05-04"}, "MeanValue": "3.2"},
        ],
    }

    data = CostExplorerClient(client)._forecast(30, today=date(2024, 5, 2))

    assert data.total_cost == 95.5
    assert [d.cost for d in data.daily_costs] == [3.1, 3.2]
    kwargs = client.get_cost_forecast.call_args.kwargs
    assert kwargs["TimePeriod"] == {"Start": "2024-05-03", "End": "2024-06-02"}
    assert kwargs["Metric"] == "UNBLENDED_COST"


@pytest.mark.asyncio
async def test_forecast_failure_raises():
    client = MagicMock()
    client.get_cost_forecast.side_effect = ClientError(
        {"Error": {"Code": "DataUnavailableException", "Message": "no data"}},
        "GetCostForecast",
    )

    with pytest.raises(SourceUnavailableError):
        await CostExplorerClient(client).get_forecast(30)
