class CloudWatchNamespaces:
    """Centralised CloudWatch namespace definitions"""

    LAMBDA = "AWS/Lambda"
    API_GATEWAY = "AWS/ApiGateway"
    DYNAMODB = "AWS/DynamoDB"

    # Metric period used for every GetMetricData query (seconds)
    DEFAULT_PERIOD_SECONDS = 300


class MetricQueries:
    """(query id, metric name, statistic) triples per namespace.

    Query ids double as the keys the adapters fold results into.
    """

    LAMBDA = [
        ("invocations", "Invocations", "Sum"),
        ("errors", "Errors", "Sum"),
        ("duration", "Duration", "Average"),
        ("throttles", "Throttles", "Sum"),
        ("concurrent", "ConcurrentExecutions", "Maximum"),
    ]

    API_GATEWAY = [
        ("count", "Count", "Sum"),
        ("latency", "Latency", "Average"),
        ("error4xx", "4XXError", "Sum"),
        ("error5xx", "5XXError", "Sum"),
    ]

    DYNAMODB = [
        ("consumedRead", "ConsumedReadCapacityUnits", "Sum"),
        ("consumedWrite", "ConsumedWriteCapacityUnits", "Sum"),
        ("throttled", "ThrottledRequests", "Sum"),
        ("userErrors", "UserErrors", "Sum"),
        ("systemErrors", "SystemErrors", "Sum"),
    ]

    @classmethod
    def dimension_for(cls, namespace: str) -> str:
        """CloudWatch dimension name identifying a resource in a namespace."""
        dimensions = {
            CloudWatchNamespaces.LAMBDA: "FunctionName",
            CloudWatchNamespaces.API_GATEWAY: "ApiName",
            CloudWatchNamespaces.DYNAMODB: "TableName",
        }
        dimension = dimensions.get(namespace)
        if not dimension:
            raise ValueError(f"Unknown namespace: {namespace}")
        return dimension


class CostExplorer:
    """Cost Explorer request constants"""

    METRIC = "UnblendedCost"
    GROUP_BY_SERVICE = [{"Type": "DIMENSION", "Key": "SERVICE"}]
    DATE_FORMAT = "%Y-%m-%d"
    DEFAULT_CURRENCY = "USD"
