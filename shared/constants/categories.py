from enum import Enum


class MetricCategory(str, Enum):
    """Metric domains queried by the aggregator.

    Declaration order is the evaluation order used for health issues.
    """

    LAMBDA = "lambda"
    API_GATEWAY = "apiGateway"
    DYNAMODB = "dynamoDB"
    COST = "cost"
    APP_STORE = "appStore"

    @classmethod
    def health_categories(cls) -> list["MetricCategory"]:
        """Categories whose resources feed the health classifier."""
        return [cls.LAMBDA, cls.API_GATEWAY, cls.DYNAMODB]
