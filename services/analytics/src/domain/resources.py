"""App id -> AWS/App Store resource lookup.

Pure in-memory lookup over a static table; never performs I/O and never
raises for an unknown or empty app id.
"""

from __future__ import annotations

from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field


def split_names(raw: str) -> list[str]:
    """Split a comma-separated env value, dropping blanks and whitespace."""
    return [part.strip() for part in raw.split(",") if part.strip()]


class AppConfig(BaseModel):
    """Configuration for a single monitored application."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    app_store_id: str = ""
    environment: str = "dev"
    lambda_functions: list[str] = Field(default_factory=list)
    api_gateway: str = ""
    dynamodb_tables: list[str] = Field(default_factory=list)


class ResourceSet(BaseModel):
    """Resources owned by one app, in declaration order."""

    model_config = ConfigDict(frozen=True)

    lambda_functions: tuple[str, ...] = ()
    dynamodb_tables: tuple[str, ...] = ()
    api_gateway: str | None = None
    app_store_id: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (
            self.lambda_functions
            or self.dynamodb_tables
            or self.api_gateway
            or self.app_store_id
        )

    @property
    def health_resource_count(self) -> int:
        """Resources the health classifier evaluates individually."""
        return (
            len(self.lambda_functions)
            + len(self.dynamodb_tables)
            + (1 if self.api_gateway else 0)
        )


class ResourceResolver:
    def __init__(self, apps: Mapping[str, AppConfig]):
        self._apps = dict(apps)

    def get_app(self, app_id: str) -> AppConfig | None:
        return self._apps.get(app_id)

    def all_apps(self) -> list[AppConfig]:
        return sorted(self._apps.values(), key=lambda a: a.id)

    def get_lambda_functions(self, app_id: str) -> list[str]:
        app = self.get_app(app_id)
        return list(app.lambda_functions) if app else []

    def get_dynamodb_tables(self, app_id: str) -> list[str]:
        app = self.get_app(app_id)
        return list(app.dynamodb_tables) if app else []

    def get_api_gateway(self, app_id: str) -> str:
        app = self.get_app(app_id)
        return app.api_gateway if app else ""

    def get_app_store_id(self, app_id: str) -> str:
        app = self.get_app(app_id)
        return app.app_store_id if app else ""

    def resolve(self, app_id: str) -> ResourceSet:
        """Resources for ``app_id``; empty ResourceSet for unknown ids."""
        return ResourceSet(
            lambda_functions=tuple(self.get_lambda_functions(app_id)),
            dynamodb_tables=tuple(self.get_dynamodb_tables(app_id)),
            api_gateway=self.get_api_gateway(app_id) or None,
            app_store_id=self.get_app_store_id(app_id) or None,
        )
