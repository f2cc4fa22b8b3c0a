"""Configuration for the reporting client."""

import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, SecretStr
from yarl import URL

DEFAULT_URL = "https://app.testomat.io"

ENV_VARS: Mapping[str, str] = {
    "api_key": "TESTOMATIO",
    "url": "TESTOMATIO_URL",
    "title": "TESTOMATIO_TITLE",
    "group_title": "TESTOMATIO_RUNGROUP_TITLE",
    "env": "TESTOMATIO_ENV",
}


class TestomatConfig(BaseModel):
    """Configuration for the Testomat.io reporting client."""

    __test__ = False

    api_key: SecretStr
    # Validated when the run is created, an invalid URL must not fail startup
    url: str = DEFAULT_URL
    title: str | None = None
    parallel: bool = False
    group_title: str | None = None
    env: str | None = None
    colors: bool = True

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None, **overrides: Any
    ) -> "TestomatConfig":
        """Build configuration from TESTOMATIO_* variables.

        Explicit keyword overrides win over the environment; ``None`` overrides
        are ignored.
        """
        if environ is None:
            environ = os.environ

        values: dict[str, Any] = {
            name: environ[var] for name, var in ENV_VARS.items() if environ.get(var)
        }
        if environ.get("NO_COLOR"):
            values["colors"] = False
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @property
    def base_url(self) -> str:
        """Reporting service URL without surrounding whitespace."""
        return self.url.strip()

    @property
    def has_valid_url(self) -> bool:
        """Whether the reporting URL is an absolute URL with a host."""
        try:
            url = URL(self.base_url)
        except ValueError:
            return False
        return url.scheme in {"http", "https"} and bool(url.host)
