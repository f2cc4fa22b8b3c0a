"""Base model for records read from the reporting API and results files."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Immutable record; unknown fields are dropped on validation."""

    # The API answers with more fields than the client reads
    model_config = ConfigDict(frozen=True, extra="ignore")
