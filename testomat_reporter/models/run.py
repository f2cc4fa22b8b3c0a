"""Models for the remote run record."""

from pydantic import Field

from testomat_reporter.models.base import Model


class Run(Model):
    """Run created (or resumed) on the reporting service."""

    run_id: str = Field(..., description="Remote-assigned run identifier")
    url: str | None = Field(default=None, description="Public URL of the run report")


class CreatedRunResponse(Model):
    """Response from the create run API."""

    uid: str
    url: str = ""
