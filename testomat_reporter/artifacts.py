"""Interface to the artifact upload subsystem."""

import logging
from typing import Any, Protocol

log = logging.getLogger(__name__)

type ArtifactRef = Any


class ArtifactUploader(Protocol):
    """Uploads a file attached to a test result.

    Implementations should not raise: a failed upload resolves to ``None`` and
    is left out of the report.
    """

    async def upload(self, file: str, run_id: str) -> ArtifactRef | None:
        """Upload a file for a run and return a reference to embed in the report."""


class DisabledUploader:
    """Uploader used when no artifact storage is configured."""

    async def upload(self, file: str, run_id: str) -> ArtifactRef | None:
        log.debug("Artifact storage not configured, skipping upload of %s", file)
        return None
