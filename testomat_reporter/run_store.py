"""Process-scoped storage for the shared run identifier.

Cooperating processes (parallel workers, reporters launched by the same
tooling session) report into one run. The first one to create the run
publishes its identifier here, the others pick it up on construction.
"""

import os
from collections.abc import MutableMapping
from dataclasses import dataclass, field
from typing import Protocol

RUN_ENV_VAR = "TESTOMATIO_RUN"


class RunStore(Protocol):
    """Get/set handle for the run identifier shared by reporting clients."""

    def get(self) -> str | None:
        """Return the shared run id, if one was published."""

    def set(self, run_id: str) -> None:
        """Publish the run id for other clients."""


@dataclass(kw_only=True)
class EnvRunStore:
    """Run store backed by an environment variable.

    Child processes inherit the variable, so workers spawned after the run was
    created report into the same run.
    """

    environ: MutableMapping[str, str] = field(default_factory=lambda: os.environ)
    key: str = RUN_ENV_VAR

    def get(self) -> str | None:
        return self.environ.get(self.key) or None

    def set(self, run_id: str) -> None:
        self.environ[self.key] = run_id


@dataclass(kw_only=True)
class MemoryRunStore:
    """Run store that lives as long as the object itself."""

    run_id: str | None = None

    def get(self) -> str | None:
        return self.run_id

    def set(self, run_id: str) -> None:
        self.run_id = run_id
