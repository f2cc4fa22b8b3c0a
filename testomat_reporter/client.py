"""Client reporting test runs to Testomat.io."""

import asyncio
import logging
from collections.abc import AsyncGenerator, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from functools import partial
from typing import Any

import aiohttp

from testomat_reporter.artifacts import ArtifactRef, ArtifactUploader, DisabledUploader
from testomat_reporter.config import TestomatConfig
from testomat_reporter.errors import ReportRejectedError
from testomat_reporter.formatting import ErrorFormatter
from testomat_reporter.models.result import RunStatus, TestData, TestStatus
from testomat_reporter.models.run import CreatedRunResponse, Run
from testomat_reporter.payload import build_test_payload, dumps
from testomat_reporter.queue import RequestQueue
from testomat_reporter.run_store import EnvRunStore, RunStore

log = logging.getLogger(__name__)

STATUS_EVENTS: Mapping[str, str] = {
    "passed": "pass",
    "failed": "fail",
    "finished": "finish",
}
PARALLEL_SUFFIX = "_parallel"
JSON_HEADERS = {"Content-Type": "application/json"}


def status_event(status: str, is_parallel: bool = False) -> str:
    """Map a run status to the status event understood by the API.

    Raises:
        ValueError: If the status has no matching event

    """
    try:
        event = STATUS_EVENTS[status]
    except KeyError:
        raise ValueError(f"Unknown run status: {status!r}") from None
    return f"{event}{PARALLEL_SUFFIX}" if is_parallel else event


def public_run_url(base_url: str, report_url: str) -> str | None:
    """Rebase the report URL returned by the API onto the configured host."""
    path = "/".join(report_url.split("/")[3:])
    if not path:
        return None
    return f"{base_url}/{path}"


async def _error_message(response: aiohttp.ClientResponse) -> str:
    try:
        data = await response.json(content_type=None)
    except ValueError:
        return await response.text()
    if isinstance(data, Mapping):
        return str(data.get("message") or "")
    return ""


@dataclass(kw_only=True)
class TestomatClient:
    """Reports one test run, serializing all requests through one queue.

    None of the public methods raise on reporting failures: errors are logged
    and the returned coroutine completes normally. A test run must not fail
    because its report could not be delivered.

    The run id is shared with other clients through ``run_store``. A run id
    already present there on construction is resumed instead of creating a
    new run.
    """

    __test__ = False

    config: TestomatConfig
    session: aiohttp.ClientSession = field(repr=False)
    uploader: ArtifactUploader = field(default_factory=DisabledUploader)
    run_store: RunStore = field(default_factory=EnvRunStore)
    formatter: ErrorFormatter = field(init=False, repr=False)
    queue: RequestQueue = field(default_factory=RequestQueue, init=False)
    run: Run | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.formatter = ErrorFormatter(colors=self.config.colors)
        if run_id := self.run_store.get():
            self.run = Run(run_id=run_id)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls,
        config: TestomatConfig,
        *,
        uploader: ArtifactUploader | None = None,
        run_store: RunStore | None = None,
    ) -> AsyncGenerator["TestomatClient", None]:
        """Create client with managed session lifecycle.

        Pending reports are delivered before the session is closed.
        """
        collaborators: dict[str, Any] = {}
        if uploader is not None:
            collaborators["uploader"] = uploader
        if run_store is not None:
            collaborators["run_store"] = run_store

        async with aiohttp.ClientSession() as session:
            client = cls(config=config, session=session, **collaborators)
            try:
                yield client
            finally:
                await client.queue.join()

    @property
    def run_id(self) -> str | None:
        """Identifier of the current run, if one was created or resumed."""
        return self.run.run_id if self.run else None

    @property
    def api_key(self) -> str:
        return self.config.api_key.get_secret_value().strip()

    def _reporter_url(self, *parts: str) -> str:
        return "/".join([self.config.base_url, "api", "reporter", *parts])

    async def _send(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        data: str | None = None,
    ) -> Any:
        """Send a request, returning the decoded JSON body if there is one.

        Raises:
            ReportRejectedError: If the service answers with status >= 400

        """
        headers = JSON_HEADERS if data is not None else None
        async with self.session.request(
            method, url, json=json, data=data, headers=headers
        ) as response:
            if response.status >= 400:
                raise ReportRejectedError(
                    response.status, await _error_message(response)
                )
            if response.content_type != "application/json":
                return None
            return await response.json()

    def _run_params(self) -> dict[str, Any]:
        return {
            "api_key": self.api_key,
            "title": self.config.title,
            "parallel": self.config.parallel,
            "group_title": self.config.group_title,
            "env": self.config.env,
        }

    async def create_run(self) -> str | None:
        """Create a new run, or resume the run published in the run store.

        Returns:
            The run id, or None if the run could not be created

        """
        if not self.config.has_valid_url:
            log.error(
                "Error creating report on Testomat.io, report url '%s' is invalid",
                self.config.url,
            )
            return None

        params = self._run_params()

        if run_id := self.run_store.get():
            if self.run_id != run_id:
                self.run = Run(run_id=run_id)
            self.queue.enqueue(
                partial(self._send, "PUT", self._reporter_url(run_id), json=params),
                on_error=self._log_resume_error,
            )
            log.info("Reporting into existing run %s", run_id)
            return run_id

        return await self.queue.enqueue(
            partial(self._create_run, params), on_error=self._log_create_error
        )

    async def _create_run(self, params: Mapping[str, Any]) -> str:
        data = await self._send("POST", self._reporter_url(), json=params)
        response = CreatedRunResponse.model_validate(data)
        self.run = Run(
            run_id=response.uid,
            url=public_run_url(self.config.base_url, response.url),
        )
        log.info("Report created. Report ID: %s", response.uid)
        self.run_store.set(response.uid)
        return response.uid

    def _log_create_error(self, exc: Exception) -> None:
        log.error(
            "Error creating report on Testomat.io, please check if your API key "
            "is valid. Skipping report (%s)",
            exc,
        )

    def _log_resume_error(self, exc: Exception) -> None:
        log.error("Error updating existing run on Testomat.io: %s", exc)

    async def add_test_run(
        self,
        test_id: str | None,
        status: TestStatus,
        data: TestData | None = None,
    ) -> None:
        """Report the result of one test.

        Args:
            test_id: Known Testomat.io test id, wins over ``data.test_id``
            status: Outcome of the test
            data: Message, error, timing, files and steps of the test

        """
        if data is None:
            data = TestData()

        message, stack = self._format_result(data)

        uploads: list[asyncio.Future[ArtifactRef | None]] = []
        if self.run is not None:
            uploads = [
                asyncio.ensure_future(self.uploader.upload(file, self.run.run_id))
                for file in data.files
            ]

        await self.queue.enqueue(
            partial(
                self._submit_test_run,
                test_id=test_id or data.test_id,
                status=status,
                data=data,
                message=message,
                stack=stack,
                uploads=uploads,
            ),
            on_error=partial(self._log_test_run_error, data.title),
        )

    def _format_result(self, data: TestData) -> tuple[str, str]:
        try:
            return self.formatter.format(
                data.failure, data.message, data.steps, data.stack
            )
        except Exception:
            log.warning(
                "%s: could not format test result", data.title, exc_info=True
            )
            return data.message, data.stack

    async def _submit_test_run(
        self,
        *,
        test_id: str | None,
        status: TestStatus,
        data: TestData,
        message: str,
        stack: str,
        uploads: Sequence[asyncio.Future[ArtifactRef | None]],
    ) -> None:
        if self.run is None:
            return

        artifacts = await self._collect_artifacts(uploads)
        payload = build_test_payload(
            api_key=self.api_key,
            status=status,
            stack=stack,
            message=message,
            test_id=test_id,
            title=data.title,
            suite_title=data.suite_title,
            suite_id=data.suite_id,
            files=data.files,
            steps=data.steps,
            example=data.example,
            run_time=data.time,
            artifacts=artifacts,
        )
        await self._send(
            "POST", self._reporter_url(self.run.run_id, "testrun"), data=dumps(payload)
        )

    async def _collect_artifacts(
        self, uploads: Sequence[asyncio.Future[ArtifactRef | None]]
    ) -> list[ArtifactRef | None]:
        artifacts: list[ArtifactRef | None] = []
        for result in await asyncio.gather(*uploads, return_exceptions=True):
            if isinstance(result, BaseException):
                log.warning("Artifact upload failed: %s", result)
                artifacts.append(None)
            else:
                artifacts.append(result)
        return artifacts

    def _log_test_run_error(self, title: str | None, exc: Exception) -> None:
        if isinstance(exc, ReportRejectedError):
            log.warning(
                "%s: report couldn't be processed: (%d) %s",
                title,
                exc.status,
                exc.message,
            )
        elif isinstance(exc, (aiohttp.ClientError, TimeoutError)):
            log.warning("%s: report couldn't be processed: %s", title, exc)
        else:
            log.error("%s: report couldn't be processed", title, exc_info=exc)

    async def update_run_status(
        self, status: RunStatus, is_parallel: bool = False
    ) -> None:
        """Finish the run with an aggregate status.

        Args:
            status: Aggregate status of the run
            is_parallel: Whether this process is one of several parallel workers

        """
        await self.queue.enqueue(
            partial(self._finish_run, status, is_parallel),
            on_error=self._log_status_error,
        )

    async def _finish_run(self, status: RunStatus, is_parallel: bool) -> None:
        if self.run is None:
            return

        await self._send(
            "PUT",
            self._reporter_url(self.run.run_id),
            json={
                "api_key": self.api_key,
                "status_event": status_event(status, is_parallel),
                "status": status,
            },
        )
        if self.run.url:
            log.info("Report saved. Report URL: %s", self.run.url)

    def _log_status_error(self, exc: Exception) -> None:
        log.error("Error updating status, skipping: %s", exc)
