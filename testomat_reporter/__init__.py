"""Reporting client streaming test results to Testomat.io."""

from testomat_reporter.client import TestomatClient
from testomat_reporter.config import TestomatConfig
from testomat_reporter.models.result import Failure, TestData
from testomat_reporter.run_store import EnvRunStore, MemoryRunStore

__all__ = [
    "EnvRunStore",
    "Failure",
    "MemoryRunStore",
    "TestData",
    "TestomatClient",
    "TestomatConfig",
]
