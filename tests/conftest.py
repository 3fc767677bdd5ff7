"""Pytest configuration and shared fixtures."""

import io

import pytest

from mongowrap.core.build_log import BuildLog
from mongowrap.domain.config import Installation
from tests.helpers.fakes import FakeChannel, FakeLauncher, FakeProcess


@pytest.fixture
def log_stream() -> io.StringIO:
    """In-memory stream that receives build log output."""
    return io.StringIO()


@pytest.fixture
def build_log(log_stream: io.StringIO) -> BuildLog:
    """BuildLog writing to log_stream."""
    return BuildLog(log_stream)


@pytest.fixture
def installation() -> Installation:
    """Installation with a single default executable and no defaults."""
    return Installation(name="mongo-7", executable={"default": "/opt/mongo/bin/mongod"})


@pytest.fixture
def fake_process() -> FakeProcess:
    return FakeProcess()


@pytest.fixture
def fake_launcher(fake_process: FakeProcess) -> FakeLauncher:
    return FakeLauncher(fake_process)


@pytest.fixture
def fake_channel() -> FakeChannel:
    return FakeChannel()
