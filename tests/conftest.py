"""Shared pytest fixtures for test files."""

from __future__ import annotations

import pytest
from botocore.exceptions import ClientError

from tests.s3_test_utils import FakeS3Client


class _StubBotoClient:
    """Stand-in for boto3 clients that refuses to talk to AWS."""

    def __init__(self, service_name: str, **kwargs):
        self.service_name = service_name
        self.region_name = kwargs.get("region_name")
        self.kwargs = kwargs
        self.exceptions = ClientError

    def __getattr__(self, name: str):
        def _method(*args, **kwargs):
            del args, kwargs
            raise AssertionError(f"Unexpected AWS call {self.service_name}.{name} in a test")

        return _method


@pytest.fixture(autouse=True)
def stub_boto3_client(monkeypatch):
    """Replace boto3.client with a stub so tests don't call real AWS."""

    def fake_client(service_name, **kwargs):
        return _StubBotoClient(service_name, **kwargs)

    monkeypatch.setattr("boto3.client", fake_client)


@pytest.fixture(name="versioned_bucket_client")
def fixture_versioned_bucket_client():
    """Bucket with current objects {100, 200, 300} and non-current versions {50, 75}."""
    return FakeS3Client(current=[100, 200, 300], noncurrent=[50, 75], page_size=2)


@pytest.fixture(name="multipart_bucket_client")
def fixture_multipart_bucket_client():
    """Bucket with one current object and one in-progress upload with parts {10, 20, 30}."""
    return FakeS3Client(
        current=[1000],
        noncurrent=[],
        uploads={("video.mp4", "upload-1"): [10, 20, 30]},
        page_size=2,
    )
