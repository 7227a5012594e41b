"""Pytest configuration shared by the whole s3du test suite."""

# pylint: disable=wrong-import-position

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest

ISOLATED_ENV_VARS = (
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_SESSION_TOKEN",
    "AWS_REGION",
    "AWS_DEFAULT_REGION",
    "S3DU_BACKEND",
    "S3DU_OBJECT_VERSIONS",
    "S3DU_REGION",
    "S3DU_ENDPOINT",
    "S3DU_WORKERS",
)


@pytest.fixture(autouse=True)
def mock_aws_env_file(tmp_path, monkeypatch):
    """Point AWS_ENV_FILE at a temporary .env holding mock credentials.

    Keeps tests from reading the developer's ~/.env, and keeps S3DU_* settings
    from the surrounding shell out of configuration tests.
    """
    env_file = tmp_path / ".env"
    env_file.write_text("AWS_ACCESS_KEY_ID=test_key\nAWS_SECRET_ACCESS_KEY=test_secret\n")
    monkeypatch.setenv("AWS_ENV_FILE", str(env_file))
    for name in ISOLATED_ENV_VARS:
        # setenv first so the original value is restored even if load_dotenv sets it later
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    yield str(env_file)
