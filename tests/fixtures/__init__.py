"""Test fixtures for Bitbucket Activity DB."""

from .bitbucket_responses import (
    BITBUCKET_APP_USER_RESPONSE,
    BITBUCKET_USER_RESPONSE,
    ScriptedApi,
    api_url,
    commit_json,
    membership_json,
    page,
    pull_request_json,
    repository_json,
)
from .fakes import FakeDirectory, FakeIngestor

__all__ = [
    # Mock Bitbucket API responses
    "BITBUCKET_APP_USER_RESPONSE",
    "BITBUCKET_USER_RESPONSE",
    "api_url",
    "commit_json",
    "membership_json",
    "page",
    "pull_request_json",
    "repository_json",
    "ScriptedApi",
    # Orchestrator doubles
    "FakeDirectory",
    "FakeIngestor",
]
