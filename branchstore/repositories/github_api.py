"""
Shared plumbing for the GitHub REST clients (document store and issue log).

Both clients talk to the same data repository with the same headers, tokens
and failure policy: transport errors are logged and surface as ``None``, never
as exceptions. They can share one ``httpx.Client``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import httpx

from branchstore.core.config import Settings
from branchstore.repositories.base import StoreConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreConfig:
    """Everything the GitHub clients need, resolved once at construction."""

    owner: str
    repo: str
    token: str = ""
    api_url: str = "https://api.github.com"
    api_version: str = "2022-11-28"
    timeout: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "StoreConfig":
        owner, _, repo = (settings.data_repo or "").partition("/")
        if not owner or not repo or "/" in repo:
            raise StoreConfigError("GITHUB_DATA_REPO must be configured as 'owner/name'.")
        return cls(
            owner=owner,
            repo=repo,
            token=settings.service_token,
            api_url=settings.github_api_url,
            api_version=settings.github_api_version,
            timeout=settings.http_timeout,
        )


def short_body(response: httpx.Response) -> str:
    return (response.text or "")[:300]


class GitHubApi:
    """Authenticated access to ``/repos/{owner}/{repo}``; owns its client unless given one."""

    def __init__(
        self,
        config: StoreConfig,
        *,
        transport: httpx.BaseTransport | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.Client(
            base_url=config.api_url,
            timeout=httpx.Timeout(config.timeout),
            transport=transport,
            headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": config.api_version,
            },
        )
        self._prefix = f"/repos/{quote(config.owner, safe='')}/{quote(config.repo, safe='')}"

    @property
    def client(self) -> httpx.Client:
        return self._client

    def _auth(self, token: Optional[str], *, write: bool) -> dict:
        value = token or self.config.token
        if not value:
            if write:
                raise StoreConfigError("A GitHub token is required for write operations.")
            return {}
        return {"Authorization": f"Bearer {value}"}

    def _request(
        self,
        method: str,
        url: str,
        token: Optional[str],
        *,
        write: bool = False,
        operation: str,
        **kwargs,
    ) -> Optional[httpx.Response]:
        try:
            return self._client.request(method, url, headers=self._auth(token, write=write), **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("[github] %s: request failed: %s", operation, exc)
            return None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
