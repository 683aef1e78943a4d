"""GitHub REST API v3 client plus the OAuth device-flow endpoints."""

import base64
import logging
import re
import subprocess
import time
from typing import Any

import httpx
from pydantic import ValidationError

from gitpolish.errors import (
    AuthenticationError,
    GitHubError,
    NetworkError,
    ProtocolError,
    RateLimitError,
    ResourceNotFoundError,
)
from gitpolish.models import CreatedIssue, GitHubUser, ReadmeFile, Repository

logger = logging.getLogger(__name__)

BASE_URL = "https://api.github.com"
OAUTH_URL = "https://github.com"

DEVICE_CODE_PATH = "/login/device/code"
ACCESS_TOKEN_PATH = "/login/oauth/access_token"
DEVICE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"
DEVICE_SCOPES = "repo read:user"

_REMOTE_RE = re.compile(r"github\.com[:/](?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$")


def _repo_from_git_remote() -> str | None:
    """Return "owner/repo" for the origin remote of the current checkout, if it is on github.com."""
    result = subprocess.run(["git", "remote", "get-url", "origin"], capture_output=True, text=True)
    if result.returncode != 0 or not result.stdout:
        return None
    match = _REMOTE_RE.search(result.stdout.strip())
    if not match:
        return None
    return f"{match['owner']}/{match['repo']}"


def _retry_after(response: httpx.Response) -> float | None:
    header = response.headers.get("retry-after")
    if header:
        try:
            return float(header)
        except ValueError:
            return None
    if response.headers.get("x-ratelimit-remaining") == "0":
        reset = response.headers.get("x-ratelimit-reset")
        if reset and reset.isdigit():
            return max(0.0, int(reset) - time.time())
    return None


def _error_message(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200] or None
    if isinstance(payload, dict):
        message = payload.get("message")
        errors = payload.get("errors")
        if errors:
            message = f"{message}: {errors}"
        return message
    return None


def _error_for(action: str, response: httpx.Response) -> GitHubError:
    status = response.status_code
    message = _error_message(response)
    retry_after = _retry_after(response)
    if status == 401:
        return AuthenticationError(action, status, "Bad credentials. Run: git-polish login")
    if status == 404:
        return ResourceNotFoundError(action, status, message)
    rate_limited = retry_after is not None or "rate limit" in (message or "").lower()
    if status == 429 or (status == 403 and rate_limited):
        return RateLimitError(action, status, message, retry_after)
    return GitHubError(action, status, message)


def _repository_from_node(node: dict) -> Repository:
    return Repository(
        name=node["name"],
        full_name=node["full_name"],
        owner=node["owner"]["login"],
        description=node.get("description"),
        html_url=node["html_url"],
        private=node.get("private", False),
        language=node.get("language"),
        stargazers_count=node.get("stargazers_count", 0),
        forks_count=node.get("forks_count", 0),
    )


class GitHubClient:
    def __init__(
        self,
        token: str | None = None,
        *,
        base_url: str = BASE_URL,
        oauth_url: str = OAUTH_URL,
        http: httpx.Client | None = None,
        timeout: float = 30,
    ) -> None:
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._oauth_url = oauth_url.rstrip("/")
        self._http = http or httpx.Client()
        self._timeout = timeout

    def with_token(self, token: str) -> "GitHubClient":
        """Return a client sharing this one's connection pool but authenticated with token."""
        return GitHubClient(
            token,
            base_url=self._base_url,
            oauth_url=self._oauth_url,
            http=self._http,
            timeout=self._timeout,
        )

    def close(self) -> None:
        self._http.close()

    @property
    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "git-polish",
        }
        if self._token:
            headers["Authorization"] = f"token {self._token}"
        return headers

    # ------------------------------------------------------------------
    # transport
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, action: str, **kwargs: Any) -> httpx.Response:
        logger.debug("%s %s (%s)", method, path, action)
        try:
            response = self._http.request(
                method,
                f"{self._base_url}{path}",
                headers=self._headers,
                timeout=self._timeout,
                **kwargs,
            )
        except httpx.TransportError as exc:
            raise NetworkError(action, str(exc)) from exc
        if not response.is_success:
            raise _error_for(action, response)
        return response

    @staticmethod
    def _json(response: httpx.Response, action: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise ProtocolError(action, "response body is not JSON") from exc

    def _get(self, path: str, action: str, params: dict | None = None) -> Any:
        return self._json(self._request("GET", path, action, params=params or {}), action)

    def _post(self, path: str, action: str, body: dict) -> Any:
        return self._json(self._request("POST", path, action, json=body), action)

    def _put(self, path: str, action: str, body: dict) -> Any:
        return self._json(self._request("PUT", path, action, json=body), action)

    def _patch(self, path: str, action: str, body: dict) -> Any:
        return self._json(self._request("PATCH", path, action, json=body), action)

    def _post_form(self, path: str, action: str, data: dict[str, str]) -> dict:
        """POST a form to the OAuth host. Error payloads are returned, not raised."""
        try:
            response = self._http.post(
                f"{self._oauth_url}{path}",
                data=data,
                headers={"Accept": "application/json", "User-Agent": "git-polish"},
                timeout=self._timeout,
            )
        except httpx.TransportError as exc:
            raise NetworkError(action, str(exc)) from exc
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProtocolError(action, f"HTTP {response.status_code}, body is not JSON") from exc
        if not isinstance(payload, dict):
            raise ProtocolError(action, f"HTTP {response.status_code}, expected a JSON object")
        return payload

    # ------------------------------------------------------------------
    # OAuth device flow
    # ------------------------------------------------------------------

    def request_device_code(self, client_id: str, scope: str = DEVICE_SCOPES) -> dict:
        return self._post_form(DEVICE_CODE_PATH, "request device code", {"client_id": client_id, "scope": scope})

    def poll_access_token(self, client_id: str, device_code: str) -> dict:
        return self._post_form(
            ACCESS_TOKEN_PATH,
            "poll access token",
            {"client_id": client_id, "device_code": device_code, "grant_type": DEVICE_GRANT_TYPE},
        )

    # ------------------------------------------------------------------
    # REST
    # ------------------------------------------------------------------

    def get_user(self) -> GitHubUser:
        node = self._get("/user", "get user")
        if not isinstance(node, dict) or "login" not in node:
            raise ProtocolError("get user", "missing 'login'")
        try:
            return GitHubUser.model_validate(node)
        except ValidationError as exc:
            raise ProtocolError("get user", str(exc)) from exc

    def list_repos(self) -> list[Repository]:
        """Every repository visible to the user, most recently updated first."""
        result: list[Repository] = []
        page = 1
        while True:
            nodes = self._get(
                "/user/repos",
                "list repositories",
                params={"page": str(page), "per_page": "100", "sort": "updated"},
            )
            result.extend(_repository_from_node(node) for node in nodes)
            if len(nodes) < 100:
                return result
            page += 1

    def get_repo(self, owner: str, repo: str) -> Repository:
        return _repository_from_node(self._get(f"/repos/{owner}/{repo}", "get repository"))

    def list_contents(self, owner: str, repo: str, path: str = "") -> list[str]:
        """Names of the entries at path (top level by default); directories end with '/'."""
        nodes = self._get(f"/repos/{owner}/{repo}/contents/{path}", "list contents")
        if not isinstance(nodes, list):
            return [nodes["name"]]
        return [node["name"] + ("/" if node.get("type") == "dir" else "") for node in nodes]

    def get_readme(self, owner: str, repo: str) -> ReadmeFile | None:
        try:
            node = self._get(f"/repos/{owner}/{repo}/readme", "get readme")
        except ResourceNotFoundError:
            return None
        try:
            content = base64.b64decode(node["content"]).decode("utf-8", errors="replace")
            return ReadmeFile(path=node["path"], sha=node["sha"], content=content)
        except (KeyError, ValueError) as exc:
            raise ProtocolError("get readme", str(exc)) from exc

    def put_readme(self, owner: str, repo: str, content: str, message: str = "Update README via git-polish") -> str:
        """Create or update the README; returns the commit URL."""
        existing = self.get_readme(owner, repo)
        path = existing.path if existing else "README.md"
        body: dict = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if existing:
            body["sha"] = existing.sha
        node = self._put(f"/repos/{owner}/{repo}/contents/{path}", "update readme", body)
        return node.get("commit", {}).get("html_url", "")

    def update_description(self, owner: str, repo: str, description: str) -> Repository:
        node = self._patch(f"/repos/{owner}/{repo}", "update description", {"description": description})
        return _repository_from_node(node)

    def create_issue(self, owner: str, repo: str, title: str, body: str, labels: list[str]) -> CreatedIssue:
        node = self._post(
            f"/repos/{owner}/{repo}/issues",
            "create issue",
            {"title": title, "body": body, "labels": labels},
        )
        if not isinstance(node, dict) or "number" not in node or "title" not in node:
            raise ProtocolError("create issue", "missing 'number' or 'title'")
        try:
            return CreatedIssue(number=node["number"], title=node["title"], url=node.get("html_url"))
        except ValidationError as exc:
            raise ProtocolError("create issue", str(exc)) from exc
