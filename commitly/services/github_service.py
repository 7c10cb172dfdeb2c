"""GitHub data source: PyGithub for REST, httpx for GraphQL and the streak aggregator."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx
from github import Github, GithubException

from commitly.config import settings
from commitly.services.errors import GitHubDataError

logger = logging.getLogger(__name__)

CONTRIBUTIONS_QUERY = """
query($login: String!, $from: DateTime!, $to: DateTime!) {
  user(login: $login) {
    contributionsCollection(from: $from, to: $to) {
      contributionCalendar {
        totalContributions
        weeks {
          contributionDays {
            date
            contributionCount
            color
          }
        }
      }
    }
  }
}
"""

# The public events feed is capped by GitHub at 300 events
MAX_EVENTS = 300


def _iso(value) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    return str(value)


class GitHubService:
    """Reads repositories, languages, activity events and contribution stats."""

    def __init__(self, access_token: str | None = None, http: httpx.AsyncClient | None = None):
        self._token = access_token if access_token is not None else settings.github_token
        self.gh = Github(self._token) if self._token else Github()
        self._http = http or httpx.AsyncClient(timeout=settings.http_timeout_seconds)

    async def close(self):
        self.gh.close()
        await self._http.aclose()

    # ── REST ──

    def get_login_for_provider_id(self, provider_uid: str | int) -> str | None:
        """Resolve a GitHub login from the identity provider's numeric user id."""
        try:
            return self.gh.get_user_by_id(int(provider_uid)).login
        except (GithubException, OSError, ValueError) as e:
            logger.warning("Failed to resolve GitHub login for %s: %s", provider_uid, e)
            return None

    def list_repos(self, login: str, limit: int = 20) -> list[dict]:
        """List a user's public repos, most recently updated first."""
        try:
            repos = []
            for i, repo in enumerate(self.gh.get_user(login).get_repos(sort="updated")):
                if i >= limit:
                    break
                repos.append({
                    "full_name": repo.full_name,
                    "name": repo.name,
                    "owner": repo.owner.login,
                    "description": repo.description,
                    "html_url": repo.html_url,
                    "language": repo.language,
                    "stargazers_count": repo.stargazers_count,
                    "updated_at": _iso(repo.updated_at),
                })
            return repos
        except (GithubException, OSError) as e:
            raise GitHubDataError(f"Failed to list repos for {login}: {e}") from e

    def get_repo_languages(self, repo_full_name: str) -> dict[str, int]:
        """Bytes of code per language for one repository."""
        try:
            return dict(self.gh.get_repo(repo_full_name).get_languages())
        except (GithubException, OSError) as e:
            raise GitHubDataError(f"Failed to get languages for {repo_full_name}: {e}") from e

    def list_repos_with_languages(self, login: str, limit: int = 20) -> list[dict]:
        """Repos enriched with language breakdowns; a failed enrichment leaves ``{}``."""
        repos = self.list_repos(login, limit=limit)
        for repo in repos:
            try:
                repo["languages"] = self.get_repo_languages(repo["full_name"])
            except GitHubDataError as e:
                logger.warning("Language enrichment skipped: %s", e)
                repo["languages"] = {}
        return repos

    def get_public_events(self, login: str, limit: int = MAX_EVENTS) -> list[dict]:
        """Public activity events, newest first."""
        try:
            events = []
            for i, event in enumerate(self.gh.get_user(login).get_public_events()):
                if i >= limit:
                    break
                events.append({
                    "id": event.id,
                    "type": event.type,
                    "created_at": _iso(event.created_at),
                    "repo": event.repo.name if event.repo else None,
                    "payload": event.payload or {},
                })
            return events
        except (GithubException, OSError) as e:
            raise GitHubDataError(f"Failed to fetch events for {login}: {e}") from e

    def get_push_events(self, login: str) -> list[dict]:
        return [e for e in self.get_public_events(login) if e["type"] == "PushEvent"]

    # ── GraphQL ──

    async def get_contribution_calendar(
        self, login: str, from_date: datetime, to_date: datetime
    ) -> dict:
        """Contribution calendar: ``{totalContributions, weeks: [{contributionDays: [...]}]}``."""
        if not self._token:
            raise GitHubDataError("GitHub GraphQL API requires a token")

        payload = {
            "query": CONTRIBUTIONS_QUERY,
            "variables": {"login": login, "from": _iso(from_date), "to": _iso(to_date)},
        }
        headers = {"Authorization": f"Bearer {self._token}", "Accept": "application/json"}
        try:
            resp = await self._http.post(settings.github_graphql_url, json=payload, headers=headers)
            resp.raise_for_status()
            body = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error("GitHub GraphQL error: %s %s", e.response.status_code, e.response.text[:200])
            raise GitHubDataError(f"GitHub GraphQL error: {e.response.status_code}") from e
        except (httpx.RequestError, ValueError) as e:
            raise GitHubDataError(f"GitHub GraphQL request failed: {e}") from e

        if body.get("errors"):
            raise GitHubDataError(f"GitHub GraphQL errors: {body['errors'][0].get('message')}")
        user = (body.get("data") or {}).get("user")
        if not user:
            raise GitHubDataError(f"GitHub user not found: {login}")
        return user["contributionsCollection"]["contributionCalendar"]

    # ── Streak aggregator ──

    async def get_streak(self, login: str) -> dict:
        """Current/longest streak and total contributions from the streak aggregator."""
        url = f"{settings.streak_api_url.rstrip('/')}/{login}"
        try:
            resp = await self._http.get(url, headers={"Accept": "application/json"})
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            raise GitHubDataError(f"Streak API error: {e.response.status_code}") from e
        except (httpx.RequestError, ValueError) as e:
            raise GitHubDataError(f"Streak API request failed: {e}") from e
