"""Thin GitHub REST client used to feed the analysis pipeline."""

import base64
import logging
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

import requests

from .errors import DevlensError
from .models import ContributorStats, GitStats, WeeklyCommits
from .stack import count_extensions

logger = logging.getLogger(__name__)

_REPO_URL = re.compile(r'^(?:https?://)?(?:www\.)?(?:github\.com/)?([\w-]+)/([\w.-]+?)(?:\.git)?/?$')


class GitHubError(DevlensError):
    """A GitHub request failed."""


def parse_repo_url(url: str) -> Tuple[str, str]:
    """Split a GitHub URL (or ``owner/repo``) into owner and repository name."""
    match = _REPO_URL.match(url.strip())
    if not match:
        raise ValueError(f"Not a GitHub repository URL: {url}")
    return match.group(1), match.group(2)


class GitHubClient:
    """Fetches tree listings, file contents and activity statistics."""

    def __init__(self, token: Optional[str] = None, api_url: str = "https://api.github.com",
                 timeout: float = 10.0, branches: Sequence[str] = ("main", "master"),
                 session: Optional[requests.Session] = None):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.branches = list(branches)
        self.session = session or requests.Session()
        self.session.headers["Accept"] = "application/vnd.github.v3+json"
        if token:
            self.session.headers["Authorization"] = f"token {token}"

    @classmethod
    def from_config(cls, settings, token: Optional[str] = None) -> "GitHubClient":
        return cls(
            token=token or settings.github_token,
            api_url=settings.github_api_url,
            timeout=settings.request_timeout,
            branches=settings.default_branches,
        )

    def _get(self, path: str) -> requests.Response:
        url = f"{self.api_url}/{path.lstrip('/')}"
        logger.debug(f"GET {url}")
        return self.session.get(url, timeout=self.timeout)

    def fetch_tree(self, owner: str, repo: str, branch: Optional[str] = None) -> Tuple[str, List[Dict]]:
        """Return the resolved branch and the recursive tree listing."""
        candidates = [branch] if branch else self.branches
        for candidate in candidates:
            response = self._get(f"repos/{owner}/{repo}/git/trees/{candidate}?recursive=1")
            if response.ok:
                data = response.json()
                if data.get("truncated"):
                    logger.warning(f"Tree listing for {owner}/{repo} was truncated by GitHub")
                return candidate, data.get("tree", [])
            logger.debug(f"Branch {candidate} not found for {owner}/{repo} ({response.status_code})")

        raise GitHubError(f"Repository branch not found ({'/'.join(candidates)}) for {owner}/{repo}")

    def fetch_file(self, owner: str, repo: str, path: str, branch: Optional[str] = None) -> str:
        """Return a file's decoded text."""
        endpoint = f"repos/{owner}/{repo}/contents/{path}"
        if branch:
            endpoint += f"?ref={branch}"
        response = self._get(endpoint)
        if not response.ok:
            raise GitHubError(f"Could not fetch {path} from {owner}/{repo} ({response.status_code})")

        content = response.json().get("content", "")
        return base64.b64decode(content).decode("utf-8", errors="replace")

    def fetch_stats(self, owner: str, repo: str, entries: Optional[List[Dict]] = None) -> GitStats:
        """Summarise weekly commits and contributors; empty when GitHub has none ready."""
        commits_res = self._get(f"repos/{owner}/{repo}/stats/commit_activity")
        contributors_res = self._get(f"repos/{owner}/{repo}/stats/contributors")
        extensions = count_extensions(entries or [])

        # GitHub answers 202 while it computes statistics
        if commits_res.status_code != 200 or contributors_res.status_code != 200:
            logger.info(f"Statistics not available yet for {owner}/{repo}")
            return GitStats(extensions=extensions)

        commits = [
            WeeklyCommits(
                date=datetime.fromtimestamp(week["week"], tz=timezone.utc).date().isoformat(),
                count=week.get("total", 0),
            )
            for week in commits_res.json()
        ][-12:]

        contributors = [
            ContributorStats(
                author=(c.get("author") or {}).get("login", "unknown"),
                commits=c.get("total", 0),
                additions=sum(w.get("a", 0) for w in c.get("weeks", [])),
                deletions=sum(w.get("d", 0) for w in c.get("weeks", [])),
            )
            for c in contributors_res.json()
        ]
        contributors.sort(key=lambda c: c.commits, reverse=True)

        return GitStats(commits=commits, contributors=contributors, extensions=extensions)
