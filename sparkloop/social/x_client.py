"""
X/Twitter API v2 client.

Reads mentions and the home timeline, executes replies, quotes, posts,
likes and follows, and reads public metrics for posted artifacts.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional
import logging

import aiohttp

from ..clock import parse_timestamp, utcnow
from ..config.settings import PlatformSettings
from ..exceptions import PlatformError
from ..models.decision import Decision, DecisionType
from ..models.outcome import EngagementMetrics
from ..models.stimulus import Stimulus, StimulusType
from .client import PlatformClient, PostResult

logger = logging.getLogger(__name__)

TWEET_FIELDS = "created_at,author_id,public_metrics,conversation_id"


@dataclass
class RateLimiter:
    """Simple sliding-window rate limiter for API calls."""
    max_requests: int
    window_seconds: int
    requests: list[datetime] = field(default_factory=list)

    async def acquire(self) -> None:
        """Wait until a request can be made."""
        now = utcnow()
        window_start = now - timedelta(seconds=self.window_seconds)

        # Remove old requests
        self.requests = [r for r in self.requests if r > window_start]

        if len(self.requests) >= self.max_requests:
            # Wait until oldest request expires
            wait_time = (self.requests[0] - window_start).total_seconds()
            logger.debug(f"Rate limited, waiting {wait_time:.1f}s")
            await asyncio.sleep(wait_time)

        self.requests.append(utcnow())


class XClient(PlatformClient):
    """
    Client for X/Twitter API v2 with a user-context token.

    Provides methods for:
    - Reading mentions and the home timeline
    - Posting replies, quotes and original posts
    - Liking posts and following accounts
    - Reading public metrics of posted artifacts
    """

    def __init__(self, settings: PlatformSettings):
        self.settings = settings
        self.base_url = settings.base_url.rstrip("/")
        self.rate_limiter = RateLimiter(
            max_requests=settings.max_requests_per_15min,
            window_seconds=900,  # 15 minutes
        )
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> XClient:
        """Async context manager entry."""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    async def _ensure_session(self) -> None:
        """Ensure HTTP session exists."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers=self._get_headers())

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    def _get_headers(self) -> dict[str, str]:
        """Get authentication headers."""
        return {
            "Authorization": f"Bearer {self.settings.user_access_token}",
            "Content-Type": "application/json",
        }

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json_data: Optional[dict] = None,
    ) -> dict:
        """Make an authenticated API request."""
        await self._ensure_session()

        url = f"{self.base_url}{endpoint}"

        for attempt in range(self.settings.max_retries):
            await self.rate_limiter.acquire()
            try:
                async with self._session.request(
                    method,
                    url,
                    params=params,
                    json=json_data,
                ) as response:
                    if response.status == 429:
                        reset_at = response.headers.get("x-rate-limit-reset")
                        wait = 60.0
                        if reset_at:
                            wait = max(1.0, float(reset_at) - utcnow().timestamp())
                        logger.warning(f"Rate limited on {endpoint}, waiting {wait:.0f}s")
                        await asyncio.sleep(wait)
                        continue

                    if response.status >= 400:
                        body = await response.text()
                        raise PlatformError(
                            f"{method} {endpoint} returned {response.status}: {body[:200]}",
                            status=response.status,
                        )
                    return await response.json()

            except aiohttp.ClientError as e:
                logger.error(f"API request failed (attempt {attempt + 1}): {e}")
                if attempt == self.settings.max_retries - 1:
                    raise PlatformError(f"{method} {endpoint} failed: {e}") from e

        raise PlatformError(f"{method} {endpoint}: max retries exceeded", status=429)

    def _user_path(self) -> str:
        if not self.settings.user_id:
            raise PlatformError("X_USER_ID is not configured")
        return f"/users/{self.settings.user_id}"

    async def get_mentions(self, limit: int = 20) -> list[Stimulus]:
        data = await self._make_request(
            "GET",
            f"{self._user_path()}/mentions",
            params=self._timeline_params(limit),
        )
        return self._parse_tweets(data, StimulusType.MENTION)

    async def get_timeline(self, limit: int = 20) -> list[Stimulus]:
        data = await self._make_request(
            "GET",
            f"{self._user_path()}/timelines/reverse_chronological",
            params=self._timeline_params(limit),
        )
        return self._parse_tweets(data, StimulusType.TIMELINE)

    @staticmethod
    def _timeline_params(limit: int) -> dict:
        return {
            "max_results": max(5, min(limit, 100)),
            "tweet.fields": TWEET_FIELDS,
            "user.fields": "id,username",
            "expansions": "author_id",
        }

    def _parse_tweets(self, data: dict, stimulus_type: StimulusType) -> list[Stimulus]:
        """Parse API response into Stimulus objects, skipping our own posts."""
        users = {
            user["id"]: user.get("username", "")
            for user in data.get("includes", {}).get("users", [])
        }

        stimuli = []
        for tweet in data.get("data", []):
            author_id = tweet.get("author_id", "")
            if author_id == self.settings.user_id:
                continue
            try:
                stimuli.append(Stimulus(
                    stimulus_id=tweet["id"],
                    text=tweet.get("text", ""),
                    author_id=author_id,
                    author_username=users.get(author_id, ""),
                    stimulus_type=stimulus_type,
                    created_at=parse_timestamp(tweet["created_at"]) if tweet.get("created_at") else utcnow(),
                ))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed tweet: {e}")
        return stimuli

    async def post_action(self, decision: Decision) -> PostResult:
        action = decision.decision_type

        if action.produces_content:
            payload: dict = {"text": decision.content or ""}
            if action == DecisionType.REPLY:
                payload["reply"] = {"in_reply_to_tweet_id": decision.target_id}
            elif action == DecisionType.QUOTE:
                payload["quote_tweet_id"] = decision.target_id

            data = await self._make_request("POST", "/tweets", json_data=payload)
            artifact_id = data.get("data", {}).get("id")
            if not artifact_id:
                raise PlatformError(f"{action.value} returned no post id")
            logger.info(f"Posted {action.value} {artifact_id}")
            return PostResult(decision_type=action, artifact_id=artifact_id)

        if action == DecisionType.LIKE:
            await self._make_request(
                "POST",
                f"{self._user_path()}/likes",
                json_data={"tweet_id": decision.target_id},
            )
            logger.info(f"Liked {decision.target_id}")
            return PostResult(decision_type=action)

        if action == DecisionType.FOLLOW:
            await self._make_request(
                "POST",
                f"{self._user_path()}/following",
                json_data={"target_user_id": decision.target_id},
            )
            logger.info(f"Followed {decision.target_id}")
            return PostResult(decision_type=action)

        raise PlatformError(f"Cannot execute {action.value} on the platform")

    async def fetch_metrics(self, artifact_id: str) -> Optional[EngagementMetrics]:
        """
        Public metrics for a post.

        Server-side and network errors mean "try later" and return None;
        client errors (e.g. the post was deleted) raise.
        """
        try:
            data = await self._make_request(
                "GET",
                f"/tweets/{artifact_id}",
                params={"tweet.fields": "public_metrics"},
            )
        except PlatformError as e:
            if e.status is not None and 400 <= e.status < 500 and e.status != 429:
                raise
            logger.warning(f"Metrics for {artifact_id} unavailable: {e}")
            return None

        metrics = data.get("data", {}).get("public_metrics")
        if metrics is None:
            return None
        return EngagementMetrics.from_public_metrics(metrics)
