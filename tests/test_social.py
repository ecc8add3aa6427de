"""Tests for the platform clients and content generation."""

import json

import pytest

from sparkloop.config.settings import PlatformSettings
from sparkloop.exceptions import PlatformError, UnparseableResponse
from sparkloop.generation import LLMContentGenerator, trim_to_limit
from sparkloop.llm.client import MockLLMClient
from sparkloop.models import AgentContext, Decision, DecisionType, EngagementMetrics, StimulusType
from sparkloop.social import MockPlatformClient, XClient


def _x_client():
    return XClient(PlatformSettings(user_access_token="token", user_id="me"))


class RecordingXClient(XClient):
    """XClient with the HTTP layer replaced by a canned response."""

    def __init__(self, response=None, error=None):
        super().__init__(PlatformSettings(user_access_token="token", user_id="me"))
        self.response = response if response is not None else {}
        self.error = error
        self.requests = []

    async def _make_request(self, method, endpoint, params=None, json_data=None):
        self.requests.append((method, endpoint, json_data))
        if self.error is not None:
            raise self.error
        return self.response


class TestXClient:

    def test_parse_tweets_skips_own_posts(self):
        data = {
            "data": [
                {"id": "1", "text": "hello", "author_id": "u1", "created_at": "2025-03-01T12:00:00.000Z"},
                {"id": "2", "text": "me again", "author_id": "me"},
                {"text": "no id", "author_id": "u3"},
            ],
            "includes": {"users": [{"id": "u1", "username": "ada"}]},
        }
        stimuli = _x_client()._parse_tweets(data, StimulusType.MENTION)

        assert len(stimuli) == 1
        assert stimuli[0].stimulus_id == "1"
        assert stimuli[0].author_username == "ada"
        assert stimuli[0].stimulus_type == StimulusType.MENTION
        assert stimuli[0].created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_reply_payload(self):
        client = RecordingXClient({"data": {"id": "999"}})
        result = await client.post_action(Decision(DecisionType.REPLY, target_id="42", content="hi"))

        assert result.artifact_id == "999"
        method, endpoint, payload = client.requests[0]
        assert (method, endpoint) == ("POST", "/tweets")
        assert payload == {"text": "hi", "reply": {"in_reply_to_tweet_id": "42"}}

    @pytest.mark.asyncio
    async def test_quote_and_like_and_follow(self):
        client = RecordingXClient({"data": {"id": "1000"}})
        await client.post_action(Decision(DecisionType.QUOTE, target_id="42", content="yes"))
        like = await client.post_action(Decision(DecisionType.LIKE, target_id="42"))
        await client.post_action(Decision(DecisionType.FOLLOW, target_id="u1"))

        assert client.requests[0][2] == {"text": "yes", "quote_tweet_id": "42"}
        assert client.requests[1][1:] == ("/users/me/likes", {"tweet_id": "42"})
        assert client.requests[2][1:] == ("/users/me/following", {"target_user_id": "u1"})
        assert like.artifact_id is None

    @pytest.mark.asyncio
    async def test_skip_cannot_be_posted(self):
        with pytest.raises(PlatformError):
            await RecordingXClient().post_action(Decision.skip())

    @pytest.mark.asyncio
    async def test_fetch_metrics(self):
        client = RecordingXClient({"data": {"public_metrics": {
            "like_count": 3, "reply_count": 1, "retweet_count": 2, "quote_count": 0,
            "impression_count": 450,
        }}})
        metrics = await client.fetch_metrics("999")
        assert metrics == EngagementMetrics(likes=3, replies=1, retweets=2, impressions=450)

    @pytest.mark.asyncio
    async def test_server_errors_mean_try_later(self):
        client = RecordingXClient(error=PlatformError("bad gateway", status=502))
        assert await client.fetch_metrics("999") is None

        client = RecordingXClient(error=PlatformError("connection reset"))
        assert await client.fetch_metrics("999") is None

    @pytest.mark.asyncio
    async def test_deleted_post_raises(self):
        client = RecordingXClient(error=PlatformError("not found", status=404))
        with pytest.raises(PlatformError):
            await client.fetch_metrics("999")


class TestMockPlatform:

    @pytest.mark.asyncio
    async def test_artifacts_only_for_content(self):
        platform = MockPlatformClient()
        reply = await platform.post_action(Decision(DecisionType.REPLY, target_id="1", content="x"))
        like = await platform.post_action(Decision(DecisionType.LIKE, target_id="1"))
        assert reply.artifact_id == "post_1"
        assert like.artifact_id is None
        assert len(platform.posted) == 2


class TestContentGeneration:

    def test_trim_keeps_short_text(self):
        assert trim_to_limit('  "Short and sweet"  ') == "Short and sweet"

    def test_trim_cuts_on_word_boundary(self):
        text = "word " * 100
        trimmed = trim_to_limit(text, limit=50)
        assert len(trimmed) <= 50
        assert trimmed.endswith("...")
        assert "wor..." not in trimmed

    @pytest.mark.asyncio
    async def test_generates_within_limit(self):
        llm = MockLLMClient()
        llm.set_response(json.dumps({"text": "a " * 200}))
        generator = LLMContentGenerator(llm)
        text = await generator.generate(
            Decision(DecisionType.ORIGINAL_POST),
            AgentContext(),
        )
        assert 0 < len(text) <= 280
        assert "COMPOSE POST" in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_unparseable_generation_raises(self):
        llm = MockLLMClient()
        llm.set_response("Here's a thought!")
        generator = LLMContentGenerator(llm)
        with pytest.raises(UnparseableResponse):
            await generator.generate(Decision(DecisionType.ORIGINAL_POST), AgentContext())
