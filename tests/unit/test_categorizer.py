"""
Categorizer Unit Tests
======================

Prompt construction, reply interpretation and the guarantee that
categorization never raises.
"""

import asyncio

import pytest

from feedvine.ai.categorizer import Categorizer, build_prompt, parse_category
from feedvine.ai.providers.base import ClassifierProvider
from feedvine.config.settings import AIProvider, AISettings
from feedvine.database.models import Article, Category, Feed
from feedvine.utils.exceptions import ClassificationError, ErrorCode
from feedvine.utils.init_guard import InitState


class ScriptedProvider(ClassifierProvider):
    """Provider returning canned replies (or raising) in order."""

    provider_type = AIProvider.ANTHROPIC

    def __init__(self, *replies):
        super().__init__(api_key="test-key", model_name="test-model")
        self.replies = list(replies)
        self.prompts = []
        self.closed = False

    async def classify(self, prompt: str) -> str:
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def close(self) -> None:
        self.closed = True


class TestBuildPrompt:

    def test_lists_every_label(self):
        prompt = build_prompt("Title", "Body")
        assert (
            "AI News, Tools, Opinion, Startups, Backend, Tutorial, Research" in prompt
        )
        assert "Title: Title\n" in prompt
        assert "Description: Body\n" in prompt
        assert 'If unsure, return "Uncategorized".' in prompt

    def test_missing_description(self):
        assert "Description: No description available" in build_prompt("Title")


class TestParseCategory:

    @pytest.mark.parametrize(
        "reply, expected",
        [
            ("Backend", Category.BACKEND),
            ("  AI News\n", Category.AI_NEWS),
            ("research", Category.RESEARCH),
            ('"Tools".', Category.TOOLS),
            ("**Startups**", Category.STARTUPS),
            ("Tutorial\nBecause it teaches things", Category.TUTORIAL),
            ("Uncategorized", Category.UNCATEGORIZED),
            ("Sports", Category.UNCATEGORIZED),
            ("The category is Backend", Category.UNCATEGORIZED),
            ("", Category.UNCATEGORIZED),
            (None, Category.UNCATEGORIZED),
            (42, Category.UNCATEGORIZED),
            (["Backend"], Category.UNCATEGORIZED),
        ],
    )
    def test_reply_mapping(self, reply, expected):
        assert parse_category(reply) is expected


class TestCategorize:

    @pytest.mark.asyncio
    async def test_known_label(self):
        provider = ScriptedProvider("Opinion")
        categorizer = Categorizer(AISettings(), provider=provider)

        assert await categorizer.categorize("Why I quit microservices", "An essay") == Category.OPINION
        assert "Title: Why I quit microservices" in provider.prompts[0]

    @pytest.mark.asyncio
    async def test_unknown_label(self):
        categorizer = Categorizer(AISettings(), provider=ScriptedProvider("Gardening"))
        assert await categorizer.categorize("Growing tomatoes") == Category.UNCATEGORIZED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", [None, 7, {"category": "Backend"}])
    async def test_non_text_reply(self, reply):
        categorizer = Categorizer(AISettings(), provider=ScriptedProvider(reply))
        assert await categorizer.categorize("Some title", "desc") == Category.UNCATEGORIZED

    @pytest.mark.asyncio
    async def test_provider_error(self):
        error = ClassificationError("rate limited", provider="anthropic", error_code=ErrorCode.AI_RATE_LIMIT)
        categorizer = Categorizer(AISettings(), provider=ScriptedProvider(error))

        assert await categorizer.categorize("Anything") == Category.UNCATEGORIZED

    @pytest.mark.asyncio
    async def test_unexpected_provider_error(self):
        categorizer = Categorizer(AISettings(), provider=ScriptedProvider(RuntimeError("boom")))
        assert await categorizer.categorize("Anything") == Category.UNCATEGORIZED

    @pytest.mark.asyncio
    async def test_without_credentials(self):
        categorizer = Categorizer(AISettings(anthropic_api_key=None))

        assert categorizer.configured is False
        assert await categorizer.categorize("Anything") == Category.UNCATEGORIZED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("title", ["", "   ", None])
    async def test_empty_title(self, title):
        provider = ScriptedProvider("Tools")
        categorizer = Categorizer(AISettings(), provider=provider)

        assert await categorizer.categorize(title) == Category.UNCATEGORIZED
        assert provider.prompts == []

    @pytest.mark.asyncio
    async def test_client_created_once_under_concurrency(self):
        calls = []

        class SlowCategorizer(Categorizer):
            async def _create_provider(self):
                calls.append(1)
                await asyncio.sleep(0.01)
                return ScriptedProvider("Tools")

        categorizer = SlowCategorizer(AISettings(anthropic_api_key="key"))
        results = await asyncio.gather(*(categorizer.categorize(f"t{i}") for i in range(5)))

        assert results == [Category.TOOLS] * 5
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_failed_client_init_stays_failed_until_reset(self):
        attempts = []

        class BrokenCategorizer(Categorizer):
            async def _create_provider(self):
                attempts.append(1)
                if len(attempts) == 1:
                    raise ClassificationError("bad key", provider="anthropic")
                return ScriptedProvider("Research")

        categorizer = BrokenCategorizer(AISettings(anthropic_api_key="key"))

        assert await categorizer.categorize("a") == Category.UNCATEGORIZED
        assert await categorizer.categorize("b") == Category.UNCATEGORIZED
        assert categorizer._client.state == InitState.FAILED
        assert len(attempts) == 1

        await categorizer.close()
        assert await categorizer.categorize("c") == Category.RESEARCH
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_close_releases_provider(self):
        provider = ScriptedProvider("Tools")
        categorizer = Categorizer(AISettings(), provider=provider)
        await categorizer.categorize("warm up")

        await categorizer.close()

        assert provider.closed is True
        assert categorizer._client.state == InitState.IDLE


class TestCategorizePending:

    @pytest.mark.asyncio
    async def test_categorizes_stored_articles_once(self, feed_repo, article_repo):
        feed_id = feed_repo.create_feed(Feed(url="https://blog.example.com/rss.xml"))
        article_repo.upsert_many(
            feed_id,
            [
                Article(feed_id=feed_id, title="Postgres internals", url="https://x.example/1"),
                Article(feed_id=feed_id, title="Gardening", url="https://x.example/2"),
            ],
        )
        provider = ScriptedProvider("Backend", "No idea")
        categorizer = Categorizer(AISettings(), provider=provider, article_repository=article_repo)

        counts = await categorizer.categorize_pending()

        assert counts == {"Backend": 1, "Uncategorized": 1}
        assert article_repo.get_uncategorized() == []

        assert await categorizer.categorize_pending() == {}
        assert len(provider.prompts) == 2

    @pytest.mark.asyncio
    async def test_requires_repository(self):
        categorizer = Categorizer(AISettings(), provider=ScriptedProvider("Tools"))

        with pytest.raises(ValueError):
            await categorizer.categorize_pending()
