"""Tests for the knowledge engine pipeline."""

import itertools
import json
import random
from unittest.mock import AsyncMock

import pytest

from coldfacts.core.engine import KnowledgeEngine
from coldfacts.core.errors import (
    AuthError,
    ConfigError,
    DecodeError,
    ShapeError,
    TransientBackendError,
)
from coldfacts.core.topics import TopicSampler
from coldfacts.models.config import Settings
from coldfacts.models.knowledge import RawResponse


FENCED_RESPONSE = (
    '```json\n{"knowledge":[{"title":"T","category":"C","content":"X",'
    '"whyInteresting":"Y","icebreaker":"Z","quiz":"Q","sourceName":"S",'
    '"sourceUrl":"U"}],}\n```'
)


def knowledge_json(count=1):
    return json.dumps({"knowledge": [
        {
            "title": f"Fact {i}", "category": "🔬Science", "content": "Content",
            "whyInteresting": "Because", "icebreaker": "Did you know?",
            "quiz": "Question?", "sourceName": "Wikipedia",
            "sourceUrl": "https://en.wikipedia.org",
        }
        for i in range(count)
    ]})


@pytest.fixture
def settings():
    """Settings with a fake key and no backoff delay."""
    return Settings(
        _env_file=None,
        openai_api_key="test_key",
        base_delay_ms=0,
        topic_pool=("coffee", "volcanoes", "octopuses"),
    )


@pytest.fixture
def invoker():
    mock = AsyncMock()
    mock.generate.return_value = RawResponse(text=knowledge_json())
    return mock


@pytest.fixture
def engine(settings, invoker):
    counter = itertools.count(1)
    return KnowledgeEngine(
        settings,
        invoker=invoker,
        sampler=TopicSampler(settings.topic_pool, rng=random.Random(3)),
        id_factory=lambda: f"id-{next(counter)}",
    )


@pytest.mark.asyncio
async def test_fenced_response_with_trailing_comma_yields_one_record(engine, invoker):
    invoker.generate.return_value = RawResponse(text=FENCED_RESPONSE, grounding_used=True)

    records = await engine.generate_knowledge("cats", 1)

    assert len(records) == 1
    record = records[0]
    assert record.id == "id-1"
    assert (record.title, record.category, record.content) == ("T", "C", "X")
    assert (record.why_interesting, record.icebreaker, record.quiz) == ("Y", "Z", "Q")
    assert (record.source_name, record.source_url) == ("S", "U")


@pytest.mark.asyncio
async def test_keyword_is_used_verbatim_in_prompt(engine, invoker):
    await engine.generate_knowledge("Taipei 101", 2)

    model_id, prompt, grounding = invoker.generate.call_args.args
    assert model_id == engine.settings.knowledge_model
    assert '"Taipei 101"' in prompt
    assert "Provide 2 " in prompt
    assert grounding is True


@pytest.mark.asyncio
async def test_random_request_uses_sampled_topics(engine, invoker):
    await engine.generate_knowledge(None, 1)

    prompt = invoker.generate.call_args.args[1]
    assert any(topic in prompt for topic in engine.settings.topic_pool)


@pytest.mark.asyncio
async def test_default_count_is_applied(engine, invoker):
    await engine.generate_knowledge("tea")

    prompt = invoker.generate.call_args.args[1]
    assert f"Provide {engine.settings.default_count} " in prompt


@pytest.mark.asyncio
async def test_count_out_of_range_is_rejected(engine, invoker):
    with pytest.raises(ValueError):
        await engine.generate_knowledge("tea", engine.settings.max_count + 1)

    invoker.generate.assert_not_called()


@pytest.mark.asyncio
async def test_ids_are_assigned_per_record(engine, invoker):
    invoker.generate.return_value = RawResponse(text=knowledge_json(3))

    records = await engine.generate_knowledge("tea", 3)

    assert [r.id for r in records] == ["id-1", "id-2", "id-3"]


@pytest.mark.asyncio
async def test_missing_key_fails_before_backend_call(settings):
    settings = settings.model_copy(update={"openai_api_key": None})
    engine = KnowledgeEngine(settings)

    with pytest.raises(ConfigError, match="API key not configured"):
        await engine.generate_knowledge("tea", 1)


@pytest.mark.asyncio
async def test_transient_failures_are_retried(engine, invoker):
    invoker.generate.side_effect = [
        TransientBackendError("Rate limit hit"),
        RawResponse(text=knowledge_json()),
    ]

    records = await engine.generate_knowledge("tea", 1)

    assert len(records) == 1
    assert invoker.generate.call_count == 2


@pytest.mark.asyncio
async def test_terminal_failure_is_not_retried(engine, invoker):
    invoker.generate.side_effect = AuthError("Invalid API key")

    with pytest.raises(AuthError):
        await engine.generate_knowledge("tea", 1)

    assert invoker.generate.call_count == 1


@pytest.mark.asyncio
async def test_exhausted_retries_surface_last_error(engine, invoker):
    invoker.generate.side_effect = [TransientBackendError(f"failure {i}") for i in range(1, 4)]

    with pytest.raises(TransientBackendError, match="failure 3"):
        await engine.generate_knowledge("tea", 1)

    assert invoker.generate.call_count == 3


@pytest.mark.asyncio
async def test_unparseable_response_is_decode_error(engine, invoker):
    invoker.generate.return_value = RawResponse(text="Sorry, no facts today.")

    with pytest.raises(DecodeError) as excinfo:
        await engine.generate_knowledge("tea", 1)

    assert excinfo.value.excerpt == "Sorry, no facts today."
    assert invoker.generate.call_count == 1


@pytest.mark.asyncio
async def test_malformed_batch_is_shape_error(engine, invoker):
    invoker.generate.return_value = RawResponse(text='{"knowledge": [{"title": "only"}]}')

    with pytest.raises(ShapeError):
        await engine.generate_knowledge("tea", 1)

    assert invoker.generate.call_count == 1


@pytest.mark.asyncio
async def test_decode_retries_request_a_fresh_response(settings, invoker):
    settings = settings.model_copy(update={"decode_retries": 1})
    engine = KnowledgeEngine(settings, invoker=invoker)
    invoker.generate.side_effect = [
        RawResponse(text="not json"),
        RawResponse(text=knowledge_json()),
    ]

    records = await engine.generate_knowledge("tea", 1)

    assert len(records) == 1
    assert invoker.generate.call_count == 2


@pytest.mark.asyncio
async def test_decode_retries_exhausted(settings, invoker):
    settings = settings.model_copy(update={"decode_retries": 1})
    engine = KnowledgeEngine(settings, invoker=invoker)
    invoker.generate.return_value = RawResponse(text="not json")

    with pytest.raises(DecodeError):
        await engine.generate_knowledge("tea", 1)

    assert invoker.generate.call_count == 2


@pytest.mark.asyncio
async def test_trending_from_json(engine, invoker):
    invoker.generate.return_value = RawResponse(text='```json\n{"topics": ["typhoon", "baseball"]}\n```')

    result = await engine.fetch_trending()

    assert result.topics == ("typhoon", "baseball")
    assert result.from_fallback is False
    assert invoker.generate.call_args.args[0] == engine.settings.trending_model


@pytest.mark.asyncio
async def test_trending_falls_back_to_text_lines(engine, invoker):
    invoker.generate.return_value = RawResponse(
        text="Today's trends:\n1. Typhoon\n2. Baseball\n3. Bubble tea\n4. Night market\n5. Earthquake\n6. Extra")

    result = await engine.fetch_trending()

    assert result.from_fallback is True
    assert result.topics == ("Today's trends:", "Typhoon", "Baseball", "Bubble tea", "Night market")


@pytest.mark.asyncio
async def test_trending_with_nothing_usable(engine, invoker):
    invoker.generate.return_value = RawResponse(text="   ")

    with pytest.raises(DecodeError):
        await engine.fetch_trending()


@pytest.mark.asyncio
async def test_close_closes_invoker(engine, invoker):
    await engine.close()

    invoker.close.assert_awaited_once()
