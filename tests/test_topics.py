"""Tests for the topic sampler."""

import random
from collections import Counter

import pytest

from coldfacts.core.topics import DEFAULT_TOPIC_POOL, TopicSampler, sample_topics


@pytest.fixture
def pool_of_80():
    return tuple(f"topic-{i}" for i in range(80))


def test_every_entry_is_selected_over_many_draws(pool_of_80):
    sampler = TopicSampler(pool_of_80)
    seen = Counter()

    for _ in range(1000):
        picked = sampler.sample()
        assert 1 <= len(picked) <= 2
        assert len(set(picked)) == len(picked)
        assert set(picked) <= set(pool_of_80)
        seen.update(picked)

    assert set(seen) == set(pool_of_80)


def test_prefix_length_is_roughly_uniform(pool_of_80):
    sampler = TopicSampler(pool_of_80, rng=random.Random(1234))

    lengths = Counter(len(sampler.sample()) for _ in range(2000))

    assert set(lengths) == {1, 2}
    assert 800 < lengths[1] < 1200


def test_injected_rng_makes_draws_reproducible(pool_of_80):
    first = [sample_topics(pool_of_80, random.Random(7)) for _ in range(5)]
    second = [sample_topics(pool_of_80, random.Random(7)) for _ in range(5)]

    assert first == second


def test_default_rng_is_not_clock_seeded(pool_of_80):
    sampler = TopicSampler(pool_of_80)

    assert isinstance(sampler.rng, random.SystemRandom)


def test_single_entry_pool():
    assert sample_topics(["only"]) == ["only"]


def test_empty_pool_is_rejected():
    with pytest.raises(ValueError):
        TopicSampler([])


def test_pool_is_not_mutated(pool_of_80):
    pool = list(pool_of_80)
    sampler = TopicSampler(pool)
    for _ in range(10):
        sampler.sample()

    assert pool == list(pool_of_80)
    assert sampler.pool == pool_of_80


def test_default_pool_has_no_duplicates():
    assert len(DEFAULT_TOPIC_POOL) == len(set(DEFAULT_TOPIC_POOL))
    assert len(DEFAULT_TOPIC_POOL) >= 80
