"""Topic sampling for randomized knowledge requests."""

import random
from typing import List, Optional, Sequence, Tuple


# Grouped by theme; order carries no meaning
DEFAULT_TOPIC_POOL: Tuple[str, ...] = (
    # Animals
    "cats", "dogs", "birds", "fish", "sharks", "whales", "dolphins", "octopuses",
    "jellyfish", "bees", "ants", "butterflies", "spiders", "snakes", "frogs",
    "turtles", "dinosaurs", "mammoths",
    # Science
    "black holes", "planets", "the Milky Way", "extraterrestrial life",
    "quantum mechanics", "relativity", "chemical reactions", "DNA", "cells",
    "viruses", "bacteria", "vaccines",
    # Human body
    "the brain", "the heart", "eyes", "ears", "skin", "bones", "blood", "sleep",
    "dreams",
    # History
    "ancient Egypt", "ancient Rome", "ancient Greece", "ancient China",
    "samurai", "Vikings", "the Maya", "the Inca Empire", "the World Wars",
    "the Cold War", "the Industrial Revolution", "the Renaissance",
    # Geography
    "volcanoes", "earthquakes", "tsunamis", "auroras", "deserts", "rainforests",
    "the Arctic", "Antarctica", "the deep sea", "the Himalayas",
    "the Amazon River", "the Sahara",
    # Food
    "coffee", "tea", "chocolate", "cheese", "sushi", "ramen", "pizza",
    "hamburgers", "ice cream", "chili peppers", "spices", "fermented food",
    # Technology
    "the internet", "smartphones", "computers", "robots", "drones",
    "electric cars", "space exploration", "virtual reality", "blockchain",
    "artificial intelligence",
    # Arts and culture
    "film", "music", "painting", "sculpture", "photography", "dance", "theatre",
    "anime", "video games",
    # Language
    "Chinese", "English", "Japanese", "emoji", "cryptography", "sign language",
    # Sports
    "football", "basketball", "baseball", "tennis", "swimming", "marathons",
    "skiing", "surfing", "rock climbing",
    # Other
    "mathematics", "philosophy", "psychology", "economics", "fashion",
    "architecture", "transportation", "festivals",
)


class TopicSampler:
    """Picks one or two topics from an immutable pool.

    The pool is shuffled with Fisher-Yates (``random.Random.shuffle``) using an
    OS-entropy source unless an ``rng`` is injected, then a prefix of length
    1 or 2 is taken with equal probability.
    """

    def __init__(self, pool: Sequence[str] = DEFAULT_TOPIC_POOL, rng: Optional[random.Random] = None):
        self.pool: Tuple[str, ...] = tuple(pool)
        if not self.pool:
            raise ValueError("Topic pool must not be empty")
        self.rng = rng or random.SystemRandom()

    def sample(self) -> List[str]:
        permutation = list(self.pool)
        self.rng.shuffle(permutation)
        count = min(self.rng.choice((1, 2)), len(permutation))
        return permutation[:count]


def sample_topics(pool: Sequence[str], rng: Optional[random.Random] = None) -> List[str]:
    """Return 1 or 2 distinct entries of ``pool``."""
    return TopicSampler(pool, rng).sample()
