"""ColdFacts: resilient cold-knowledge generation from LLM backends."""

__version__ = "0.1.0"
