"""Centralized prompt templates and request composition."""

from typing import Optional

from .topics import TopicSampler
from ..models.knowledge import GenerationRequest

DEFAULT_LANGUAGE = "Traditional Chinese (Taiwan)"

SYSTEM_PERSONA = '''
# Role
You are an expert in "cold knowledge" and fun trivia. You dig up facts that are
obscure, little known and trivial, yet surprising and genuinely illuminating.

# What counts as cold knowledge
1. Obscure: not common knowledge
2. Fun: makes the reader say "wait, really?"
3. True: grounded in verifiable facts
4. Social: good to share in a conversation

# Guidelines
- Keep the tone light, like chatting with a friend
- Make sure the sources are reliable
- Avoid heavy or negative subjects
'''

KNOWLEDGE_GENERATION = '''
{persona}

# Task
Provide {count} {topic_text}.
Write every value in {language}.

# Output format
Reply with JSON in exactly this shape:
{{
  "knowledge": [
    {{
      "title": "a catchy title",
      "category": "one of: 🔬Science / 📜History / 🎭Culture / 🐾Animals / 🌍Geography / 💬Language / 🍽️Food / 💻Technology",
      "content": "the fact itself, 120-150 characters, specific and vivid",
      "whyInteresting": "one sentence on why it is surprising",
      "icebreaker": "an opening line to share it with a friend",
      "quiz": "a question to test a friend",
      "sourceName": "source name (e.g. Wikipedia)",
      "sourceUrl": "a specific link (if unsure, use https://www.google.com/search?q=<title>)"
    }}
  ]
}}

Important rules:
1. Return bare JSON only, no markdown and no other text
2. The content must be true and fun
3. Sound like you are chatting with a friend
'''

TRENDING_TOPICS = '''
Search for today's most popular search keywords and topics in {region}.

Combine these sources:
- Google Trends for {region}
- Trending topics on social media
- News headlines

Return {limit} trending keywords as bare JSON:
{{"topics": ["keyword 1", "keyword 2", "keyword 3"]}}

Important: return bare JSON only, no markdown and no other text.
'''


def build_generation_request(keyword: Optional[str], count: int, sampler: TopicSampler) -> GenerationRequest:
    """Use the keyword verbatim when given, otherwise sample 1-2 topics."""
    if keyword and keyword.strip():
        return GenerationRequest(keyword=keyword, item_count=count)
    return GenerationRequest(item_count=count, topics=tuple(sampler.sample()))


def compose_knowledge_prompt(request: GenerationRequest, language: str = DEFAULT_LANGUAGE) -> str:
    if request.is_random:
        topic_text = f"unique, little-known cold knowledge facts about \"{request.topic_descriptor}\""
    else:
        topic_text = f"cold knowledge facts about \"{request.topic_descriptor}\""
    return KNOWLEDGE_GENERATION.format(
        persona=SYSTEM_PERSONA.strip(),
        count=request.item_count,
        topic_text=topic_text,
        language=language,
    )


def compose_trending_prompt(region: str = "Taiwan", limit: int = 10) -> str:
    return TRENDING_TOPICS.format(region=region, limit=limit)
