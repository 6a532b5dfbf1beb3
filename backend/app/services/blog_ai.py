"""Blog content generation with the Anthropic Messages API."""

import json
import logging
import re
from typing import Any, Optional, Sequence

from anthropic import AsyncAnthropic

from app.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

DEFAULT_INDUSTRY = "facilities and property management"

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")

TOPIC_PROMPT = """You are an expert content strategist specializing in {industry}. Generate a compelling blog post topic that:

1. Is highly relevant to {industry} professionals
2. Has strong SEO potential (trending keywords, search intent)
3. Provides practical value to readers
4. Hasn't been covered recently (avoid these topics: {recent})

{categories}

Provide your response in JSON format:
{{
  "title": "Compelling, SEO-optimized title (60-70 characters)",
  "slug": "url-friendly-slug",
  "category": "Most relevant category",
  "keywords": ["keyword1", "keyword2", "keyword3", "keyword4", "keyword5"],
  "excerpt": "Brief 1-2 sentence description",
  "targetAudience": "Who will benefit most from this content",
  "searchIntent": "What problem or question this addresses"
}}"""

CONTENT_PROMPT = """Write a comprehensive, high-quality blog post about "{title}".

Target audience: {audience}
Keywords to include naturally: {keywords}
Target word count: {word_count} words

Requirements:
1. Write in a professional yet engaging tone
2. Include practical, actionable advice
3. Use headers (H2, H3) to structure the content
4. Include bullet points and numbered lists where appropriate
5. Add a compelling introduction and conclusion

Format your response in JSON:
{{
  "content": "Full markdown content of the blog post",
  "htmlContent": "HTML version with proper formatting",
  "metaTitle": "SEO-optimized title (60 chars max)",
  "metaDescription": "Compelling meta description (155 chars max)",
  "suggestedTags": ["tag1", "tag2", "tag3", "tag4"],
  "readingTime": "Estimated reading time in minutes",
  "keyTakeaways": ["takeaway1", "takeaway2", "takeaway3"]
}}"""


def extract_json(text: str) -> dict[str, Any]:
    """Parse the outermost ``{...}`` block of a model response.

    Raises:
        ValueError: if no block is present or it is not valid JSON.
    """
    match = _JSON_BLOCK.search(text or "")
    if not match:
        raise ValueError("Failed to parse JSON response from AI")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse JSON response from AI: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("AI response JSON is not an object")
    return data


class BlogAIService:
    """Generates blog topics and articles."""

    def __init__(
        self,
        client: Optional[AsyncAnthropic] = None,
        model: Optional[str] = None,
    ):
        self.model = model or settings.anthropic_model
        self._client = client

    @property
    def client(self) -> AsyncAnthropic:
        if self._client is None:
            if not settings.anthropic_api_key:
                raise RuntimeError("ANTHROPIC_API_KEY is not configured")
            self._client = AsyncAnthropic(api_key=settings.anthropic_api_key)
        return self._client

    async def _complete(self, prompt: str, max_tokens: int) -> str:
        message = await self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(block.text for block in message.content if getattr(block, "type", "") == "text")

    async def generate_topic(
        self,
        recent_topics: Sequence[str] = (),
        categories: Sequence[str] = (),
        industry: str = DEFAULT_INDUSTRY,
    ) -> dict[str, Any]:
        prompt = TOPIC_PROMPT.format(
            industry=industry,
            recent=", ".join(recent_topics) or "none yet",
            categories=f"Available categories: {', '.join(categories)}" if categories else "",
        )
        topic = extract_json(await self._complete(prompt, max_tokens=1024))
        if not topic.get("title"):
            raise ValueError("AI topic is missing a title")
        logger.info("Generated blog topic: %s", topic["title"])
        return topic

    async def generate_content(self, topic: dict[str, Any], target_word_count: int = 1500) -> dict[str, Any]:
        prompt = CONTENT_PROMPT.format(
            title=topic["title"],
            audience=topic.get("targetAudience") or "property and facilities managers",
            keywords=", ".join(topic.get("keywords") or []),
            word_count=target_word_count,
        )
        content = extract_json(await self._complete(prompt, max_tokens=4096))
        if not content.get("content"):
            raise ValueError("AI content is missing the article body")
        logger.info(
            "Generated blog content for '%s' (%d words)",
            topic["title"],
            len(content["content"].split()),
        )
        return content
