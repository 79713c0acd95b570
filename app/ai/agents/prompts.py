"""Prompt helpers shared by agents."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from app.ai.pipeline.contracts import OutlineSection, OutlineStructure, RelatedArticle, TopicSource

WRITER_SYSTEM_PROMPT = """You are an expert content writer specializing in precision and conciseness.

Article Type: {article_type}
Tone: {tone}

Follow the outline structure and cover every key point. Transition smoothly from previous sections.
Use concrete examples and data points. Every sentence must add value.
Never use em dashes. Use commas, periods, parentheses, or colons instead.
Use markdown for formatting and for all links: [link text](URL).
Only use internal links from the allowed list and only cite URLs from the provided sources.
Stay within 10% of the target word count."""

OUTLINE_SYSTEM_PROMPT = """You are an expert content strategist and outline architect.

Your job is to create detailed, structured outlines that will guide the writing agent.

Article Type: {article_type}
Target Length: {target_length}
- short: ~500 words (3-4 sections)
- medium: ~1000 words (5-6 sections)
- long: ~2000+ words (7-10 sections)
Tone: {tone}

Related Articles for Internal Linking:
{related_articles}

Create an outline that opens with a compelling hook, flows logically from section to section,
includes specific talking points, suggests internal links where relevant, ends with a strong
conclusion and call to action, and lists SEO keywords."""

OUTLINE_RESPONSE_SHAPE = """Return a JSON object with this exact structure:
{
  "title": "Article title",
  "hook": "Compelling opening hook",
  "sections": [
    {"heading": "Section heading", "keyPoints": ["point 1", "point 2"], "wordTarget": 200, "suggestedLinks": [{"articleId": "id", "anchorText": "link text"}]}
  ],
  "conclusion": {"summary": "Conclusion summary", "callToAction": "CTA text"},
  "seoKeywords": ["keyword1", "keyword2"]
}"""

RESEARCH_SYSTEM_PROMPT = """You are a research agent that discovers timely, engaging article topics.

Propose distinct topics with a clear angle each. Avoid overlap with the existing articles listed.
Prefer topics that can be backed by credible sources."""

RESEARCH_RESPONSE_SHAPE = """Return ONLY a JSON array where each item has this structure:
{"title": "SEO-optimized title (60-70 characters)", "summary": "2-3 sentence summary", "angle": "Unique perspective", "hook": "Opening hook", "relevanceScore": 0.85, "sources": [{"url": "https://example.com", "title": "Source title", "snippet": "Relevant excerpt", "domain": "example.com"}]}"""

EDITOR_SYSTEM_PROMPT = """You are an experienced magazine editor refining content for publication.

Remove all em dashes. Fix robotic or repetitive phrasing, remove duplicate sentences, improve flow,
and fix grammar. Keep the meaning, facts, structure, headings, markdown formatting and every link
exactly as they are. Do not rewrite the whole article; only edit what needs improvement.

Article Type: {article_type}
Tone: {tone}

Return only the edited article in markdown."""

EDITOR_VERIFY_PROMPT = """You are a quality assurance editor. Do a final check for remaining em dashes, AI-sounding phrases,
duplicate content and flow issues. Make minimal, targeted fixes only. Preserve all links and formatting.
Return only the article in markdown."""

HOOK_PROMPT = """Write the opening of the article "{title}" in one or two short paragraphs.
Start from this hook and expand it naturally: {hook}
Do not add a heading. Return only the text."""

CONCLUSION_PROMPT = """Write the conclusion of the article "{title}".
Start with the heading "## Conclusion". Summarize: {summary}
End with this call to action: {call_to_action}
Return only the markdown."""


def _format_related(related: Sequence[RelatedArticle]) -> str:
  if not related:
    return "No related articles available"
  return "\n".join(f"- {article.title} ({article.slug}) id={article.article_id}" for article in related)


def _format_sources(sources: Sequence[TopicSource]) -> str:
  if not sources:
    return "No sources provided. Do not add external links."
  return "\n".join(f"{index}. {source.title or source.url}\n   URL: {source.url}" for index, source in enumerate(sources, start=1))


def _format_allowed_links(links: Sequence[RelatedArticle]) -> str:
  if not links:
    return "No internal links are available. Do not create any internal links."
  return "\n".join(f'{index}. Anchor: "{link.title}" -> URL: /blog/{link.slug}' for index, link in enumerate(links, start=1))


def writer_system_prompt(*, article_type: str, tone: str) -> str:
  return WRITER_SYSTEM_PROMPT.format(article_type=article_type, tone=tone or "professional")


def render_section_prompt(section: OutlineSection, *, previous_context: str, sources: Sequence[TopicSource], allowed_links: Sequence[RelatedArticle], custom_instructions: str | None) -> str:
  """Build the per-section writing brief."""
  low = int(section.word_target * 0.9)
  high = int(section.word_target * 1.1) + 1
  parts = [
    f"TARGET WORD COUNT: {section.word_target} words (valid range {low}-{high})",
    f"Heading: ## {section.heading}",
    f"Key Points to Cover: {', '.join(section.key_points) or 'Use your judgement'}",
    f"Previous Context (for transitions):\n{previous_context or '[First section - no previous context]'}",
    f"Allowed Internal Links:\n{_format_allowed_links(allowed_links)}",
    f"Available Sources:\n{_format_sources(sources)}",
  ]
  if custom_instructions:
    parts.append(f"Custom Instructions (MUST follow):\n{custom_instructions}")
  parts.append("Write the section now in markdown, starting with its heading.")
  return "\n\n".join(parts)


def render_hook_prompt(outline: OutlineStructure) -> str:
  return HOOK_PROMPT.format(title=outline.title, hook=outline.hook or outline.title)


def render_conclusion_prompt(outline: OutlineStructure) -> str:
  return CONCLUSION_PROMPT.format(title=outline.title, summary=outline.conclusion.summary or outline.title, call_to_action=outline.conclusion.call_to_action or "Invite the reader to take the next step.")


def outline_system_prompt(*, article_type: str, target_length: str, tone: str | None, related: Sequence[RelatedArticle]) -> str:
  return OUTLINE_SYSTEM_PROMPT.format(article_type=article_type, target_length=target_length, tone=tone or "professional", related_articles=_format_related(related))


def render_outline_prompt(*, title: str, summary: str | None, sources: Sequence[dict[str, Any]], custom_instructions: str | None) -> str:
  parts = [f"Topic: {title}", f"Summary: {summary or '-'}", f"Sources: {json.dumps(list(sources)[:10], ensure_ascii=True)}"]
  if custom_instructions:
    parts.append(f"Custom Instructions (MUST follow):\n{custom_instructions}")
  parts.append(OUTLINE_RESPONSE_SHAPE)
  return "\n\n".join(parts)


def render_research_prompt(*, industry: str | None, keywords: Sequence[str], article_type: str | None, max_topics: int, existing_titles: Sequence[str]) -> str:
  parts = [f"Generate {max_topics} article topics."]
  if industry:
    parts.append(f"Industry: {industry}")
  if keywords:
    parts.append(f"Search Keywords: {', '.join(keywords)}")
  if article_type:
    parts.append(f"Article Type: {article_type}")
  existing = "\n".join(f"- {title}" for title in existing_titles) or "None"
  parts.append(f"Existing Articles to Avoid Overlap:\n{existing}")
  parts.append(RESEARCH_RESPONSE_SHAPE)
  return "\n\n".join(parts)


def editor_system_prompt(*, article_type: str | None, tone: str | None) -> str:
  return EDITOR_SYSTEM_PROMPT.format(article_type=article_type or "blog", tone=tone or "professional")
