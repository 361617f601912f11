"""Prompt templates for each reading level."""

from typing import Any, Optional, Union

from .models import ReadingLevel

PLACEHOLDER = "{{selectedtext}}"

DEFAULT_READING_LEVEL_PROMPTS = {
    ReadingLevel.VERY_SIMPLE: (
        "Explain this term to a 10-year-old using simple language, analogies, and relatable "
        "examples: {{selectedtext}}. Keep it clear and straightforward without being patronising."
    ),
    ReadingLevel.SIMPLE: (
        "Explain this term as if talking to someone who has never heard it before: "
        "{{selectedtext}}. Use plain language, avoid jargon, and keep it straightforward and "
        "accessible."
    ),
    ReadingLevel.STANDARD: (
        "Explain this term clearly and concisely: {{selectedtext}}. Provide a balanced "
        "explanation that covers the key points without oversimplifying or overcomplicating."
    ),
    ReadingLevel.DETAILED: (
        "Explain this term with comprehensive context, practical examples, and background "
        "information: {{selectedtext}}. Cover how it works, why it matters, how it relates to "
        "other concepts, and include real-world applications. Help the reader develop a "
        "thorough understanding."
    ),
    ReadingLevel.EXPERT: (
        "Explain this term for a professional or academic audience with deep technical detail: "
        "{{selectedtext}}. Use precise terminology, discuss nuances and edge cases, reference "
        "theoretical frameworks where relevant, and assume the reader has advanced knowledge in "
        "the subject area. Include technical implications and considerations."
    ),
}

READING_LEVEL_LABELS = {
    ReadingLevel.VERY_SIMPLE: "Basic",
    ReadingLevel.SIMPLE: "Simple",
    ReadingLevel.STANDARD: "Standard",
    ReadingLevel.DETAILED: "Detailed",
    ReadingLevel.EXPERT: "Expert",
}

LANGUAGE_INSTRUCTIONS = {
    "en_US": "Please respond in American English.",
    "en_GB": "Please respond in British English.",
    "es_ES": "Por favor responde en español.",
    "de_DE": "Bitte antworten Sie auf Deutsch.",
    "fr_FR": "Veuillez répondre en français.",
    "hi_IN": "कृपया हिंदी में उत्तर दें।",
    "zh_CN": "请用中文回答。",
}


def get_reading_level_prompt(
    reading_level: ReadingLevel, custom_prompts: Optional[dict[str, str]] = None
) -> str:
    """Template for a level; custom templates without the placeholder are ignored."""
    custom = (custom_prompts or {}).get(reading_level.value)
    if custom and PLACEHOLDER in custom:
        return custom
    return DEFAULT_READING_LEVEL_PROMPTS.get(
        reading_level, DEFAULT_READING_LEVEL_PROMPTS[ReadingLevel.STANDARD]
    )


def _context_lines(selected_text: str, context: Union[dict[str, Any], str]) -> list[str]:
    if isinstance(context, str):
        return [f"Context: {context}"] if context.strip() else []

    lines = []
    if context.get("title"):
        lines.append(f"Post: {context['title']}")

    if context.get("paragraph"):
        lines.append(f"Context: {context['paragraph']}")
    elif context.get("before") or context.get("after"):
        snippet = ""
        if context.get("before"):
            snippet += f"...{context['before']}"
        snippet += f"[{selected_text}]"
        if context.get("after"):
            snippet += f"{context['after']}..."
        lines.append(f"Context: {snippet}")
    return lines


def build_prompt(
    selected_text: str,
    reading_level: ReadingLevel = ReadingLevel.STANDARD,
    language: str = "en_GB",
    context: Optional[Union[dict[str, Any], str]] = None,
    custom_prompts: Optional[dict[str, str]] = None,
) -> str:
    """Assemble the user prompt sent to the vendor."""
    template = get_reading_level_prompt(reading_level, custom_prompts)

    instruction = LANGUAGE_INSTRUCTIONS.get(language, "")
    if instruction:
        template = f"{instruction} {template}"

    prompt = template.replace(PLACEHOLDER, selected_text)

    if context:
        lines = _context_lines(selected_text, context)
        if lines:
            prompt += "\n\n" + "\n".join(lines)

    return prompt
