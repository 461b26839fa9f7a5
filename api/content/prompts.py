"""
Prompt builders for generated marketing copy.
"""

from __future__ import annotations


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def neighborhood_system_prompt() -> str:
    return (
        "You are a Dubai real estate expert writer creating content for a luxury investment platform.\n"
        "Your content should be informative, professional, and appeal to international investors.\n"
        "Always provide accurate, balanced information about Dubai neighborhoods.\n"
        "Format responses as valid JSON only, no markdown."
    )


def neighborhood_user_prompt(
    name: str,
    lifestyle_type: str,
    *,
    is_freehold: bool,
    has_metro: bool,
    has_beach: bool,
) -> str:
    return (
        f'Generate comprehensive content for the Dubai neighborhood "{name}".\n\n'
        "Context:\n"
        f"- Lifestyle type: {lifestyle_type or 'mixed'}\n"
        f"- Freehold area: {_yes_no(is_freehold)}\n"
        f"- Metro access: {_yes_no(has_metro)}\n"
        f"- Beach access: {_yes_no(has_beach)}\n\n"
        "Return a JSON object with these exact fields:\n"
        "{\n"
        '  "overview": "A 3-4 paragraph overview covering history, character, key attractions and what makes it '
        'unique for investors and residents.",\n'
        '  "pros": ["5-7 specific advantages of living/investing here"],\n'
        '  "cons": ["3-5 honest considerations or challenges"],\n'
        '  "best_for": ["4-6 types of investors or residents this area is ideal for"]\n'
        "}\n\n"
        f"Be specific to {name}, not generic Dubai content."
    )


def property_system_prompt() -> str:
    """
    Listing copy: persuasive but factual, never invents amenities.
    """
    return (
        "You are a copywriter for a Dubai real estate investment platform.\n"
        "Write listing copy that is persuasive but strictly factual.\n"
        "Only mention features present in the listing details; never invent amenities, views or prices.\n"
        "Format responses as valid JSON only, no markdown."
    )


def property_user_prompt(details: dict[str, str]) -> str:
    lines = "\n".join(f"- {key.replace('_', ' ').capitalize()}: {value}" for key, value in details.items() if value)
    return (
        "Listing details:\n"
        f"{lines}\n\n"
        "Return a JSON object with these exact fields:\n"
        "{\n"
        '  "headline": "A headline of at most 12 words",\n'
        '  "description": "Two short paragraphs of listing copy",\n'
        '  "highlights": ["3-5 short bullet highlights"]\n'
        "}"
    )
