"""
Prompt builders for the daily market digest.
"""

from __future__ import annotations


def digest_system_prompt() -> str:
    return (
        "You are a senior Dubai real estate analyst creating a daily market briefing for sophisticated investors.\n"
        "Analyze today's news articles and create a daily digest with:\n"
        "1. Headline: a Bloomberg-style headline for the most important development (max 15 words)\n"
        "2. Executive summary: 2-3 paragraphs on key developments, market movements and investment implications\n"
        '3. Market sentiment: one of "bullish", "bearish", "neutral" or "mixed"\n'
        "4. Sector highlights: a 1-sentence insight per relevant sector (off-plan, ready, rental, commercial)\n"
        "5. Area highlights: a 1-sentence insight per mentioned Dubai area\n"
        "6. Key metrics: specific numbers mentioned (transaction values, price changes, yields)\n\n"
        "Format your response as JSON with this exact structure:\n"
        "{\n"
        '  "headline": "...",\n'
        '  "executive_summary": "...",\n'
        '  "market_sentiment": "bullish|bearish|neutral|mixed",\n'
        '  "sector_highlights": {"off_plan": "...", "ready": "..."},\n'
        '  "area_highlights": {"Downtown Dubai": "..."},\n'
        '  "key_metrics": {"total_transactions": "...", "avg_price_change": "..."}\n'
        "}"
    )


def digest_user_prompt(articles: list[dict]) -> str:
    summary = "\n\n".join(
        f"{i}. [{a.get('category') or 'general'}] {a.get('title') or ''}\n"
        f"   {a.get('excerpt') or ''}\n"
        f"   Rating: {a.get('investment_rating') or 'N/A'}"
        for i, a in enumerate(articles, start=1)
    )
    return f"Create a daily market digest from these {len(articles)} articles published in the last 24 hours:\n\n{summary}"
