"""Prompt templates for all LLM tasks."""

SYSTEM_ANALYST = """You are a data analyst covering Bitcoin mining, energy and data centers.
Report only numbers that appear in the material you are given.
If the material does not support a figure, leave it out."""

EXTRACT_KPIS = """\
Extract industry-wide Bitcoin mining sustainability KPIs from the sources below.

SOURCES:
{documents}

Rules:
- Use only figures stated in the sources. Omit any KPI you cannot support.
- {mode_rule}
- Cite the URLs each figure came from.

Respond in EXACTLY this JSON format (no markdown, no extra text):
{{
    "renewablePercent": 0,
    "pue": 0,
    "carbonKgPerKwh": 0,
    "breakEvenUsd": 0,
    "citations": {{
        "renewablePercent": ["url"],
        "pue": ["url"],
        "carbonKgPerKwh": ["url"],
        "breakEvenUsd": ["url"]
    }}
}}"""

CONSENSUS_RULE = (
    "Prefer figures that at least two independent sources agree on within 15%."
)
RELAXED_RULE = (
    "A figure from a single credible source is acceptable when no two sources agree."
)

PLAN_QUERIES = """\
Plan web searches for recent news about Bitcoin mining economics, \
sustainability, AI/HPC data centers and regulation.

CURRENT DATA:
{context}

Respond in EXACTLY this JSON format (no markdown, no extra text):
{{
    "queries": ["3-6 short search queries"],
    "domains": ["up to 10 reputable news domains, e.g. coindesk.com"]
}}"""

KPI_QUERIES = {
    "renewable_percent": "bitcoin mining renewable energy share percentage survey",
    "pue": "bitcoin mining data center PUE power usage effectiveness average",
    "carbon_kg_per_kwh": "bitcoin mining carbon intensity kg CO2 per kWh",
    "break_even_usd": "bitcoin mining break-even price all-in cost per BTC",
}

SYSTEM_RESEARCHER = """You are a research assistant for a Bitcoin mining publication.
Work only from the verified data provided. Never invent statistics."""

RESEARCH_TOPIC = """\
Prepare research notes for an article.

TOPIC: {title}
DESCRIPTION: {description}
FOCUS AREAS: {focus_areas}

VERIFIED DATA (unknown values are omitted):
{facts}

RECENT HEADLINES:
{headlines}

Write 4-6 bullet points covering the key facts, the likely reader questions \
and the angles worth exploring. Do not add numbers that are not listed above."""

SYSTEM_WRITER = """You are a senior writer for a Bitcoin mining and energy publication.
Write clear, accurate articles for an informed audience. Use active voice.
Quote only the figures you are given."""

WRITE_ARTICLE = """\
Write a long-form article in Markdown.

TOPIC: {title}
DESCRIPTION: {description}
AUDIENCE LEVEL: {difficulty}
KEYWORDS: {keywords}

VERIFIED DATA:
{facts}

RESEARCH NOTES:
{notes}

Requirements:
- Start with a single "# " title line.
- 700-1000 words with "## " section headings.
- End with a short conclusion."""

SYSTEM_SOCIAL = """You adapt long-form articles into social media posts.
Keep every number exactly as written in the article."""

REPURPOSE = """\
Adapt this article for {platform}.

PLATFORM RULES: {rules}

TITLE: {title}
ARTICLE:
{body}

Respond with ONLY the post text, including hashtags at the end."""

PLATFORM_RULES = {
    "twitter": "At most 280 characters. One sharp insight, 1-2 hashtags.",
    "linkedin": (
        "At most 3000 characters. Professional tone, short paragraphs, "
        "a question to close, 3-5 hashtags."
    ),
    "instagram": (
        "At most 2200 characters. A strong first line, emoji sparingly, "
        "up to 30 hashtags at the end."
    ),
    "facebook": "Conversational, 2-4 short paragraphs, ends with a question.",
}
