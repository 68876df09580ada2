"""
Prompts for the text enrichment classifier.

Templates are filled with str.format(); literal JSON braces are doubled.
"""

ANALYST_SYSTEM_PROMPT = (
    "You are a non-partisan Canadian political media analyst. "
    "Respond only with a single valid JSON object."
)

ARTICLE_ANALYSIS_PROMPT = """Analyze this Canadian political news article.

Title: {title}
Source: {source}
Content: {content}

Return JSON with exactly these keys:
{{
  "credibilityScore": 0-100,
  "sentimentScore": -1.0 to 1.0,
  "biasRating": "left|center-left|center|center-right|right",
  "keyTopics": ["topic1", "topic2"],
  "politicalImpact": 0-100,
  "factCheck": "one or two sentences on verifiable claims",
  "summary": "two sentence neutral summary",
  "publicImpact": 0-100,
  "propagandaTechniques": ["technique1"],
  "factualityScore": 0-100
}}

Use short topic names such as Healthcare, Economy, Housing, Environment,
Immigration, Justice, Elections or Foreign Affairs. Return an empty list
when no propaganda technique is present.
"""

CLAIM_ANALYSIS_PROMPT = """Examine the factual claims in this Canadian political text.

Content: {content}

Return JSON with exactly these keys:
{{
  "propagandaTechniques": ["technique1"],
  "factualityScore": 0-100,
  "emotionalTone": "neutral|positive|negative|angry|fearful|hopeful",
  "claims": ["each specific factual claim as one sentence"]
}}

Look for loaded language, cherry-picked statistics, false dichotomies,
ad hominem attacks, strawman arguments and appeals to fear.
"""
