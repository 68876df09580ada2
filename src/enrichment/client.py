"""
Text enrichment client.

Sends article text to an OpenAI chat model in JSON mode and validates the
reply into EnrichmentLabels. Enrichment is best effort: any provider error,
malformed JSON or schema mismatch yields the fixed default labels so the
article is still stored and counted.
"""
import json
import logging
from typing import Any, Dict, Optional, Tuple

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from src.config.constants import ENRICHMENT_TEXT_LIMIT
from src.config.settings import settings
from src.enrichment.prompts import (
    ANALYST_SYSTEM_PROMPT,
    ARTICLE_ANALYSIS_PROMPT,
    CLAIM_ANALYSIS_PROMPT,
)
from src.models.article import EnrichmentLabels, default_labels

# Response keys (camelCase, as requested in the prompts) to label fields
RESPONSE_FIELDS = {
    "credibilityScore": "credibility_score",
    "sentimentScore": "sentiment_score",
    "biasRating": "bias_rating",
    "biasAnalysis": "bias_rating",
    "keyTopics": "key_topics",
    "politicalImpact": "political_impact",
    "factCheck": "fact_check",
    "summary": "summary",
    "publicImpact": "public_impact",
    "propagandaTechniques": "propaganda_techniques",
    "factualityScore": "factuality_score",
    "emotionalTone": "emotional_tone",
    "claims": "claims",
}


# A reply must carry at least one of these fields to count as an answer
ARTICLE_FIELDS = ("credibility_score", "bias_rating")
CLAIM_FIELDS = ("propaganda_techniques", "factuality_score", "emotional_tone", "claims")


def labels_from_response(data: Any, required: Tuple[str, ...] = ()) -> EnrichmentLabels:
    """
    Validate a decoded model reply into labels.

    Args:
        data: Decoded JSON reply
        required: Label fields of which at least one must be present

    Raises:
        ValueError: If the reply is not a JSON object or has none of the expected fields
        ValidationError: If a field has an unusable value
    """
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    fields: Dict[str, Any] = {}
    for key, value in data.items():
        name = RESPONSE_FIELDS.get(key, key)
        if name in EnrichmentLabels.model_fields and name != "fallback":
            fields[name] = value
    if not fields or (required and not any(name in fields for name in required)):
        raise ValueError(f"Reply has none of the expected fields: {sorted(data)[:10]}")
    return EnrichmentLabels.model_validate(fields)


class TextEnrichmentClient:
    """
    Classifier over the OpenAI chat completions API.

    Without an API key every call returns the default labels.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        client: Optional[AsyncOpenAI] = None,
        text_limit: int = ENRICHMENT_TEXT_LIMIT
    ):
        """
        Args:
            api_key: OpenAI key (default from settings)
            model: Chat model name (default from settings)
            temperature: Sampling temperature (default from settings)
            client: Preconfigured AsyncOpenAI client, used as-is
            text_limit: Characters of input text sent to the model
        """
        self.logger = logging.getLogger(self.__class__.__name__)
        self.model = model or settings.ENRICHMENT_MODEL
        self.temperature = temperature if temperature is not None else settings.ENRICHMENT_TEMPERATURE
        self.text_limit = text_limit

        key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self._client = client if client is not None else (AsyncOpenAI(api_key=key) if key else None)
        self._warned_unavailable = False

    @property
    def available(self) -> bool:
        return self._client is not None

    def truncate(self, text: Optional[str]) -> str:
        return (text or "")[:self.text_limit]

    def _unavailable(self) -> EnrichmentLabels:
        if not self._warned_unavailable:
            self.logger.warning("OPENAI_API_KEY not set, storing default enrichment labels")
            self._warned_unavailable = True
        return default_labels()

    async def _complete_json(self, prompt: str) -> Any:
        """One chat completion in JSON mode, decoded."""
        response = await self._client.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": ANALYST_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        )
        content = response.choices[0].message.content or ""
        return json.loads(content)

    async def classify(self, text: str, title: str = "", source: str = "") -> EnrichmentLabels:
        """
        Label an article.

        Args:
            text: Article body (truncated before sending)
            title: Headline
            source: Outlet name

        Returns:
            Validated labels, or the default labels if anything went wrong
        """
        if not self.available:
            return self._unavailable()

        prompt = ARTICLE_ANALYSIS_PROMPT.format(
            title=title or "Untitled",
            source=source or "Unknown",
            content=self.truncate(text),
        )
        try:
            return labels_from_response(await self._complete_json(prompt), required=ARTICLE_FIELDS)
        except (OpenAIError, ValueError, ValidationError) as e:
            self.logger.warning(f"Classification failed for {title[:60]!r}, using defaults: {e}")
        except Exception as e:
            self.logger.error(f"Unexpected classification error for {title[:60]!r}, using defaults: {e}", exc_info=True)
        return default_labels()

    async def analyze_claims(self, text: str) -> EnrichmentLabels:
        """
        Claim-level analysis: propaganda techniques, factuality, tone and claims.

        Fields outside that schema keep their defaults.
        """
        if not self.available:
            return self._unavailable()

        prompt = CLAIM_ANALYSIS_PROMPT.format(content=self.truncate(text))
        try:
            return labels_from_response(await self._complete_json(prompt), required=CLAIM_FIELDS)
        except (OpenAIError, ValueError, ValidationError) as e:
            self.logger.warning(f"Claim analysis failed, using defaults: {e}")
        except Exception as e:
            self.logger.error(f"Unexpected claim analysis error, using defaults: {e}", exc_info=True)
        return default_labels()
