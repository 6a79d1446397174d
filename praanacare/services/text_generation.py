"""
PraanaCare - Assistant Reply Generation

The assistant's risk score, recommendations and actions always come from
the keyword analyser. A remote chat model, when configured, only writes
the displayed text; without it (or when it fails) a canned reply chosen
by risk score is used instead.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional, Protocol

from openai import OpenAI

from praanacare.config import (
    REMOTE_REPLY_CONFIDENCE,
    FALLBACK_REPLY_CONFIDENCE,
    FALLBACK_REPLIES,
    EMPTY_REMOTE_REPLY,
    EMERGENCY_RISK_SCORE,
)
from praanacare.core.logging import logger
from praanacare.core.settings import get_settings
from praanacare.services.message_risk import analyze_message

settings = get_settings()

REMOTE = "remote"
FALLBACK = "fallback"


class TextGenerator(Protocol):
    def generate(self, system_prompt: str, message: str) -> str:
        ...


class OpenAITextGenerator:
    """Chat-completion backed generator."""

    def __init__(
        self,
        api_key: str,
        model: str = settings.OPENAI_MODEL,
        max_tokens: int = settings.OPENAI_MAX_TOKENS,
        temperature: float = settings.OPENAI_TEMPERATURE,
        timeout: float = settings.OPENAI_TIMEOUT_SECONDS
    ):
        self.client = OpenAI(api_key=api_key, timeout=timeout)
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    def generate(self, system_prompt: str, message: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": message},
            ],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        return response.choices[0].message.content or EMPTY_REMOTE_REPLY


@dataclass
class AssistantReply:
    content: str
    confidence: int
    risk_score: int
    recommendations: List[str] = field(default_factory=list)
    actions: List[dict] = field(default_factory=list)
    origin: str = FALLBACK

    @property
    def is_emergency(self) -> bool:
        return self.risk_score > EMERGENCY_RISK_SCORE


def fallback_reply(risk_score: int) -> str:
    """Canned reply text for a given message risk score."""
    if risk_score > 80:
        return FALLBACK_REPLIES["emergency"]
    if risk_score > 50:
        return FALLBACK_REPLIES["elevated"]
    return FALLBACK_REPLIES["routine"]


class AssistantService:
    """
    Produces assistant replies for worker messages.

    Args:
        generator: Optional remote text generator; None means canned replies only
    """

    def __init__(self, generator: Optional[TextGenerator] = None):
        self.generator = generator

    def reply(self, message: str, context: str) -> AssistantReply:
        analysis = analyze_message(message.lower())
        reply = AssistantReply(
            content="",
            confidence=FALLBACK_REPLY_CONFIDENCE,
            risk_score=analysis.risk_score,
            recommendations=analysis.recommendations,
            actions=analysis.actions,
        )

        if self.generator is not None:
            try:
                reply.content = self.generator.generate(context, message)
                reply.confidence = REMOTE_REPLY_CONFIDENCE
                reply.origin = REMOTE
                return reply
            except Exception as e:
                logger.warning(f"Remote assistant unavailable, using fallback reply: {e}")

        reply.content = fallback_reply(analysis.risk_score)
        return reply


@lru_cache()
def build_generator() -> Optional[TextGenerator]:
    """Remote generator from settings, or None when no API key is configured."""
    if not settings.assistant_configured:
        return None
    return OpenAITextGenerator(api_key=settings.OPENAI_API_KEY)
