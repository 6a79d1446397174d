"""
PraanaCare - Message Risk Analyzer

Keyword screening of worker chat messages. Produces the risk score,
recommendations and follow-up actions attached to every assistant reply,
regardless of whether a remote model wrote the reply text.
"""

from dataclasses import dataclass, field
from typing import List

from praanacare.config import (
    MESSAGE_KEYWORD_GROUPS,
    DEFAULT_MESSAGE_RISK,
    DEFAULT_MESSAGE_RECOMMENDATIONS,
)


@dataclass
class MessageAnalysis:
    """Outcome of screening one message."""
    risk_score: int
    recommendations: List[str] = field(default_factory=list)
    actions: List[dict] = field(default_factory=list)
    matched_groups: List[str] = field(default_factory=list)


def analyze_message(text: str) -> MessageAnalysis:
    """
    Screen a message against the fixed keyword groups.

    When several groups match, the highest group score wins and the
    recommendations and actions of every matched group are kept, in
    group order. A message matching nothing scores the default risk
    with generic advice and no actions.

    Args:
        text: Raw message; matching is case-insensitive

    Returns:
        MessageAnalysis: risk score, recommendations, actions
    """
    message = (text or "").lower()
    analysis = MessageAnalysis(risk_score=0)

    for group in MESSAGE_KEYWORD_GROUPS:
        if not any(keyword in message for keyword in group["keywords"]):
            continue
        analysis.matched_groups.append(group["name"])
        analysis.risk_score = max(analysis.risk_score, group["risk_score"])
        analysis.recommendations.extend(group["recommendations"])
        analysis.actions.append(dict(group["action"]))

    if not analysis.matched_groups:
        analysis.risk_score = DEFAULT_MESSAGE_RISK
        analysis.recommendations.extend(DEFAULT_MESSAGE_RECOMMENDATIONS)

    return analysis
