"""Intent detection for project chat messages."""

from enum import Enum
from typing import Optional, Protocol

from pydantic import BaseModel, Field

from vibeproxy.constants import INTENT_KEYWORDS


class Intent(str, Enum):
    """What a chat message asks the service to do."""

    APPROVE = "approve"  # commit the workspace to the remote repository
    DEPLOY = "deploy"  # explain how to deploy the project
    MODIFY = "modify"  # run the agent workflow
    GENERAL = "general"  # plain conversation


class IntentResult(BaseModel):
    """Detected user intent."""

    intent: Intent = Field(description="The classified intent")
    keyword: Optional[str] = Field(None, description="Keyword that triggered the classification")
    reasoning: str = Field(description="Explanation of why this intent was detected")


class IntentClassifier(Protocol):
    """Anything that maps free text to an IntentResult."""

    def classify(self, text: str) -> IntentResult: ...


def classify_intent(text: str) -> IntentResult:
    """Classify a message by case-insensitive keyword substring matching.

    Intents are checked in order approve, deploy, modify; the first keyword
    found decides. Messages matching nothing are general conversation.

    Args:
        text: User message

    Returns:
        IntentResult
    """
    lowered = text.lower()

    for intent in (Intent.APPROVE, Intent.DEPLOY, Intent.MODIFY):
        for keyword in INTENT_KEYWORDS[intent.value]:
            if keyword in lowered:
                return IntentResult(
                    intent=intent,
                    keyword=keyword,
                    reasoning=f"Keyword '{keyword}' detected",
                )

    return IntentResult(intent=Intent.GENERAL, reasoning="No action keywords detected")


class KeywordIntentClassifier:
    """IntentClassifier backed by classify_intent."""

    def classify(self, text: str) -> IntentResult:
        return classify_intent(text)
