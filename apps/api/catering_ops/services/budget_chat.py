"""
Budget assistant for regional managers, backed by OpenAI chat completions.
"""
import logging
from typing import Optional

import openai
from openai import OpenAI

from catering_ops.core.config import get_settings
from catering_ops.core.exceptions import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10
TEMPERATURE = 0.7
MAX_TOKENS = 1024

SYSTEM_PROMPT = """You are a helpful budget assistant for a regional manager at a catering and food service company operating multiple school canteen branches in the UAE.

Your role is to help the regional manager:
1. Understand their budget data and spending patterns
2. Identify cost-saving opportunities
3. Forecast future budget needs
4. Make data-driven budget decisions
5. Optimize resource allocation across branches

When responding:
- Be concise but helpful
- Use specific numbers from the provided context when available
- Provide actionable insights and recommendations
- Format currency in AED (UAE Dirhams)
- Consider the operational context of food service businesses (staffing, supplies, maintenance, utilities, equipment)
- Be encouraging about good budget management while being clear about areas needing attention

If the budget data seems to be placeholder/demo data, acknowledge this and explain that more accurate insights will be available once real budget data is imported."""


def build_messages(message: str, context: Optional[str] = None, history: Optional[list[dict]] = None) -> list[dict]:
    """
    Assemble the chat transcript sent to the model.

    Only the last ``HISTORY_LIMIT`` history entries are considered, and of
    those only user and assistant turns are kept.
    """
    messages = [{"role": "system", "content": SYSTEM_PROMPT}]
    if context:
        messages.append({"role": "system", "content": f"Here is the current budget context:\n\n{context}"})
    for turn in (history or [])[-HISTORY_LIMIT:]:
        if turn.get("role") in ("user", "assistant"):
            messages.append({"role": turn["role"], "content": turn.get("content") or ""})
    messages.append({"role": "user", "content": message.strip()})
    return messages


class BudgetChatService:
    """
    Answers budget questions with the configured OpenAI model.

    ``client`` may be injected (tests pass a fake exposing
    ``chat.completions.create``); otherwise one is built from
    ``OPENAI_API_KEY`` when it is set.
    """

    def __init__(self, api_key: Optional[str] = None, client=None):
        settings = get_settings()
        self.api_key = api_key or settings.OPENAI_API_KEY
        self.model = settings.OPENAI_MODEL
        self.client = client or (OpenAI(api_key=self.api_key) if self.api_key else None)

    @property
    def configured(self) -> bool:
        return self.client is not None

    def reply(self, message: str, context: Optional[str] = None, history: Optional[list[dict]] = None) -> str:
        if not self.configured:
            raise UpstreamError("AI service is not configured. Please set OPENAI_API_KEY.", status_code=503)
        if not message or not message.strip():
            raise ValidationError("Please provide a message")

        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=build_messages(message, context, history),
                temperature=TEMPERATURE,
                max_tokens=MAX_TOKENS,
            )
        except openai.AuthenticationError as e:
            logger.error(f"OpenAI authentication failed: {e}")
            raise UpstreamError("Invalid OpenAI API key", status_code=500)
        except openai.RateLimitError as e:
            logger.warning(f"OpenAI rate limit hit: {e}")
            raise UpstreamError("Rate limit exceeded. Please try again in a moment.", status_code=429)

        choices = completion.choices or []
        response = choices[0].message.content if choices else None
        if not response:
            raise UpstreamError("No response received from AI", status_code=500)
        return response
