"""Outbound notifications to the sender's chat."""

from abc import ABC, abstractmethod
from typing import Optional

import httpx

from ..utils.logger import get_app_logger


WELCOME_MESSAGE = """Hey! 👋 I'm your AI assistant. Here's what I can help you with:

📧 **Create a Newsletter** - Just say "Create a newsletter about [topic]" and I'll write one for you

🔍 **Research** - Ask me to research any topic and I'll put together a brief

What would you like to do?"""

HELP_MESSAGE = """Here's how I can help:

📧 **Newsletter Creation**
Just tell me what you want a newsletter about, and I'll:
1. Ask a few questions to understand your needs
2. Generate a professional newsletter
3. Send you a preview link to review and approve

**Try saying:**
• "Create a newsletter about AI trends"
• "I need a newsletter for my fitness audience"
• "Write a newsletter about productivity tips"

What would you like me to create?"""

TEXT_ONLY_MESSAGE = "I can only read text messages for now. Could you type that out for me?"


def preview_message(title: str, review_url: str) -> str:
    return f"✨ Your draft \"{title}\" is ready!\n\nReview it here: {review_url}"


def approval_message() -> str:
    return "✅ Approved and ready to send!"


def revision_message(feedback: str) -> str:
    return (
        f"📝 This needs revision.\n\nFeedback: {feedback}\n\n"
        "Please provide updated details and we'll generate a new version."
    )


def working_message(worker_name: Optional[str]) -> str:
    who = worker_name or "The team"
    return f"⏳ {who} is working on it. I'll send you a preview link as soon as it's ready."


def waiting_review_message(review_url: str) -> str:
    return f"👀 Your draft is waiting for review: {review_url}"


def busy_message() -> str:
    return "🙏 Everyone who could take this is busy right now. Send me any message and I'll try again."


def started_message() -> str:
    return "👍 Got everything I need! Starting on it now, I'll send you a preview link when it's ready."


class BaseNotifier(ABC):
    """Send-to-sender channel."""

    @abstractmethod
    async def notify(self, owner_key: str, text: str) -> bool:
        """
        Deliver a message to the sender.

        Returns:
            True if delivered
        """
        pass

    async def close(self) -> None:
        return None


class TelegramNotifier(BaseNotifier):
    """Telegram Bot API sender; logs instead of sending when no token is configured."""

    def __init__(
        self,
        bot_token: Optional[str] = None,
        api_base: str = "https://api.telegram.org",
        client: Optional[httpx.AsyncClient] = None
    ):
        self.bot_token = bot_token
        self.logger = get_app_logger("notifier")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=api_base.rstrip("/"), timeout=10.0)

    async def notify(self, owner_key: str, text: str) -> bool:
        if not self.bot_token:
            self.logger.info(f"[TELEGRAM] No bot token configured. Message for chat {owner_key}: {text}")
            return False

        try:
            response = await self.client.post(
                f"/bot{self.bot_token}/sendMessage",
                json={"chat_id": owner_key, "text": text, "parse_mode": "Markdown"},
            )
        except httpx.HTTPError as e:
            self.logger.error(f"[TELEGRAM] Request error for chat {owner_key}: {e}")
            return False

        if response.status_code != 200:
            self.logger.error(f"[TELEGRAM] API error {response.status_code}: {response.text}")
            return False

        self.logger.info(f"[TELEGRAM] Message sent successfully to chat {owner_key}")
        return True

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()
