"""System prompt assembly for chat turns."""

import json
from typing import List, Optional, Sequence

from .message import ChatMessage

DEFAULT_PROMPT = """\
You are a Solana trading and research assistant. You help the user look up
tokens, inspect markets and perform on-chain actions with their wallet.

- Use the tools you are given; never invent token addresses, prices or balances.
- Resolve token names to mint addresses with searchTokenByName before acting on them.
- When a tool result already shows the user everything they need, do not repeat it.
- Ask for confirmation before moving funds unless degen mode is enabled.
- Keep answers short and concrete."""


class SystemPrompt:
    """System prompt generator."""

    @classmethod
    def get_default(cls) -> str:
        return DEFAULT_PROMPT

    @staticmethod
    def attachment_history(history: Sequence[ChatMessage]) -> List[dict]:
        """Attachments of every stored message, oldest first."""
        return [
            {"type": attachment.content_type, "data": attachment.url}
            for message in history
            for attachment in message.attachments
        ]

    @classmethod
    def build(
        cls,
        history: Sequence[ChatMessage],
        *,
        public_key: str,
        degen_mode: bool,
        base: Optional[str] = None,
    ) -> str:
        sections = [
            base or cls.get_default(),
            f"History of attachments: {json.dumps(cls.attachment_history(history))}",
            f"User Solana wallet public key: {public_key}",
            f"Degen Mode: {'true' if degen_mode else 'false'}",
        ]
        return "\n\n".join(sections)
