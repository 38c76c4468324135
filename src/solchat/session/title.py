"""Conversation title generation."""

from ..util.log import Log
from .llm import LLM, StreamInput

log = Log.create({"service": "session.title"})

MAX_TITLE_LENGTH = 80

TITLE_PROMPT = """\
Generate a short title for a conversation that starts with the user's message.
- at most 80 characters
- no quotes or trailing punctuation
- summarize the request, do not answer it"""


def fallback_title(content: str) -> str:
    text = " ".join(content.split())
    if not text:
        return "New conversation"
    if len(text) <= MAX_TITLE_LENGTH:
        return text
    return text[: MAX_TITLE_LENGTH - 3].rstrip() + "..."


async def generate_title(content: str) -> str:
    """Title for a new conversation; truncates the message on failure."""
    try:
        result = await LLM.complete(
            StreamInput(
                messages=[{"role": "user", "content": content}],
                system=TITLE_PROMPT,
                max_tokens=64,
                purpose="title",
            )
        )
    except Exception as e:
        log.warn("title generation failed", {"error": str(e)})
        return fallback_title(content)

    title = result.text.strip().strip('"').strip()
    return fallback_title(title or content)
