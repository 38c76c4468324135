"""Web page reader backed by the Jina reader service."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ..core.env import Env
from ..util.log import Log
from . import http
from .tool import Tool, ToolContext, ToolPayload, tool_failure, tool_success

log = Log.create({"service": "tool.jina"})

JINA_READER = "https://r.jina.ai"
MAX_CONTENT_CHARS = 20_000


class ReadWebPageParams(BaseModel):
    url: str = Field(..., description="The URL of the page to read")


async def read_web_page_execute(params: ReadWebPageParams, ctx: ToolContext) -> ToolPayload:
    if not params.url.startswith(("http://", "https://")):
        return tool_failure("URL must start with http:// or https://")

    headers = {
        "Authorization": f"Bearer {Env.get('JINA_API_KEY') or ''}",
        "X-Return-Format": "markdown",
    }
    try:
        content = await http.get_text(
            f"{JINA_READER}/{params.url}",
            headers=headers,
            timeout=http.timeout_for(ctx.extra),
        )
    except Exception as e:
        log.warn("web page read failed", {"url": params.url, "error": str(e)})
        return tool_failure(e, "Failed to read web page")

    truncated = len(content) > MAX_CONTENT_CHARS
    return tool_success(
        data={"url": params.url, "content": content[:MAX_CONTENT_CHARS], "truncated": truncated},
    )


ReadWebPageTool = Tool.define(
    tool_id="readWebPage",
    description="Read the content of a web page as markdown.",
    parameters_type=ReadWebPageParams,
    execute_fn=read_web_page_execute,
    required_env_vars=("JINA_API_KEY",),
)
