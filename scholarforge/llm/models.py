"""Wire models for chat-completion responses."""

import json
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ToolCallFunction(BaseModel):
    name: str
    arguments: str = ""


class ToolCall(BaseModel):
    model_config = ConfigDict(extra="ignore")
    
    id: str
    type: str = "function"
    function: ToolCallFunction


class ChoiceMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")
    
    role: str = "assistant"
    content: str | list[dict[str, Any]] | None = None
    tool_calls: list[ToolCall] | None = None


class Choice(BaseModel):
    model_config = ConfigDict(extra="ignore")
    
    index: int = 0
    message: ChoiceMessage = Field(default_factory=ChoiceMessage)
    finish_reason: str | None = None


class Usage(BaseModel):
    model_config = ConfigDict(extra="ignore")
    
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class CompletionResult(BaseModel):
    """Parsed chat-completion response.
    
    Unknown response fields are ignored so that provider-specific
    extensions do not break parsing.
    """
    
    model_config = ConfigDict(extra="ignore")
    
    id: str = ""
    created: int = 0
    model: str = ""
    choices: list[Choice] = Field(default_factory=list)
    usage: Usage | None = None
    
    @property
    def text(self) -> str:
        """Content of the first choice as a string; text parts are joined."""
        if not self.choices:
            return ""
        content = self.choices[0].message.content
        if content is None:
            return ""
        if isinstance(content, str):
            return content
        return "".join(
            part.get("text", "")
            for part in content
            if isinstance(part, dict) and part.get("type") == "text"
        )
    
    @property
    def tool_calls(self) -> list[ToolCall]:
        if not self.choices:
            return []
        return self.choices[0].message.tool_calls or []
    
    def parse_json(self) -> dict[str, Any] | None:
        """Parse the text content as a JSON object.
        
        Markdown code fences around the payload are tolerated. Returns None
        when the content is not a JSON object.
        """
        raw = self.text.strip()
        fenced = re.match(r"^```(?:json)?\s*([\s\S]*?)\s*```$", raw, re.IGNORECASE)
        if fenced:
            raw = fenced.group(1)
        if not raw:
            return None
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            return None
        return parsed if isinstance(parsed, dict) else None
