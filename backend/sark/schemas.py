from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class GenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: Optional[str] = Field(None, description="Natural-language description of the website")
    current_html: Optional[str] = Field(
        None,
        alias="currentHtml",
        description="Previously generated document to revise; appended verbatim after the revision marker",
    )
    stream: bool = Field(True, description="Relay the upstream event stream; false returns the materialized text")


class ChatMessage(BaseModel):
    role: Literal["system", "user"]
    content: str
