from pydantic import BaseModel, ConfigDict
from typing import Optional


class PreviewResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: Optional[str] = None
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    embed_html: Optional[str] = None

    @classmethod
    def empty(cls) -> "PreviewResult":
        return cls()


class EmbedResponse(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    html: Optional[str] = None

    @classmethod
    def from_result(cls, result: PreviewResult) -> "EmbedResponse":
        return cls(
            title=result.title,
            description=result.description,
            thumbnail_url=result.thumbnail_url,
            html=result.embed_html,
        )
