"""Request bodies accepted by the HTTP API."""

from pydantic import BaseModel, ConfigDict, Field


class ImagePayload(BaseModel):
    """An uploaded image referenced by its public URL."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    image_url: str = Field(alias="imageUrl")


class CheckoutRequest(BaseModel):
    """Body of POST /checkout-session."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    images: list[ImagePayload] = Field(default_factory=list)
    prompt: str = ""
    user_id: str | None = Field(default=None, alias="userId")


class UpdateSessionMetadataRequest(BaseModel):
    """Body of POST /update-session-metadata."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    session_id: str | None = Field(default=None, alias="sessionId")
    user_id: str | None = Field(default=None, alias="userId")
    chat_id: int | str | None = Field(default=None, alias="chatId")


class SharedSessionRequest(BaseModel):
    """Body of POST /shared-sessions."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    session_id: str | None = Field(default=None, alias="sessionId")
    chat_id: int | None = Field(default=None, alias="chatId")
