from typing import Optional

from pydantic import BaseModel, Field, HttpUrl

from quadra.models.language import SUPPORTED_LANGUAGES, LanguageCode

_LANGUAGE_HELP = ", ".join(f"`{code}` ({name})" for code, name in SUPPORTED_LANGUAGES.items())


class TranslateRequest(BaseModel):
    url: HttpUrl
    target_language: LanguageCode = Field(
        default="es",
        description=f"Target language code: {_LANGUAGE_HELP}.",
    )
    session_id: Optional[str] = Field(
        default=None,
        max_length=128,
        description=(
            "Identifies the caller's session. A new request cancels the session's "
            "in-flight translation. Defaults to the client address."
        ),
    )
