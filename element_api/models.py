from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

ELEMENT_KINDS = ("button", "header", "card", "form", "generic")
DEFAULT_KIND = "generic"


def normalize_kind(kind: Any) -> str:
    """Map any requested element type onto one of ELEMENT_KINDS."""
    if not isinstance(kind, str):
        return DEFAULT_KIND
    k = kind.strip().lower()
    return k if k in ELEMENT_KINDS else DEFAULT_KIND


class GeneratedElement(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    html: str = ""
    css: str = ""
    element_type: str = Field(default=DEFAULT_KIND, alias="elementType")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class OAuthTokenResult(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    scope: str = ""
    site_id: Optional[str] = None
