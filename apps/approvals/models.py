"""
Pydantic models and enums for the approval desk.

``ActionPayload`` is the wire object sent to the automation endpoint. Python
attributes are snake_case; :meth:`ActionPayload.to_wire` serializes with the
camelCase (and a few snake_case) keys the n8n flow reads.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .errors import UnknownContentType


class ActionType(str, Enum):
    """Operator decision carried by an action payload."""

    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"


class ContentType(str, Enum):
    """Review queue a row belongs to."""

    CONTENT = "content"
    NEWS = "news"
    RSS = "rss"
    RSS_NEWS = "rssNews"
    RSS_DENTISTRY = "rssDentistry"
    DENTISTRY = "dentistry"


# UI tags that collapse onto a service content type
CONTENT_TYPE_ALIASES: Dict[str, ContentType] = {
    "regenerated": ContentType.CONTENT,
    "rssmedia": ContentType.RSS,
}

_CONTENT_TYPES_BY_KEY: Dict[str, ContentType] = {ct.value.lower(): ct for ct in ContentType}

RSS_CONTENT_TYPES = frozenset({
    ContentType.RSS,
    ContentType.RSS_NEWS,
    ContentType.RSS_DENTISTRY,
})


def parse_content_type(tag: Any) -> ContentType:
    """Resolve a content-type tag case-insensitively, accepting UI aliases."""
    if isinstance(tag, ContentType):
        return tag
    key = str(tag or "").strip().lower()
    content_type = _CONTENT_TYPES_BY_KEY.get(key) or CONTENT_TYPE_ALIASES.get(key)
    if content_type is None:
        known = ", ".join(ct.value for ct in ContentType)
        raise UnknownContentType(f"Unknown content type '{tag}'. Expected one of: {known}")
    return content_type


def parse_action(value: Any) -> ActionType:
    if isinstance(value, ActionType):
        return value
    key = str(value or "").strip().lower()
    try:
        return ActionType(key)
    except ValueError:
        raise ValueError("action must be one of: submit, approve, reject") from None


# ============================================================
# Wire payload
# ============================================================

class Lookup(BaseModel):
    """Fallback identifiers used when the row number is not reliable."""

    uid: str = ""
    link: str = ""
    title: str = ""
    index: str = ""

    def is_empty(self) -> bool:
        return not (self.uid or self.link or self.title or self.index)


class ActionPayload(BaseModel):
    """Normalized operator action, ready for dispatch."""

    model_config = ConfigDict(populate_by_name=True)

    action: ActionType
    content_type: ContentType = Field(..., alias="contentType")
    route: str
    sheet: str
    row: Optional[int] = None
    lookup: Lookup = Field(default_factory=Lookup)
    index: int = 0
    fallback_row: int = Field(0, alias="fallbackRow")
    uid: str = ""
    id: str = ""
    link: str = ""
    title: str = ""

    # operator edits
    caption_mode: str = Field("keep", alias="captionMode")
    thumbnail_change: str = Field("keep", alias="thumbnailChange")
    agency_header: str = Field("", alias="agencyHeader")
    new_headline: str = Field("", alias="newHeadline")
    typed_image_url: str = Field("", alias="newImageUrl")
    new_caption: str = Field("", alias="newCaption")
    new_category: str = Field("", alias="newCategory")
    article_title: str = Field("", alias="articleTitle")
    article_headline: str = Field("", alias="articleHeadline")

    # routing flags for the automation flow
    do_caption_gpt: bool = Field(False, alias="doCaptionGPT")
    do_caption_save_user: bool = Field(False, alias="doCaptionSaveUser")
    do_bannerbear: bool = Field(False, alias="doBannerbear")
    do_gpt_image: bool = Field(False, alias="doGPTImage")
    is_pure_reject: bool = Field(True, alias="isPureReject")

    resolved_headline: str = Field("", alias="resolvedHeadline")
    resolved_image_url: str = Field("", alias="resolvedImageUrl")
    resolved_agency_header: str = Field("", alias="resolvedAgencyHeader")

    # free-text feedback
    feedback: str = ""
    image_query: str = ""
    headline_improvements: str = ""
    caption_improvements: str = ""
    feedback_image_url: Optional[str] = Field(None, alias="new_image_url")

    def has_valid_row(self) -> bool:
        return self.row is not None and self.row >= 2

    def has_identifier(self) -> bool:
        """True when the row can be located by number or by lookup key."""
        return self.has_valid_row() or not self.lookup.is_empty()

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with wire keys; ``new_image_url`` is omitted when unset."""
        data = self.model_dump(by_alias=True, mode="json")
        if data.get("new_image_url") is None:
            data.pop("new_image_url", None)
        return data


# ============================================================
# Operator edits
# ============================================================

class EditOverrides(BaseModel):
    """Edits from the caption/thumbnail dialog (content, news, dentistry)."""

    model_config = ConfigDict(populate_by_name=True)

    caption_mode: Literal["keep", "gpt", "user"] = Field("keep", alias="captionMode")
    thumbnail_change: Literal["keep", "headline", "image", "both"] = Field(
        "keep", alias="thumbnailChange"
    )
    new_headline: Optional[str] = Field(None, alias="newHeadline")
    new_image_url: Optional[str] = Field(None, alias="newImageUrl")
    new_caption: Optional[str] = Field(None, alias="newCaption")
    agency_header: Optional[str] = Field(None, alias="agencyHeader")

    def normalized(self) -> Dict[str, Any]:
        """Return item-shaped overrides with empty values dropped.

        A typed image URL with the thumbnail left on ``keep`` is treated as an
        image change.
        """
        url = (self.new_image_url or "").strip()
        thumbnail_change = self.thumbnail_change
        if url and thumbnail_change == "keep":
            thumbnail_change = "image"

        overrides: Dict[str, Any] = {
            "captionMode": self.caption_mode,
            "thumbnailChange": thumbnail_change,
        }
        headline = (self.new_headline or "").strip()
        caption = (self.new_caption or "").strip()
        agency = (self.agency_header or "").strip().upper()
        if headline:
            overrides["newHeadline"] = headline
        if url:
            overrides["newImageUrl"] = url
        if caption:
            overrides["newCaption"] = caption
        if agency:
            overrides["agencyHeader"] = agency
        return overrides


class RssOverrides(BaseModel):
    """Edits from the RSS completion dialog."""

    model_config = ConfigDict(populate_by_name=True)

    new_category: Optional[str] = Field(None, alias="newCategory")
    article_title: Optional[str] = Field(None, alias="articleTitle")
    article_headline: Optional[str] = Field(None, alias="articleHeadline")

    def normalized(self) -> Dict[str, Any]:
        overrides: Dict[str, Any] = {}
        for key, value in (
            ("newCategory", self.new_category),
            ("articleTitle", self.article_title),
            ("articleHeadline", self.article_headline),
        ):
            cleaned = (value or "").strip()
            if cleaned:
                overrides[key] = cleaned
        return overrides


# ============================================================
# API request models
# ============================================================

class ActionRequest(BaseModel):
    """Operator action submitted to POST /api/v1/actions."""

    model_config = ConfigDict(populate_by_name=True)

    action: ActionType
    content_type: str = Field(..., alias="contentType", min_length=1, max_length=50)
    item: Dict[str, Any] = Field(default_factory=dict)
    edits: Optional[EditOverrides] = None
    rss_edits: Optional[RssOverrides] = Field(None, alias="rssEdits")
    feedback: str = ""
    image_query: str = Field("", alias="imageQuery")


class UndoRequest(BaseModel):
    """Clears the local decision recorded for an item."""

    item: Dict[str, Any]
