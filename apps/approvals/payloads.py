"""
Payload normalizer: turns a loosely-typed sheet row plus an operator decision
into a canonical :class:`ActionPayload`.

Row items come from several sheets whose key sets differ, so every target
field is resolved from a fixed priority list of source keys. The only hard
failure is :class:`MissingIdentifier`, raised when the row cannot be located
by number or by lookup key.
"""
from __future__ import annotations

import logging
import math
import re
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import MissingIdentifier
from .models import (
    ActionPayload,
    ActionType,
    ContentType,
    EditOverrides,
    Lookup,
    RSS_CONTENT_TYPES,
    RssOverrides,
    parse_action,
    parse_content_type,
)

logger = logging.getLogger(__name__)

# content type -> (route, sheet)
ROUTES: Dict[ContentType, Tuple[str, str]] = {
    ContentType.CONTENT: ("content", "text/image"),
    ContentType.NEWS: ("news", "HEALTH NEWS USA- THUMBNAILS"),
    ContentType.RSS: ("rssMedia", "Thumbnail System"),
    ContentType.RSS_NEWS: ("rssNews", "HNN RSS"),
    ContentType.RSS_DENTISTRY: ("rssDentistry", "Dental RSS"),
    ContentType.DENTISTRY: ("dentistry", "DENTAL"),
}

ROW_KEYS = ("index", "rowNumber", "row")
UID_KEYS = ("uid", "id")
LINK_KEYS = ("link", "articleLink", "url", "sourceLink", "source")
TITLE_KEYS = ("title", "headline", "articleTitle")
OPERATOR_HEADLINE_KEYS = ("newHeadline", "reword", "articleHeadline")
EXISTING_HEADLINE_KEYS = ("thumbHeadline", "headline", "reword", "title", "articleTitle")
DETECTED_AGENCY_KEYS = ("agency_header", "agencyHeaderDetected", "display_agency")

_IMG_URL_RE = re.compile(r"ImgURL:(\S+)$")


# -----------------------------------------------------------------------
# Field helpers
# -----------------------------------------------------------------------

def _to_int(value: Any) -> Optional[int]:
    """Coerce a cell value to an int, truncating toward zero; None if not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return math.trunc(value) if math.isfinite(value) else None
    text = str(value).strip()
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    return math.trunc(number) if math.isfinite(number) else None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _first_truthy(item: Mapping[str, Any], keys: Tuple[str, ...]) -> str:
    for key in keys:
        value = item.get(key)
        if value:
            return _text(value)
    return ""


def first_non_empty(item: Mapping[str, Any], keys: Tuple[str, ...]) -> str:
    """Return the first value among *keys* that is non-empty after trimming."""
    for key in keys:
        value = _text(item.get(key))
        if value:
            return value
    return ""


def resolve_row(item: Mapping[str, Any]) -> Optional[int]:
    """Resolve the 1-based sheet row, or None when no usable row exists.

    Explicit row fields win; otherwise ``actualArrayIndex + 2`` accounts for
    the header row. Rows below 2 are rejected.
    """
    row: Optional[int] = None
    for key in ROW_KEYS:
        candidate = _to_int(item.get(key))
        if candidate:
            row = candidate
            break
    if row is None and item.get("actualArrayIndex") is not None:
        array_index = _to_int(item.get("actualArrayIndex"))
        if array_index is not None:
            row = array_index + 2
    if row is None or row < 2:
        return None
    return row


def resolve_lookup(item: Mapping[str, Any]) -> Lookup:
    index = _to_int(item.get("index"))
    return Lookup(
        uid=_first_truthy(item, UID_KEYS),
        link=_first_truthy(item, LINK_KEYS),
        title=_first_truthy(item, TITLE_KEYS),
        index=str(index) if index is not None else "",
    )


# -----------------------------------------------------------------------
# Builder
# -----------------------------------------------------------------------

def build_action_payload(
    action: Any,
    content_type: Any,
    item: Mapping[str, Any],
    overrides: Optional[Mapping[str, Any]] = None,
) -> ActionPayload:
    """Build the payload for one operator action on one row item.

    *overrides* are merged over *item* first, the same way dialog edits are
    merged into the row. Raises :class:`MissingIdentifier` when neither a row
    number >= 2 nor any lookup key can be resolved.
    """
    action_type = parse_action(action)
    service_type = parse_content_type(content_type)
    route, sheet = ROUTES[service_type]

    merged: Dict[str, Any] = dict(item or {})
    if overrides:
        merged.update(overrides)

    row = resolve_row(merged)
    lookup = resolve_lookup(merged)

    new_category = _text(merged.get("newCategory"))
    article_title = _text(merged.get("articleTitle"))
    article_headline = _text(merged.get("articleHeadline"))

    new_headline = first_non_empty(merged, OPERATOR_HEADLINE_KEYS)
    existing_headline = first_non_empty(merged, EXISTING_HEADLINE_KEYS)
    new_image_url = _text(merged.get("newImageUrl"))
    new_caption = _text(merged.get("newCaption"))
    agency_override = _text(merged.get("agencyHeader")).upper()

    caption_mode = _text(merged.get("captionMode")) or "keep"
    thumbnail_change = _text(merged.get("thumbnailChange")) or "keep"

    has_agency_override = bool(agency_override)
    has_user_headline = bool(new_headline)
    has_user_image = bool(new_image_url)

    do_caption_gpt = caption_mode == "gpt"
    do_caption_save_user = caption_mode == "user" and bool(new_caption)

    do_bannerbear = False
    do_gpt_image = False
    if thumbnail_change == "keep":
        do_bannerbear = has_agency_override
    elif thumbnail_change == "headline":
        do_bannerbear = True
    elif thumbnail_change in ("image", "both"):
        # without a user image, both "image" and "both" fall back to GPT
        do_bannerbear = has_user_image
        do_gpt_image = not has_user_image

    if service_type in RSS_CONTENT_TYPES:
        has_edits = bool(new_category or article_headline or article_title)
    else:
        has_edits = (
            caption_mode != "keep"
            or thumbnail_change != "keep"
            or has_agency_override
            or has_user_headline
            or has_user_image
            or bool(new_caption)
        )

    resolved_headline = new_headline if has_user_headline else existing_headline
    resolved_agency_header = (
        agency_override
        if has_agency_override
        else first_non_empty(merged, DETECTED_AGENCY_KEYS).upper()
    )

    payload = ActionPayload(
        action=action_type,
        content_type=service_type,
        route=route,
        sheet=sheet,
        row=row,
        lookup=lookup,
        index=_to_int(merged.get("index")) or 0,
        fallback_row=_to_int(merged.get("rowNumber")) or 0,
        uid=lookup.uid,
        id=_text(merged.get("id")),
        link=lookup.link,
        title=resolved_headline or lookup.title,
        caption_mode=caption_mode,
        thumbnail_change=thumbnail_change,
        agency_header=agency_override,
        new_headline=new_headline,
        typed_image_url=new_image_url,
        new_caption=new_caption,
        new_category=new_category,
        article_title=article_title,
        article_headline=article_headline,
        do_caption_gpt=do_caption_gpt,
        do_caption_save_user=do_caption_save_user,
        do_bannerbear=do_bannerbear,
        do_gpt_image=do_gpt_image,
        is_pure_reject=not has_edits,
        resolved_headline=resolved_headline,
        resolved_image_url=new_image_url if has_user_image else "",
        resolved_agency_header=resolved_agency_header,
        feedback=_text(merged.get("feedback")),
        image_query=_text(merged.get("image_query")),
        headline_improvements=_text(merged.get("headline_improvements")),
        caption_improvements=_text(merged.get("caption_improvements")),
    )

    if not payload.has_identifier():
        raise MissingIdentifier(
            "No row or lookup keys. "
            f"dbg={{index:{merged.get('index')}, rowNumber:{merged.get('rowNumber')}, "
            f"actualArrayIndex:{merged.get('actualArrayIndex')}}}"
        )

    logger.debug(
        f"Built {action_type.value} payload for {service_type.value} "
        f"(route={route}, sheet={sheet}, row={row})"
    )
    return payload


def apply_feedback(
    payload: ActionPayload,
    feedback: str = "",
    image_query: str = "",
    headline_improvements: str = "",
    caption_improvements: str = "",
) -> ActionPayload:
    """Attach reject feedback; a trailing ``ImgURL:<url>`` also sets ``new_image_url``."""
    payload.feedback = feedback or ""
    payload.image_query = image_query or ""
    payload.headline_improvements = headline_improvements or ""
    payload.caption_improvements = caption_improvements or ""
    match = _IMG_URL_RE.search(payload.feedback)
    if match:
        payload.feedback_image_url = match.group(1)
    return payload


def content_edit_rejection(
    content_type: Any,
    item: Mapping[str, Any],
    edits: EditOverrides,
) -> ActionPayload:
    """Reject a content-style row with the caption/thumbnail dialog's edits."""
    overrides = edits.normalized()
    image_url = overrides.get("newImageUrl", "")
    summary = f"Caption:{overrides['captionMode']} | Thumb:{overrides['thumbnailChange']}"
    if image_url:
        summary = f"{summary} | ImgURL:{image_url}"

    payload = build_action_payload(ActionType.REJECT, content_type, item, overrides)
    return apply_feedback(
        payload,
        feedback=summary,
        headline_improvements=(edits.new_headline or "").strip(),
        caption_improvements=(edits.new_caption or "").strip(),
    )


def rss_rejection(
    content_type: Any,
    item: Mapping[str, Any],
    edits: RssOverrides,
) -> ActionPayload:
    """Reject an RSS row with the completion dialog's category and titles."""
    payload = build_action_payload(ActionType.REJECT, content_type, item, edits.normalized())
    return apply_feedback(
        payload,
        feedback="",
        headline_improvements=edits.article_headline or "",
        caption_improvements=edits.article_title or "",
    )
