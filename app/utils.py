from typing import List, Dict, Any, Callable, Iterable, Optional, Union, Tuple
from datetime import datetime, timezone
import asyncio
import json
import math
import re
import unicodedata

from beanie.exceptions import RevisionIdWasChanged
from pymongo.errors import DuplicateKeyError

from .exceptions import NotFoundError

WORDS_PER_MINUTE = 200


async def paginate_query(
    model,
    query_filters: dict,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    page: int = 1,
    limit: int = 10,
    transform_func: Optional[Callable] = None,
) -> Tuple[List[Any], Dict[str, Any]]:
    """Generic pagination function for MongoDB queries

    Args:
        model: The Beanie document model to query
        query_filters: Dictionary of query filters
        sort_by: Field to sort by (default: created_at)
        sort_order: "asc" or "desc" (default: desc)
        page: Page number, 1-based (default: 1)
        limit: Items per page (default: 10)
        transform_func: Optional function to transform the fetched page

    Returns:
        Tuple of (items_list, pagination_info)
    """
    skip = (page - 1) * limit
    sort_direction = 1 if sort_order == "asc" else -1

    items = (
        await model.find(query_filters)
        .sort([(sort_by, sort_direction)])
        .skip(skip)
        .limit(limit)
        .to_list()
    )

    total_items = await model.find(query_filters).count()

    # The transform receives the whole page so it can batch-load references
    result_list = items
    if items and transform_func:
        if asyncio.iscoroutinefunction(transform_func):
            result_list = await transform_func(items)
        else:
            result_list = transform_func(items)

    return result_list, build_pagination(page, limit, total_items)


def build_pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit > 0 else 1,
    }


async def get_or_404(model, id: Any, detail: str = "Item not found"):
    """Get an item by ID or raise NotFoundError

    Malformed ids are reported as not found rather than as a validation
    failure, so callers cannot tell which ids exist.
    """
    try:
        item = await model.get(id)
    except Exception:
        item = None
    if not item:
        raise NotFoundError(detail)
    return item


async def batch_get(model, ids: Iterable[Any]) -> Dict[str, Any]:
    """Get multiple items by ID in a single batch

    Returns:
        Dictionary mapping ID strings to items
    """
    unique_ids = list({i for i in ids if i is not None})
    if not unique_ids:
        return {}

    items = await model.find({"_id": {"$in": unique_ids}}).to_list()
    return {str(item.id): item for item in items}


def format_response(
    message: Optional[str] = None,
    data: Optional[Union[List[Any], Dict[str, Any], Any]] = None,
    pagination: Optional[Dict[str, Any]] = None,
    **kwargs,
) -> Dict[str, Any]:
    """Format the standard success envelope

    ``{success, message?, data?, pagination?}`` plus any extra top level keys
    (``stats``, ``trending``, ``related`` ...).
    """
    response: Dict[str, Any] = {"success": True}

    if message is not None:
        response["message"] = message

    if data is not None:
        response["data"] = data

    if pagination:
        response["pagination"] = pagination

    response.update(kwargs)
    return response


def error_response(message: str, error: Optional[str] = None) -> Dict[str, Any]:
    response: Dict[str, Any] = {"success": False, "message": message}
    if error:
        response["error"] = error
    return response


def create_search_filter(
    search_text: Optional[str], fields: List[str]
) -> Optional[Dict]:
    """Create a case-insensitive regex filter over several fields"""
    if not search_text or not search_text.strip():
        return None

    pattern = re.escape(search_text.strip())
    return {"$or": [{field: {"$regex": pattern, "$options": "i"}} for field in fields]}


# ---------------------------------------------------------------------------
# Derived fields
# ---------------------------------------------------------------------------


def slugify(text: Optional[str]) -> str:
    """Lower-case ASCII slug; anything that is not a letter or digit becomes '-'"""
    if not text or not isinstance(text, str):
        return ""
    normalized = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    s = re.sub(r"[^a-zA-Z0-9_\s-]", "", normalized).strip().lower()
    s = re.sub(r"[\s_-]+", "-", s)
    return s.strip("-")


def word_count(text: Optional[str]) -> int:
    """Words in a plain or HTML body; markup is not counted"""
    if not text:
        return 0
    return len(re.sub(r"<[^>]+>", " ", text).split())


def calculate_read_time(text: Optional[str]) -> int:
    """Minutes to read at 200 words per minute, rounded up"""
    return math.ceil(word_count(text) / WORDS_PER_MINUTE)


def normalize_terms(value: Union[str, Iterable[str], None]) -> List[str]:
    """Normalize tags/keywords into a de-duplicated list of lower-case strings

    Accepts a list, a JSON encoded list or a comma separated string, as sent
    by the web client's multipart forms.
    """
    if value is None:
        return []
    if isinstance(value, str):
        raw = value.split(",")
        if value.strip().startswith("["):
            try:
                raw = json.loads(value)
            except ValueError:
                pass
    else:
        raw = list(value)

    terms: List[str] = []
    for term in raw:
        cleaned = str(term).strip().lower()
        if cleaned and cleaned not in terms:
            terms.append(cleaned)
    return terms


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Mongo hands back naive UTC datetimes; make them comparable with aware ones"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_query_datetime(value: datetime) -> datetime:
    """Naive UTC datetime for use inside query filters"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def format_time_ago(value: datetime, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    seconds = max(0, int((now - ensure_utc(value)).total_seconds()))

    for unit_seconds, label in (
        (31536000, "years"),
        (2592000, "months"),
        (86400, "days"),
        (3600, "hours"),
        (60, "minutes"),
    ):
        interval = seconds / unit_seconds
        if interval > 1:
            return f"{math.floor(interval)} {label} ago"

    return f"{seconds} seconds ago"


# ---------------------------------------------------------------------------
# Unique index violations
# ---------------------------------------------------------------------------


def duplicate_key_field(exc: DuplicateKeyError, candidates: List[str]) -> Optional[str]:
    """Best effort guess at which unique field a DuplicateKeyError is about"""
    details = exc.details or {}
    key_pattern = details.get("keyPattern") or details.get("keyValue") or {}
    for field in candidates:
        if field in key_pattern:
            return field

    message = str(exc)
    for field in candidates:
        if f"{field}_unique" in message or f"index: {field}" in message:
            return field
    return None


async def save_document(document) -> None:
    """``Document.save()`` for an existing document, surfacing unique index
    violations as ``DuplicateKeyError``

    Beanie's ``update()`` re-raises a ``DuplicateKeyError`` as
    ``RevisionIdWasChanged`` with the driver error as its context.
    """
    try:
        await document.save()
    except RevisionIdWasChanged as e:
        if isinstance(e.__context__, DuplicateKeyError):
            raise e.__context__ from None
        raise
