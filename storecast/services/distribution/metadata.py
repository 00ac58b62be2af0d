"""
Distribution metadata encoding.

Announcements carry their creation time, department and target count inside
platform fields so they can be listed again without a side index. Several
encodings have been emitted over time and old channels are never migrated,
so decoding walks an ordered list of generations:

    1. ``adhoc_v2|<ms>|<count>|<department>``        pipe-delimited
    2. ``adhoc-v2-<ms>-<count>-<Department>``        hyphen-delimited, alphanumeric department
    3. ``adhoc-<ms>``                                current; department/count live in the post
    4. ``[external]<tag>:<count>:<postid>::<department> - <title>`` in the channel title

Anything else is not ours. Decoding never raises; missing pieces fall back to
placeholders.
"""

import html
import re
from collections.abc import Callable
from dataclasses import dataclass

from storecast.models.domain.distribution_domain import DistributionMetadata

DEFAULT_DEPARTMENT = "Uncategorized"

CURRENT_PREFIX = "adhoc-"
HYPHEN_V2_PREFIX = "adhoc-v2-"
PIPE_V2_PREFIX = "adhoc_v2|"
EXTERNAL_TITLE_PREFIX = "[external]"

GENERATION_PIPE_V2 = "pipe_v2"
GENERATION_HYPHEN_V2 = "hyphen_v2"
GENERATION_CURRENT = "current"
GENERATION_EXTERNAL_TITLE = "external_title"

TARGET_COUNT_LABEL = "Targeted Stores"

# Terminates only at a separator plus the full count label, or at end of line.
_DEPARTMENT_PATTERN = re.compile(
    r"\b(?:Category|Department):[ \t]*(.*?)[ \t]*"
    r"(?:(?:[;,|][ \t]*|[ \t]+)(?:Targeted Stores|User Count):[ \t]*\d+|$)",
    re.IGNORECASE | re.MULTILINE,
)
_COUNT_PATTERN = re.compile(r"\b(?:Targeted Stores|User Count):\s*(\d+)", re.IGNORECASE)
_EXTERNAL_TITLE_PATTERN = re.compile(
    r"^\[external\](?P<tag>[^:]*):(?P<count>[^:]*):(?P<post_id>[^:]*)::(?P<department>.*?) - (?P<title>.*)$",
    re.DOTALL,
)
_TAG_PATTERN = re.compile(r"<[^>]+>")
_NON_ALPHANUMERIC = re.compile(r"[^A-Za-z0-9]")


@dataclass(slots=True)
class MetadataSource:
    """Raw fields a distribution's metadata can be recovered from."""

    external_id: str = ""
    title: str = ""
    teaser: str = ""
    kicker: str = ""
    body_html: str = ""
    fallback_created_at_ms: int | None = None
    fallback_accessor_count: int = 0


# =================================================================
# ENCODING
# =================================================================


def sanitize_department(department: str) -> str:
    """Strip everything but ASCII letters and digits."""
    return _NON_ALPHANUMERIC.sub("", department or "")


def encode(
    created_at_ms: int,
    target_count: int = 0,
    department: str = "",
    generation: str = GENERATION_CURRENT,
) -> str:
    """
    Build the external identifier token for a new channel.

    Only the current generation is emitted for new channels; the legacy
    generations are kept so fixtures and tooling can reproduce old data.
    """
    if generation == GENERATION_CURRENT:
        return f"{CURRENT_PREFIX}{created_at_ms}"
    if generation == GENERATION_HYPHEN_V2:
        return f"{HYPHEN_V2_PREFIX}{created_at_ms}-{target_count}-{sanitize_department(department)}"
    if generation == GENERATION_PIPE_V2:
        return f"{PIPE_V2_PREFIX}{created_at_ms}|{target_count}|{(department or '').replace('|', '/')}"
    raise ValueError(f"Unknown metadata generation: {generation}")


def build_teaser(department: str, target_count: int) -> str:
    """Post teaser carrying department and target count for the current generation."""
    return f"Category: {department}; {TARGET_COUNT_LABEL}: {target_count}"


# =================================================================
# DECODING HELPERS
# =================================================================


def _to_int(value: str | None) -> int | None:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _as_text(value) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _clean_department(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip().strip(";,|").strip()
    return value or None


def html_to_text(body_html: str) -> str:
    """Drop tags (each becomes a line break) and unescape entities."""
    if not body_html:
        return ""
    return html.unescape(_TAG_PATTERN.sub("\n", body_html))


def department_from_text(text: str) -> str | None:
    """Find a "Category:"/"Department:" label in free text."""
    if not text:
        return None
    for match in _DEPARTMENT_PATTERN.finditer(text):
        department = _clean_department(match.group(1))
        if department:
            return department
    return None


def count_from_text(text: str) -> int | None:
    if not text:
        return None
    match = _COUNT_PATTERN.search(text)
    return int(match.group(1)) if match else None


# =================================================================
# GENERATION PARSERS
# =================================================================


def _is_pipe_v2(source: MetadataSource) -> bool:
    return source.external_id.startswith(PIPE_V2_PREFIX)


def _parse_pipe_v2(source: MetadataSource) -> DistributionMetadata:
    parts = source.external_id.split("|", 3)
    created_at_ms = _to_int(parts[1]) if len(parts) > 1 else None
    target_count = _to_int(parts[2]) if len(parts) > 2 else None
    department = _clean_department(parts[3]) if len(parts) > 3 else None
    return DistributionMetadata(
        generation=GENERATION_PIPE_V2,
        department=department or DEFAULT_DEPARTMENT,
        target_count=target_count if target_count is not None else source.fallback_accessor_count,
        created_at_ms=created_at_ms if created_at_ms is not None else source.fallback_created_at_ms,
    )


def _is_hyphen_v2(source: MetadataSource) -> bool:
    return source.external_id.startswith(HYPHEN_V2_PREFIX)


def _parse_hyphen_v2(source: MetadataSource) -> DistributionMetadata:
    # adhoc, v2, <ms>, <count>, <department>
    parts = source.external_id.split("-")
    created_at_ms = _to_int(parts[2]) if len(parts) > 2 else None
    target_count = _to_int(parts[3]) if len(parts) > 3 else None
    department = _clean_department("-".join(parts[4:])) if len(parts) > 4 else None
    return DistributionMetadata(
        generation=GENERATION_HYPHEN_V2,
        department=department or DEFAULT_DEPARTMENT,
        target_count=target_count if target_count is not None else source.fallback_accessor_count,
        created_at_ms=created_at_ms if created_at_ms is not None else source.fallback_created_at_ms,
    )


def _is_current(source: MetadataSource) -> bool:
    return source.external_id.startswith(CURRENT_PREFIX)


def _parse_current(source: MetadataSource) -> DistributionMetadata:
    created_at_ms = _to_int(source.external_id[len(CURRENT_PREFIX) :])
    body_text = html_to_text(source.body_html)

    department = (
        department_from_text(source.teaser)
        or _clean_department(source.kicker)
        or department_from_text(body_text)
        or DEFAULT_DEPARTMENT
    )

    target_count = count_from_text(source.teaser)
    if target_count is None:
        target_count = count_from_text(body_text)
    if target_count is None:
        target_count = source.fallback_accessor_count

    return DistributionMetadata(
        generation=GENERATION_CURRENT,
        department=department,
        target_count=target_count,
        created_at_ms=created_at_ms if created_at_ms is not None else source.fallback_created_at_ms,
    )


def _is_external_title(source: MetadataSource) -> bool:
    return source.title.startswith(EXTERNAL_TITLE_PREFIX)


def _parse_external_title(source: MetadataSource) -> DistributionMetadata:
    match = _EXTERNAL_TITLE_PATTERN.match(source.title)
    if match is None:
        # Prefix only; the rest of the title is free text.
        return DistributionMetadata(
            generation=GENERATION_EXTERNAL_TITLE,
            department=DEFAULT_DEPARTMENT,
            target_count=source.fallback_accessor_count,
            created_at_ms=source.fallback_created_at_ms,
            display_title=source.title[len(EXTERNAL_TITLE_PREFIX) :].strip() or None,
        )
    target_count = _to_int(match.group("count"))
    return DistributionMetadata(
        generation=GENERATION_EXTERNAL_TITLE,
        department=_clean_department(match.group("department")) or DEFAULT_DEPARTMENT,
        target_count=target_count if target_count is not None else source.fallback_accessor_count,
        created_at_ms=source.fallback_created_at_ms,
        display_title=match.group("title").strip() or None,
    )


# Tried in order; the first matcher that accepts the source wins.
GENERATIONS: list[tuple[str, Callable[[MetadataSource], bool], Callable[[MetadataSource], DistributionMetadata]]] = [
    (GENERATION_PIPE_V2, _is_pipe_v2, _parse_pipe_v2),
    (GENERATION_HYPHEN_V2, _is_hyphen_v2, _parse_hyphen_v2),
    (GENERATION_CURRENT, _is_current, _parse_current),
    (GENERATION_EXTERNAL_TITLE, _is_external_title, _parse_external_title),
]


def detect_generation(external_id: str | None, title: str | None = None) -> str | None:
    """Name of the generation a channel was written with, or None if it is not ours."""
    source = MetadataSource(external_id=_as_text(external_id), title=_as_text(title))
    for name, matcher, _parser in GENERATIONS:
        if matcher(source):
            return name
    return None


def decode_source(source: MetadataSource) -> DistributionMetadata | None:
    """Decode metadata from a populated source; None if no generation matches."""
    source.external_id = _as_text(source.external_id)
    source.title = _as_text(source.title)
    source.teaser = _as_text(source.teaser)
    source.kicker = _as_text(source.kicker)
    source.body_html = _as_text(source.body_html)
    for _name, matcher, parser in GENERATIONS:
        if matcher(source):
            return parser(source)
    return None


def decode(
    identifier_field: str | None,
    post_teaser: str | None = "",
    post_kicker: str | None = "",
    post_body_html: str | None = "",
    fallback_created_at_ms: int | None = None,
    fallback_accessor_count: int = 0,
    title: str | None = "",
) -> DistributionMetadata | None:
    """
    Recover ``{department, target_count, created_at_ms}`` from a channel.

    Returns:
        DistributionMetadata, or None when the channel matches no known encoding
    """
    return decode_source(
        MetadataSource(
            external_id=identifier_field or "",
            title=title or "",
            teaser=post_teaser or "",
            kicker=post_kicker or "",
            body_html=post_body_html or "",
            fallback_created_at_ms=fallback_created_at_ms,
            fallback_accessor_count=fallback_accessor_count,
        )
    )
