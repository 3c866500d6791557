import re

_HOSTS = r"(?:www\.)?notion\.(?:so|com)"

# Bare ids first, then "<slug>-<id>" paths as produced by Notion page URLs
_NOTION_PAGE_ID_PATTERNS = [
    re.compile(rf"{_HOSTS}/([a-f0-9]{{32}})(?![a-f0-9])", re.IGNORECASE),
    re.compile(rf"{_HOSTS}/([a-f0-9-]{{36}})(?![a-f0-9-])", re.IGNORECASE),
    re.compile(rf"{_HOSTS}/[^/\s]*-([a-f0-9]{{32}})(?![a-f0-9])", re.IGNORECASE),
    re.compile(rf"{_HOSTS}/[^/\s]*-([a-f0-9-]{{36}})(?![a-f0-9-])", re.IGNORECASE),
]

_NOTION_HOST_MARKERS = ("notion.so/", "notion.com/")


def normalize_page_id(page_id: str) -> str:
    """Return the hyphenated 8-4-4-4-12 form of a Notion id."""
    compact = page_id.replace("-", "").lower()
    if len(compact) != 32:
        return page_id
    return "-".join(
        (compact[:8], compact[8:12], compact[12:16], compact[16:20], compact[20:])
    )


def page_id_variants(page_id: str) -> list[str]:
    """Textual encodings under which a page id may appear in a task description."""
    compact = page_id.replace("-", "").lower()
    variants = [page_id, page_id.lower(), normalize_page_id(page_id), compact]
    return list(dict.fromkeys(v for v in variants if v))


def text_references_page(text: str, page_id: str) -> bool:
    lowered = text.lower()
    return any(variant.lower() in lowered for variant in page_id_variants(page_id))


def has_notion_reference(text: str) -> bool:
    return any(marker in text for marker in _NOTION_HOST_MARKERS)


def extract_notion_page_id(text: str) -> str | None:
    """Find the Notion page a piece of free text links to.

    Accepts links like:
        https://www.notion.so/abcd1234abcd1234abcd1234abcd1234
        https://notion.so/My-Task-abcd1234abcd1234abcd1234abcd1234
        https://notion.com/abcd1234-abcd-1234-abcd-1234abcd1234

    Returns the id in hyphenated form, or None.
    """
    if not text:
        return None

    for pattern in _NOTION_PAGE_ID_PATTERNS:
        m = pattern.search(text)
        if m:
            page_id = m.group(1)
            if len(page_id.replace("-", "")) != 32:
                continue
            return normalize_page_id(page_id)

    return None
