"""Convert Notion blocks to plain task text and look for user mentions."""

_TEXT_BLOCK_PREFIXES = {
    "paragraph": "",
    "heading_1": "# ",
    "heading_2": "## ",
    "heading_3": "### ",
    "bulleted_list_item": "• ",
    "numbered_list_item": "1. ",
}


def rich_text_to_plain(rich_texts: list[dict]) -> str:
    """Join the plain_text of a Notion rich text array."""
    return "".join(rt.get("plain_text", "") for rt in rich_texts)


def _block_to_text(block: dict) -> str:
    """Render a single Notion block as one line of plain text."""
    block_type = block.get("type", "")
    block_data = block.get(block_type, {})
    content = rich_text_to_plain(block_data.get("rich_text", []))

    if block_type in _TEXT_BLOCK_PREFIXES:
        if not content:
            return ""
        return f"{_TEXT_BLOCK_PREFIXES[block_type]}{content}"

    if block_type == "to_do":
        checkbox = "✅" if block_data.get("checked") else "☐"
        return f"{checkbox} {content}"

    # Unsupported block types are dropped
    return ""


def blocks_to_text(blocks: list[dict]) -> str:
    """Convert a list of Notion blocks to newline-separated plain text.

    Blocks that render to nothing (empty paragraphs, images, dividers...)
    are skipped entirely rather than leaving blank lines.
    """
    lines = [_block_to_text(block) for block in blocks]
    return "\n".join(line for line in lines if line)


def rich_text_mentions_user(rich_texts: list[dict], user_id: str) -> bool:
    """True if any rich text segment is a mention of ``user_id``."""
    for rt in rich_texts:
        if rt.get("type") != "mention":
            continue
        mention = rt.get("mention") or {}
        if mention.get("type") == "user" and (mention.get("user") or {}).get("id") == user_id:
            return True
    return False


def blocks_mention_user(blocks: list[dict], user_id: str) -> bool:
    for block in blocks:
        block_type = block.get("type", "")
        if block_type not in _TEXT_BLOCK_PREFIXES and block_type != "to_do":
            continue
        block_data = block.get(block_type, {})
        if rich_text_mentions_user(block_data.get("rich_text", []), user_id):
            return True
    return False
