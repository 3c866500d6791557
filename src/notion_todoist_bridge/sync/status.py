"""Match a wanted status name against a user-customized Notion option list."""

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class StatusCategory(Enum):
    COMPLETED = "completed"
    IN_PROGRESS = "in_progress"
    PENDING = "pending"


STATUS_SYNONYMS: dict[StatusCategory, list[str]] = {
    StatusCategory.COMPLETED: [
        "Completado", "Completed", "Done", "Listo", "Terminado", "Finished", "Hecho",
    ],
    StatusCategory.IN_PROGRESS: [
        "En progreso", "In progress", "In Progress", "En curso", "Doing", "Working", "Started",
    ],
    StatusCategory.PENDING: [
        "Pendiente", "Not started", "To do", "To Do", "Todo", "Por hacer", "Backlog",
    ],
}


def resolve_status_option(
    requested: str,
    options: list[str],
    category: StatusCategory,
) -> str:
    """Pick the option to write for ``requested``. Never raises.

    Order of preference: exact match, case-insensitive match, a synonym from
    ``category``, the first available option. With no options at all the
    requested name is returned unchanged.
    """
    if not options:
        return requested

    if requested in options:
        return requested

    by_lower = {option.lower(): option for option in options}
    if requested.lower() in by_lower:
        return by_lower[requested.lower()]

    for synonym in STATUS_SYNONYMS[category]:
        match = by_lower.get(synonym.lower())
        if match:
            logger.info("Status '%s' not available, using synonym '%s'", requested, match)
            return match

    logger.warning(
        "No %s status matches '%s', falling back to '%s'",
        category.value, requested, options[0],
    )
    return options[0]
