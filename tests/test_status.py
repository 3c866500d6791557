from notion_todoist_bridge.sync.status import StatusCategory, resolve_status_option


def test_exact_match_preferred():
    options = ["Sin empezar", "En progreso", "Completado"]
    assert resolve_status_option("Completado", options, StatusCategory.COMPLETED) == "Completado"


def test_case_insensitive_match():
    options = ["Not started", "in progress", "Done"]
    assert resolve_status_option("In Progress", options, StatusCategory.IN_PROGRESS) == "in progress"


def test_synonym_fallback_completed():
    options = ["Not started", "In progress", "Done"]
    assert resolve_status_option("Completado", options, StatusCategory.COMPLETED) == "Done"


def test_synonym_fallback_in_progress():
    options = ["Backlog", "Doing", "Shipped"]
    assert resolve_status_option("En progreso", options, StatusCategory.IN_PROGRESS) == "Doing"


def test_first_option_when_nothing_matches():
    options = ["Alpha", "Beta"]
    assert resolve_status_option("Completado", options, StatusCategory.COMPLETED) == "Alpha"


def test_no_options_returns_requested():
    assert resolve_status_option("Completado", [], StatusCategory.COMPLETED) == "Completado"


def test_never_raises_for_odd_input():
    for requested in ["", " ", "¿?", "x" * 500]:
        result = resolve_status_option(requested, ["Only"], StatusCategory.PENDING)
        assert result == "Only"
