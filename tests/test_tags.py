from notion_todoist_bridge.sync.tags import DEFAULT_LABEL, combine_tags, create_workspace_tag


def test_workspace_tag_is_sanitized():
    assert create_workspace_tag("Corabella Pets") == "corabella-pets"


def test_workspace_tag_drops_invalid_characters():
    assert create_workspace_tag("  Mi Espacio (Trabajo)! ") == "mi-espacio-trabajo"


def test_workspace_tag_keeps_underscores():
    assert create_workspace_tag("team_alpha 2") == "team_alpha-2"


def test_workspace_tag_is_truncated():
    assert len(create_workspace_tag("x" * 120)) == 50


def test_default_label_without_tags():
    assert combine_tags([]) == [DEFAULT_LABEL]
    assert combine_tags(None) == [DEFAULT_LABEL]


def test_workspace_tag_appended():
    assert combine_tags(["work"], "Corabella Pets") == ["work", "corabella-pets"]


def test_workspace_tag_not_duplicated():
    assert combine_tags(["corabella-pets"], "Corabella Pets") == ["corabella-pets"]


def test_duplicate_base_tags_removed():
    assert combine_tags(["a", "b", "a"]) == ["a", "b"]


def test_unusable_workspace_name_adds_nothing():
    assert combine_tags(["a"], "!!!") == ["a"]
