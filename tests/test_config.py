from grocery_planner.config import (
    DEFAULT_COOKING_DIR,
    DEFAULTS,
    PREFERENCES_FILE,
    apply_cli_overrides,
    deep_merge,
    load_config,
)


def test_deep_merge_nested():
    merged = deep_merge({"a": {"x": 1, "y": 2}, "b": 1}, {"a": {"y": 3}, "c": 4})
    assert merged == {"a": {"x": 1, "y": 3}, "b": 1, "c": 4}


def test_defaults_without_preferences(tmp_path):
    assert load_config(tmp_path) == DEFAULTS


def test_preferences_file_overrides(tmp_path):
    cooking = tmp_path / DEFAULT_COOKING_DIR
    cooking.mkdir(parents=True)
    (cooking / PREFERENCES_FILE).write_text(
        "normalizer:\n  model: sonnet\nplanning:\n  min_planned_servings: 1\n"
    )
    config = load_config(tmp_path)
    assert config["normalizer"]["model"] == "sonnet"
    assert config["normalizer"]["timeout"] == 120
    assert config["planning"]["min_planned_servings"] == 1
    assert config["planning"]["week_plan"] == "week-plan.yaml"


def test_loaded_config_does_not_alias_defaults(tmp_path):
    config = load_config(tmp_path)
    config["normalizer"]["model"] = "opus"
    assert DEFAULTS["normalizer"]["model"] == "haiku"


def test_cli_overrides(tmp_path):
    config = apply_cli_overrides(
        load_config(tmp_path), model="sonnet", timeout="30", plan="next.yaml", note=None
    )
    assert config["normalizer"]["model"] == "sonnet"
    assert config["normalizer"]["timeout"] == 30
    assert config["planning"]["week_plan"] == "next.yaml"
    assert config["grocery"]["note"] == "Lista della spesa.md"
