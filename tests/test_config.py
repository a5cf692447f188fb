import json

import pytest

from recyclify.config import (DEFAULT_RECYCLABLE_CATEGORIES, PipelineConfig, load_config,
                              merge_dicts)


def test_defaults():
    config = PipelineConfig()

    assert config.confidence_threshold == 0.5
    assert config.excluded_categories == frozenset({"person"})
    assert "wine glass" in config.recyclable_categories
    assert config.fallback_size == (640, 480)
    assert config.tick_interval == pytest.approx(1 / 60)


@pytest.mark.parametrize("threshold", [0, -0.1, 1.01])
def test_threshold_must_be_in_range(threshold):
    with pytest.raises(ValueError):
        PipelineConfig(confidence_threshold=threshold)


def test_threshold_of_one_allowed():
    assert PipelineConfig(confidence_threshold=1.0).confidence_threshold == 1.0


def test_invalid_refresh_rate_and_fallback_size():
    with pytest.raises(ValueError):
        PipelineConfig(refresh_rate_hz=0)
    with pytest.raises(ValueError):
        PipelineConfig(fallback_size=(0, 480))


def test_categories_are_lowercased():
    config = PipelineConfig(excluded_categories=["Person", " DOG "], recyclable_categories=["Can"])

    assert config.excluded_categories == frozenset({"person", "dog"})
    assert config.recyclable_categories == frozenset({"can"})


@pytest.mark.parametrize("field", ["excluded_categories", "recyclable_categories"])
def test_bare_string_categories_rejected(field):
    with pytest.raises(ValueError):
        PipelineConfig.from_dict({field: "person"})


def test_instances_are_independent():
    strict = PipelineConfig(confidence_threshold=0.9)
    loose = PipelineConfig(confidence_threshold=0.2)
    assert strict.confidence_threshold != loose.confidence_threshold


def test_from_dict():
    config = PipelineConfig.from_dict({
        "confidence_threshold": 0.6,
        "excluded_categories": ["person", "cat"],
        "fallback_size": [320, 240],
    })

    assert config.confidence_threshold == 0.6
    assert config.excluded_categories == frozenset({"person", "cat"})
    assert config.recyclable_categories == DEFAULT_RECYCLABLE_CATEGORIES
    assert config.fallback_size == (320, 240)


def test_from_default_config_section():
    config = PipelineConfig.from_dict(load_config()["pipeline"])
    assert config == PipelineConfig()


def test_load_config_defaults_without_path():
    config = load_config()
    assert config["camera"]["source"] == "auto"
    assert config["pipeline"]["confidence_threshold"] == 0.5


def test_load_config_merges_user_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"pipeline": {"confidence_threshold": 0.7}, "log_level": "DEBUG"}))

    config = load_config(str(path))

    assert config["pipeline"]["confidence_threshold"] == 0.7
    assert config["pipeline"]["excluded_categories"] == ["person"]
    assert config["log_level"] == "DEBUG"
    assert config["camera"]["resolution"] == [640, 480]


def test_load_config_invalid_json_falls_back(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")

    assert load_config(str(path))["pipeline"]["confidence_threshold"] == 0.5


def test_load_config_missing_file(tmp_path):
    assert load_config(str(tmp_path / "missing.json"))["log_level"] == "INFO"


def test_merge_dicts_is_recursive_and_non_destructive():
    default = {"a": {"b": 1, "c": 2}, "d": 3}
    merged = merge_dicts(default, {"a": {"b": 10}})

    assert merged == {"a": {"b": 10, "c": 2}, "d": 3}
    assert default["a"]["b"] == 1
