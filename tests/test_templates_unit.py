import random

import pytest

from game import templates
from game.templates import BUILT_IN_TEMPLATES, Level


def test_built_in_templates_in_campaign_order() -> None:
    assert [t.type for t in BUILT_IN_TEMPLATES] == [
        "kills-deaths", "health-shield", "time-challenge", "sports",
    ]
    assert BUILT_IN_TEMPLATES[0].to_dict() == {
        "type": "kills-deaths", "title": "Kill/Death Ratio", "color": "purple",
    }


@pytest.mark.parametrize("template", BUILT_IN_TEMPLATES, ids=lambda t: t.type)
def test_generate_stays_in_range_and_keeps_invariant(template) -> None:
    rng = random.Random(1234)
    for _ in range(200):
        level = template.generate(rng)
        lo, hi = template.total_range
        assert lo <= level.total <= hi
        lo, hi = template.diff_range
        assert lo <= level.diff <= hi
        assert level.solution.x == (level.total + level.diff) / 2
        assert level.solution.y == (level.total - level.diff) / 2
        assert level.solution.y >= 0
        assert level.eq1 == f"x + y = {level.total}"
        assert level.eq2 == f"x - y = {level.diff}"
        assert str(level.total) in level.story
        assert level.custom is False


def test_generate_level_is_deterministic_with_seed() -> None:
    a = templates.generate_level("sports", random.Random(7))
    b = templates.generate_level("sports", random.Random(7))
    assert a == b
    assert a.x_label == "Shots Made"
    assert a.eq1_text == "Total shots"


def test_get_template_and_template_at() -> None:
    assert templates.get_template("time-challenge").title == "Speed Run Timer"
    with pytest.raises(KeyError):
        templates.get_template("chess")
    assert templates.template_at(0) is BUILT_IN_TEMPLATES[0]
    assert templates.template_at(5) is BUILT_IN_TEMPLATES[1]


def test_build_custom_level_defaults() -> None:
    level = templates.build_custom_level(
        "  My Level ", "A player finished 100 rounds.", 100, 20,
        x_label="Kills", y_label="Deaths",
    )
    assert level.title == "My Level"
    assert level.creator == "Anonymous"
    assert level.custom is True
    assert level.eq1_text == "Equation 1"
    assert level.eq2_text == "Equation 2"
    assert (level.solution.x, level.solution.y) == (60, 40)


def test_build_custom_level_coerces_numbers() -> None:
    level = templates.build_custom_level("T", "S", "100", "12.5", creator="Ada")
    assert level.total == 100 and isinstance(level.total, int)
    assert level.diff == 12.5
    assert level.eq2 == "x - y = 12.5"
    assert level.creator == "Ada"

    with pytest.raises(ValueError):
        templates.build_custom_level("T", "S", "lots", 20)


def test_custom_level_allows_diff_greater_than_total() -> None:
    level = templates.build_custom_level("T", "S", 10, 30)
    assert level.solution.y == -10
    assert level.has_negative_solution is True


def test_custom_level_problems() -> None:
    assert templates.custom_level_problems("T", "S", 100, 20) == []
    problems = templates.custom_level_problems("  ", "", "abc", None)
    assert "Give your level a title." in problems
    assert "Write a story for your level." in problems
    assert len(problems) == 4


def test_payload_conversion_rederives_solution() -> None:
    level = templates.build_custom_level("T", "S", 100, 20, x_label="Health")
    payload = level.to_payload()
    assert payload["xLabel"] == "Health"
    assert payload["solution"] == {"x": 60, "y": 40}

    payload["solution"] = {"x": 1, "y": 2}
    rebuilt = Level.from_payload(payload)
    assert rebuilt.solution.x == 60
    assert rebuilt.total == 100
    assert rebuilt.custom is True

    with pytest.raises(ValueError):
        Level.from_payload({"title": "T", "total": 100})


def test_creator_preset() -> None:
    preset = templates.creator_preset("health-shield")
    assert preset["xLabel"] == "Health"
    assert preset["scenarioType"] == "health-shield"
    with pytest.raises(KeyError):
        templates.creator_preset("chess")
