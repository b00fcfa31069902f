import json

from app.services.parsing.plan_extractor import extract_meal_plan, greedy_brace_span, strip_plan_block

PLAN = {
    "plan_name": "Quick week",
    "servings": 2,
    "recipes": [
        {
            "day_of_week": "Monday",
            "meal_slot": "dinner",
            "title": "Omelette",
            "ingredients": [{"ingredient_name": "egg", "quantity": 3, "unit": "pcs"}],
        }
    ],
}


def test_extracts_plan_embedded_in_prose():
    text = f"Here you go!\n{json.dumps(PLAN)}\nEnjoy your week."
    assert extract_meal_plan(text) == PLAN


def test_extracts_plan_from_fenced_block():
    text = f"Sure thing:\n```json\n{json.dumps(PLAN, indent=2)}\n```\nAnything else?"
    assert extract_meal_plan(text) == PLAN


def test_no_braces_returns_none():
    assert extract_meal_plan("Try a stir fry with whatever veg you have.") is None


def test_closing_brace_before_opening_returns_none():
    assert greedy_brace_span("} oops {") is None
    assert extract_meal_plan("} oops {") is None


def test_object_without_recipes_list_returns_none():
    assert extract_meal_plan('{"plan_name": "x", "recipes": "none"}') is None
    assert extract_meal_plan('{"plan_name": "x"}') is None


def test_object_inside_array_is_still_extracted():
    # The span ignores the surrounding brackets and lands on the inner object.
    assert greedy_brace_span('[{"recipes": []}]') == '{"recipes": []}'
    assert extract_meal_plan('[{"recipes": []}]') == {"recipes": []}


def test_span_that_is_not_json_returns_none():
    assert extract_meal_plan("{not json at all}") is None


def test_prose_braces_widen_span_and_defeat_extraction():
    # The span runs from the stray "{" in the prose to the plan's last "}".
    text = f"Season with {{salt}} to taste.\n{json.dumps(PLAN)}"
    assert greedy_brace_span(text).startswith("{salt}")
    assert extract_meal_plan(text) is None


def test_two_objects_are_tried_as_one_span():
    text = f'{json.dumps(PLAN)}\nand a bonus: {{"recipes": []}}'
    span = greedy_brace_span(text)
    assert span.startswith('{"plan_name"')
    assert span.endswith('{"recipes": []}')
    assert extract_meal_plan(text) is None


def test_trailing_brace_in_prose_after_plan_defeats_extraction():
    text = f"{json.dumps(PLAN)} (swap any meal you like}}"
    assert extract_meal_plan(text) is None


def test_strip_plan_block_removes_raw_json():
    text = f"Here is a plan.\n\n\n{json.dumps(PLAN)}\n\n\nEnjoy!"
    assert strip_plan_block(text) == "Here is a plan.\n\nEnjoy!"


def test_strip_plan_block_removes_fenced_json():
    text = f"Here is a plan:\n```json\n{json.dumps(PLAN)}\n```\nEnjoy!"
    assert strip_plan_block(text) == "Here is a plan:\n\nEnjoy!"


def test_strip_plan_block_keeps_text_when_only_json():
    text = json.dumps(PLAN)
    assert strip_plan_block(text) == text
