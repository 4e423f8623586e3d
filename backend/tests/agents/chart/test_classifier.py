import pytest

from app.agents.chart.classifier import classify, validate_mixed_series
from app.agents.chart.schemas import InlineChart, MixedChart, PlainObject


def test_bar_payload_is_inline_chart_with_same_fields():
    value = {"labels": ["a", "b"], "values": [1, 2], "chart_type": "bar", "title": "T"}

    decision = classify(value)

    assert isinstance(decision, InlineChart)
    assert decision.payload.title == "T"
    assert decision.payload.chart_type == "bar"
    assert decision.payload.labels == ["a", "b"]
    assert decision.payload.values == [1, 2]


@pytest.mark.parametrize("chart_type", ["bar", "line", "multi-line", None, "pie", "radar"])
def test_any_non_mixed_chart_type_is_inline(chart_type):
    value = {"labels": ["ene", "feb"], "values": [3, 4]}
    if chart_type is not None:
        value["chart_type"] = chart_type

    assert isinstance(classify(value), InlineChart)


def test_multi_series_payload_is_inline():
    value = {
        "chart_type": "multi-line",
        "labels": ["2023", "2024"],
        "values": [
            {"name": "Predio A", "data": [1, 2]},
            {"name": "Predio B", "data": [3, 4]},
        ],
    }

    decision = classify(value)

    assert isinstance(decision, InlineChart)
    assert decision.payload.is_multi_series


def test_extra_fields_are_kept():
    value = {"labels": ["a"], "values": [1], "sql": "select 1", "unit": "m3"}

    payload = classify(value).payload

    assert payload.sql == "select 1"
    assert payload.to_record()["unit"] == "m3"


def test_valid_mixed_payload_is_mixed_chart():
    value = {
        "title": "Producción vs despacho",
        "chart_type": "mixed",
        "labels": ["ene", "feb"],
        "values": [
            {"type": "bar", "data": [1, 2], "name": "Producción"},
            {"type": "line", "data": [3, 4], "label": "Despacho"},
        ],
        "axes": {"y": {"title": "m3"}},
    }

    decision = classify(value)

    assert isinstance(decision, MixedChart)
    assert decision.payload.axes == {"y": {"title": "m3"}}


def test_mixed_series_without_data_is_plain_object():
    value = {
        "chart_type": "mixed",
        "labels": ["ene", "feb"],
        "values": [
            {"type": "bar", "data": [1, 2], "name": "s1"},
            {"type": "line", "name": "s2"},
        ],
    }

    decision = classify(value)

    assert decision == PlainObject(value)


def test_mixed_series_without_name_or_label_is_plain_object():
    value = {
        "chart_type": "mixed",
        "values": [
            {"type": "bar", "data": [1, 2], "name": "s1"},
            {"type": "line", "data": [3, 4]},
        ],
    }

    assert isinstance(classify(value), PlainObject)


def test_mixed_with_labels_and_unnamed_series_is_plain_object():
    value = {
        "chart_type": "mixed",
        "labels": ["a", "b"],
        "values": [{"type": "bar", "data": [1, 2]}],
    }

    assert isinstance(classify(value), PlainObject)


@pytest.mark.parametrize(
    "value",
    [
        {"labels": ["a"]},
        {"values": [1]},
        {"labels": None, "values": [1]},
        {"labels": "a,b", "values": [1, 2]},
        {"answer": "no chart here"},
        [],
        [{"labels": ["a"], "values": [1]}],
        "text",
        None,
    ],
)
def test_non_chart_values_are_plain_objects(value):
    assert classify(value) == PlainObject(value)


def test_validate_mixed_series_rejects_empty_and_non_dict_series():
    assert validate_mixed_series([]) is False
    assert validate_mixed_series([1, 2]) is False
    assert validate_mixed_series([{"type": "bar", "data": "1,2", "name": "s"}]) is False
