import time

from app.agents.chart.reference import extract_reference
from app.agents.chart.schemas import ChartReference


def test_reference_is_extracted_and_removed_from_text():
    text = "Here: ![x](http://h/c?grafico_id=abc-1) done"

    assert extract_reference(text) == ChartReference(
        url="http://h/c?grafico_id=abc-1",
        chart_id="abc-1",
        cleaned_text="Here:  done",
    )


def test_reference_with_extra_query_parameters():
    text = "![Ventas](https://charts.example.com/embed?theme=dark&grafico_id=7f3a-99&h=400)\nListo."

    reference = extract_reference(text)

    assert reference is not None
    assert reference.url == "https://charts.example.com/embed?theme=dark&grafico_id=7f3a-99&h=400"
    assert reference.chart_id == "7f3a-99"
    assert reference.cleaned_text == "Listo."


def test_plain_links_and_images_are_ignored():
    assert extract_reference("Mira https://h/c?grafico_id=abc") is None
    assert extract_reference("![logo](https://h/logo.png)") is None
    assert extract_reference("[x](https://h/c?grafico_id=abc)") is None


def test_id_must_be_an_alphanumeric_hyphen_token():
    assert extract_reference("![x](http://h/c?grafico_id=abc_1)") is None
    assert extract_reference("![x](http://h/c?grafico_id=)") is None


def test_cleaned_text_has_no_reference_left():
    text = (
        "Primero ![a](http://h/c?grafico_id=one) y luego "
        "![b](http://h/c?grafico_id=two) fin"
    )

    reference = extract_reference(text)

    assert reference.chart_id == "one"
    assert extract_reference(reference.cleaned_text) is None


def test_input_is_not_mutated():
    text = "  ![x](http://h/c?grafico_id=abc-1)  "

    reference = extract_reference(text)

    assert reference.cleaned_text == ""
    assert text == "  ![x](http://h/c?grafico_id=abc-1)  "


def test_text_without_chart_id_is_skipped():
    assert extract_reference("![x](http://h/c?id=abc-1)") is None


def test_long_alt_text_is_not_a_reference():
    text = "![" + "a" * 300 + "](http://h/c?grafico_id=abc)"

    assert extract_reference(text) is None


def test_many_unclosed_images_are_scanned_in_linear_time():
    text = "![" * 20000 + " http://h/c?grafico_id=abc"

    started = time.perf_counter()
    reference = extract_reference(text)
    elapsed = time.perf_counter() - started

    assert reference is None
    assert elapsed < 1.5


def test_adjacent_references_are_all_removed():
    text = "![a](http://h/c?grafico_id=one)![b](http://h/c?grafico_id=two) listo"

    reference = extract_reference(text)

    assert reference.chart_id == "one"
    assert reference.cleaned_text == "listo"
