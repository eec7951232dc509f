import json

from rigbudget.builder.proposal import ParseError, ParseOk, parse_proposal
from rigbudget.schemas import REQUIRED_CATEGORIES


def test_valid_reply_parses_to_all_categories(valid_proposal):
    result = parse_proposal(json.dumps(valid_proposal))

    assert isinstance(result, ParseOk)
    assert list(result.proposal) == list(REQUIRED_CATEGORIES)
    assert result.proposal["GPU"] == "GTX1660S"


def test_markdown_fence_is_tolerated(valid_proposal):
    text = "```json\n" + json.dumps(valid_proposal, indent=2) + "\n```"

    result = parse_proposal(text)

    assert isinstance(result, ParseOk)


def test_values_are_trimmed(valid_proposal):
    valid_proposal["CPU"] = "  Ryzen 5 3600  "

    result = parse_proposal(json.dumps(valid_proposal))

    assert result.proposal["CPU"] == "Ryzen 5 3600"


def test_missing_key_is_a_parse_error(valid_proposal):
    del valid_proposal["RAM"]

    result = parse_proposal(json.dumps(valid_proposal))

    assert isinstance(result, ParseError)
    assert result.reason == "missing keys: RAM"


def test_unexpected_key_is_a_parse_error(valid_proposal):
    valid_proposal["SSD"] = "Samsung 980"

    result = parse_proposal(json.dumps(valid_proposal))

    assert isinstance(result, ParseError)
    assert result.reason == "unexpected keys: SSD"


def test_empty_or_non_string_values_are_parse_errors(valid_proposal):
    valid_proposal["PSU"] = "  "
    valid_proposal["Case"] = 42

    result = parse_proposal(json.dumps(valid_proposal))

    assert isinstance(result, ParseError)
    assert result.reason == "empty or non-string values: PSU, Case"


def test_duplicated_key_is_a_parse_error():
    body = ", ".join(f'"{c}": "x{i}"' for i, c in enumerate(REQUIRED_CATEGORIES))
    text = "{" + body + ', "GPU": "another"}'

    result = parse_proposal(text)

    assert isinstance(result, ParseError)
    assert result.reason == "duplicated keys: GPU"


def test_garbage_never_raises():
    for text in ["", "   ", "not json", "[1, 2, 3]", "null", '{"CPU": ', "Sure! Here is your build."]:
        assert isinstance(parse_proposal(text), ParseError)
