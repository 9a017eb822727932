from unittest.mock import patch

import pytest

from services.chat_orchestrator import handle_user_query
from services.constants import (
    NO_DATA_MESSAGE,
    GENERIC_ERROR_MESSAGE,
    EMPTY_QUERY_MESSAGE,
    MAX_QUERY_LENGTH,
    QUERY_TOO_LONG_MESSAGE,
)
from services.data_model import RowsResult, StatisticsResult


@pytest.mark.parametrize("text", ["", "   ", None])
def test_blank_query_is_rejected(dataset, memory, text):
    answer = handle_user_query(text, dataset, memory)
    assert answer.status == 400
    assert answer.text == EMPTY_QUERY_MESSAGE
    assert len(memory) == 0


def test_answer_is_stored(dataset, memory):
    answer = handle_user_query("top 3 visits", dataset, memory)
    assert answer.status == 200
    assert isinstance(answer.result, RowsResult)
    assert len(answer.result.results) == 3
    assert "Charlie Cellular" in answer.text

    stored = memory.get_interaction_by_id(answer.interaction_id)
    assert stored.query == "top 3 visits"
    assert stored.parsed_query == answer.parsed_query
    assert stored.response is answer.result


def test_related_is_computed_before_storing(dataset, memory):
    first = handle_user_query("show me visits data", dataset, memory)
    assert first.related == []

    second = handle_user_query("visits report", dataset, memory)
    assert [r.id for r in second.related] == [first.interaction_id]
    assert second.related[0].relevance_score >= 1


def test_user_id_scopes_related(dataset, memory):
    handle_user_query("show me visits data", dataset, memory, user_id="u1")
    assert handle_user_query("visits report", dataset, memory, user_id="u2").related == []
    assert memory.get_memory_stats()["user_count"] == 2


def test_no_rows_gives_fallback_text(dataset, memory):
    answer = handle_user_query("visits for nobody at all here", dataset, memory)
    # "all" rejects the subject filter, so this still matches every dealer
    assert answer.status == 200
    answer = handle_user_query("visits for nobody", dataset, memory)
    assert answer.text == NO_DATA_MESSAGE


def test_statistics_answer(dataset, memory):
    answer = handle_user_query("median visits", dataset, memory)
    assert isinstance(answer.result, StatisticsResult)
    assert "median of Visits is 50.00" in answer.text


def test_failure_returns_500(dataset, memory):
    with patch("services.chat_orchestrator.execute_query", side_effect=RuntimeError("boom")):
        answer = handle_user_query("top 3 visits", dataset, memory)
    assert answer.status == 500
    assert answer.text == GENERIC_ERROR_MESSAGE
    assert answer.error == "boom"
    assert len(memory) == 0


def test_missing_dataset_returns_500(memory):
    answer = handle_user_query("top 3 visits", None, memory)
    assert answer.status == 500
    assert answer.error == "No dataset loaded"


def test_overlong_query_is_rejected_before_parsing(dataset, memory):
    text = "visits by orders " * (MAX_QUERY_LENGTH // 10)
    with patch("services.chat_orchestrator.parse_query") as parse:
        answer = handle_user_query(text, dataset, memory)
    parse.assert_not_called()
    assert answer.status == 400
    assert answer.text == QUERY_TOO_LONG_MESSAGE
    assert len(memory) == 0


def test_query_at_length_limit_is_answered(dataset, memory):
    text = ("top 3 visits" + " " * MAX_QUERY_LENGTH)[:MAX_QUERY_LENGTH - 1] + "x"
    answer = handle_user_query(text, dataset, memory)
    assert len(text) == MAX_QUERY_LENGTH
    assert answer.status == 200
