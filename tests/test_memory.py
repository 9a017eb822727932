import threading

import pytest

from services.data_model import ScoredInteraction
from services.memory import InteractionMemory, extract_keywords
from services.nlq import parse_query


def store(memory, text, user_id=None, response="ok"):
    return memory.store_interaction(text, parse_query(text), response, user_id=user_id)


def test_store_and_get_by_id(memory):
    interaction_id = store(memory, "top 3 visits")
    found = memory.get_interaction_by_id(interaction_id)
    assert found.query == "top 3 visits"
    assert found.user_id == "anonymous"
    assert found.referenced is False
    assert found.parsed_query.limit == 3


def test_ids_are_unique(memory):
    ids = {store(memory, f"question {i}") for i in range(50)}
    assert len(ids) == 50


def test_unknown_id(memory):
    assert memory.get_interaction_by_id("interaction_missing") is None
    assert memory.mark_interaction_as_referenced("interaction_missing") is False


def test_capacity_evicts_oldest(memory):
    ids = [store(memory, f"question {i}") for i in range(101)]
    assert len(memory) == 100
    assert memory.get_interaction_by_id(ids[0]) is None
    assert memory.get_interaction_by_id(ids[-1]) is not None


def test_custom_capacity():
    small = InteractionMemory(capacity=2)
    for i in range(5):
        store(small, f"q{i}")
    assert [i.query for i in small.get_recent_interactions()] == ["q4", "q3"]


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        InteractionMemory(capacity=0)


def test_recent_is_newest_first_and_limited(memory):
    for i in range(15):
        store(memory, f"question {i}")
    recent = memory.get_recent_interactions()
    assert len(recent) == 10
    assert recent[0].query == "question 14"
    assert [i.query for i in memory.get_recent_interactions(limit=2)] == ["question 14", "question 13"]


def test_recent_filters_by_user_and_drops_response(memory):
    store(memory, "visits", user_id="u1")
    store(memory, "orders", user_id="u2")
    recent = memory.get_recent_interactions(user_id="u1", include_response=False)
    assert [i.query for i in recent] == ["visits"]
    assert recent[0].response is None
    assert memory.get_recent_interactions(user_id="u1")[0].response == "ok"


def test_reads_return_copies(memory):
    interaction_id = store(memory, "top 3 visits")
    memory.get_interaction_by_id(interaction_id).referenced = True
    memory.get_recent_interactions()[0].query = "changed"
    found = memory.get_interaction_by_id(interaction_id)
    assert found.referenced is False
    assert found.query == "top 3 visits"


def test_mark_referenced_is_idempotent(memory):
    interaction_id = store(memory, "top 3 visits")
    assert memory.mark_interaction_as_referenced(interaction_id) is True
    assert memory.mark_interaction_as_referenced(interaction_id) is True
    assert memory.get_interaction_by_id(interaction_id).referenced is True
    assert memory.get_memory_stats()["referenced_count"] == 1


def test_keywords_skip_short_words():
    assert extract_keywords("Show me the Visits data") == ["show", "visits", "data"]


def test_related_visits_report(memory):
    store(memory, "show me visits data")
    related = memory.find_related_interactions("visits report")
    assert len(related) == 1
    assert isinstance(related[0], ScoredInteraction)
    assert related[0].relevance_score >= 1


def test_related_scores_sorted_and_never_zero(memory):
    store(memory, "credit card additions per visit")
    store(memory, "unrelated question")
    store(memory, "top dealers by credit card additions")
    related = memory.find_related_interactions("credit card additions for top dealers")
    scores = [r.relevance_score for r in related]
    assert scores == sorted(scores, reverse=True)
    assert all(s > 0 for s in scores)
    assert related[0].query == "top dealers by credit card additions"
    assert "unrelated question" not in [r.query for r in related]


def test_related_limit_and_user(memory):
    for i in range(8):
        store(memory, f"visits question {i}", user_id="u1")
    store(memory, "visits question other", user_id="u2")
    assert len(memory.find_related_interactions("visits")) == 5
    assert len(memory.find_related_interactions("visits", limit=20)) == 9
    assert len(memory.find_related_interactions("visits", user_id="u2", limit=20)) == 1


def test_related_with_only_short_words(memory):
    store(memory, "top 3 by x")
    assert memory.find_related_interactions("top 3 by x") == []


def test_preferences_merge(memory):
    assert memory.get_user_preferences("u1") == {}
    memory.store_user_preferences("u1", {"show_charts": False, "limit": 5})
    memory.store_user_preferences("u1", {"limit": 10})
    prefs = memory.get_user_preferences("u1")
    assert prefs["show_charts"] is False
    assert prefs["limit"] == 10
    assert "last_updated" in prefs


def test_clear_user_interactions(memory):
    store(memory, "a question", user_id="u1")
    store(memory, "b question", user_id="u1")
    store(memory, "c question", user_id="u2")
    assert memory.clear_user_interactions("u1") == 2
    assert memory.clear_user_interactions("u1") == 0
    assert [i.query for i in memory.get_recent_interactions()] == ["c question"]


def test_stats(memory):
    a = store(memory, "a question", user_id="u1")
    store(memory, "b question", user_id="u2")
    memory.mark_interaction_as_referenced(a)
    memory.store_user_preferences("u1", {"x": 1})
    assert memory.get_memory_stats() == {
        "total_interactions": 2,
        "user_count": 2,
        "referenced_count": 1,
        "user_preferences_count": 1,
    }


def test_clear(memory):
    store(memory, "a question")
    memory.store_user_preferences("u1", {"x": 1})
    memory.clear()
    assert len(memory) == 0
    assert memory.get_user_preferences("u1")["x"] == 1


def test_concurrent_stores_respect_capacity():
    memory = InteractionMemory(capacity=50)

    def worker(n):
        for i in range(40):
            memory.store_interaction(f"worker {n} question {i}", None, None)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(memory) == 50
    assert memory.get_memory_stats()["total_interactions"] == 50
