"""
Behaviour shared by both vector index implementations, plus FAISS persistence.
"""

import numpy as np
import pytest

from salon_chat.vector import FaissVectorStore, SimpleInMemoryVectorStore, VectorRecord
from salon_chat.vector.types import QueryResult, rank_results

DIM = 8


def _unit(i, dim=DIM):
    v = np.zeros(dim, dtype=np.float32)
    v[i] = 1.0
    return v


@pytest.fixture(params=["memory", "faiss"])
def store(request):
    if request.param == "memory":
        return SimpleInMemoryVectorStore()
    return FaissVectorStore(dimension=DIM)


def test_empty_store_returns_no_results(store):
    assert store.search(_unit(0), 5) == []


def test_search_ranks_by_similarity(store):
    store.upsert(VectorRecord(id="exact", vector=_unit(0)))
    store.upsert(VectorRecord(id="close", vector=_unit(0) + 0.5 * _unit(1)))
    store.upsert(VectorRecord(id="far", vector=_unit(2)))

    results = store.search(_unit(0), 3)

    assert [r.id for r in results] == ["exact", "close", "far"]
    assert results[0].score == pytest.approx(1.0, abs=1e-5)
    assert results[0].score >= results[1].score >= results[2].score


def test_top_k_limits_results(store):
    for i in range(5):
        store.upsert(VectorRecord(id=f"r{i}", vector=_unit(i)))

    assert len(store.search(_unit(0), 2)) == 2
    assert len(store.search(_unit(0), 10)) == 5
    assert store.search(_unit(0), 0) == []


def test_equal_scores_break_ties_by_ascending_id(store):
    for record_id in ["charlie", "alpha", "bravo"]:
        store.upsert(VectorRecord(id=record_id, vector=_unit(3)))

    results = store.search(_unit(3), 3)

    assert [r.id for r in results] == ["alpha", "bravo", "charlie"]


def test_upsert_replaces_existing_vector(store):
    store.upsert(VectorRecord(id="svc", vector=_unit(0), metadata={"name": "old"}))
    store.upsert(VectorRecord(id="svc", vector=_unit(1), metadata={"name": "new"}))

    results = store.search(_unit(1), 5)

    assert len(results) == 1
    assert results[0].id == "svc"
    assert results[0].metadata["name"] == "new"
    assert store.stats()["count"] == 1


def test_zero_query_returns_no_results(store):
    store.upsert(VectorRecord(id="a", vector=_unit(0)))
    assert store.search(np.zeros(DIM, dtype=np.float32), 5) == []


def test_delete_and_clear(store):
    store.batch_add([VectorRecord(id=f"r{i}", vector=_unit(i)) for i in range(3)])

    store.delete("r0")
    assert "r0" not in [r.id for r in store.search(_unit(0), 5)]

    store.clear()
    assert store.search(_unit(1), 5) == []
    assert store.stats()["count"] == 0


def test_dimension_mismatch_raises(store):
    store.upsert(VectorRecord(id="a", vector=_unit(0)))
    with pytest.raises(ValueError):
        store.search(np.ones(DIM + 1, dtype=np.float32), 1)


def test_rank_results_orders_by_score_then_id():
    results = [
        QueryResult(id="b", score=0.5),
        QueryResult(id="a", score=0.5),
        QueryResult(id="c", score=0.9),
    ]
    assert [r.id for r in rank_results(results, 3)] == ["c", "a", "b"]


def test_faiss_save_and_load_round_trip(tmp_path):
    index_path = str(tmp_path / "services.faiss")
    store = FaissVectorStore(dimension=DIM, index_path=index_path)
    store.batch_add([
        VectorRecord(id="svc-1", vector=_unit(0), metadata={"name": "Balayage"}),
        VectorRecord(id="svc-2", vector=_unit(1), metadata={"name": "Haircut"}),
    ])
    store.save()

    loaded = FaissVectorStore(dimension=DIM, index_path=index_path)
    assert loaded.load() is True

    results = loaded.search(_unit(1), 1)
    assert results[0].id == "svc-2"
    assert results[0].metadata == {"name": "Haircut"}

    # New ids keep counting from where the saved index left off
    loaded.upsert(VectorRecord(id="svc-3", vector=_unit(2)))
    assert loaded.search(_unit(2), 1)[0].id == "svc-3"
    assert loaded.stats()["count"] == 3


def test_faiss_load_missing_index_returns_false(tmp_path):
    store = FaissVectorStore(dimension=DIM, index_path=str(tmp_path / "missing.faiss"))
    assert store.load() is False


def test_faiss_load_rejects_dimension_mismatch(tmp_path):
    index_path = str(tmp_path / "services.faiss")
    store = FaissVectorStore(dimension=DIM, index_path=index_path)
    store.upsert(VectorRecord(id="a", vector=_unit(0)))
    store.save()

    with pytest.raises(ValueError):
        FaissVectorStore(dimension=DIM * 2, index_path=index_path).load()
