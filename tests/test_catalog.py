"""
Tests for the service catalog store and service details parsing.
"""

import json

import pytest

from salon_chat.core.db import get_db
from salon_chat.core.errors import DependencyError
from salon_chat.core.schema import AddOn, CatalogRecord, ServiceDetails


def _record(record_id, name, details=None):
    return CatalogRecord(
        id=record_id,
        name=name,
        category="Color",
        price="$100",
        description=f"{name} description",
        details=details or ServiceDetails()
    )


def test_get_services_follows_requested_order(catalog):
    catalog.replace_all([_record("a", "Alpha"), _record("b", "Bravo"), _record("c", "Charlie")])

    records = catalog.get_services(["c", "a", "b"])

    assert [r.id for r in records] == ["c", "a", "b"]


def test_get_services_drops_dangling_ids(catalog):
    catalog.replace_all([_record("a", "Alpha")])

    records = catalog.get_services(["missing", "a", "also-missing"])

    assert [r.name for r in records] == ["Alpha"]
    assert catalog.get_services([]) == []
    assert catalog.get_service("missing") is None


def test_replace_all_removes_previous_records(catalog):
    catalog.replace_all([_record("old", "Old Service")])
    catalog.replace_all([_record("new", "New Service")])

    assert [r.id for r in catalog.list_services()] == ["new"]
    assert catalog.count_services() == 1


def test_replace_all_rolls_back_when_before_commit_fails(catalog):
    catalog.replace_all([_record("old", "Old Service")])

    def fail():
        raise DependencyError("index write failed", dependency="vector_index")

    with pytest.raises(DependencyError):
        catalog.replace_all([_record("new", "New Service")], before_commit=fail)

    assert [r.id for r in catalog.list_services()] == ["old"]


def test_details_round_trip_through_store(catalog):
    details = ServiceDetails(
        treatment_options=["Partial", "Full"],
        optional_addons=[AddOn(name="Gloss", price="35"), AddOn(name="Toner")],
        not_for=["Damaged hair"],
        unit="session"
    )
    catalog.replace_all([_record("d", "Detailed", details)])

    assert catalog.get_service("d").details == details


def test_details_ignore_unknown_fields(catalog, db_path):
    catalog.replace_all([_record("x", "Extra")])
    with get_db(db_path) as conn:
        conn.execute(
            "UPDATE salon_services SET details = ? WHERE id = ?",
            (json.dumps({"unit": "hour", "stylist_notes": "ask for Jo", "loyalty_points": 5}), "x")
        )
        conn.commit()

    details = catalog.get_service("x").details

    assert details.unit == "hour"
    assert details.treatment_options == []
    assert details.to_payload() == {"unit": "hour"}


def test_malformed_details_read_as_empty(catalog, db_path):
    catalog.replace_all([_record("bad", "Bad Details")])
    with get_db(db_path) as conn:
        conn.execute("UPDATE salon_services SET details = ? WHERE id = ?", ("{not json", "bad"))
        conn.commit()

    assert catalog.get_service("bad").details.is_empty()


def test_details_from_payload_tolerates_loose_shapes():
    details = ServiceDetails.from_payload({
        "treatment_options": "not a list",
        "optional_addons": ["Scalp massage", {"name": "Gloss", "price": 35}, {"price": 10}],
        "not_for": None
    })

    assert details.treatment_options == []
    assert details.optional_addons == [AddOn(name="Scalp massage"), AddOn(name="Gloss", price="35")]
    assert details.not_for == []
    assert ServiceDetails.from_payload(None).is_empty()
