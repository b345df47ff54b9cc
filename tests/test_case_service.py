from datetime import datetime, timezone

from flood_rescue.models.case import CaseStatus, normalize_case
from flood_rescue.services.case_service import CaseService

from tests.conftest import PHOTO_DATA_URL, make_case


def test_web_client_document_is_read_with_current_names(cases_store):
    case_id = cases_store.create({
        "name": "สมศรี",
        "contact": "0899999999",
        "imageUrl": PHOTO_DATA_URL,
        "peopleCount": 5,
        "waterLevel": "อก",
        "reporterType": "ญาติ",
        "timestamp": datetime(2024, 11, 2, 8, 30, tzinfo=timezone.utc),
        "location": {"lat": 13.75, "lng": 100.5},
        "status": "inprogress",
    })

    case = CaseService(cases_store).get_case(case_id)

    assert case.image_url == PHOTO_DATA_URL
    assert case.people_count == 5
    assert case.water_level == "อก"
    assert case.reporter_type == "ญาติ"
    assert case.created_at == datetime(2024, 11, 2, 8, 30, tzinfo=timezone.utc)
    assert case.status == CaseStatus.IN_PROGRESS
    assert case.allowed_actions == ["complete", "mark_recovery"]


def test_listing_maps_inprogress_status_and_filters_on_it(cases_store):
    waiting_id = make_case(cases_store)
    legacy_id = make_case(cases_store, status="inprogress")
    service = CaseService(cases_store)

    listed = {c.id: c.status for c in service.list_cases()}
    assert listed == {waiting_id: CaseStatus.WAITING, legacy_id: CaseStatus.IN_PROGRESS}

    in_progress = [c.id for c in service.list_cases(CaseStatus.IN_PROGRESS)]
    assert in_progress == [legacy_id]


def test_malformed_document_does_not_hide_the_others(cases_store):
    good_id = make_case(cases_store)
    make_case(cases_store, location={"lat": "somewhere", "lng": None})
    make_case(cases_store, status="cancelled")

    listed = [c.id for c in CaseService(cases_store).list_cases()]

    assert listed == [good_id]


def test_stats_count_inprogress_documents(cases_store):
    make_case(cases_store)
    make_case(cases_store, status="inprogress")

    stats = CaseService(cases_store).get_stats()

    assert stats.total == 2
    assert stats.waiting == 1
    assert stats.in_progress == 1


def test_current_field_name_wins_over_legacy():
    case = normalize_case({"image_url": "new", "imageUrl": "old", "peopleCount": 2})

    assert case == {"image_url": "new", "people_count": 2}
