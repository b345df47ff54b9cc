from flood_rescue.services.triage_worker import TriageWorker, WorkerState

from tests.conftest import FakeModelClient, make_case


def test_worker_selects_model_and_triages_new_cases(cases_store):
    client = FakeModelClient(failing_models={"gemini-flash-latest"})
    worker = TriageWorker(cases_store, client, ["gemini-flash-latest", "gemini-2.5-flash"], max_workers=2)

    assert worker.start() == WorkerState.RUNNING
    case_id = make_case(cases_store)
    dispatcher = worker.dispatcher
    worker.stop()
    dispatcher.executor.shutdown(wait=True)

    assert cases_store.get(case_id)["ai_analysis"]["risk_score"] == 7
    status = worker.status()
    assert status["state"] == "stopped"
    assert status["model"] == {"provider": "fake", "name": "gemini-2.5-flash"}
    assert status["failed_candidates"] == ["gemini-flash-latest"]


def test_worker_halts_triage_when_no_model_answers(cases_store):
    client = FakeModelClient(failing_models={"a", "b"})
    worker = TriageWorker(cases_store, client, ["a", "b"])

    assert worker.start() == WorkerState.MODEL_UNAVAILABLE
    make_case(cases_store)

    status = worker.status()
    assert status["model"] is None
    assert status["dispatched"] == 0
    assert "a" in status["error"]
    assert client.invocations == []


def test_stop_before_startup_finishes_prevents_subscription(cases_store):
    worker = TriageWorker(cases_store, FakeModelClient(), ["gemini-test"])
    worker.stop()

    assert worker.start() == WorkerState.STOPPED
    assert worker.dispatcher is None


def test_background_start(cases_store):
    worker = TriageWorker(cases_store, FakeModelClient(), ["gemini-test"])

    thread = worker.start_in_background()
    thread.join(timeout=5)

    assert worker.state == WorkerState.RUNNING
    worker.stop()
