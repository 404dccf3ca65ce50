from __future__ import annotations

import httpx
import pytest

from api_quest.core.context import EngineContext
from api_quest.core.events import TASK_CHECK_FAILED, TASK_CHECK_SUCCEEDED
from api_quest.core.models import Request
from api_quest.core.storage import SOURCE_SELECTION_KEY
from api_quest.services import ADAPTER_FACTORIES, CheckStage, EngineServices, Exercise
from api_quest.verification import REQUIRED, DescriptorError

CREATE_USER = {
    "id": "task-3",
    "solution": {
        "method": "POST",
        "url": "/api/users",
        "headers": {"Content-Type": "application/json"},
        "body": {"name": True, "email": True, "role": True},
    },
    "requiresServerResponse": True,
    "expectedResponse": {"status": 201, "body": {"id": 4, "name": "Ann"}},
}


@pytest.fixture
def services(fast_settings) -> EngineServices:
    context = EngineContext.build_default(settings=fast_settings, persist_session=False)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"host": request.url.host})

    return EngineServices(context=context, transport=httpx.MockTransport(handler))


def _create_request(**body) -> Request:
    return Request(method="POST", url="/api/users", headers={"Content-Type": "application/json"}, body=body)


def test_exercise_from_mapping():
    exercise = Exercise.from_mapping({**CREATE_USER, "apiSourceRestrictions": ["public", "training"]})

    assert exercise.task_id == "task-3"
    assert exercise.solution.body["name"] is REQUIRED
    assert exercise.expected_response.status == 201
    assert exercise.requires_server_response is True
    assert exercise.source_restrictions == ("public", "training")


@pytest.mark.parametrize(
    "payload",
    [
        {"solution": {}},
        {"id": "t"},
        {"id": "t", "solution": {}, "apiSourceRestrictions": "public"},
    ],
)
def test_exercise_rejects_malformed_documents(payload):
    with pytest.raises(DescriptorError):
        Exercise.from_mapping(payload)


def test_services_build_one_adapter_per_kind(services):
    adapters = services.adapters()

    assert set(adapters) == {"mock", "public", "training"}
    assert set(ADAPTER_FACTORIES) == {"mock", "public", "training"}
    assert services.router() is services.router()
    assert services.router().current_key == "mock"


@pytest.mark.anyio
async def test_check_task_routes_and_verifies_response(services):
    events = []
    services.events().on(TASK_CHECK_SUCCEEDED, events.append)
    exercise = Exercise.from_mapping(CREATE_USER)

    outcome = await services.check_task(exercise, _create_request(name="Ann", email="ann@example.com", role="user"))

    assert outcome.passed is True
    assert outcome.stage == CheckStage.PASSED
    assert outcome.response.status == 201
    assert outcome.response.body["name"] == "Ann"
    assert events == [outcome]
    assert len(services.http_log()) == 2


@pytest.mark.anyio
async def test_check_task_stops_at_request_mismatch(services):
    events = []
    services.events().on(TASK_CHECK_FAILED, events.append)
    exercise = Exercise.from_mapping(CREATE_USER)

    outcome = await services.check_task(exercise, _create_request(name="Ann"))

    assert outcome.passed is False
    assert outcome.stage == CheckStage.REQUEST
    assert outcome.response is None
    assert len(services.http_log()) == 0
    assert events == [outcome]


@pytest.mark.anyio
async def test_check_task_reports_response_mismatch(services):
    exercise = Exercise.from_mapping(CREATE_USER)

    outcome = await services.check_task(exercise, _create_request(name="Bob", email="bob@example.com", role="user"))

    assert outcome.passed is False
    assert outcome.stage == CheckStage.RESPONSE
    assert any("name" in message for message in outcome.messages)


@pytest.mark.anyio
async def test_check_task_without_server_response(services):
    exercise = Exercise.from_mapping({"id": "task-1", "solution": {"method": "GET", "url": "/api/users"}})

    outcome = await services.check_task(exercise, Request(method="GET", url="/api/users"))

    assert outcome.passed is True
    assert outcome.response is None


@pytest.mark.anyio
async def test_check_task_enforces_source_restrictions(services):
    exercise = Exercise.from_mapping({"id": "task-7", "solution": {"method": "GET", "url": "/posts"}, "apiSourceRestrictions": ["public"]})

    outcome = await services.check_task(exercise, Request(method="GET", url="/posts"))

    assert outcome.passed is False
    assert outcome.stage == CheckStage.SOURCE


@pytest.mark.anyio
async def test_prepare_switches_to_allowed_source(services):
    await services.refresh_sources()
    exercise = Exercise.from_mapping({"id": "task-7", "solution": {"method": "GET", "url": "/posts"}, "apiSourceRestrictions": ["public"]})

    assert services.workspace().prepare(exercise) == "public"
    outcome = await services.check_task(exercise, Request(method="GET", url="/posts"))

    assert outcome.passed is True
    assert outcome.source == "public"


def test_prepare_falls_back_to_baseline(services):
    exercise = Exercise.from_mapping({"id": "task-8", "solution": {}, "apiSourceRestrictions": ["training"]})

    assert services.workspace().prepare(exercise) == "mock"


@pytest.mark.anyio
async def test_send_through_public_source(services):
    await services.refresh_sources()
    assert services.router().set_source("public")

    response = await services.send(Request(method="GET", url="/posts"))

    assert response.status == 200
    assert response.body == {"host": "public-api-quest.example.com"}


@pytest.mark.anyio
async def test_verify_source(services):
    assert (await services.verify_source("mock")).success is True
    assert (await services.verify_source("public")).success is True
    assert services.router().is_available("public")


@pytest.mark.anyio
async def test_first_send_replaces_unreachable_saved_source(fast_settings):
    context = EngineContext.build_default(settings=fast_settings, persist_session=False)
    context.storage.set(SOURCE_SELECTION_KEY, "training")

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api-quest.example.com":
            return httpx.Response(503)
        return httpx.Response(200, json={"host": request.url.host})

    services = EngineServices(context=context, transport=httpx.MockTransport(handler))
    assert services.router().current_key == "training"

    response = await services.send(Request(method="GET", url="/posts"))

    assert services.router().current_key == "public"
    assert response.body == {"host": "public-api-quest.example.com"}
    assert services.health_monitor().rounds == 1
