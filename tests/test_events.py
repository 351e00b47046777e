import pytest

from imagecatalog.api.events import HARVEST_EVENT_MAPPING, EventClient
from imagecatalog.errors import InvalidArgument, Unauthenticated

from conftest import FakeResponse, FakeSession

GATEWAY = "https://pz-gateway.test"
ROOT = "beachfront:harvest:new-image-harvested"


def test_gateway_is_required(monkeypatch):
    monkeypatch.setattr("imagecatalog.api.events.config.domain", None)
    with pytest.raises(InvalidArgument):
        EventClient(session=FakeSession())


def test_existing_event_type_with_matching_mapping_is_reused():
    session = FakeSession(
        FakeResponse(
            data={
                "data": [
                    {"name": f"{ROOT}:0", "mapping": {"imageID": "string"}, "eventTypeId": "old"},
                    {"name": f"{ROOT}:1", "mapping": dict(HARVEST_EVENT_MAPPING), "eventTypeId": "current"},
                ]
            }
        )
    )
    client = EventClient(GATEWAY, "Basic abc", session=session)

    assert client.event_type_id(ROOT) == "current"
    assert client.event_type_id(ROOT) == "current"
    assert len(session.requests) == 1
    assert session.headers["Authorization"] == "Basic abc"


def test_missing_event_type_is_registered():
    session = FakeSession(
        FakeResponse(data={"data": []}),
        FakeResponse(data={"data": {"eventTypeId": "fresh"}}),
    )

    assert EventClient(GATEWAY, "Basic abc", session=session).event_type_id(ROOT) == "fresh"
    method, url, kwargs = session.requests[1]
    assert (method, url) == ("POST", f"{GATEWAY}/eventType")
    assert kwargs["json"] == {"name": f"{ROOT}:0", "mapping": HARVEST_EVENT_MAPPING}


def test_add_event_posts_payload():
    session = FakeSession(FakeResponse(data={"data": {"eventId": "e1"}}))

    EventClient(GATEWAY, "Basic abc", session=session).add_event("type-1", {"imageID": "x"})

    method, url, kwargs = session.requests[0]
    assert (method, url) == ("POST", f"{GATEWAY}/event")
    assert kwargs["json"] == {"eventTypeId": "type-1", "data": {"imageID": "x"}}


def test_rejected_credentials():
    session = FakeSession(FakeResponse(status_code=401, text="nope"))
    with pytest.raises(Unauthenticated):
        EventClient(GATEWAY, "Basic bad", session=session).check_auth()
