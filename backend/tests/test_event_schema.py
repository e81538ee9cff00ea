from threatdesk.schemas.events import EventIngestRequest


def test_missing_fields_are_defaulted():
    event = EventIngestRequest.model_validate({})

    assert event.timestamp.endswith("Z")
    assert event.event_type == "unknown"
    assert event.username is None
    assert event.status is None


def test_raw_payload_defaults_to_original_record():
    entry = {"timestamp": "2025-10-15T02:00:00Z", "username": "bob", "extra": 1}
    event = EventIngestRequest.model_validate(entry)

    assert event.raw_payload == entry


def test_explicit_raw_payload_is_kept():
    event = EventIngestRequest.model_validate(
        {"username": "bob", "raw_payload": {"line": "sshd[1]: Failed password"}}
    )
    assert event.raw_payload == {"line": "sshd[1]: Failed password"}


def test_wrong_types_are_coerced_not_rejected():
    event = EventIngestRequest.model_validate(
        {"timestamp": None, "username": 1001, "status": ["x"], "source_ip": "  "}
    )

    assert event.username == "1001"
    assert event.status is None
    assert event.source_ip is None
    assert event.timestamp
