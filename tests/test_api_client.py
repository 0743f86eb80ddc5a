from __future__ import annotations

import httpx
import pytest

from client.errors import NotFoundError, ServerError, SessionExpiredError, TransportError
from client.http import BoardApiClient
from client.schemas import FileType, UploadTarget
from client.settings import ClientSettings
from fake_backend import TOKEN, FakeBoardBackend
from transfer.sources import UploadSource


def _mock_client(handler) -> BoardApiClient:
    http = httpx.Client(transport=httpx.MockTransport(handler), base_url="http://api.test/api")
    return BoardApiClient(ClientSettings(api_url="http://api.test/api", token=TOKEN), http=http)


def test_board_queries_use_bearer_token_and_parse_models() -> None:
    backend = FakeBoardBackend()
    short = backend.add_short("First", status="clipping")
    backend.add_assignment(short["id"], 2, "clipper", rate=30)
    api = backend.client()

    shorts = api.list_shorts()
    assert [item.title for item in shorts] == ["First"]
    assert shorts[0].assignments[0].user.name == "Cleo"
    assert api.get_me().is_admin
    assert backend.requests[0] == ("GET", "/api/shorts", f"Bearer {TOKEN}")


def test_assigned_only_uses_dedicated_endpoint() -> None:
    backend = FakeBoardBackend(me_id=2)
    mine = backend.add_short("Mine", status="clips")
    backend.add_short("Other", status="clips")
    backend.add_assignment(mine["id"], 2, "clipper")

    shorts = backend.client().list_shorts(assigned_only=True)
    assert [item.title for item in shorts] == ["Mine"]
    assert ("GET", "/api/shorts/assigned") in backend.calls()


def test_create_assignment_sends_default_time_range() -> None:
    backend = FakeBoardBackend()
    short = backend.add_short("Clip me", status="clips")
    api = backend.client()

    clipper = api.create_assignment(short["id"], 2, "clipper", rate=25.0)
    editor = api.create_assignment(short["id"], 3, "editor")

    assert clipper.rate == 25.0
    assert backend.assignments[clipper.id]["default_time_range"] == 4
    assert backend.assignments[editor.id]["default_time_range"] == 2


def test_upload_protocol_round_trip() -> None:
    backend = FakeBoardBackend()
    short = backend.add_short("Upload", status="editing")
    api = backend.client()
    source = UploadSource.from_bytes("final.mp4", b"v" * 1000, "video/mp4")

    target = api.reserve_upload(short["id"], FileType.FINAL_VIDEO, source.name, source.size, source.mime_type)
    seen: list[tuple[int, int]] = []
    api.transfer_bytes(target, source, lambda loaded, total: seen.append((loaded, total)))
    record = api.confirm_upload(
        short["id"],
        FileType.FINAL_VIDEO,
        target.storage_path,
        source.name,
        source.size,
        source.mime_type,
    )

    assert backend.storage[target.storage_path] == b"v" * 1000
    assert seen[-1] == (1000, 1000)
    assert record.file_type == "final_video"
    assert record.storage_path == target.storage_path
    assert api.get_short(short["id"]).has_file("final_video")

    storage_calls = [entry for entry in backend.requests if entry[1].startswith("/storage/")]
    assert storage_calls == [("PUT", f"/storage/{target.storage_path}", None)]


def test_confirm_replaces_existing_file_of_same_type() -> None:
    backend = FakeBoardBackend()
    short = backend.add_short("Replace", status="clips")
    old = backend.add_file(short["id"], "clips_zip")
    api = backend.client()
    source = UploadSource.from_bytes("clips.zip", b"z" * 10, "application/zip")

    target = api.reserve_upload(short["id"], "clips_zip", source.name, source.size, source.mime_type)
    api.transfer_bytes(target, source)
    api.confirm_upload(short["id"], "clips_zip", target.storage_path, source.name, source.size, source.mime_type)

    files = api.list_files(short["id"])
    assert [item.file_name for item in files] == ["clips.zip"]
    assert old["id"] not in {item.id for item in files}


def test_deletes_treat_missing_resources_as_done() -> None:
    backend = FakeBoardBackend()
    short = backend.add_short("Delete me")
    record = backend.add_file(short["id"], "script")
    api = backend.client()

    assert api.delete_file(record["id"]) is True
    assert api.delete_file(record["id"]) is False
    assert api.delete_assignment(12345) is False
    assert api.delete_short(short["id"]) is True
    assert api.delete_short(short["id"]) is False


def test_error_message_is_taken_from_response_body() -> None:
    backend = FakeBoardBackend()
    backend.failures["POST /api/shorts"] = (400, {"error": "Title is too long"})
    with pytest.raises(ServerError) as excinfo:
        backend.client().create_short("x" * 500)
    assert excinfo.value.status_code == 400
    assert str(excinfo.value) == "Title is too long"


def test_missing_short_raises_not_found() -> None:
    with pytest.raises(NotFoundError) as excinfo:
        FakeBoardBackend().client().get_short(999)
    assert str(excinfo.value) == "Short not found"


def test_unauthorized_maps_to_session_expired() -> None:
    backend = FakeBoardBackend()
    backend.failures["GET /api/auth/me"] = (401, {"error": "Invalid token"})
    with pytest.raises(SessionExpiredError) as excinfo:
        backend.client().get_me()
    assert "session has expired" in str(excinfo.value)


def test_generic_fallback_when_body_has_no_message() -> None:
    api = _mock_client(lambda request: httpx.Response(502, text="<html>bad gateway</html>"))
    with pytest.raises(ServerError) as excinfo:
        api.list_users()
    assert str(excinfo.value) == "Request failed with status 502"


def test_unexpected_payload_is_a_server_error() -> None:
    api = _mock_client(lambda request: httpx.Response(200, json={"not": "a list"}))
    with pytest.raises(ServerError):
        api.list_shorts()


def test_connect_failure_is_network_transport_error() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError) as excinfo:
        _mock_client(_handler).list_shorts()
    assert excinfo.value.kind == "network"
    assert not excinfo.value.is_timeout


def test_upload_timeout_asks_to_retry_with_smaller_file() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.WriteTimeout("write timed out", request=request)

    api = _mock_client(_handler)
    source = UploadSource.from_bytes("big.zip", b"z" * 10)

    with pytest.raises(TransportError) as excinfo:
        api.transfer_bytes(UploadTarget(upload_url="http://storage.test/big.zip", storage_path="big.zip"), source)
    assert excinfo.value.is_timeout
    assert str(excinfo.value) == "Upload timed out. Please try again, the file may be too large."


def test_storage_upload_sends_no_credentials() -> None:
    captured: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        request.read()
        captured.append(request)
        return httpx.Response(200)

    api = _mock_client(_handler)
    source = UploadSource.from_bytes("a.mp3", b"abc", "audio/mpeg")

    api.transfer_bytes(UploadTarget(upload_url="http://storage.test/a.mp3", storage_path="a.mp3"), source)
    request = captured[0]
    assert "authorization" not in request.headers
    assert request.headers["content-type"] == "audio/mpeg"
    assert request.headers["content-length"] == "3"
    assert request.content == b"abc"
