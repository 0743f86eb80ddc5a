from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from board.columns import ColumnType
from board.controller import BoardController, plan_submission
from client.errors import ValidationError
from client.schemas import FileType, Short, ShortFile
from fake_backend import FakeBoardBackend
from transfer.sources import UploadSource


class _Notices:
    def __init__(self) -> None:
        self.items: list[tuple[str, str]] = []

    def __call__(self, level: str, message: str) -> None:
        self.items.append((level, message))

    @property
    def messages(self) -> list[str]:
        return [message for _, message in self.items]


def _controller(
    backend: FakeBoardBackend,
    *,
    confirm: bool = True,
    notices: _Notices | None = None,
) -> BoardController:
    api = backend.client(upload_hold_s=0)
    actor = api.get_me()
    controller = BoardController(
        api,
        actor,
        notify=notices if notices is not None else _Notices(),
        confirm=lambda _prompt: confirm,
    )
    controller.reload()
    return controller


def _mutations(backend: FakeBoardBackend) -> list[tuple[str, str]]:
    return [call for call in backend.calls() if call[0] != "GET"]


def test_reload_loads_admin_collections() -> None:
    backend = FakeBoardBackend()
    backend.add_short("Idea one")
    controller = _controller(backend)

    assert [short.title for short in controller.state.shorts] == ["Idea one"]
    assert len(controller.state.users) == 4
    assert ("GET", "/api/assignments") in backend.calls()


def test_non_admin_reload_uses_public_assignments() -> None:
    backend = FakeBoardBackend(me_id=2)
    short = backend.add_short("Clip", status="clips")
    backend.add_assignment(short["id"], 2, "clipper", rate=50)
    controller = _controller(backend)

    assert controller.state.users == ()
    assert controller.state.assignments[0].rate is None
    assert ("GET", "/api/assignments/public") in backend.calls()
    assert ("GET", "/api/users") not in backend.calls()


def test_valid_drop_updates_status_and_reloads() -> None:
    backend = FakeBoardBackend()
    short = backend.add_short("Move me", status="script")
    controller = _controller(backend)

    assert controller.drop(short["id"], ColumnType.CLIPS)
    assert backend.shorts[short["id"]]["status"] == "clips"
    assert controller.shorts_in("clips")[0].id == short["id"]


def test_invalid_drop_is_silent_and_sends_nothing() -> None:
    backend = FakeBoardBackend()
    short = backend.add_short("Stay", status="clips")
    notices = _Notices()
    controller = _controller(backend, notices=notices)

    assert not controller.drop(short["id"], ColumnType.EDITING)
    assert not controller.drop(short["id"], "nowhere")
    assert _mutations(backend) == []
    assert notices.items == []
    assert controller.state.last_error is None


def test_completed_clips_fast_forward_to_editing() -> None:
    backend = FakeBoardBackend()
    short = backend.add_short("Done", status="clips", clips_completed_at=datetime.now(UTC).isoformat())
    controller = _controller(backend)

    assert controller.drop(short["id"], "editing")
    assert backend.shorts[short["id"]]["status"] == "editing"


def test_non_admin_cannot_drag() -> None:
    backend = FakeBoardBackend(me_id=2)
    short = backend.add_short("Script", status="script")
    controller = _controller(backend)

    assert not controller.drop(short["id"], "clips")
    assert _mutations(backend) == []


def test_poll_is_suspended_while_a_modal_is_open() -> None:
    backend = FakeBoardBackend()
    controller = _controller(backend)
    before = len(backend.calls())

    assert controller.open_create("idea")
    assert not controller.poll()
    assert len(backend.calls()) == before

    controller.close_create()
    assert controller.poll()
    assert len(backend.calls()) > before


def test_create_from_script_column_moves_short_to_script() -> None:
    backend = FakeBoardBackend()
    controller = _controller(backend)

    assert controller.open_create("script")
    short = controller.create_short("  New short  ", idea="cats")
    assert short is not None
    assert backend.shorts[short.id]["title"] == "New short"
    assert backend.shorts[short.id]["status"] == "script"
    assert controller.state.create_column is None
    assert controller.shorts_in("script")[0].id == short.id


def test_create_requires_title_and_admin() -> None:
    backend = FakeBoardBackend()
    notices = _Notices()
    controller = _controller(backend, notices=notices)
    controller.open_create("idea")
    assert controller.create_short("   ") is None
    assert notices.items == [("warning", "Title is required.")]
    assert ("POST", "/api/shorts") not in backend.calls()

    writer = _controller(FakeBoardBackend(me_id=4))
    assert not writer.open_create("idea")


def test_assign_replaces_existing_assignment_for_role() -> None:
    backend = FakeBoardBackend()
    short = backend.add_short("Clip", status="clips")
    controller = _controller(backend)

    assert controller.assign(short["id"], "clipper", 2) is not None
    assert controller.assign(short["id"], "clipper", 3, rate=20.0) is not None

    clippers = [
        item for item in backend.assignments.values() if item["short_id"] == short["id"] and item["role"] == "clipper"
    ]
    assert len(clippers) == 1
    assert clippers[0]["user_id"] == 3


def test_assign_reads_fresh_assignments_even_when_board_is_stale() -> None:
    backend = FakeBoardBackend()
    short = backend.add_short("Clip", status="clips")
    controller = _controller(backend)
    # Another viewer assigned someone after our last load.
    backend.add_assignment(short["id"], 2, "clipper")

    controller.assign(short["id"], "clipper", 3)
    clippers = [item for item in backend.assignments.values() if item["role"] == "clipper"]
    assert [item["user_id"] for item in clippers] == [3]


def test_open_content_is_not_offered_to_unassigned_clipper() -> None:
    backend = FakeBoardBackend(me_id=2)
    short = backend.add_short("Clip", status="clips")
    controller = _controller(backend)

    assert not controller.open_content(short["id"])
    assert controller.state.content_modal is None


def test_open_content_is_view_only_outside_work_stages() -> None:
    backend = FakeBoardBackend(me_id=2)
    short = backend.add_short("Ready", status="ready_to_upload")
    controller = _controller(backend)

    assert controller.open_content(short["id"])
    assert controller.state.content_modal.editable is False
    assert controller.submit_content({}) is None


def test_open_content_falls_back_to_board_copy() -> None:
    backend = FakeBoardBackend()
    short = backend.add_short("Script", status="script")
    controller = _controller(backend)
    backend.failures[f"GET /api/shorts/{short['id']}"] = (500, {"error": "boom"})

    assert controller.open_content(short["id"])
    assert controller.state.content_modal.short.title == "Script"


def test_submit_content_uploads_batch_and_closes_modal() -> None:
    backend = FakeBoardBackend()
    short = backend.add_short("Script", status="script")
    controller = _controller(backend)
    controller.open_content(short["id"])

    uploaded = controller.submit_content(
        {
            FileType.AUDIO: UploadSource.from_bytes("voice.mp3", b"a" * 70, "audio/mpeg"),
            FileType.SCRIPT: UploadSource.from_bytes("script.pdf", b"s" * 30, "application/pdf"),
        }
    )

    assert [item.file_type for item in uploaded] == ["script", "audio"]
    assert controller.state.content_modal is None
    assert controller.state.uploading is False
    assert {item.file_type for item in controller.state.find_short(short["id"]).files} == {"script", "audio"}
    confirms = [path for method, path in backend.calls("POST") if path == "/api/files/confirm-upload"]
    assert len(confirms) == 2


def test_submit_content_validates_before_reserving() -> None:
    backend = FakeBoardBackend()
    short = backend.add_short("Script", status="script")
    notices = _Notices()
    controller = _controller(backend, notices=notices)
    controller.open_content(short["id"])

    result = controller.submit_content({FileType.SCRIPT: UploadSource.from_bytes("script.pdf", b"s", "application/pdf")})

    assert result is None
    assert notices.items == [("warning", "Please upload both a script PDF and an audio file.")]
    assert ("POST", "/api/files/upload-url") not in backend.calls()
    assert controller.state.content_modal is not None


def test_failed_upload_keeps_modal_open_with_server_message() -> None:
    backend = FakeBoardBackend()
    short = backend.add_short("Edit", status="editing")
    notices = _Notices()
    controller = _controller(backend, notices=notices)
    controller.open_content(short["id"])
    backend.failures["POST /api/files/confirm-upload"] = (400, {"error": "Uploaded object not found in storage"})

    result = controller.submit_content({FileType.FINAL_VIDEO: UploadSource.from_bytes("final.mp4", b"v" * 5)})

    assert result is None
    assert notices.messages == ["Uploaded object not found in storage"]
    assert controller.state.content_modal is not None
    assert controller.close_content()


def test_mark_complete_rejections_send_nothing() -> None:
    backend = FakeBoardBackend()
    short = backend.add_short("Clip", status="clips")
    notices = _Notices()
    controller = _controller(backend, notices=notices)
    controller.open_content(short["id"])

    assert controller.mark_complete() is None
    backend.add_file(short["id"], "clips_zip")
    controller.reload()
    controller.close_content()
    controller.open_content(short["id"])
    assert controller.mark_complete() is None
    backend.add_assignment(short["id"], 2, "clipper")
    controller.reload()
    assert controller.mark_complete() is None

    assert notices.messages == [
        "Cannot mark complete. Clips ZIP file is required.",
        "Cannot mark complete. No clipper assignment found for this short.",
        "Cannot mark complete. Rate must be set for the clipper assignment before marking complete.",
    ]
    assert not any("mark-clips-complete" in path for _, path in backend.calls())


def test_mark_complete_calls_stage_endpoint() -> None:
    backend = FakeBoardBackend()
    short = backend.add_short("Edit", status="editing_changes")
    backend.add_file(short["id"], "final_video")
    backend.add_assignment(short["id"], 3, "editor", rate=40)
    controller = _controller(backend)
    controller.open_content(short["id"])

    updated = controller.mark_complete()
    assert updated is not None
    assert updated.editing_completed_at is not None
    assert ("POST", f"/api/shorts/{short['id']}/mark-editing-complete") in backend.calls()


def test_deletes_require_confirmation() -> None:
    backend = FakeBoardBackend()
    short = backend.add_short("Keep")
    controller = _controller(backend, confirm=False)

    assert not controller.delete_short(short["id"])
    assert _mutations(backend) == []
    assert short["id"] in backend.shorts


def test_deleting_missing_file_is_not_an_error() -> None:
    backend = FakeBoardBackend()
    notices = _Notices()
    controller = _controller(backend, notices=notices)

    assert controller.delete_file(424242)
    assert notices.items == []


def test_file_delete_is_refused_without_edit_rights() -> None:
    backend = FakeBoardBackend(me_id=2)
    short = backend.add_short("Cut", status="editing")
    record = backend.add_file(short["id"], "final_video")
    notices = _Notices()
    controller = _controller(backend, notices=notices)

    assert not controller.delete_file(record["id"])
    assert record["id"] in backend.files
    assert _mutations(backend) == []
    assert notices.messages == ["You do not have permission to do that."]


def test_assigned_clipper_deletes_only_files_of_open_short() -> None:
    backend = FakeBoardBackend(me_id=2)
    short = backend.add_short("Clip", status="clips")
    other = backend.add_short("Other", status="clips")
    backend.add_assignment(short["id"], 2, "clipper")
    backend.add_assignment(other["id"], 2, "clipper")
    mine = backend.add_file(short["id"], "clips_zip")
    theirs = backend.add_file(other["id"], "clips_zip")
    controller = _controller(backend)

    assert controller.open_content(short["id"])
    assert not controller.delete_file(theirs["id"])
    assert theirs["id"] in backend.files
    assert controller.delete_file(mine["id"])
    assert mine["id"] not in backend.files


def test_download_respects_stage_permissions(tmp_path: Path) -> None:
    backend = FakeBoardBackend(me_id=2)
    short = backend.add_short("Clip", status="clips")
    backend.add_assignment(short["id"], 2, "clipper")
    script = backend.add_file(short["id"], "script", b"%PDF")
    final = backend.add_file(short["id"], "final_video", b"video")
    notices = _Notices()
    controller = _controller(backend, notices=notices)
    controller.open_content(short["id"])
    files = {item.file_type: item for item in controller.state.content_modal.short.files}

    path = controller.download_file(files["script"], tmp_path)
    assert path == tmp_path / script["file_name"]
    assert path.read_bytes() == b"%PDF"

    assert controller.download_file(files["final_video"], tmp_path) is None
    assert notices.messages == ["You do not have permission to do that."]
    assert final["file_name"] not in {item.name for item in tmp_path.iterdir()}


def test_view_toggles_filter_visible_board() -> None:
    backend = FakeBoardBackend()
    controller = _controller(backend)
    controller.toggle_view("upload")
    assert ColumnType.READY_TO_UPLOAD not in controller.visible_board()
    assert ColumnType.IDEA in controller.visible_board()


def test_assigned_only_toggle_refetches() -> None:
    backend = FakeBoardBackend()
    controller = _controller(backend)
    assert controller.set_assigned_only(True)
    assert controller.state.assigned_only
    assert ("GET", "/api/shorts/assigned") in backend.calls()


def test_plan_submission_orders_and_filters_files() -> None:
    short = Short(id=1, title="t", files=[ShortFile(id=1, file_type="audio", file_name="a.mp3")])
    script = UploadSource.from_bytes("s.pdf", b"s")
    items = plan_submission("script", short, {"script": script})
    assert [item.type_value for item in items] == ["script"]

    with pytest.raises(ValidationError):
        plan_submission("clips", short, {"final_video": script})
    with pytest.raises(ValidationError):
        plan_submission("idea", short, {"script": script})
    with pytest.raises(ValidationError):
        plan_submission("editing", short, {"final_video": UploadSource.from_bytes("empty.mp4", b"")})
