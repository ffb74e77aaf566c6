"""Tests for bandmate_ingest.execution.spec — Task construction and wire form."""

from __future__ import annotations

import dataclasses

import pytest

from bandmate_ingest.core.errors import TaskValidationError
from bandmate_ingest.execution.spec import Task, TaskKind, task_from_dict


class TestTaskConstruction:
    def test_artist_task(self):
        task = Task.artist("Test Artist", "user-1")
        assert task.kind is TaskKind.ARTIST_INGEST
        assert task.payload == {"artist_name": "Test Artist"}
        assert task.submitter_id == "user-1"
        assert task.subject == "Test Artist"

    def test_song_task_defaults_force_false(self):
        task = Task.song("rec-1", "user-1")
        assert task.kind is TaskKind.SONG_INGEST
        assert task.payload == {"recording_id": "rec-1", "force": False}

    def test_kind_accepts_wire_name(self):
        task = Task("ingest-artist", {"artist_name": "Queen"}, "user-1")
        assert task.kind is TaskKind.ARTIST_INGEST

    def test_unknown_kind_rejected(self):
        with pytest.raises(TaskValidationError, match="Unknown task kind"):
            Task("ingest-album", {"album": "x"}, "user-1")

    @pytest.mark.parametrize("name", ["", "   "])
    def test_blank_artist_rejected(self, name):
        with pytest.raises(TaskValidationError, match="artist_name"):
            Task.artist(name, "user-1")

    def test_missing_recording_id_rejected(self):
        with pytest.raises(TaskValidationError, match="recording_id"):
            Task(TaskKind.SONG_INGEST, {}, "user-1")

    def test_missing_submitter_rejected(self):
        with pytest.raises(TaskValidationError, match="submitter_id"):
            Task.song("rec-1", "")


class TestTaskImmutability:
    def test_fields_frozen(self):
        task = Task.artist("Queen", "user-1")
        with pytest.raises(dataclasses.FrozenInstanceError):
            task.submitter_id = "someone-else"  # type: ignore[misc]

    def test_payload_read_only(self):
        task = Task.song("rec-1", "user-1")
        with pytest.raises(TypeError):
            task.payload["recording_id"] = "rec-2"  # type: ignore[index]

    def test_hashable(self):
        first = Task.song("rec-1", "user-1")
        second = Task.song("rec-1", "user-1")
        assert hash(first) == hash(second)
        assert len({first, second, Task.song("rec-2", "user-1")}) == 2

    def test_payload_copied_from_caller(self):
        payload = {"artist_name": "Queen"}
        task = Task(TaskKind.ARTIST_INGEST, payload, "user-1")
        payload["artist_name"] = "Blur"
        assert task.payload["artist_name"] == "Queen"


class TestWireForm:
    def test_to_dict(self):
        assert Task.song("rec-1", "user-1", force=True).to_dict() == {
            "type": "ingest-single-song",
            "payload": {"recording_id": "rec-1", "force": True},
            "submitter_id": "user-1",
        }

    def test_from_dict_rebuilds_equal_task(self):
        task = Task.artist("Queen", "user-1")
        assert task_from_dict(task.to_dict()) == task

    def test_from_dict_missing_field(self):
        with pytest.raises(TaskValidationError, match="submitter_id"):
            task_from_dict({"type": "ingest-artist", "payload": {"artist_name": "Queen"}})

    def test_log_fields(self):
        assert Task.song("rec-1", "user-1").log_fields() == {
            "task_kind": "ingest-single-song",
            "recording_id": "rec-1",
            "submitter_id": "user-1",
        }
