"""Tests for the Presenter: session state, editing laws, and background jobs.

WHY: The presenter is where the user-visible rules live: what needs a
current bank, when dirty is set and cleared, and the single-flight
behavior of resolve/export with snapshot isolation. These tests drive it
through a RecordingView exactly as a front end would.

HOW: Tests are organized by concern:
  - TestStartup: preload and the initial status
  - TestSwitch: open/switch outcomes and dirty handling
  - TestEditing: insert/delete/save laws and the text helpers
  - TestFilter: row filtering
  - TestJobs: single flight, snapshot isolation, completion hand-off

RULES:
- Workers that must stay running are held on a threading.Event by
  patching scripted.presenter._render_artifact
- Every wait uses a timeout so a broken worker fails the test instead of
  hanging it
"""

from __future__ import annotations

import json
import threading
import time

import pytest

import scripted.presenter as presenter_module
from scripted.core.jobs import JobKind, JobState
from scripted.core.model import Row
from scripted.presenter import BUSY, NO_CONTEXT, Presenter, filter_rows

SAMPLE = "@title Main\n[01]\n0a=hello\n0b=${01:0a} again\n"


@pytest.fixture
def presenter(view, paths, config, write_bank):
    write_bank("x00001", SAMPLE)
    write_bank("x00002", "@title Second\n[01]\n00=two\n")
    return Presenter(view, paths, config)


@pytest.fixture
def gated(monkeypatch):
    """Hold background workers until the returned Event is set."""
    release = threading.Event()
    started = threading.Event()
    real = presenter_module._render_artifact

    def _held(*args):
        started.set()
        assert release.wait(5), "worker was never released"
        return real(*args)

    monkeypatch.setattr(presenter_module, "_render_artifact", _held)
    yield release, started
    release.set()


# ---------------------------------------------------------------------------
# TestStartup
# ---------------------------------------------------------------------------


class TestStartup:

    def test_preloads_and_reports(self, presenter, view):
        assert view.statuses[0] == "Ready. Loaded 2 banks."
        assert view.banks == [(1, "Main"), (2, "Second")]
        assert presenter.current is None
        assert not presenter.dirty
        assert presenter.job_state == JobState.IDLE

    def test_without_preload(self, view, paths, config, write_bank):
        write_bank("x00001", SAMPLE)
        p = Presenter(view, paths, config, preload=False)
        assert len(p.workspace) == 0
        assert view.last_status == "Ready. Loaded 0 banks."

    def test_creates_directories(self, view, tmp_path, config):
        from scripted.config import Paths
        paths = Paths(tmp_path / "fresh")
        Presenter(view, paths, config)
        assert paths.out_dir.is_dir()

    def test_loads_config_when_omitted(self, view, paths):
        paths.config_file.write_text("SCRIPTED_BASE=10\n", encoding="utf-8")
        assert Presenter(view, paths).config.base == 10


# ---------------------------------------------------------------------------
# TestSwitch
# ---------------------------------------------------------------------------


class TestSwitch:

    def test_switch_to_loaded(self, presenter, view):
        assert presenter.switch_or_open("x00001") is True
        assert presenter.current == 1
        assert view.current == 1
        assert view.last_status == "Switched to x00001"
        assert view.rows == [Row(1, 10, "hello"), Row(1, 11, "${01:0a} again")]

    def test_open_creates_new_bank(self, presenter, view):
        presenter.switch_or_open("x00007")
        assert presenter.current == 7
        assert view.last_status == "Created x00007 (new bank)"
        assert (7, "untitled") in view.banks
        assert view.rows == []

    def test_bad_name_keeps_selection(self, presenter, view):
        presenter.switch_or_open("x00001")
        assert presenter.switch_or_open("x0000g") is False
        assert view.last_status == "Bad context id: x0000g"
        assert presenter.current == 1

    def test_unreadable_file_reports_open_failure(self, presenter, view, write_bank):
        write_bank("x00009", "junk\n")
        assert presenter.switch_or_open("x00009") is False
        assert view.last_status.startswith("Open failed:")
        assert 9 not in presenter.workspace

    def test_switch_clears_dirty(self, presenter):
        presenter.switch_or_open("x00001")
        presenter.insert(1, 1, "v")
        assert presenter.dirty
        presenter.switch_or_open("x00002")
        assert not presenter.dirty

    def test_unsaved_edits_stay_in_memory(self, presenter):
        presenter.switch_or_open("x00001")
        presenter.insert(1, 1, "kept")
        presenter.switch_or_open("x00002")
        presenter.switch_or_open("x00001")
        assert presenter.current_bank().get_value(1, 1) == "kept"

    def test_preload_keeps_current(self, presenter, view, write_bank):
        presenter.switch_or_open("x00001")
        write_bank("x00003", "@title Third\n")
        assert presenter.preload() == 3
        assert presenter.current == 1
        assert view.last_status == "Preloaded 3 banks."
        assert (3, "Third") in view.banks

    def test_preload_refreshes_from_disk(self, presenter, view, write_bank):
        presenter.switch_or_open("x00001")
        presenter.insert(1, 10, "edited")
        write_bank("x00001", "@title Main\n[01]\n0a=from disk\n")
        presenter.preload()
        assert view.rows == [Row(1, 10, "from disk")]


# ---------------------------------------------------------------------------
# TestEditing
# ---------------------------------------------------------------------------


class TestEditing:

    @pytest.mark.parametrize("action", [
        lambda p: p.insert(1, 1, "v"),
        lambda p: p.delete(1, 1),
        lambda p: p.save(),
        lambda p: p.resolve(),
        lambda p: p.export(),
        lambda p: p.insert_text("1", "1", "v"),
    ])
    def test_requires_current(self, presenter, view, action):
        assert action(presenter) is False
        assert view.last_status == NO_CONTEXT
        assert not presenter.dirty
        assert presenter.job_state == JobState.IDLE

    def test_insert_sets_dirty(self, presenter, view):
        presenter.switch_or_open("x00001")
        assert presenter.insert(2, 0x1f, "new")
        assert presenter.dirty
        assert view.last_status == "Updated 02.1f"
        assert Row(2, 0x1f, "new") in view.rows

    def test_insert_overwrites(self, presenter):
        presenter.switch_or_open("x00001")
        presenter.insert(1, 10, "changed")
        assert presenter.current_bank().get_value(1, 10) == "changed"
        assert len(presenter.rows()) == 2

    def test_insert_then_delete_restores_addresses(self, presenter):
        presenter.switch_or_open("x00001")
        before = presenter.current_bank().triples()
        presenter.insert(1, 0x20, "temp")
        presenter.delete(1, 0x20)
        assert presenter.current_bank().triples() == before
        assert presenter.dirty

    def test_delete_prunes_empty_register(self, presenter):
        presenter.switch_or_open("x00001")
        presenter.insert(5, 0, "only")
        presenter.delete(5, 0)
        assert 5 not in presenter.current_bank().registers

    def test_delete_missing_is_neutral(self, presenter, view):
        presenter.switch_or_open("x00001")
        assert presenter.delete(9, 9) is False
        assert view.last_status == "Nothing to delete"
        assert not presenter.dirty

    def test_delete_reports(self, presenter, view):
        presenter.switch_or_open("x00001")
        assert presenter.delete(1, 10)
        assert view.last_status == "Deleted 01.0a"
        assert presenter.dirty

    def test_out_of_range_ids_rejected(self, presenter, view):
        presenter.switch_or_open("x00001")
        assert presenter.insert(-1, 0, "v") is False
        assert view.last_status == "Bad reg: -1"
        assert not presenter.dirty

    def test_save_clears_dirty(self, presenter, view, paths):
        presenter.switch_or_open("x00001")
        presenter.insert(1, 12, "saved")
        assert presenter.save()
        assert not presenter.dirty
        path = paths.root / "x00001.txt"
        assert view.last_status == "Saved {}".format(path)
        assert "0c=saved" in path.read_text(encoding="utf-8")

    def test_save_new_bank_creates_file(self, presenter, paths):
        presenter.switch_or_open("x00010")
        presenter.save()
        assert (paths.root / "x00010.txt").read_text(encoding="utf-8") == "@title untitled\n"

    def test_failed_save_keeps_dirty(self, presenter, view, paths):
        presenter.switch_or_open("x00005")
        presenter.insert(1, 1, "v")
        (paths.root / "x00005.txt").mkdir()
        assert presenter.save() is False
        assert presenter.dirty
        assert view.last_status.startswith("Save failed: Cannot write")

    def test_insert_text_decodes(self, presenter):
        presenter.switch_or_open("x00001")
        assert presenter.insert_text("2", "FF", "v")
        assert presenter.current_bank().get_value(2, 255) == "v"

    def test_insert_text_empty_reg_defaults_to_one(self, presenter):
        presenter.switch_or_open("x00002")
        presenter.insert_text("", "05", "v")
        assert presenter.current_bank().get_value(1, 5) == "v"

    def test_insert_text_requires_address(self, presenter, view):
        presenter.switch_or_open("x00001")
        assert presenter.insert_text("1", " ", "v") is False
        assert view.last_status == "Address required"

    def test_insert_text_bad_ids(self, presenter, view):
        presenter.switch_or_open("x00001")
        assert presenter.insert_text("zz", "1", "v") is False
        assert view.last_status == "Bad reg: zz"
        assert presenter.insert_text("1", "-1", "v") is False
        assert view.last_status == "Bad addr: -1"
        assert not presenter.dirty

    def test_delete_text(self, presenter):
        presenter.switch_or_open("x00001")
        assert presenter.delete_text("01", "0a")
        assert presenter.current_bank().get_value(1, 10) is None


# ---------------------------------------------------------------------------
# TestFilter
# ---------------------------------------------------------------------------


class TestFilter:

    def test_filter_by_value_case_insensitive(self, presenter, view):
        presenter.switch_or_open("x00001")
        presenter.set_filter("HELLO")
        assert view.rows == [Row(1, 10, "hello")]
        assert presenter.filter_text == "HELLO"
        assert len(presenter.rows()) == 2

    def test_filter_by_encoded_address(self, presenter, view):
        presenter.switch_or_open("x00001")
        presenter.set_filter("0b")
        assert view.rows == [Row(1, 11, "${01:0a} again")]

    def test_empty_filter_shows_all(self, presenter, view):
        presenter.switch_or_open("x00001")
        presenter.set_filter("zzz")
        assert view.rows == []
        presenter.set_filter("")
        assert len(view.rows) == 2

    def test_filter_survives_edits(self, presenter, view):
        presenter.switch_or_open("x00001")
        presenter.set_filter("again")
        presenter.insert(3, 0, "not matching")
        assert view.rows == [Row(1, 11, "${01:0a} again")]

    def test_filter_rows_function(self, config):
        rows = [Row(1, 10, "a"), Row(0x1f, 0, "b")]
        assert filter_rows(config, rows, "1f") == [Row(0x1f, 0, "b")]


# ---------------------------------------------------------------------------
# TestJobs
# ---------------------------------------------------------------------------


class TestJobs:

    def test_export_writes_json(self, presenter, view, paths):
        presenter.switch_or_open("x00001")
        assert presenter.export()
        assert view.last_status == "Exporting x00001..."
        result = presenter.wait_for_job(timeout=5)
        assert result.ok
        out = paths.out_dir / "00001.json"
        assert result.path == out
        assert view.last_status == "Exported JSON -> {}".format(out)
        assert json.loads(out.read_text(encoding="utf-8")) == {
            "01": {"0a": "hello", "0b": "${01:0a} again"},
        }
        assert view.busy_changes == [True, False]
        assert presenter.job_state == JobState.IDLE

    def test_resolve_writes_text(self, presenter, view, paths):
        presenter.switch_or_open("x00001")
        presenter.resolve()
        result = presenter.wait_for_job(timeout=5)
        assert result.kind == JobKind.RESOLVE
        out = paths.out_dir / "00001.resolved.txt"
        assert view.last_status == "Resolved -> {}".format(out)
        assert out.read_text(encoding="utf-8") == (
            "# x00001 Main\n01.0a=hello\n01.0b=hello again\n"
        )

    def test_resolve_across_banks(self, presenter, paths):
        presenter.switch_or_open("x00002")
        presenter.insert(1, 1, "${x1:01:0a}")
        presenter.resolve()
        assert presenter.wait_for_job(timeout=5).ok
        assert "01.01=hello\n" in (paths.out_dir / "00002.resolved.txt").read_text(encoding="utf-8")

    def test_resolve_failure_reports_reference(self, presenter, view, paths):
        presenter.switch_or_open("x00001")
        presenter.insert(2, 0, "${x00042:01:00}")
        presenter.resolve()
        result = presenter.wait_for_job(timeout=5)
        assert not result.ok
        assert view.last_status.startswith("Resolve failed: Unresolved reference ${x00042:01:00}")
        assert not (paths.out_dir / "00001.resolved.txt").exists()
        assert presenter.job_state == JobState.IDLE

    def test_second_request_is_busy(self, presenter, view, gated):
        release, started = gated
        presenter.switch_or_open("x00001")
        assert presenter.export() is True
        assert started.wait(5)
        assert presenter.busy

        assert presenter.resolve() is False
        assert presenter.export() is False
        assert view.statuses.count(BUSY) == 2

        release.set()
        presenter.wait_for_job(timeout=5)
        assert sum(s.startswith("Exported JSON -> ") for s in view.statuses) == 1
        assert not any(s.startswith("Resolved") for s in view.statuses)
        assert presenter.export() is True
        presenter.wait_for_job(timeout=5)

    def test_worker_sees_snapshot(self, presenter, paths, gated):
        release, started = gated
        presenter.switch_or_open("x00001")
        presenter.export()
        assert started.wait(5)
        presenter.insert(1, 10, "edited after dispatch")
        presenter.delete(1, 11)
        release.set()
        assert presenter.wait_for_job(timeout=5).ok
        data = json.loads((paths.out_dir / "00001.json").read_text(encoding="utf-8"))
        assert data == {"01": {"0a": "hello", "0b": "${01:0a} again"}}
        assert presenter.current_bank().get_value(1, 10) == "edited after dispatch"

    def test_resolve_snapshot_covers_referenced_banks(self, presenter, paths, gated):
        release, started = gated
        presenter.switch_or_open("x00002")
        presenter.insert(1, 1, "${x1:01:0a}")
        presenter.insert(1, 2, "${x1:01:0b}")
        presenter.resolve()
        assert started.wait(5)

        presenter.switch_or_open("x00001")
        presenter.insert(1, 10, "changed after dispatch")
        presenter.delete(1, 11)
        release.set()

        assert presenter.wait_for_job(timeout=5).ok
        text = (paths.out_dir / "00002.resolved.txt").read_text(encoding="utf-8")
        assert "01.01=hello\n" in text
        assert "01.02=${01:0a} again\n" in text
        assert presenter.workspace.get(1).get_value(1, 10) == "changed after dispatch"

    def test_editing_allowed_while_busy(self, presenter, gated):
        release, started = gated
        presenter.switch_or_open("x00001")
        presenter.resolve()
        assert started.wait(5)
        assert presenter.insert(4, 4, "while busy")
        assert presenter.switch_or_open("x00002")
        release.set()
        assert presenter.wait_for_job(timeout=5).bank_id == 1

    def test_poll_jobs_is_non_blocking(self, presenter, view, gated):
        release, started = gated
        presenter.switch_or_open("x00001")
        presenter.export()
        assert started.wait(5)
        assert presenter.poll_jobs() == 0
        assert presenter.busy
        release.set()
        # Wait for the worker to post, then drain through poll_jobs
        for _ in range(500):
            if presenter.poll_jobs():
                break
            time.sleep(0.01)
        assert not presenter.busy
        assert view.last_status.startswith("Exported JSON -> ")

    def test_wait_without_job(self, presenter):
        assert presenter.wait_for_job(timeout=0.1) is None

    def test_write_failure_becomes_status(self, presenter, view, paths):
        presenter.switch_or_open("x00001")
        (paths.out_dir / "00001.json").mkdir()
        presenter.export()
        result = presenter.wait_for_job(timeout=5)
        assert not result.ok
        assert view.last_status.startswith("Export failed: ")
        assert presenter.job_state == JobState.IDLE
