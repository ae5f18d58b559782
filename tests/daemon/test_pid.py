"""Tests for PID file management."""

import os
from unittest.mock import patch

import pytest

from arbi_cli.daemon.pid import PIDFile
from arbi_cli.exceptions import SchedulerError


class TestPIDFile:
    """Tests for PIDFile class."""

    def test_acquire_writes_current_pid(self, tmp_path):
        pid_file = PIDFile(tmp_path / "arbi.pid")

        pid_file.acquire()

        assert pid_file.path.exists()
        assert pid_file.read() == os.getpid()

    def test_acquire_creates_parent_directories(self, tmp_path):
        pid_file = PIDFile(tmp_path / "subdir" / "arbi.pid")

        pid_file.acquire()

        assert pid_file.path.parent.exists()

    def test_read_nonexistent_file(self, tmp_path):
        assert PIDFile(tmp_path / "missing.pid").read() is None

    def test_read_invalid_content(self, tmp_path):
        pid_file = PIDFile(tmp_path / "arbi.pid")
        pid_file.path.write_text("invalid")

        assert pid_file.read() is None

    def test_remove_is_idempotent(self, tmp_path):
        pid_file = PIDFile(tmp_path / "arbi.pid")
        pid_file.acquire()

        pid_file.remove()
        pid_file.remove()

        assert not pid_file.path.exists()

    def test_context_manager_removes_file(self, tmp_path):
        pid_file = PIDFile(tmp_path / "arbi.pid")

        with pid_file:
            assert pid_file.read() == os.getpid()

        assert not pid_file.path.exists()

    def test_is_running_current_process(self, tmp_path):
        pid_file = PIDFile(tmp_path / "arbi.pid")
        pid_file.acquire()

        assert pid_file.is_running() is True
        assert pid_file.get_pid() == os.getpid()

    def test_is_running_dead_process(self, tmp_path):
        pid_file = PIDFile(tmp_path / "arbi.pid")
        pid_file.path.write_text("999999")

        with patch("os.kill", side_effect=ProcessLookupError):
            assert pid_file.is_running() is False
            assert pid_file.get_pid() is None

    def test_is_running_other_user(self, tmp_path):
        pid_file = PIDFile(tmp_path / "arbi.pid")
        pid_file.path.write_text("1")

        with patch("os.kill", side_effect=PermissionError):
            assert pid_file.is_running() is True

    def test_acquire_refuses_live_daemon(self, tmp_path):
        pid_file = PIDFile(tmp_path / "arbi.pid")
        pid_file.path.write_text("424242")

        with patch("os.kill"):
            with pytest.raises(SchedulerError, match="already running"):
                pid_file.acquire()

        assert pid_file.read() == 424242

    def test_acquire_replaces_stale_file(self, tmp_path):
        pid_file = PIDFile(tmp_path / "arbi.pid")
        pid_file.path.write_text("424242")

        with patch("os.kill", side_effect=ProcessLookupError):
            pid_file.acquire()

        assert pid_file.read() == os.getpid()

    def test_clear_if_stale(self, tmp_path):
        pid_file = PIDFile(tmp_path / "arbi.pid")
        pid_file.path.write_text("424242")

        with patch("os.kill", side_effect=ProcessLookupError):
            assert pid_file.clear_if_stale() is True

        assert not pid_file.path.exists()

    def test_clear_if_stale_keeps_live_file(self, tmp_path):
        pid_file = PIDFile(tmp_path / "arbi.pid")
        pid_file.acquire()

        assert pid_file.clear_if_stale() is False
        assert pid_file.path.exists()
