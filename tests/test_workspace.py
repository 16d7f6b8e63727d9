"""
Tests for scanflow/storage/workspace.py
"""

import threading

import pytest

from scanflow.errors import WorkspaceFailure
from scanflow.storage import WorkspaceManager


class TestWorkspaceManager:

    def test_layout(self, tmp_path):
        manager = WorkspaceManager(tmp_path)

        paths = manager.prepare("bucket/docs/a.pdf")

        assert paths.root == tmp_path / "bucket_docs_a.pdf"
        assert paths.input_dir.is_dir()
        assert paths.text_dir == paths.output_dir / "text"
        assert paths.text_dir.is_dir()
        assert paths.images_dir.is_dir()

    def test_same_job_same_directory(self, tmp_path):
        manager = WorkspaceManager(tmp_path)

        first = manager.prepare("job-1")
        (first.text_dir / "cached.md").write_text("kept")
        second = manager.prepare("job-1")

        assert first == second
        assert (second.text_dir / "cached.md").read_text() == "kept"

    def test_jobs_are_isolated(self, tmp_path):
        manager = WorkspaceManager(tmp_path)

        assert manager.paths_for("job-1").root != manager.paths_for("job-2").root

    def test_input_file_uses_basename(self, tmp_path):
        paths = WorkspaceManager(tmp_path).paths_for("job-1")

        assert paths.input_file("nested/dir/doc.pdf") == paths.input_dir / "doc.pdf"

    def test_prepare_failure(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file in the way")

        with pytest.raises(WorkspaceFailure):
            WorkspaceManager(blocker).prepare("job-1")

    def test_cleanup(self, tmp_path):
        manager = WorkspaceManager(tmp_path)
        paths = manager.prepare("job-1")

        manager.cleanup(paths)
        manager.cleanup(paths)

        assert not paths.root.exists()

    @pytest.mark.parametrize("job_id", ["", ".", ".."])
    def test_job_id_must_stay_inside_root(self, tmp_path, job_id):
        root = tmp_path / "workspaces"
        sentinel = tmp_path / "sentinel.txt"
        sentinel.write_text("keep me")

        with pytest.raises(WorkspaceFailure):
            WorkspaceManager(root).prepare(job_id)

        assert sentinel.read_text() == "keep me"


class TestWorkspaceLease:

    def test_second_holder_waits_for_release(self, tmp_path):
        manager = WorkspaceManager(tmp_path)
        manager.acquire("in/a.pdf")
        acquired = threading.Event()

        def contender():
            manager.acquire("in/a.pdf")
            acquired.set()
            manager.release("in/a.pdf")

        thread = threading.Thread(target=contender)
        thread.start()

        assert not acquired.wait(timeout=0.2)
        manager.release("in/a.pdf")
        assert acquired.wait(timeout=5)
        thread.join(timeout=5)
        assert manager._leases == {}

    def test_ids_with_same_directory_share_a_lease(self, tmp_path):
        manager = WorkspaceManager(tmp_path)
        manager.acquire("in/a.pdf")
        acquired = threading.Event()

        def contender():
            manager.acquire("in_a.pdf")
            acquired.set()
            manager.release("in_a.pdf")

        thread = threading.Thread(target=contender)
        thread.start()

        assert not acquired.wait(timeout=0.2)
        manager.release("in/a.pdf")
        thread.join(timeout=5)
        assert acquired.is_set()

    def test_different_jobs_do_not_block(self, tmp_path):
        manager = WorkspaceManager(tmp_path)
        manager.acquire("job-1")
        manager.acquire("job-2")

        manager.release("job-1")
        manager.release("job-2")
        assert manager._leases == {}
