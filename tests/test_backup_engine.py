import pytest

from app.core.exceptions import RemoteIOError
from app.models.backup_job import JobState
from app.services.backup_engine import BackupJobEngine, backup_folder_name
from app.services.discovery import IndexedFile, decode_manifest, discover_files
from app.services.remote import LocalRemoteTarget


class RecordingTarget(LocalRemoteTarget):
    def __init__(self, root, fail_on=()):
        super().__init__(root)
        self.written = []
        self.fail_on = set(fail_on)

    def open_write_stream(self, path):
        if path.rsplit("/", 1)[-1] in self.fail_on:
            raise RemoteIOError("open", path, "STATUS_ACCESS_DENIED")
        self.written.append(path)
        return super().open_write_stream(path)


class UnreachableTarget(LocalRemoteTarget):
    def mkdir_all(self, path):
        raise RemoteIOError("mkdir", path, "connection reset by peer")


class CancellingTarget(LocalRemoteTarget):
    """Cancels the job the first time the engine looks at the share."""

    def __init__(self, root, store, job_id):
        super().__init__(root)
        self.store = store
        self.job_id = job_id
        self.seen_by_api = None

    def exists(self, path):
        if self.seen_by_api is None:
            self.seen_by_api = self.store.request_cancellation(self.job_id)
        return super().exists(path)


def _engine_for(store, target):
    return BackupJobEngine(store, target_factory=lambda descriptor: target)


def _numbered_files(tmp_path, count):
    folder = tmp_path / "numbered"
    folder.mkdir()
    entries = []
    for number in range(1, count + 1):
        path = folder / f"file_{number}.txt"
        path.write_text(f"content {number}")
        entries.append(IndexedFile(source_path=str(path), relative_dir=""))
    return entries


def test_photos_selection_is_copied_under_a_per_job_folder(store, backup_engine, make_job, photos, share_dir):
    job = make_job([str(photos)])
    progress = []

    finished = backup_engine.run(job.id, lambda index, total: progress.append((index, total)))

    assert finished.state == JobState.COMPLETED
    assert finished.ended_at is not None
    assert finished.started_at is not None
    assert finished.total_files == 2
    assert finished.cursor == 2
    manifest = decode_manifest(finished.manifest)
    assert sorted((entry.source_path.rsplit("/", 1)[-1], entry.relative_dir) for entry in manifest) == [
        ("IMG_001.jpg", ""),
        ("IMG_002.jpg", "Sub"),
    ]

    files_root = share_dir / backup_folder_name(finished, "BackupNow") / "files"
    assert backup_folder_name(finished, "BackupNow").startswith("BackupNow_")
    assert (files_root / "IMG_001.jpg").read_bytes() == b"first image"
    assert (files_root / "Sub" / "IMG_002.jpg").read_bytes() == b"second image"
    assert progress == [(0, None), (1, 2), (2, 2)]


def test_folder_name_survives_a_round_trip_through_the_store(store, make_job):
    job = make_job(["/a"])
    assert backup_folder_name(store.get_job(job.id), "BackupNow") == "BackupNow_1740830400000"


def test_empty_selection_fails_the_job(store, backup_engine, make_job, tmp_path):
    empty = tmp_path / "empty"
    empty.mkdir()
    job = make_job([str(empty)])

    finished = backup_engine.run(job.id)

    assert finished.state == JobState.FAILED
    assert finished.ended_at is not None
    assert finished.manifest is None
    assert "No files found" in finished.error


def test_resume_continues_from_the_cursor(store, make_job, tmp_path, share_dir):
    manifest = _numbered_files(tmp_path, 4)
    job = make_job(["/unused"], manifest=manifest, state=JobState.RUNNING, cursor=3)
    target = RecordingTarget(share_dir)

    finished = _engine_for(store, target).run(job.id)

    assert finished.state == JobState.COMPLETED
    assert finished.cursor == 4
    # File 3 may have been half written when the previous run died, so it is copied again.
    assert [path.rsplit("/", 1)[-1] for path in target.written] == ["file_3.txt", "file_4.txt"]
    assert decode_manifest(finished.manifest) == manifest


def test_persisted_manifest_is_never_rediscovered(store, backup_engine, make_job, tmp_path, photos):
    manifest = _numbered_files(tmp_path, 1)
    job = make_job([str(photos)], manifest=manifest, state=JobState.RUNNING)

    finished = backup_engine.run(job.id)

    assert finished.total_files == 1
    assert decode_manifest(finished.manifest) == manifest


def test_file_deleted_before_resume_is_skipped(store, backup_engine, make_job, tmp_path, share_dir):
    manifest = _numbered_files(tmp_path, 3)
    job = make_job(["/unused"], manifest=manifest, state=JobState.RUNNING, cursor=1)
    (tmp_path / "numbered" / "file_2.txt").unlink()

    finished = backup_engine.run(job.id)

    assert finished.state == JobState.COMPLETED
    assert finished.skipped_files == 1
    files_root = share_dir / backup_folder_name(finished, "BackupNow") / "files"
    assert sorted(path.name for path in files_root.iterdir()) == ["file_1.txt", "file_3.txt"]


def test_remote_error_on_one_file_does_not_stop_the_job(store, make_job, tmp_path, share_dir):
    manifest = _numbered_files(tmp_path, 3)
    job = make_job(["/unused"], manifest=manifest, state=JobState.RUNNING)
    target = RecordingTarget(share_dir, fail_on={"file_2.txt"})

    finished = _engine_for(store, target).run(job.id)

    assert finished.state == JobState.COMPLETED
    assert finished.skipped_files == 1
    assert len(target.written) == 2


def test_network_failure_creating_backup_folder_fails_the_job(store, make_job, tmp_path, share_dir):
    manifest = _numbered_files(tmp_path, 3)
    job = make_job(["/unused"], manifest=manifest, state=JobState.RUNNING, cursor=2)

    finished = _engine_for(store, UnreachableTarget(share_dir)).run(job.id)

    assert finished.state == JobState.FAILED
    assert finished.ended_at is not None
    assert finished.cursor == 2
    assert "connection reset" in finished.error


def test_cancellation_is_honoured_before_the_next_file(store, make_job, tmp_path, share_dir):
    manifest = _numbered_files(tmp_path, 3)
    job = make_job(["/unused"], manifest=manifest, state=JobState.RUNNING)
    target = RecordingTarget(share_dir)

    def cancel_after_first(index, total):
        if index == 1:
            store.request_cancellation(job.id)

    finished = _engine_for(store, target).run(job.id, cancel_after_first)

    assert finished.state == JobState.CANCELLED
    assert finished.cursor == 1
    assert len(target.written) == 1


def test_job_cancelled_before_pickup_never_touches_the_share(store, make_job, tmp_path):
    job = make_job(["/unused"], state=JobState.STARTING)
    store.request_cancellation(job.id)
    target = UnreachableTarget(tmp_path / "never")

    finished = _engine_for(store, target).run(job.id)

    assert finished.state == JobState.CANCELLED
    assert not (tmp_path / "never").exists()


def test_terminal_job_is_returned_untouched(store, backup_engine, make_job):
    job = make_job(["/unused"], state=JobState.FAILED)
    assert backup_engine.run(job.id).state == JobState.FAILED


@pytest.mark.parametrize("state", [JobState.QUEUED, JobState.RUNNING])
def test_cancellation_while_preparing_the_share_is_kept(store, make_job, photos, share_dir, state):
    manifest = discover_files([str(photos)]) if state == JobState.RUNNING else None
    job = make_job([str(photos)], manifest=manifest, state=state)
    target = CancellingTarget(share_dir, store, job.id)

    finished = _engine_for(store, target).run(job.id)

    assert finished.state == JobState.CANCELLED
    stored = store.get_job(job.id)
    assert stored.state == JobState.CANCELLED
    assert stored.cancellation_requested_at is not None
    assert stored.ended_at is not None
    assert stored.cursor == 0
    assert not list(share_dir.rglob("*.jpg"))


def test_cancelled_job_is_not_completed_by_a_late_finish(store, make_job, tmp_path, share_dir):
    manifest = _numbered_files(tmp_path, 2)
    job = make_job(["/unused"], manifest=manifest, state=JobState.RUNNING)

    def cancel_on_last_file(index, total):
        if index == total:
            store.request_cancellation(job.id)

    finished = _engine_for(store, RecordingTarget(share_dir)).run(job.id, cancel_on_last_file)

    assert finished.state == JobState.CANCELLED
    assert store.get_job(job.id).state == JobState.CANCELLED


def test_engine_connects_with_the_decrypted_password(store, make_job, photos, share_dir, target):
    job = make_job([str(photos)])
    seen = []

    def factory(descriptor):
        seen.append(descriptor)
        return LocalRemoteTarget(share_dir)

    BackupJobEngine(store, target_factory=factory).run(job.id)

    assert "s3cret" not in store.get_job(job.id).target_descriptor
    assert seen[0].password == target.password
