import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

SHARE_ROOT = tempfile.mkdtemp(prefix="backupnow-shares-")

os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["AUTO_CREATE_TABLES"] = "true"
os.environ["RESUME_ON_STARTUP"] = "false"
os.environ["ENCRYPTION_KEY"] = "aLxM0wHk0w0oVx3G9iYfn7lr5J2v3xH5cM8D6lQ1t2Q="
os.environ["RUNNER_MODE"] = "inline"
os.environ["REMOTE_BACKEND"] = "local"
os.environ["LOCAL_SHARE_ROOT"] = SHARE_ROOT

from app.core.security import encrypt_secret
from app.db.base import Base
from app.db.session import engine
from app.main import create_app
from app.models.backup_job import BackupJob, JobState
from app.models.common import new_uuid
from app.services.backup_engine import BackupJobEngine
from app.services.discovery import encode_manifest, encode_selection
from app.services.job_store import BackupJobStore
from app.services.remote import LocalRemoteTarget, TargetDescriptor

BASE_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    path = Path("test.db")
    if path.exists():
        path.unlink()


@pytest.fixture()
def client():
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def store():
    return BackupJobStore()


@pytest.fixture()
def share_dir(tmp_path):
    path = tmp_path / "share"
    path.mkdir()
    return path


@pytest.fixture()
def backup_engine(store, share_dir):
    return BackupJobEngine(store, target_factory=lambda descriptor: LocalRemoteTarget(share_dir))


@pytest.fixture()
def target():
    return TargetDescriptor(host="192.168.1.10", share="backup", username="phone", password="s3cret")


@pytest.fixture()
def photos(tmp_path):
    root = tmp_path / "sdcard" / "Photos"
    (root / "Sub").mkdir(parents=True)
    (root / "IMG_001.jpg").write_bytes(b"first image")
    (root / "Sub" / "IMG_002.jpg").write_bytes(b"second image")
    return root


@pytest.fixture()
def make_job(store, target):
    def _make_job(selection, minutes=0, manifest=None, **fields):
        values = {
            "id": new_uuid(),
            "state": JobState.QUEUED,
            "target_descriptor": target.encode(include_password=False),
            "target_secret": encrypt_secret(target.password),
            "selection_descriptor": encode_selection(selection),
            "cursor": 0,
            "skipped_files": 0,
            "created_at": BASE_TIME + timedelta(minutes=minutes),
            "updated_at": BASE_TIME + timedelta(minutes=minutes),
        }
        if manifest is not None:
            values["manifest"] = encode_manifest(manifest)
            values["total_files"] = len(manifest)
        values.update(fields)
        return store.insert_or_update(BackupJob(**values))

    return _make_job
