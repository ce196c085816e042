"""Tests for the artifact stores (voucher_kernel.storage)."""

import pytest

from voucher_kernel.exceptions import ArtifactNotFoundError, StorageError
from voucher_kernel.storage import ArtifactStore, InMemoryArtifactStore, LocalArtifactStore
from voucher_kernel.storage.base import BATCH_CONTENT_TYPE


KEY = "3f1c_order_file.csv"
DATA = b"name,mobileNumber,idType,govtIdNumber,empId\nAlice,9876543210,PAN,X,E1\n"


@pytest.fixture(params=["memory", "local"])
def artifact_store(request, tmp_path) -> ArtifactStore:
    if request.param == "memory":
        return InMemoryArtifactStore()
    return LocalArtifactStore(tmp_path / "artifacts")


class TestArtifactStoreContract:

    def test_put_then_get_lines(self, artifact_store):
        artifact_store.put(DATA, BATCH_CONTENT_TYPE, KEY)

        lines = artifact_store.get_lines(KEY)
        assert lines == [
            "name,mobileNumber,idType,govtIdNumber,empId",
            "Alice,9876543210,PAN,X,E1",
        ]

    def test_missing_key(self, artifact_store):
        with pytest.raises(ArtifactNotFoundError) as exc_info:
            artifact_store.get_lines("nope_order_file.csv")
        assert isinstance(exc_info.value, StorageError)
        assert exc_info.value.key == "nope_order_file.csv"

    def test_put_overwrites(self, artifact_store):
        artifact_store.put(DATA, BATCH_CONTENT_TYPE, KEY)
        artifact_store.put(b"replaced\n", BATCH_CONTENT_TYPE, KEY)
        assert artifact_store.get_lines(KEY) == ["replaced"]


class TestLocalArtifactStore:

    def test_location_is_file_uri(self, tmp_path):
        store = LocalArtifactStore(tmp_path)
        location = store.put(DATA, BATCH_CONTENT_TYPE, KEY)

        assert location.startswith("file://")
        assert location.endswith(KEY)
        assert (tmp_path / KEY).read_bytes() == DATA

    def test_creates_root(self, tmp_path):
        store = LocalArtifactStore(tmp_path / "a" / "b")
        store.put(DATA, BATCH_CONTENT_TYPE, KEY)
        assert (tmp_path / "a" / "b" / KEY).is_file()

    def test_no_temp_files_left_behind(self, tmp_path):
        LocalArtifactStore(tmp_path).put(DATA, BATCH_CONTENT_TYPE, KEY)
        assert [p.name for p in tmp_path.iterdir()] == [KEY]

    @pytest.mark.parametrize("key", ["../escape.csv", "a/b.csv", ".hidden", ""])
    def test_rejects_unsafe_keys(self, tmp_path, key):
        with pytest.raises(StorageError):
            LocalArtifactStore(tmp_path).put(DATA, BATCH_CONTENT_TYPE, key)

    def test_unwritable_root_is_storage_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(StorageError):
            LocalArtifactStore(blocker / "sub").put(DATA, BATCH_CONTENT_TYPE, KEY)

    def test_invalid_utf8_is_storage_error(self, tmp_path):
        (tmp_path / KEY).write_bytes(b"\xff\xfe bad")
        with pytest.raises(StorageError):
            LocalArtifactStore(tmp_path).get_lines(KEY)


class TestInMemoryArtifactStore:

    def test_records_content_type(self):
        store = InMemoryArtifactStore()
        assert store.put(DATA, BATCH_CONTENT_TYPE, KEY) == f"memory://{KEY}"
        assert store.artifacts[KEY] == (DATA, BATCH_CONTENT_TYPE)

    def test_replace_requires_existing_key(self):
        with pytest.raises(ArtifactNotFoundError):
            InMemoryArtifactStore().replace(KEY, DATA)
