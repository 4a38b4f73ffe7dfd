import hashlib
import io

import pytest

from azurite.services.blob_store import BlobStore


class TestPut:
    def test_writes_content_and_hash(self, tmp_path):
        store = BlobStore(tmp_path)
        blob = store.put(7, "my mod.zip", io.BytesIO(b"payload"))
        assert blob.path == tmp_path / "7" / "my_mod.zip"
        assert blob.path.read_bytes() == b"payload"
        assert blob.size == 7
        assert blob.sha256 == hashlib.sha256(b"payload").hexdigest()

    def test_sanitizes_traversal(self, tmp_path):
        store = BlobStore(tmp_path)
        blob = store.put(1, "../../etc/passwd.zip", io.BytesIO(b"x"))
        assert blob.path.parent == tmp_path / "1"
        assert blob.path.name == "passwd.zip"

    def test_no_partial_file_left(self, tmp_path):
        store = BlobStore(tmp_path)
        store.put(1, "a.zip", io.BytesIO(b"abc"))
        assert [p.name for p in (tmp_path / "1").iterdir()] == ["a.zip"]

    def test_failed_write_cleans_up(self, tmp_path):
        class Broken(io.BytesIO):
            calls = 0

            def read(self, size=-1):
                Broken.calls += 1
                if Broken.calls > 2:
                    raise OSError("disk gone")
                return super().read(size)

        store = BlobStore(tmp_path)
        with pytest.raises(OSError):
            store.put(1, "a.zip", Broken(b"abc"))
        assert list((tmp_path / "1").iterdir()) == []


class TestDelete:
    def test_delete_missing_is_noop(self, tmp_path):
        BlobStore(tmp_path).delete(tmp_path / "nope.zip")

    def test_delete_mod_dir(self, tmp_path):
        store = BlobStore(tmp_path)
        blob = store.put(3, "a.zip", io.BytesIO(b"abc"))
        assert store.exists(blob.path)
        store.delete(blob.path)
        store.delete_mod_dir(3)
        assert not (tmp_path / "3").exists()
