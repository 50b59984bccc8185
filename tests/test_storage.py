import gzip
import json
import shutil
import tempfile
import unittest
from pathlib import Path

from simpledb.errors import CorruptDocumentError, DocumentValidationError, StorageError
from simpledb.storage import DocumentFileStorage, decode_body, encode_body


class CodecTests(unittest.TestCase):
    def test_encode_strips_id_and_pretty_prints(self) -> None:
        data = encode_body({"id": "x", "a": 1, "b": [1, 2]})
        text = gzip.decompress(data).decode("utf-8")
        self.assertEqual(json.loads(text), {"a": 1, "b": [1, 2]})
        self.assertIn('\n  "a": 1', text)

    def test_decode_restores_body(self) -> None:
        body = {"name": "café", "nested": {"k": None, "flag": True}}
        self.assertEqual(decode_body(encode_body(body)), body)

    def test_non_serializable_value_rejected(self) -> None:
        with self.assertRaises(DocumentValidationError):
            encode_body({"a": {1, 2}})

    def test_garbage_bytes_are_corrupt(self) -> None:
        with self.assertRaises(CorruptDocumentError):
            decode_body(b"definitely not gzip")

    def test_truncated_gzip_is_corrupt(self) -> None:
        data = encode_body({"a": "x" * 100})
        with self.assertRaises(CorruptDocumentError):
            decode_body(data[: len(data) // 2])

    def test_invalid_json_is_corrupt(self) -> None:
        with self.assertRaises(CorruptDocumentError):
            decode_body(gzip.compress(b"{not json"))

    def test_non_object_body_is_corrupt(self) -> None:
        with self.assertRaises(CorruptDocumentError) as ctx:
            decode_body(gzip.compress(b"[1, 2]"), "some/file.db")
        self.assertEqual(ctx.exception.path, Path("some/file.db"))


class DocumentFileStorageTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = Path(tempfile.mkdtemp(prefix="simpledb-tests-"))
        self.storage = DocumentFileStorage(self.tmpdir / "coll")

    def tearDown(self) -> None:
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_creates_directory(self) -> None:
        self.assertTrue((self.tmpdir / "coll").is_dir())

    def test_path_that_is_a_file_raises(self) -> None:
        target = self.tmpdir / "file"
        target.write_bytes(b"")
        with self.assertRaises(StorageError):
            DocumentFileStorage(target)

    def test_write_uses_id_named_file(self) -> None:
        self.storage.write("abc", {"a": 1})
        path = self.tmpdir / "coll" / "abc.db"
        self.assertTrue(path.exists())
        self.assertEqual(decode_body(path.read_bytes()), {"a": 1})

    def test_write_overwrites(self) -> None:
        self.storage.write("abc", {"a": 1})
        self.storage.write("abc", {"a": 2})
        self.assertEqual(list(self.storage.read_all()), [("abc", {"a": 2})])

    def test_write_returns_body_as_stored(self) -> None:
        written = self.storage.write("abc", {"id": "abc", "pair": (1, 2), "n": {"k": None}})
        self.assertEqual(written, {"pair": [1, 2], "n": {"k": None}})
        self.assertEqual(list(self.storage.read_all()), [("abc", written)])

    def test_delete_missing_is_noop(self) -> None:
        self.assertFalse(self.storage.delete("nope"))
        self.storage.write("abc", {"a": 1})
        self.assertTrue(self.storage.delete("abc"))
        self.assertEqual(list(self.storage.read_all()), [])

    def test_read_all_sorted_by_id_and_skips_other_files(self) -> None:
        self.storage.write("b", {"n": 2})
        self.storage.write("a", {"n": 1})
        self.storage.write("a-1", {"n": 3})
        (self.tmpdir / "coll" / "notes.txt").write_text("ignored")
        (self.tmpdir / "coll" / "sub.db").mkdir()
        ids = [doc_id for doc_id, _ in self.storage.read_all()]
        self.assertEqual(ids, ["a", "a-1", "b"])

    def test_sync_every_write(self) -> None:
        storage = DocumentFileStorage(self.tmpdir / "synced", sync_every_write=True)
        storage.write("x", {"a": 1})
        self.assertEqual(list(storage.read_all()), [("x", {"a": 1})])


if __name__ == "__main__":
    unittest.main()
