from lessons.cleanup import cleanup
from lessons.utils import hls_dir


def test_cleanup_without_directory_is_noop(storage_root):
    assert cleanup(storage_root, 12) is True
    assert not hls_dir(storage_root, 12).exists()


def test_cleanup_removes_everything_and_is_idempotent(storage_root):
    out = hls_dir(storage_root, 12)
    (out / "nested").mkdir(parents=True)
    (out / "index.m3u8").write_text("#EXTM3U\n")
    (out / "nested" / "segment_000.ts").write_bytes(b"x")

    assert cleanup(storage_root, 12) is True
    assert not out.exists()
    assert cleanup(storage_root, 12) is True


def test_cleanup_leaves_other_lessons(storage_root):
    mine = hls_dir(storage_root, 1)
    other = hls_dir(storage_root, 2)
    mine.mkdir(parents=True)
    other.mkdir(parents=True)

    cleanup(storage_root, 1)

    assert not mine.exists()
    assert other.exists()
