import pytest

from conftest import write_hls
from lessons.errors import (
    EmptyPlaylistError,
    IncompletePlaylistError,
    KeyFileSizeError,
    MissingPlaylistError,
    MissingSegmentError,
    NoSegmentsError,
    VerificationError,
)
from lessons.verification import verify_output


@pytest.fixture
def output_dir(tmp_path):
    (tmp_path / "enc.key").write_bytes(b"k" * 16)
    return tmp_path


def test_valid_output_returns_segment_count(output_dir):
    write_hls(output_dir, 4)
    assert verify_output(output_dir) == 4


def test_missing_playlist(output_dir):
    with pytest.raises(MissingPlaylistError):
        verify_output(output_dir)


def test_empty_playlist(output_dir):
    (output_dir / "index.m3u8").touch()
    with pytest.raises(EmptyPlaylistError):
        verify_output(output_dir)


def test_playlist_without_segments(output_dir):
    (output_dir / "index.m3u8").write_text("#EXTM3U\n#EXT-X-ENDLIST\n")
    with pytest.raises(NoSegmentsError):
        verify_output(output_dir)


def test_unfinished_playlist(output_dir):
    write_hls(output_dir, 2)
    playlist = output_dir / "index.m3u8"
    playlist.write_text(playlist.read_text().replace("#EXT-X-ENDLIST\n", ""))
    with pytest.raises(IncompletePlaylistError):
        verify_output(output_dir)


def test_missing_segment_file(output_dir):
    write_hls(output_dir, 3)
    (output_dir / "segment_001.ts").unlink()
    with pytest.raises(MissingSegmentError):
        verify_output(output_dir)


@pytest.mark.parametrize("key_bytes", [b"", b"k" * 15, b"k" * 24])
def test_wrong_key_size(output_dir, key_bytes):
    write_hls(output_dir, 1)
    (output_dir / "enc.key").write_bytes(key_bytes)
    with pytest.raises(KeyFileSizeError) as excinfo:
        verify_output(output_dir)
    assert isinstance(excinfo.value, VerificationError)
    assert excinfo.value.retryable
