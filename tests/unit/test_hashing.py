from pathlib import Path

from scriptorium.core.hashing import compute_bytes_digest, compute_file_digest, is_sha256_hex


def test_compute_bytes_digest_sha256() -> None:
    assert (
        compute_bytes_digest(b"scriptorium")
        == "5034db86fa9f2d3860fa3b8875496dfec1d1fc1a6a059541c93ab71f11563475"
    )


def test_file_digest_matches_bytes_digest(tmp_path: Path) -> None:
    target = tmp_path / "hello.txt"
    target.write_bytes(b"hello")
    assert compute_file_digest(target, chunk_size=2) == compute_bytes_digest(b"hello")
    assert compute_file_digest(target) == "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"


def test_is_sha256_hex() -> None:
    assert is_sha256_hex(compute_bytes_digest(b"hello"))
    assert not is_sha256_hex("..")
    assert not is_sha256_hex(compute_bytes_digest(b"hello").upper())
    assert not is_sha256_hex(compute_bytes_digest(b"hello") + "\n")
