"""Tests for SHA-256 checksum helpers."""

import hashlib

import pytest

from chunking.checksum import (
    IncrementalChecksumCalculator,
    compute_file_checksum,
    verify_file_checksum,
    verify_reassembly,
)

EMPTY_SHA256 = 'e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855'


def test_incremental_matches_one_shot():
    calculator = IncrementalChecksumCalculator()
    calculator.update(b'hello ')
    calculator.update(b'world')
    assert calculator.finalize() == hashlib.sha256(b'hello world').hexdigest()


def test_incremental_rejects_update_after_finalize():
    calculator = IncrementalChecksumCalculator()
    calculator.finalize()
    with pytest.raises(ValueError):
        calculator.update(b'late')


def test_file_checksum_independent_of_piece_size(tmp_path):
    path = tmp_path / 'data.bin'
    data = bytes(range(256)) * 40
    path.write_bytes(data)

    expected = hashlib.sha256(data).hexdigest()
    assert compute_file_checksum(path) == expected
    assert compute_file_checksum(path, piece_size=7) == expected


def test_file_checksum_of_empty_file(tmp_path):
    path = tmp_path / 'empty.bin'
    path.write_bytes(b'')
    assert compute_file_checksum(path) == EMPTY_SHA256


def test_verify_file_checksum(tmp_path):
    path = tmp_path / 'data.bin'
    path.write_bytes(b'payload')
    digest = hashlib.sha256(b'payload').hexdigest()

    assert verify_file_checksum(path, digest) is True
    assert verify_file_checksum(path, digest.upper()) is True
    assert verify_file_checksum(path, EMPTY_SHA256) is False


def test_verify_file_checksum_missing_file_is_false(tmp_path):
    assert verify_file_checksum(tmp_path / 'nope.bin', EMPTY_SHA256) is False


def test_verify_reassembly_authoritative(tmp_path):
    original = tmp_path / 'original.bin'
    same = tmp_path / 'same.bin'
    different = tmp_path / 'different.bin'
    original.write_bytes(b'abc' * 100)
    same.write_bytes(b'abc' * 100)
    different.write_bytes(b'abd' * 100)

    check = verify_reassembly(original, same)
    assert check.matched and check.authoritative
    assert bool(check)

    check = verify_reassembly(original, different)
    assert not check
    assert check.authoritative


def test_verify_reassembly_without_reference(tmp_path):
    reassembled = tmp_path / 'out.bin'
    reassembled.write_bytes(b'content')

    check = verify_reassembly(tmp_path / 'gone.bin', reassembled)
    assert check.matched
    assert not check.authoritative

    empty = tmp_path / 'empty.bin'
    empty.write_bytes(b'')
    assert not verify_reassembly(tmp_path / 'gone.bin', empty)
