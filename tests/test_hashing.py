import sys
import os
import io
import hashlib

import pytest
from PIL import Image

# Add src to sys.path
sys.path.append(os.path.join(os.path.dirname(__file__), "../src"))

from photoshare.dedup.hasher import PhotoHasher, truncated
from photoshare.dedup.matcher import are_similar, hamming_distance, similarity


def gradient_png(descending: bool = True, size=(90, 80)) -> bytes:
    width, height = size
    img = Image.new("RGB", size)
    for x in range(width):
        value = 255 - 2 * x if descending else 77 + 2 * x
        for y in range(height):
            img.putpixel((x, y), (value, value, value))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def solid_png(color=(120, 30, 200)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (32, 32), color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def hasher():
    return PhotoHasher()


def test_content_hash_matches_sha256(hasher):
    data = os.urandom(50_000)
    assert hasher.content_hash(data) == hashlib.sha256(data).hexdigest()


def test_content_hash_streams_file_objects(hasher):
    data = os.urandom(3 * 8192 + 17)
    assert hasher.content_hash(io.BytesIO(data)) == hashlib.sha256(data).hexdigest()


def test_content_hash_of_empty_input(hasher):
    assert hasher.content_hash(b"") == hashlib.sha256(b"").hexdigest()


def test_content_hash_read_error_returns_none(hasher):
    class Broken(io.RawIOBase):
        def read(self, size=-1):
            raise OSError("disk gone")

    assert hasher.content_hash(Broken()) is None


def test_perceptual_hash_left_brighter_sets_every_bit(hasher):
    assert hasher.perceptual_hash(gradient_png(descending=True)) == "ffffffffffffffff"


def test_perceptual_hash_right_brighter_sets_no_bit(hasher):
    assert hasher.perceptual_hash(gradient_png(descending=False)) == "0000000000000000"


def test_perceptual_hash_flat_image(hasher):
    assert hasher.perceptual_hash(solid_png()) == "0000000000000000"


def test_perceptual_hash_is_16_lowercase_hex(hasher):
    value = hasher.perceptual_hash(gradient_png())
    assert len(value) == 16
    assert value == value.lower()
    int(value, 16)


def test_perceptual_hash_accepts_streams(hasher):
    assert hasher.perceptual_hash(io.BytesIO(gradient_png())) == "ffffffffffffffff"


def test_perceptual_hash_of_non_image_is_none(hasher):
    assert hasher.perceptual_hash(b"definitely not an image") is None


def test_invalid_hasher_settings():
    with pytest.raises(ValueError):
        PhotoHasher(chunk_size=0)
    with pytest.raises(ValueError):
        PhotoHasher(dhash_size=3)


def test_truncated():
    assert truncated("abc123xxxxxxdef789") == "abc123...def789"
    assert truncated("short") == "short"
    assert truncated(None) is None


def test_hamming_distance():
    assert hamming_distance("ffffffffffffffff", "ffffffffffffffff") == 0
    assert hamming_distance("ffffffffffffffff", "fffffffffffffffe") == 1
    assert hamming_distance("0000000000000000", "ffffffffffffffff") == 64


def test_hamming_distance_incomparable():
    assert hamming_distance("ff", "fff") is None
    assert hamming_distance("", "") is None
    assert hamming_distance(None, "ff") is None
    assert hamming_distance("zz", "ff") is None


@pytest.mark.parametrize("odd", ["0xff", "f_ff", "-fff", "+fff", " fff"])
def test_hamming_distance_rejects_int_literal_syntax(odd):
    assert hamming_distance(odd, "ffff") is None
    assert similarity(odd, "ffff") == 0.0


def test_similarity():
    assert similarity("ffffffffffffffff", "ffffffffffffffff") == 1.0
    assert similarity("ffffffffffffffff", "fffffffffffffff0") == pytest.approx(60 / 64)
    assert similarity("abc", "abcd") == 0.0


def test_are_similar_threshold():
    # 3 differing bits: 61/64 = 0.953
    assert are_similar("ffffffffffffffff", "fffffffffffffff8")
    # 4 differing bits: 60/64 = 0.9375
    assert not are_similar("ffffffffffffffff", "fffffffffffffff0")
    assert are_similar("ffffffffffffffff", "fffffffffffffff0", threshold=0.9)
