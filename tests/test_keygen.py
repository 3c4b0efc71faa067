import re

import pytest

import upckeys
from upckeys import BAND_24, BAND_5


PASSWORD_RE = re.compile(r'^[A-HJ-KM-NP-Z]{8}$')


def test_mangle_small_words():
    # a = 0, b = 5 * 11, 55 * (2*100 + 3*10 + 1)
    assert upckeys.mangle([1, 2, 3, 4]) == 12705


def test_mangle_wraps_at_32_bits():
    # 60962 * 7274385 overflows 32 bits
    assert upckeys.mangle([0xFFFF, 0xFFFF, 0xFFFF, 0xFFFF]) == (60962 * 7274385) & 0xFFFFFFFF
    assert upckeys.mangle([0xFFFF, 0xFFFF, 0xFFFF, 0xFFFF]) == 1079426882
    assert upckeys.mangle([0x1234, 0xabcd, 0x0f0f, 0xfedc]) == 3131436446


def test_mangle_zero_multiplier():
    assert upckeys.mangle([0, 0, 0, 9999]) == 0


def test_digest_words_little_endian():
    digest = bytes(range(16))
    assert upckeys.digest_words(digest, 0) == [0x0100, 0x0302, 0x0504, 0x0706]
    assert upckeys.digest_words(digest, 8) == [0x0908, 0x0b0a, 0x0d0c, 0x0f0e]


def test_hash2pass_plain_letters():
    assert upckeys.hash2pass(bytes(range(8))) == 'ABCDEFGH'


def test_hash2pass_cascading_skips():
    # K must jump twice, M and N three times
    assert upckeys.hash2pass(bytes([8, 9, 10, 11, 12, 13, 22, 23])) == 'JKMNPQZA'


def test_hash2pass_ignores_high_bits_and_extra_bytes():
    assert upckeys.hash2pass(bytes([0xFF, 0xE0, 0x20, 0x37] * 2 + [0x01] * 8)) == 'JAAAJAAA'


def test_hash2pass_covers_alphabet():
    letters = {upckeys.hash2pass(bytes([i] * 8))[0] for i in range(32)}
    assert letters == set('ABCDEFGHJKMNPQRSTUVWXYZ')


def test_md5_digest():
    assert upckeys.md5_digest(b'').hex() == 'd41d8cd98f00b204e9800998ecf8427e'


@pytest.mark.parametrize('serial,band,password', [
    ('SAAP12345678', BAND_24, 'UCNNDDPD'),
    ('SAAP12345678', BAND_5, 'AKJNHJHC'),
    ('SAAP00000000', BAND_24, 'FYECJNHR'),
    ('SAAP19165767', BAND_24, 'CWGUJAJX'),
    ('SAAP05488167', BAND_5, 'ZDUEKEST'),
])
def test_derive_password(serial, band, password):
    assert upckeys.derive_password(serial, band) == password


def test_band_changes_password():
    a = upckeys.derive_password('SAAP12345678', BAND_24)
    b = upckeys.derive_password('SAAP12345678', BAND_5)
    assert a != b
    assert PASSWORD_RE.match(a)
    assert PASSWORD_RE.match(b)


def test_5ghz_hashes_reversed_serial():
    # the 2.4GHz path hashes the serial as given
    assert upckeys.derive_password('87654321PAAS', BAND_24) == upckeys.derive_password('SAAP12345678', BAND_5)


def test_md5_unavailable(monkeypatch):
    def no_md5(*args, **kwargs):
        raise ValueError('unsupported hash type md5')

    monkeypatch.setattr(upckeys.hashlib, 'md5', no_md5)
    with pytest.raises(upckeys.HashUnavailable):
        upckeys.derive_password('SAAP12345678', BAND_24)
