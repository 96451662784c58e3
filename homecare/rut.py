# homecare/rut.py

"""Chilean RUT (national ID) helpers.

A RUT is a 7-8 digit body plus a check character computed with the
module-11 algorithm. Patients type it in many shapes ("12.345.678-5",
"12345678-5", "123456785"), so everything goes through ``clean_rut`` first
and is stored in the canonical ``format_rut`` shape.
"""

import re

_STRIP_RE = re.compile(r"[.\-\s]")


def clean_rut(rut: str) -> str:
    return _STRIP_RE.sub("", rut or "").upper()


def compute_check_digit(body: str) -> str:
    total = 0
    weight = 2
    for digit in reversed(body):
        total += int(digit) * weight
        weight = 2 if weight == 7 else weight + 1

    expected = 11 - (total % 11)
    if expected == 11:
        return "0"
    if expected == 10:
        return "K"
    return str(expected)


def validate_rut(rut) -> bool:
    if not rut or not isinstance(rut, str):
        return False

    cleaned = clean_rut(rut)
    if len(cleaned) < 8 or len(cleaned) > 9:
        return False

    body, verifier = cleaned[:-1], cleaned[-1]
    if not body.isdigit():
        return False

    return compute_check_digit(body) == verifier


def format_rut(rut: str) -> str:
    """12345678-5 -> 12.345.678-5"""
    cleaned = clean_rut(rut)
    body, verifier = cleaned[:-1], cleaned[-1:]
    groups = []
    while len(body) > 3:
        groups.insert(0, body[-3:])
        body = body[:-3]
    if body:
        groups.insert(0, body)
    return f"{'.'.join(groups)}-{verifier}"
