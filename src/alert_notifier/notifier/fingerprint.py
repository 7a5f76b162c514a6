"""Stable label-set fingerprints.

The fingerprint is FNV-1a 64 over the label names in sorted order, each
name and value terminated by a 0xff separator byte. This is the same
digest Prometheus uses for label sets, so fingerprints line up with the
ones shown by Alertmanager.
"""

from __future__ import annotations

from collections.abc import Mapping

FNV_OFFSET_BASIS = 0xCBF29CE484222325
FNV_PRIME = 0x100000001B3
SEPARATOR_BYTE = 0xFF

_MASK_64 = 0xFFFFFFFFFFFFFFFF


def _hash_add(h: int, data: bytes) -> int:
    for byte in data:
        h ^= byte
        h = (h * FNV_PRIME) & _MASK_64
    return h


def _hash_add_byte(h: int, byte: int) -> int:
    h ^= byte
    return (h * FNV_PRIME) & _MASK_64


def label_signature(labels: Mapping[str, str]) -> int:
    """Compute the 64-bit FNV-1a signature of a label set."""
    h = FNV_OFFSET_BASIS
    for name in sorted(labels):
        h = _hash_add(h, name.encode("utf-8"))
        h = _hash_add_byte(h, SEPARATOR_BYTE)
        h = _hash_add(h, str(labels[name]).encode("utf-8"))
        h = _hash_add_byte(h, SEPARATOR_BYTE)
    return h


def fingerprint(labels: Mapping[str, str]) -> str:
    """Return the label set's fingerprint as 16 lower-case hex characters.

    Args:
        labels: Alert labels. Insertion order does not matter.

    Returns:
        Hex string such as ``15a37193dce72bab``.
    """
    return f"{label_signature(labels):016x}"
