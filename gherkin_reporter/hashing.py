"""Deterministic fingerprints used for history and test case ids."""

from __future__ import annotations

import hashlib
from typing import Iterable, Sequence

from .models import Parameter

_SEPARATOR = b"\x1f"


def fingerprint(parts: Sequence[str]) -> str:
    """Return a 128-bit, order-sensitive digest of ``parts`` as lowercase hex."""

    digest = hashlib.md5()
    for index, part in enumerate(parts):
        if index:
            digest.update(_SEPARATOR)
        digest.update(part.encode("utf-8"))
    return digest.hexdigest()


def normalize_uri(uri: str) -> str:
    normalized = uri.replace("\\", "/")
    for scheme in ("file://", "file:", "classpath:"):
        if normalized.startswith(scheme):
            normalized = normalized[len(scheme):]
            break
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def _parameter_pairs(parameters: Iterable[Parameter]) -> list[str]:
    return sorted(f"{parameter.name}={parameter.value}" for parameter in parameters)


def history_id(uri: str, signature: str, parameters: Iterable[Parameter] = ()) -> str:
    return fingerprint([normalize_uri(uri), signature, *_parameter_pairs(parameters)])


def case_id(uri: str, signature: str) -> str:
    """Location-only fingerprint shared by every example row of an outline."""

    return fingerprint([normalize_uri(uri), signature])
