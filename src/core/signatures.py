"""Webhook signature helpers.

Every provider signs its callbacks a little differently, but they all reduce
to: build a canonical string, hash it with a shared secret, compare in
constant time. These helpers cover the canonical string and the digest; the
adapters pick algorithm and encoding.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from typing import Any, Literal, Mapping

DigestEncoding = Literal["hex", "base64"]


def canonicalize(url: str, params: Mapping[str, Any] | None = None) -> str:
    """URL followed by each key+value pair, keys sorted."""

    parts = [url]
    for key in sorted((params or {}).keys()):
        value = params[key]  # type: ignore[index]
        parts.append(f"{key}{'' if value is None else value}")
    return "".join(parts)


def _to_bytes(value: str | bytes) -> bytes:
    return value if isinstance(value, bytes) else value.encode("utf-8")


def hmac_digest(
    secret: str | bytes,
    message: str | bytes,
    *,
    algorithm: str = "sha256",
    encoding: DigestEncoding = "hex",
) -> str:
    mac = hmac.new(_to_bytes(secret), _to_bytes(message), getattr(hashlib, algorithm))
    if encoding == "base64":
        return base64.b64encode(mac.digest()).decode("ascii")
    return mac.hexdigest()


def plain_hash_hex(message: str | bytes, *, algorithm: str = "sha1") -> str:
    return hashlib.new(algorithm, _to_bytes(message)).hexdigest()


def constant_time_equals(expected: str | bytes, provided: str | bytes | None) -> bool:
    if provided is None:
        return False
    return hmac.compare_digest(_to_bytes(expected), _to_bytes(provided))
