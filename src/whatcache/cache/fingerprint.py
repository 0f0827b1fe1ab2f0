"""Request fingerprints for the response store.

A fingerprint identifies one logical request: the facade operation name,
its positional arguments, its query parameters, and (for per-user
operations) the logged-in username.  It is the SHA-256 hex digest of a
canonical JSON rendering of those parts, so two calls with the same
semantic inputs always map to the same store entry regardless of parameter
ordering or value types.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping, Sequence
from typing import Any, Optional, Union

_Scalar = Union[str, bytes, int, float, bool, None]
ParamValue = Union[_Scalar, Sequence[_Scalar]]
Params = Mapping[str, ParamValue]


def _as_text(value: Any) -> str:
    # Gazelle takes booleans as 1/0 flags
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def normalize_params(params: Optional[Params]) -> dict[str, list[str]]:
    """Turn a params mapping into sorted ``{name: [values...]}`` form.

    Scalars become one-element lists and every value is rendered as text
    (``bytes`` decoded as UTF-8).  ``None`` values are dropped, and so are
    keys left with no values.  Value order within a key is kept
    because repeated query parameters are order-sensitive.

    Example::

        >>> normalize_params({"page": 2, "tags": ["rock", "jazz"], "x": [], "y": None})
        {'page': ['2'], 'tags': ['rock', 'jazz']}
    """
    if not params:
        return {}
    normalized: dict[str, list[str]] = {}
    for key in sorted(params):
        value = params[key]
        if value is None:
            values = []
        elif isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
            values = [_as_text(value)]
        else:
            values = [_as_text(v) for v in value if v is not None]
        if values:
            normalized[str(key)] = values
    return normalized


def fingerprint(
    operation: str,
    args: Sequence[Any] = (),
    params: Optional[Params] = None,
    scope: Optional[str] = None,
) -> str:
    """Compute the store key for one request.

    Args:
        operation: Facade operation name, e.g. ``"get_artist"``.
        args: Positional arguments other than params (ids, search strings).
        params: Query parameters.  ``None`` and ``{}`` are equivalent.
        scope: Session scope for per-user operations (the username), or
            ``None`` for data that is the same for every user.

    Returns:
        A 64-character lowercase hex digest.
    """
    document = {
        "operation": operation,
        "args": [_as_text(a) for a in args],
        "params": normalize_params(params),
        "scope": scope,
    }
    raw = json.dumps(document, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(raw.encode()).hexdigest()
