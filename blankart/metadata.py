"""
BlankArt Metadata Resolver

Token URIs are built from an append-only list of base-URI epochs:

    epochs[locked_epoch if locked else latest] + str(token_id) + suffix

Unlocked tokens float to the newest epoch. An owner may lock a token once,
which pins it to the epoch that was newest at that moment; the lock is an
index into the list and can never be cleared or moved.

The suffix is deployment configuration (``metadata.uri_suffix``), e.g.
``.json`` for ``https://x/1.json`` or ``""`` for ``https://x/1``.

Copyright (c) 2026 BlankArt. All rights reserved.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from blankart.errors import InvalidParameter, Unauthorized
from blankart.hardening import Validators, same_address


class MetadataResolver:
    """Epoch list plus per-token locks."""

    def __init__(
        self,
        base_uri: str,
        suffix: str,
        owner_of: Callable[[int], str],
        controller: Callable[[], str],
    ):
        self._epochs: List[str] = [Validators.validate_uri(base_uri).unwrap()]
        if not isinstance(suffix, str) or "/" in suffix:
            raise InvalidParameter("uri_suffix", "Must be a string without '/'", suffix)
        self.suffix = suffix
        self._locked: Dict[int, int] = {}
        self._owner_of = owner_of
        self._controller = controller
        self._lock = threading.RLock()

    @property
    def epochs(self) -> List[str]:
        with self._lock:
            return list(self._epochs)

    @property
    def latest_epoch_index(self) -> int:
        with self._lock:
            return len(self._epochs) - 1

    def locked_epoch(self, token_id: int) -> Optional[int]:
        with self._lock:
            return self._locked.get(token_id)

    def resolve(self, token_id: int) -> str:
        """Resolve the URI for ``token_id`` (existence is checked by the caller)."""
        with self._lock:
            index = self._locked.get(token_id, len(self._epochs) - 1)
            return f"{self._epochs[index]}{token_id}{self.suffix}"

    def lock(self, token_id: int, caller: str) -> bool:
        """
        Pin ``token_id`` to the current latest epoch.

        Returns True if the lock was set, False if it was already locked.
        """
        with self._lock:
            if not same_address(self._owner_of(token_id), caller):
                raise Unauthorized(
                    "only the token owner can lock its URI",
                    token_id=token_id,
                    caller=caller,
                )
            if token_id in self._locked:
                return False
            self._locked[token_id] = len(self._epochs) - 1
            return True

    def add_epoch(self, uri: str, caller: str) -> int:
        """Append a base URI (controller only). Returns its index."""
        with self._lock:
            if not same_address(self._controller(), caller):
                raise Unauthorized("only the controller can add a base URI", caller=caller)
            uri = Validators.validate_uri(uri).unwrap()
            self._epochs.append(uri)
            return len(self._epochs) - 1


# ---------------------------------------------------------------------------
# Off-chain metadata files
# ---------------------------------------------------------------------------

DEFAULT_TOKEN_NAME = "Blank NFT"
DEFAULT_DESCRIPTION = "In the beginning, there was Blank."
DEFAULT_ATTRIBUTES = ({"trait_type": "Generation", "value": "The beginning"},)


def metadata_document(
    token_id: int,
    image_uri: str,
    name: str = DEFAULT_TOKEN_NAME,
    description: str = DEFAULT_DESCRIPTION,
    per_token_image_suffix: Optional[str] = None,
) -> Dict[str, object]:
    """
    Metadata JSON for one token.

    With ``per_token_image_suffix`` set (e.g. ``.png``) the image becomes
    ``image_uri + token_id + suffix``; otherwise every token shares ``image_uri``.
    """
    image = image_uri
    if per_token_image_suffix is not None:
        image = f"{image_uri}{token_id}{per_token_image_suffix}"
    return {
        "name": name,
        "description": description,
        "tokenId": token_id,
        "image": image,
        "attributes": [dict(a) for a in DEFAULT_ATTRIBUTES],
    }


def write_metadata_files(
    out_dir: Union[str, Path],
    count: int,
    image_uri: str,
    suffix: str = ".json",
    **document_kwargs: object,
) -> List[Path]:
    """Write ``<id><suffix>`` for ids 1..count, matching token URI resolution."""
    count = Validators.validate_count(count, "count").unwrap()
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    written = []
    for token_id in range(1, count + 1):
        path = out / f"{token_id}{suffix}"
        doc = metadata_document(token_id, image_uri, **document_kwargs)  # type: ignore[arg-type]
        path.write_text(json.dumps(doc), encoding="utf-8")
        written.append(path)
    return written
