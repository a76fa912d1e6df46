"""JSON Schema validation for voucher documents.

Schemas live in ``blankart/schemas/*.schema.json`` and are registered by
their ``$id`` so that cross-schema ``$ref`` resolution works.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

from jsonschema import Draft202012Validator
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012

from blankart.voucher import Voucher

SCHEMAS_DIR = Path(__file__).resolve().parent / "schemas"
VOUCHER_SCHEMA = SCHEMAS_DIR / "voucher.schema.json"


def load_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


@lru_cache(maxsize=1)
def _schema_registry() -> Registry:
    resources = []
    for schema_path in sorted(SCHEMAS_DIR.glob("*.schema.json")):
        schema = load_json(schema_path)
        schema_id = schema.get("$id") or schema_path.name
        resources.append((schema_id, Resource.from_contents(schema, default_specification=DRAFT202012)))
    return Registry().with_resources(resources)


@lru_cache(maxsize=None)
def schema_validator(schema_path: Path = VOUCHER_SCHEMA) -> Draft202012Validator:
    """Create a (cached) validator for a schema file."""
    return Draft202012Validator(load_json(schema_path), registry=_schema_registry())


def validate_voucher_document(obj: Any) -> List[str]:
    """Return human-readable schema errors (empty list means valid)."""
    errors = []
    for err in sorted(schema_validator().iter_errors(obj), key=lambda e: list(e.path)):
        path = "/".join(str(p) for p in err.path) or "<root>"
        errors.append(f"{path}: {err.message}")
    return errors


class VoucherDocumentError(ValueError):
    """A voucher document failed schema validation."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__("invalid voucher document: " + "; ".join(errors))


def parse_voucher_document(obj: Dict[str, Any]) -> Voucher:
    """Validate ``obj`` against the voucher schema and build a Voucher."""
    errors = validate_voucher_document(obj)
    if errors:
        raise VoucherDocumentError(errors)
    return Voucher.from_dict(obj)


def load_voucher(path: Path) -> Voucher:
    return parse_voucher_document(load_json(Path(path)))
