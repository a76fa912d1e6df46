#!/usr/bin/env python3
"""
BlankArt CLI

Operator tooling around the issuance engine.

Usage:
    blankart <command> <subcommand> [options]

Commands:
    voucher     Sign and verify redemption vouchers
    metadata    Generate off-chain token metadata files
    config      Show or validate configuration

Copyright (c) 2026 BlankArt. All rights reserved.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml

from blankart import __version__
from blankart.config import ConfigError, get_config, get_config_manager
from blankart.errors import IssuanceError
from blankart.lazyminter import LazyMinter
from blankart.metadata import write_metadata_files
from blankart.observability import Layer, configure_logging, get_logger
from blankart.schema import VoucherDocumentError, load_voucher
from blankart.voucher import SigningDomain, verify

logger = get_logger("cli", Layer.CLI)

SIGNER_KEY_ENV = "BLANKART_SIGNER_KEY"


class OutputFormat(Enum):
    """Output format options."""
    JSON = "json"
    YAML = "yaml"


class CLIError(Exception):
    """CLI error with exit code."""
    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


def format_output(data: Any, fmt: OutputFormat = OutputFormat.JSON) -> str:
    """Format data for output."""
    if fmt == OutputFormat.YAML:
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=True)
    return json.dumps(data, indent=2, default=str)


def load_private_key(key_file: Optional[str]) -> str:
    """
    Load a signing key.

    Accepted sources, in order: ``--key-file`` holding either a JSON object
    ``{"private_key": "0x..."}`` or a bare hex line; then $BLANKART_SIGNER_KEY.
    """
    if key_file:
        text = Path(key_file).read_text(encoding="utf-8").strip()
        if text.startswith("{"):
            obj = json.loads(text)
            key = obj.get("private_key") or obj.get("privateKey")
            if not key:
                raise CLIError(f"key file {key_file} has no 'private_key' member")
            return str(key)
        return text
    key = os.environ.get(SIGNER_KEY_ENV, "").strip()
    if not key:
        raise CLIError(f"no signing key: pass --key-file or set {SIGNER_KEY_ENV}")
    return key


class BlankArtCLI:
    """Main CLI application."""

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="blankart",
            description="BlankArt issuance tooling",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.parser.add_argument(
            "--version", "-V",
            action="version",
            version=f"blankart {__version__}",
        )
        self.parser.add_argument(
            "--format", "-f",
            choices=[f.value for f in OutputFormat],
            default="json",
            help="Output format (default: json)",
        )
        self.parser.add_argument("--config", "-c", help="YAML configuration file")

        self.subparsers = self.parser.add_subparsers(dest="command", help="Commands")
        self._register_voucher_commands()
        self._register_metadata_commands()
        self._register_config_commands()

    def _add_domain_args(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--contract", required=True, help="Verifying contract address")
        parser.add_argument("--chain-id", type=int, help="Chain id (default: signing.chain_id)")

    def _register_voucher_commands(self) -> None:
        voucher = self.subparsers.add_parser("voucher", help="Voucher operations")
        voucher_sub = voucher.add_subparsers(dest="subcommand")

        sign = voucher_sub.add_parser("sign", help="Create and sign a voucher")
        self._add_domain_args(sign)
        sign.add_argument("--recipient", "-r", required=True, help="Redeemer address")
        sign.add_argument("--min-price", type=int, default=0, help="Minimum unit price in wei")
        sign.add_argument("--expiration", type=int, help="Unix seconds (default: now + TTL)")
        sign.add_argument("--max-amount", type=int, help="Per-voucher ceiling")
        sign.add_argument("--key-file", "-k", help=f"Signer key file (else ${SIGNER_KEY_ENV})")
        sign.add_argument("--out", "-o", help="Write the voucher document here")

        check = voucher_sub.add_parser("verify", help="Verify a voucher document")
        self._add_domain_args(check)
        check.add_argument("voucher", help="Voucher JSON file")
        check.add_argument("--controller", help="Expected signer address")

    def _register_metadata_commands(self) -> None:
        metadata = self.subparsers.add_parser("metadata", help="Token metadata files")
        metadata_sub = metadata.add_subparsers(dest="subcommand")

        gen = metadata_sub.add_parser("generate", help="Write <id>.json files for ids 1..N")
        gen.add_argument("--out", "-o", required=True, help="Output directory")
        gen.add_argument("--count", "-n", type=int, required=True, help="Number of tokens")
        gen.add_argument("--image-uri", required=True, help="Image base URI")
        gen.add_argument("--suffix", help="File suffix (default: metadata.uri_suffix)")
        gen.add_argument(
            "--per-token-image-suffix",
            help="Append <id><suffix> to the image URI (e.g. .png)",
        )

    def _register_config_commands(self) -> None:
        config = self.subparsers.add_parser("config", help="Configuration management")
        config_sub = config.add_subparsers(dest="subcommand")
        config_sub.add_parser("show", help="Show effective configuration")
        config_sub.add_parser("validate", help="Validate configuration")

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _domain(self, args: argparse.Namespace) -> SigningDomain:
        return SigningDomain.for_contract(args.contract, args.chain_id)

    def _voucher_sign(self, args: argparse.Namespace) -> Dict[str, Any]:
        minter = LazyMinter(self._domain(args), load_private_key(args.key_file))
        voucher = minter.create_voucher(
            args.recipient,
            min_price=args.min_price,
            expiration=args.expiration,
            max_amount=args.max_amount,
        )
        doc = voucher.to_dict()
        if args.out:
            Path(args.out).write_text(json.dumps(doc, indent=2) + "\n", encoding="utf-8")
            logger.info("Voucher written", operation="voucher.sign", path=args.out)
        return doc

    def _voucher_verify(self, args: argparse.Namespace) -> Dict[str, Any]:
        try:
            voucher = load_voucher(Path(args.voucher))
        except VoucherDocumentError as ex:
            raise CLIError(str(ex), exit_code=2) from ex
        result = verify(voucher, self._domain(args), args.controller)
        out = {
            "ok": result.ok,
            "signer": result.signer,
            "digest": "0x" + result.digest.hex() if result.digest else "",
        }
        if result.error:
            out["error"] = result.error
        return out

    def _metadata_generate(self, args: argparse.Namespace) -> Dict[str, Any]:
        suffix = args.suffix if args.suffix is not None else get_config().metadata.uri_suffix.get()
        written = write_metadata_files(
            args.out,
            args.count,
            args.image_uri,
            suffix=suffix,
            per_token_image_suffix=args.per_token_image_suffix,
        )
        return {"written": len(written), "out": str(Path(args.out).resolve())}

    def _config_show(self, args: argparse.Namespace) -> Dict[str, Any]:
        return get_config().to_dict()

    def _config_validate(self, args: argparse.Namespace) -> Dict[str, Any]:
        errors = get_config_manager().validate()
        return {"valid": not errors, "errors": errors}

    def _handler(self, args: argparse.Namespace) -> Callable[[argparse.Namespace], Dict[str, Any]]:
        handlers = {
            ("voucher", "sign"): self._voucher_sign,
            ("voucher", "verify"): self._voucher_verify,
            ("metadata", "generate"): self._metadata_generate,
            ("config", "show"): self._config_show,
            ("config", "validate"): self._config_validate,
        }
        handler = handlers.get((args.command, getattr(args, "subcommand", None)))
        if handler is None:
            raise CLIError("missing or unknown command; see --help", exit_code=2)
        return handler

    def run(self, argv: Optional[List[str]] = None) -> int:
        args = self.parser.parse_args(argv)
        fmt = OutputFormat(args.format)

        try:
            manager = get_config_manager()
            if args.config:
                manager.load_from_file(args.config)
            else:
                manager.load_defaults()
            obs = get_config().observability
            configure_logging(obs.log_level.get(), obs.log_format.get())

            result = self._handler(args)(args)
        except CLIError as ex:
            print(f"error: {ex}", file=sys.stderr)
            return ex.exit_code
        except (ConfigError, IssuanceError, ValueError, OSError) as ex:
            print(f"error: {ex}", file=sys.stderr)
            return 1

        print(format_output(result, fmt))
        if args.command == "voucher" and args.subcommand == "verify" and not result["ok"]:
            return 3
        if args.command == "config" and args.subcommand == "validate" and not result["valid"]:
            return 3
        return 0


def main(argv: Optional[List[str]] = None) -> int:
    return BlankArtCLI().run(argv)


if __name__ == "__main__":
    sys.exit(main())
