"""
CLI Tests

End-to-end runs of ``blankart`` subcommands through ``main(argv)``.

Run with: pytest tests/test_cli.py -v
"""

import json
import logging
import pathlib

import pytest
import yaml

from blankart.cli import SIGNER_KEY_ENV, CLIError, load_private_key, main

CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


@pytest.fixture(autouse=True)
def _isolated(tmp_path, monkeypatch):
    """Run from an empty directory and detach CLI log handlers afterwards."""
    monkeypatch.chdir(tmp_path)
    yield
    root = logging.getLogger("blankart")
    for handler in list(root.handlers):
        if getattr(handler, "_blankart", False):
            root.removeHandler(handler)
    root.setLevel(logging.NOTSET)


@pytest.fixture
def key_file(tmp_path, controller):
    path = tmp_path / "signer.json"
    path.write_text(json.dumps({"private_key": controller.key.hex()}), encoding="utf-8")
    return path


def _run(capsys, *argv):
    code = main(list(argv))
    return code, capsys.readouterr()


class TestLoadPrivateKey:
    """Tests for signing-key discovery."""

    def test_json_key_file(self, key_file, controller):
        assert load_private_key(str(key_file)) == controller.key.hex()

    def test_bare_key_file(self, tmp_path):
        path = tmp_path / "key.txt"
        path.write_text("0x" + "11" * 32 + "\n", encoding="utf-8")
        assert load_private_key(str(path)) == "0x" + "11" * 32

    def test_json_without_key(self, tmp_path):
        path = tmp_path / "key.json"
        path.write_text('{"address": "0x0"}', encoding="utf-8")
        with pytest.raises(CLIError):
            load_private_key(str(path))

    def test_environment(self, monkeypatch):
        monkeypatch.setenv(SIGNER_KEY_ENV, "0x" + "22" * 32)
        assert load_private_key(None) == "0x" + "22" * 32

    def test_missing(self):
        with pytest.raises(CLIError):
            load_private_key(None)


class TestVoucherCommands:
    """Tests for ``blankart voucher sign|verify``."""

    def test_sign_then_verify(self, capsys, tmp_path, key_file, controller, alice):
        out = tmp_path / "voucher.json"
        code, captured = _run(
            capsys,
            "voucher", "sign",
            "--contract", CONTRACT,
            "--recipient", alice.address,
            "--min-price", "1000",
            "--expiration", "1800000000",
            "--max-amount", "2",
            "--key-file", str(key_file),
            "--out", str(out),
        )
        assert code == 0
        doc = json.loads(captured.out)
        assert doc["redeemerAddress"] == alice.address
        assert doc["minPrice"] == "1000"
        assert doc["maxAmount"] == 2
        assert json.loads(out.read_text(encoding="utf-8")) == doc

        code, captured = _run(
            capsys,
            "voucher", "verify", str(out),
            "--contract", CONTRACT,
            "--controller", controller.address,
        )
        assert code == 0
        result = json.loads(captured.out)
        assert result["ok"] is True
        assert result["signer"] == controller.address
        assert result["digest"].startswith("0x") and len(result["digest"]) == 66

    def test_default_expiration(self, capsys, key_file, alice):
        code, captured = _run(
            capsys,
            "voucher", "sign",
            "--contract", CONTRACT,
            "--recipient", alice.address,
            "--key-file", str(key_file),
        )
        assert code == 0
        doc = json.loads(captured.out)
        assert doc["expiration"] > 1_700_000_000
        assert doc["maxAmount"] == 0

    def test_sign_with_env_key(self, capsys, monkeypatch, controller, alice):
        monkeypatch.setenv(SIGNER_KEY_ENV, controller.key.hex())
        code, _ = _run(
            capsys, "voucher", "sign", "--contract", CONTRACT, "--recipient", alice.address,
        )
        assert code == 0

    def test_sign_without_key(self, capsys, alice):
        code, captured = _run(
            capsys, "voucher", "sign", "--contract", CONTRACT, "--recipient", alice.address,
        )
        assert code == 1
        assert "no signing key" in captured.err

    def test_sign_bad_recipient(self, capsys, key_file):
        code, captured = _run(
            capsys,
            "voucher", "sign",
            "--contract", CONTRACT,
            "--recipient", "0xnope",
            "--key-file", str(key_file),
        )
        assert code == 1
        assert "recipient" in captured.err

    def test_verify_wrong_controller(self, capsys, tmp_path, key_file, alice, mallory):
        out = tmp_path / "voucher.json"
        _run(
            capsys,
            "voucher", "sign",
            "--contract", CONTRACT,
            "--recipient", alice.address,
            "--key-file", str(key_file),
            "--out", str(out),
        )
        code, captured = _run(
            capsys,
            "voucher", "verify", str(out),
            "--contract", CONTRACT,
            "--controller", mallory.address,
        )
        assert code == 3
        assert json.loads(captured.out)["ok"] is False

    def test_verify_other_chain(self, capsys, tmp_path, key_file, controller, alice):
        out = tmp_path / "voucher.json"
        _run(
            capsys,
            "voucher", "sign",
            "--contract", CONTRACT,
            "--recipient", alice.address,
            "--key-file", str(key_file),
            "--out", str(out),
        )
        code, _ = _run(
            capsys,
            "voucher", "verify", str(out),
            "--contract", CONTRACT,
            "--chain-id", "1",
            "--controller", controller.address,
        )
        assert code == 3

    def test_verify_invalid_document(self, capsys, tmp_path):
        path = tmp_path / "voucher.json"
        path.write_text(json.dumps({"redeemerAddress": "0x1"}), encoding="utf-8")
        code, captured = _run(capsys, "voucher", "verify", str(path), "--contract", CONTRACT)
        assert code == 2
        assert "invalid voucher document" in captured.err


class TestMetadataCommands:
    """Tests for ``blankart metadata generate``."""

    def test_generate(self, capsys, tmp_path):
        code, captured = _run(
            capsys,
            "metadata", "generate",
            "--out", str(tmp_path / "meta"),
            "--count", "3",
            "--image-uri", "ipfs://img/",
            "--per-token-image-suffix", ".png",
        )
        assert code == 0
        assert json.loads(captured.out)["written"] == 3
        doc = json.loads((tmp_path / "meta" / "2.json").read_text(encoding="utf-8"))
        assert doc["image"] == "ipfs://img/2.png"
        assert doc["tokenId"] == 2

    def test_generate_bare_suffix(self, capsys, tmp_path):
        code, _ = _run(
            capsys,
            "metadata", "generate",
            "--out", str(tmp_path / "meta"),
            "--count", "1",
            "--image-uri", "ipfs://img",
            "--suffix", "",
        )
        assert code == 0
        assert (tmp_path / "meta" / "1").exists()

    def test_generate_suffix_from_config(self, capsys, tmp_path):
        (tmp_path / "blankart.yaml").write_text("metadata:\n  uri_suffix: .meta\n", encoding="utf-8")
        code, _ = _run(
            capsys,
            "metadata", "generate",
            "--out", str(tmp_path / "meta"),
            "--count", "1",
            "--image-uri", "ipfs://img",
        )
        assert code == 0
        assert (tmp_path / "meta" / "1.meta").exists()

    def test_generate_zero_count(self, capsys, tmp_path):
        code, _ = _run(
            capsys,
            "metadata", "generate",
            "--out", str(tmp_path / "meta"),
            "--count", "0",
            "--image-uri", "ipfs://img",
        )
        assert code == 1


class TestConfigCommands:
    """Tests for ``blankart config show|validate``."""

    def test_show_json(self, capsys):
        code, captured = _run(capsys, "config", "show")
        assert code == 0
        assert json.loads(captured.out)["signing"]["chain_id"] == 1337

    def test_show_yaml(self, capsys):
        code, captured = _run(capsys, "--format", "yaml", "config", "show")
        assert code == 0
        assert yaml.safe_load(captured.out)["engine"]["symbol"] == "BLANK"

    def test_show_with_config_file(self, capsys, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("signing:\n  chain_id: 31337\n", encoding="utf-8")
        code, captured = _run(capsys, "--config", str(path), "config", "show")
        assert code == 0
        assert json.loads(captured.out)["signing"]["chain_id"] == 31337

    def test_missing_config_file(self, capsys, tmp_path):
        code, captured = _run(capsys, "--config", str(tmp_path / "absent.yaml"), "config", "show")
        assert code == 1
        assert "not found" in captured.err

    def test_validate_ok(self, capsys):
        code, captured = _run(capsys, "config", "validate")
        assert code == 0
        assert json.loads(captured.out) == {"valid": True, "errors": []}

    def test_validate_bad_env(self, capsys, monkeypatch):
        monkeypatch.setenv("BLANKART_MEMBER_CAP", "-1")
        code, captured = _run(capsys, "config", "validate")
        assert code == 3
        assert json.loads(captured.out)["valid"] is False


class TestDispatch:
    """Tests for command dispatch."""

    @pytest.mark.parametrize("argv", [[], ["voucher"], ["config"]])
    def test_missing_command(self, capsys, argv):
        code, captured = _run(capsys, *argv)
        assert code == 2
        assert "unknown command" in captured.err

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])
        assert exc.value.code == 0
        assert "blankart" in capsys.readouterr().out

    def test_module_headers_name_project(self):
        package = pathlib.Path(__file__).resolve().parents[1] / "blankart"
        for path in package.glob("*.py"):
            for line in path.read_text(encoding="utf-8").splitlines():
                if line.startswith("Copyright"):
                    assert "BlankArt" in line, path.name
