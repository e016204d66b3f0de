"""Tests for the vaultkeep command line entry point."""

import io

import pytest

from vaultkeep.__main__ import main
from vaultkeep.vault import VaultCrypto


@pytest.fixture(autouse=True)
def _no_dotenv(tmp_path, monkeypatch):
    """Run from an empty directory so no stray .env file is picked up."""
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def keyed(monkeypatch):
    monkeypatch.setenv("VAULTKEEP_ENCRYPTION_KEY", "cli-key")
    return VaultCrypto("cli-key")


class TestEncryptDecrypt:
    def test_encrypt_argument(self, keyed, capsys):
        assert main(["encrypt", "P@ssw0rd!"]) == 0
        envelope = capsys.readouterr().out.strip()
        assert keyed.decrypt(envelope) == "P@ssw0rd!"

    def test_encrypt_from_stdin(self, keyed, capsys, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO("from-stdin\n"))
        assert main(["encrypt"]) == 0
        assert keyed.decrypt(capsys.readouterr().out.strip()) == "from-stdin"

    def test_decrypt(self, keyed, capsys):
        envelope = keyed.encrypt("hunter2")
        assert main(["decrypt", envelope]) == 0
        assert capsys.readouterr().out.strip() == "hunter2"

    def test_decrypt_failure(self, keyed, capsys):
        assert main(["decrypt", "not-an-envelope"]) == 1
        assert "Failed to decrypt" in capsys.readouterr().err


class TestVerifyPin:
    def test_match(self, keyed, capsys):
        stored = keyed.encrypt("4321")
        assert main(["verify-pin", stored, "4321"]) == 0
        assert "PIN matches" in capsys.readouterr().out

    def test_mismatch(self, keyed, capsys):
        stored = keyed.encrypt("4321")
        assert main(["verify-pin", stored, "0000"]) == 1
        assert "does not match" in capsys.readouterr().out

    def test_legacy_plaintext(self, keyed):
        assert main(["verify-pin", "1234", "1234"]) == 0
        assert main(["verify-pin", "1234", "9999"]) == 1


class TestCheckConfig:
    def test_reports_source(self, keyed, capsys):
        assert main(["check-config"]) == 0
        assert "VAULTKEEP_ENCRYPTION_KEY" in capsys.readouterr().out

    def test_default_key_warns(self, capsys):
        assert main(["check-config"]) == 0
        assert "WARNING" in capsys.readouterr().out

    def test_default_key_strict(self):
        assert main(["check-config", "--strict"]) == 1

    def test_required_key_missing(self, monkeypatch, capsys):
        monkeypatch.setenv("VAULTKEEP_REQUIRE_KEY", "1")
        assert main(["encrypt", "x"]) == 2
        assert "Configuration error" in capsys.readouterr().err


def test_command_required():
    with pytest.raises(SystemExit):
        main([])
