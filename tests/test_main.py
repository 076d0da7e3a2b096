import io
import json
import signal

import pytest

from foldseal import main as main_module
from foldseal.core.document_service import DocumentService
from foldseal.core.format_config import MARKER


@pytest.fixture
def run_cli(tmp_path, monkeypatch):
    config = tmp_path / "prefs.json"
    logs = tmp_path / "logs"

    def _run(*argv, stdin="pw\n"):
        monkeypatch.setattr(main_module.sys, "stdin", io.StringIO(stdin))
        return main_module.main(["--config", str(config), "--log-dir", str(logs), *argv])

    return _run


def test_encrypt_and_decrypt_file(tmp_path, run_cli, capsys):
    path = tmp_path / "doc.txt"
    path.write_bytes(b"cli text")

    assert run_cli("encrypt", str(path), "--password-stdin") == 0
    assert path.read_bytes().startswith(MARKER)
    assert "File encrypted successfully" in capsys.readouterr().out

    assert run_cli("decrypt", str(path), "--password-stdin") == 0
    assert path.read_bytes() == b"cli text"


def test_wrong_password_exit_code(tmp_path, run_cli, capsys):
    path = tmp_path / "doc.txt"
    path.write_bytes(b"cli text")
    run_cli("encrypt", str(path), "--password-stdin")
    assert run_cli("decrypt", str(path), "--password-stdin", stdin="nope\n") == 1
    assert "Decryption Failed" in capsys.readouterr().err


def test_directory_json_output(tmp_path, run_cli, capsys):
    root = tmp_path / "tree"
    root.mkdir()
    (root / "a.txt").write_bytes(b"a")
    (root / "b.txt").write_bytes(b"b")

    assert run_cli("--json", "encrypt", str(root), "--password-stdin") == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["statistics"]["encryptedCount"] == 2


def test_batch_with_failures_exits_one(tmp_path, run_cli):
    root = tmp_path / "tree"
    root.mkdir()
    (root / "empty.txt").write_bytes(b"")
    assert run_cli("encrypt", str(root), "--password-stdin") == 1


def test_info_and_ls(tmp_path, run_cli, capsys):
    path = tmp_path / "doc.txt"
    path.write_bytes(b"hello")
    run_cli("encrypt", str(path), "--password-stdin")
    capsys.readouterr()

    assert run_cli("--json", "info", str(path)) == 0
    info = json.loads(capsys.readouterr().out)
    assert info["isEncrypted"] is True
    assert info["metadata"]["filename"] == "doc.txt"

    assert run_cli("ls", str(tmp_path)) == 0
    assert "E" in capsys.readouterr().out


def test_cat_prints_plaintext_without_changing_file(tmp_path, run_cli, capsys):
    path = tmp_path / "doc.txt"
    path.write_bytes(b"printed text")
    run_cli("encrypt", str(path), "--password-stdin")
    sealed = path.read_bytes()
    capsys.readouterr()

    assert run_cli("cat", str(path), "--password-stdin") == 0
    assert capsys.readouterr().out == "printed text"
    assert path.read_bytes() == sealed


def test_empty_password_is_usage_error(tmp_path, run_cli):
    path = tmp_path / "doc.txt"
    path.write_bytes(b"x")
    assert run_cli("encrypt", str(path), "--password-stdin", stdin="\n") == 2


def test_unknown_command_is_usage_error(run_cli):
    with pytest.raises(SystemExit) as exc:
        run_cli("shred", "x")
    assert exc.value.code == 2


def test_getpass_confirmation(tmp_path, run_cli, monkeypatch):
    path = tmp_path / "doc.txt"
    path.write_bytes(b"x")
    answers = iter(["one", "two"])
    monkeypatch.setattr(main_module.getpass, "getpass", lambda prompt="": next(answers))
    assert run_cli("encrypt", str(path)) == 2
    assert path.read_bytes() == b"x"


def test_ctrl_c_cancels_folder_run_between_files(tmp_path, run_cli, capsys, monkeypatch):
    root = tmp_path / "tree"
    root.mkdir()
    for name in ("a.txt", "b.txt", "c.txt"):
        (root / name).write_bytes(name.encode())

    original = DocumentService.encrypt_directory

    def interrupted_after_first_file(self, path, password=None, progress=None):
        def report(file_path, outcome):
            progress(file_path, outcome)
            signal.raise_signal(signal.SIGINT)

        return original(self, path, password, progress=report)

    monkeypatch.setattr(DocumentService, "encrypt_directory", interrupted_after_first_file)
    previous = signal.getsignal(signal.SIGINT)

    assert run_cli("--json", "encrypt", str(root), "--password-stdin") == 1
    payload = json.loads(capsys.readouterr().out)
    assert payload["cancelled"] is True
    assert payload["statistics"]["encryptedCount"] == 1
    assert signal.getsignal(signal.SIGINT) is previous
