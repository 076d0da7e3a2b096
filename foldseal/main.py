import argparse
import base64
import getpass
import json
import logging
import os
import signal
import sys
from contextlib import contextmanager
from typing import Optional

from .core.directory_listing import check_directory_exists
from .core.document_service import DocumentService
from .core.errors import format_error
from .utils.logger import configure_logging
from .utils.preferences import load_preferences

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

PASSWORD_COMMANDS = ("encrypt", "decrypt", "cat")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="foldseal", description="Encrypt files and folders in place")
    parser.add_argument("--debug", action="store_true", help="verbose logging to console and log file")
    parser.add_argument("--json", action="store_true", help="print results as JSON")
    parser.add_argument("--config", default=None, help="path to preferences.json")
    parser.add_argument("--log-dir", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("encrypt", "encrypt a file, or every plaintext file under a directory"),
        ("decrypt", "decrypt a file, or every container under a directory"),
        ("info", "show whether a file is encrypted and its stored metadata"),
        ("ls", "list a directory with encryption status"),
        ("cat", "decrypt a container to stdout without touching the file"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("path")
        if name in PASSWORD_COMMANDS:
            cmd.add_argument("--password-stdin", action="store_true", help="read the password from stdin")
    return parser


def _read_password(args, confirm: bool) -> Optional[str]:
    if args.password_stdin:
        line = sys.stdin.readline()
        return line.rstrip("\r\n")
    password = getpass.getpass("Password: ")
    if confirm and password:
        again = getpass.getpass("Confirm password: ")
        if again != password:
            print("Passwords do not match", file=sys.stderr)
            return None
    return password


def _emit(args, payload: dict, text: str, stream=None) -> None:
    stream = stream or sys.stdout
    if args.json:
        print(json.dumps(payload, default=str), file=stream)
    else:
        print(text, file=stream)


@contextmanager
def cancel_on_interrupt(service: DocumentService):
    """Turn Ctrl+C into a cancellation checked between files."""

    def handler(signum, frame):
        print("Cancelling after the current file...", file=sys.stderr)
        service.cancel()

    previous = signal.signal(signal.SIGINT, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _run_transform(service: DocumentService, args, password: str) -> int:
    encrypting = args.command == "encrypt"
    if check_directory_exists(args.path):
        def progress(path: str, outcome: str) -> None:
            if not args.json:
                print(f"{outcome}: {path}", file=sys.stderr)

        with cancel_on_interrupt(service):
            if encrypting:
                result = service.encrypt_directory(args.path, password, progress=progress)
            else:
                result = service.decrypt_directory(args.path, password, progress=progress)
        if not result.success:
            _emit(args, result.to_dict(), format_error(result.error), sys.stderr)
            return EXIT_FAILURE
        stats = result.statistics
        summary = (
            f"{result.message} "
            f"(encrypted {stats.encrypted_count}, decrypted {stats.decrypted_count}, "
            f"skipped {stats.skipped_count}, failed {stats.failed_count})"
        )
        for path, message in stats.errors:
            summary += f"\n  {path}: {message}"
        _emit(args, result.to_dict(), summary)
        return EXIT_FAILURE if stats.failed_count or result.cancelled else EXIT_OK

    result = service.encrypt_file(args.path, password) if encrypting else service.decrypt_file(args.path, password)
    if not result.success:
        _emit(args, result.to_dict(), result.error_message, sys.stderr)
        return EXIT_FAILURE
    _emit(args, result.to_dict(), f"{result.message}: {result.saved_path}")
    return EXIT_OK


def _run_info(service: DocumentService, args) -> int:
    result = service.read_file(args.path, header_only=True)
    if not result.success:
        _emit(args, result.to_dict(), format_error(result.error), sys.stderr)
        return EXIT_FAILURE
    lines = [
        f"path:      {result.path}",
        f"size:      {result.size}",
        f"encrypted: {'yes' if result.is_encrypted else 'no'}",
        f"encoding:  {result.encoding}",
        f"mime type: {result.mime_type}",
    ]
    if result.metadata is not None:
        lines.append(f"filename:  {result.metadata.filename}")
        lines.append(f"version:   {result.metadata.version}")
    _emit(args, result.to_dict(), "\n".join(lines))
    return EXIT_OK


def _entry_dict(entry) -> dict:
    return {
        "name": entry.name,
        "path": entry.path,
        "isDirectory": entry.is_directory,
        "size": entry.size,
        "modified": entry.modified.isoformat(),
        "isEncrypted": entry.is_encrypted,
        "metadata": entry.metadata.to_dict() if entry.metadata is not None else None,
        "mimeType": entry.mime_type,
        "encoding": entry.encoding,
    }


def _run_ls(service: DocumentService, args) -> int:
    entries, error = service.list_directory(args.path)
    if entries is None:
        _emit(args, {"success": False, "error": error.message, "errorKind": error.kind.value},
              format_error(error), sys.stderr)
        return EXIT_FAILURE
    lines = []
    for entry in entries:
        if entry.is_directory:
            lines.append(f"d          {entry.name}/")
        else:
            flag = "E" if entry.is_encrypted else "-"
            lines.append(f"{flag} {entry.size:>8} {entry.name}")
    _emit(args, {"success": True, "entries": [_entry_dict(e) for e in entries]}, "\n".join(lines))
    return EXIT_OK


def _run_cat(service: DocumentService, args, password: str) -> int:
    result = service.decrypt_for_preview(args.path, password)
    if not result.success:
        _emit(args, result.to_dict(), format_error(result.error), sys.stderr)
        return EXIT_FAILURE
    if args.json:
        payload = result.to_dict()
        if result.is_binary:
            payload["content"] = base64.b64encode(result.content.data).decode("ascii")
        print(json.dumps(payload, default=str))
    elif result.is_binary:
        sys.stdout.buffer.write(result.content.data)
        sys.stdout.buffer.flush()
    else:
        sys.stdout.write(result.content.text)
        sys.stdout.flush()
    return EXIT_OK


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    preferences = load_preferences(args.config)
    configure_logging(args.debug or preferences.log_debug, args.log_dir)
    service = DocumentService(preferences)

    if args.command == "info":
        return _run_info(service, args)
    if args.command == "ls":
        return _run_ls(service, args)

    if not os.path.exists(args.path) and args.command != "encrypt":
        print(f"No such file or directory: {args.path}", file=sys.stderr)
        return EXIT_FAILURE

    password = _read_password(args, confirm=args.command == "encrypt" and not args.password_stdin)
    if not password:
        print("A non-empty password is required", file=sys.stderr)
        return EXIT_USAGE

    if args.command == "cat":
        return _run_cat(service, args, password)
    return _run_transform(service, args, password)


if __name__ == "__main__":
    sys.exit(main())
