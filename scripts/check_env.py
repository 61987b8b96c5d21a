"""Verify that the broker's environment configuration loads and has not drifted.

Subcommands:

``check``
    Load ``AppSettings`` from the env file and print the resolved, non-secret
    values (client id, redirect URI, token database, debug routes).
``record``
    Same validation, then write a SHA-256 baseline of the env file.
``verify``
    Same validation, then compare the env file against the baseline.

Example::

    python -m scripts.check_env record --env-file /srv/broker/.env \
        --hash-file /srv/broker/.env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from pathlib import Path

from pydantic import ValidationError

from app.core.config import AppSettings, _load_env_file

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5


def _checksum(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _load_settings(env_file: Path) -> AppSettings:
    """Load settings the way the service does, seeded from ``env_file``."""
    if not env_file.exists():
        raise FileNotFoundError(f"Environment file {env_file} does not exist.")
    _load_env_file(str(env_file))
    return AppSettings(_env_file=str(env_file))  # type: ignore[call-arg]


def _describe(settings: AppSettings) -> str:
    lines = [
        f"environment:      {settings.environment}",
        f"client id:        {settings.spotify.client_id}",
        f"redirect uri:     {settings.spotify.redirect_uri}",
        f"token database:   {settings.token_db_path}",
        f"debug endpoints:  {'enabled' if settings.debug_endpoints_enabled else 'disabled'}",
        f"ip allowlist:     {', '.join(settings.network.allowed_ip_ranges) or 'off'}",
    ]
    return "\n".join(lines)


def _record(env_file: Path, hash_file: Path) -> int:
    digest = _checksum(env_file)
    hash_file.write_text(f"{digest}\n", encoding="utf-8")
    print(f"Recorded checksum to {hash_file} ({digest})")
    return EXIT_OK


def _verify(env_file: Path, hash_file: Path) -> int:
    if not hash_file.exists():
        print(
            f"Checksum baseline {hash_file} is missing; run 'record' first.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    expected = hash_file.read_text(encoding="utf-8").strip()
    actual = _checksum(env_file)
    if expected != actual:
        print(
            "Environment checksum mismatch!\n"
            f"  expected: {expected}\n"
            f"  actual:   {actual}",
            file=sys.stderr,
        )
        return EXIT_CHECKSUM_ERROR

    print("Environment checksum OK.")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate broker settings and detect .env drift."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text, needs_hash in (
        ("check", "Validate settings and print the resolved values.", False),
        ("record", "Validate settings and store the checksum baseline.", True),
        ("verify", "Validate settings and compare against the baseline.", True),
    ):
        subparser = subparsers.add_parser(name, help=help_text)
        subparser.add_argument(
            "--env-file",
            default=".env",
            type=Path,
            help="Path to the environment file (default: ./.env).",
        )
        if needs_hash:
            subparser.add_argument(
                "--hash-file",
                required=True,
                type=Path,
                help="Checksum baseline location.",
            )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    try:
        settings = _load_settings(env_file)
    except FileNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    if args.command == "check":
        print(_describe(settings))
        return EXIT_OK
    if args.command == "record":
        return _record(env_file, args.hash_file)
    return _verify(env_file, args.hash_file)


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
