"""Pre-deploy sanity check for the SumUp connector's ``.env`` file.

Before the API is (re)started this script answers two questions:

* Can the connector actually run the OAuth flow with this file? Settings
  must load (``SUMUP_REDIRECT_URI`` is mandatory) and the SumUp client id
  must come with its secret.
* Has the file been edited since it was last approved? ``record`` stores a
  SHA256 fingerprint next to it and ``verify`` compares against that.

Typical deployment usage::

    python -m scripts.check_env record --env-file /srv/sumup/.env \
        --hash-file /srv/sumup/.env.sha256
    python -m scripts.check_env verify --env-file /srv/sumup/.env \
        --hash-file /srv/sumup/.env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from pathlib import Path

from pydantic import ValidationError

from app.clients.credentials import CredentialStore
from app.core.config import AppSettings, _load_env_file
from app.core.errors import ConfigurationError
from app.core.logging import mask_secret
from app.models.records import SUMUP_PROVIDER

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_CREDENTIALS_ERROR = 4
EXIT_RUNTIME_ERROR = 5


def _fail(message: str, exit_code: int) -> int:
    print(message, file=sys.stderr)
    return exit_code


def _fingerprint(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _load_settings(env_file: Path) -> AppSettings:
    _load_env_file(str(env_file))
    return AppSettings()  # type: ignore[call-arg]


def _summarize(settings: AppSettings) -> None:
    """Print the OAuth-relevant settings, with the client id masked."""
    sumup = settings.sumup
    credentials = CredentialStore(sumup).get_api_credential(SUMUP_PROVIDER)
    client_id, _ = credentials.require_client_pair()

    print(f"SumUp client:       {mask_secret(client_id)}")
    print(f"SumUp redirect URI: {sumup.redirect_uri}")
    print(f"SumUp scopes:       {' '.join(sumup.scopes)}")
    print(f"Database:           {settings.database_path}")


def _record(env_file: Path, hash_file: Path) -> int:
    fingerprint = _fingerprint(env_file)
    hash_file.write_text(f"{fingerprint}\n", encoding="utf-8")
    print(f"Baseline for {env_file} written to {hash_file}.")
    return EXIT_OK


def _verify(env_file: Path, hash_file: Path) -> int:
    if not hash_file.exists():
        return _fail(
            f"No baseline at {hash_file}; run 'record' first.", EXIT_RUNTIME_ERROR
        )

    approved = hash_file.read_text(encoding="utf-8").strip()
    current = _fingerprint(env_file)
    if approved != current:
        return _fail(
            f"{env_file} changed since the baseline was recorded "
            f"(approved {approved[:12]}, now {current[:12]}). "
            "Review the edit and re-run 'record' once it is approved.",
            EXIT_CHECKSUM_ERROR,
        )
    print(f"{env_file} matches the recorded baseline.")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    env_options = argparse.ArgumentParser(add_help=False)
    env_options.add_argument(
        "--env-file",
        type=Path,
        default=Path(".env"),
        help="Connector environment file to inspect (default: ./.env).",
    )
    baseline_options = argparse.ArgumentParser(add_help=False)
    baseline_options.add_argument(
        "--hash-file",
        type=Path,
        required=True,
        help="File holding the approved SHA256 fingerprint.",
    )

    parser = argparse.ArgumentParser(
        description="Check SumUp OAuth settings before starting the connector."
    )
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser(
        "check", parents=[env_options], help="Only validate the settings."
    )
    commands.add_parser(
        "record",
        parents=[env_options, baseline_options],
        help="Validate the settings, then approve the file as the new baseline.",
    )
    commands.add_parser(
        "verify",
        parents=[env_options, baseline_options],
        help="Validate the settings and compare the file with its baseline.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.is_file():
        return _fail(f"Environment file {env_file} not found.", EXIT_RUNTIME_ERROR)

    try:
        settings = _load_settings(env_file)
        _summarize(settings)
    except ValidationError as exc:
        return _fail(
            f"{env_file} does not produce valid settings:\n{exc.json(indent=2)}",
            EXIT_VALIDATION_ERROR,
        )
    except ConfigurationError as exc:
        return _fail(
            f"SumUp OAuth cannot run with {env_file}: {exc.message}",
            EXIT_CREDENTIALS_ERROR,
        )

    if args.command == "record":
        return _record(env_file, args.hash_file)
    if args.command == "verify":
        return _verify(env_file, args.hash_file)
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
