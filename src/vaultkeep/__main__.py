# Vaultkeep - Command Line Entry Point
#
# Operator tooling for stored records: encrypt a value, decrypt a stored
# envelope, check a PIN against a stored field, inspect the key configuration.
# The key comes from the environment exactly as it does for the application.

import argparse
import logging
import sys

from . import __version__
from .core import EventSeverity, EventType, VaultSettings, get_audit_logger
from .vault import ConfigurationError, DecryptionError, EncryptionError, VaultCrypto


def _read_value(value):
    """Use the argument if given, else one line from stdin (keeps secrets out of shell history)."""
    if value is not None:
        return value
    return sys.stdin.readline().rstrip("\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vaultkeep",
        description="Vaultkeep - encrypt, decrypt and verify credential vault fields",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Vaultkeep v{__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log warnings (legacy fallbacks, default key) to stderr",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    p_enc = sub.add_parser("encrypt", help="Encrypt a value into an envelope")
    p_enc.add_argument("value", nargs="?", help="Plaintext (default: read from stdin)")

    p_dec = sub.add_parser("decrypt", help="Decrypt a stored envelope")
    p_dec.add_argument("envelope", nargs="?", help="Envelope (default: read from stdin)")

    p_pin = sub.add_parser("verify-pin", help="Check a PIN against a stored PIN field")
    p_pin.add_argument("stored", help="Stored PIN field (envelope or legacy plaintext)")
    p_pin.add_argument("pin", nargs="?", help="Candidate PIN (default: read from stdin)")

    p_cfg = sub.add_parser("check-config", help="Report where the encryption key comes from")
    p_cfg.add_argument(
        "--strict",
        action="store_true",
        help="Exit non-zero when the insecure default key is in use",
    )

    return parser


def main(argv=None) -> int:
    """
    Main entry point for the vaultkeep command.

    Exit codes:
        0 - success (verify-pin: PIN matches)
        1 - operation failed (verify-pin: PIN does not match)
        2 - configuration error
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.WARNING if args.verbose else logging.ERROR,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        settings = VaultSettings.from_env()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    get_audit_logger().log_event(
        event_type=EventType.SYSTEM_START,
        severity=EventSeverity.INFO,
        message="Vaultkeep CLI invoked",
        details={"version": __version__, "command": args.command, "key_source": settings.key_source},
    )

    if args.command == "check-config":
        print(f"Key source: {settings.key_source}")
        if settings.using_default_key:
            print("WARNING: using the built-in default key; stored secrets are not protected.")
            return 1 if args.strict else 0
        return 0

    crypto = VaultCrypto.from_settings(settings)

    if args.command == "encrypt":
        try:
            print(crypto.encrypt(_read_value(args.value)))
        except EncryptionError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        return 0

    if args.command == "decrypt":
        try:
            print(crypto.decrypt(_read_value(args.envelope)))
        except DecryptionError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        return 0

    if args.command == "verify-pin":
        matched = crypto.verify_pin(_read_value(args.pin), args.stored)
        print("PIN matches" if matched else "PIN does not match")
        return 0 if matched else 1

    parser.error(f"unknown command {args.command}")
    return 2


if __name__ == "__main__":
    sys.exit(main())
