#!/usr/bin/env python3
"""
reqsign console front end.

Usage:
    reqsign preview --method POST --endpoint /v1/qris/create --payload body.json
    reqsign sign    --method POST --endpoint /v1/qris/create --payload body.json --key certs/client.key.pem
    reqsign verify  --method POST --endpoint /v1/qris/create --payload body.json --key certs/client.pub.pem --signature <b64>
    reqsign keygen  --out certs/demo

--payload, --key and --signature accept either a file path or the literal
text; --payload - reads stdin. --timestamp defaults to the current local
time (sign/preview only).

Exit status: 0 ok / signature valid, 1 signature invalid, 2 error.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from reqsign import config
from reqsign.canonical import CanonicalRequest, check_validity, preview_request
from reqsign.common.utils import now_iso_local
from reqsign.crypto.primitive import get_primitive
from reqsign.errors import SigningError
from reqsign.signer import generate_demo_keypair, sign, verify

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_ERROR = 2


def read_text_arg(path_or_text: str) -> str:
    """
    Accept a path to a file or the text itself (same rule as key loading:
    an existing path wins).
    """
    if path_or_text == "-":
        return sys.stdin.read()
    try:
        p = Path(path_or_text)
        if p.is_file():
            return p.read_text(encoding="utf-8")
    except (OSError, ValueError):
        # too long / invalid for a path: treat as literal text
        pass
    return path_or_text


def build_request(args) -> CanonicalRequest:
    return CanonicalRequest(
        http_method=args.method,
        endpoint=args.endpoint,
        payload=read_text_arg(args.payload),
        timestamp=args.timestamp or now_iso_local(),
    )


def print_preview(result_dict: dict, as_json: bool):
    if as_json:
        print(json.dumps(result_dict, indent=2, ensure_ascii=False))
        return
    for field in ("minifiedJson", "bodyHashHex", "canonicalString"):
        if field in result_dict:
            print(f"[*] {field}: {result_dict[field]}")


def preflight(request: CanonicalRequest, key_pem: str, is_sign: bool) -> bool:
    validity = check_validity(request, key_pem, is_sign)
    if not validity.json_ok:
        print("[!] Payload is not valid JSON")
    if not validity.meta_ok:
        try:
            CanonicalRequest(request.http_method, request.endpoint, "null", request.timestamp).validate()
            print("[!] Key does not look like a %s PEM" % ("PRIVATE KEY" if is_sign else "PUBLIC KEY"))
        except SigningError as e:
            print(f"[!] {e.message}")
    return validity.all_ok


# ----------------------------------------------------------
# Commands
# ----------------------------------------------------------

def cmd_preview(args) -> int:
    request = build_request(args)
    try:
        prev = preview_request(request, get_primitive(args.backend))
    except SigningError as e:
        print(f"[!] {e.message}")
        return EXIT_ERROR

    print_preview(prev.to_dict(), args.json)
    return EXIT_OK


def cmd_sign(args) -> int:
    request = build_request(args)
    private_pem = read_text_arg(args.key)
    if not args.no_check and not preflight(request, private_pem, is_sign=True):
        return EXIT_ERROR

    three_lines = config.SIGNATURE_3_LINES if args.three_lines is None else args.three_lines
    result = sign(request, private_pem, get_primitive(args.backend), three_lines=three_lines)

    print_preview(result.to_dict(), args.json)
    if not result.success:
        print(f"[!] Error generate ({result.failed_step}): {result.error_message}")
        return EXIT_ERROR

    if not args.json:
        print("[+] Signature generated:")
        print(result.signature_b64)
    return EXIT_OK


def cmd_verify(args) -> int:
    request = build_request(args)
    public_pem = read_text_arg(args.key)
    if not args.no_check and not preflight(request, public_pem, is_sign=False):
        return EXIT_ERROR

    signature_b64 = read_text_arg(args.signature)
    result = verify(request, public_pem, signature_b64, get_primitive(args.backend))

    print_preview(result.to_dict(), args.json)
    if not result.success:
        print(f"[!] Error verify ({result.failed_step}): {result.error_message}")
        return EXIT_ERROR

    if not args.json:
        print("[+] Signature VALID" if result.valid else "[!] Signature INVALID")
    return EXIT_OK if result.valid else EXIT_INVALID


def cmd_keygen(args) -> int:
    single_line = config.PEM_SINGLE_LINE if args.single_line is None else args.single_line
    pair = generate_demo_keypair(
        get_primitive(args.backend),
        single_line=single_line,
        modulus_length=args.keysize,
        pkcs1=args.pkcs1,
    )

    if not args.out:
        print(pair.private_pem)
        print(pair.public_pem)
        return EXIT_OK

    out_prefix = Path(args.out)
    out_prefix.parent.mkdir(parents=True, exist_ok=True)
    key_path = out_prefix.with_suffix(".key.pem")
    pub_path = out_prefix.with_suffix(".pub.pem")
    key_path.write_text(pair.private_pem + "\n")
    key_path.chmod(0o600)
    pub_path.write_text(pair.public_pem + "\n")

    print(f"[+] Generated private key: {key_path}")
    print(f"[+] Generated public key:  {pub_path}")
    return EXIT_OK


# ----------------------------------------------------------
# MAIN (CLI)
# ----------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="reqsign", description="RSA PKCS#1 v1.5 + SHA-256 request signing")
    p.add_argument("--backend", default=None, help="crypto backend: cryptography | pycryptodome (default: REQSIGN_BACKEND)")
    p.add_argument("--log-level", default=config.LOG_LEVEL, help="logging level (default: REQSIGN_LOG_LEVEL)")
    sub = p.add_subparsers(dest="command", required=True)

    def request_args(sp, default_timestamp=True):
        sp.add_argument("--method", default="POST", help="HTTP method, e.g. POST")
        sp.add_argument("--endpoint", required=True, help="endpoint path, e.g. /v1/qris/create")
        sp.add_argument("--payload", required=True, help="JSON payload: file path, literal JSON or '-' for stdin")
        sp.add_argument(
            "--timestamp",
            required=not default_timestamp,
            help="ISO-8601 timestamp" + (" (default: now, local offset)" if default_timestamp else ""),
        )
        sp.add_argument("--json", action="store_true", help="print the result as JSON")

    sp = sub.add_parser("preview", help="show minified JSON, body hash and canonical string")
    request_args(sp)
    sp.set_defaults(func=cmd_preview)

    sp = sub.add_parser("sign", help="sign a request")
    request_args(sp)
    sp.add_argument("--key", required=True, help="private key PEM (PKCS#8 or PKCS#1): path or text")
    sp.add_argument("--three-lines", dest="three_lines", action="store_true", default=None,
                    help="split the signature into 3 lines")
    sp.add_argument("--no-check", action="store_true", help="skip the pre-flight validity check")
    sp.set_defaults(func=cmd_sign)

    sp = sub.add_parser("verify", help="verify a request signature")
    request_args(sp, default_timestamp=False)
    sp.add_argument("--key", required=True, help="public key PEM (SPKI or PKCS#1): path or text")
    sp.add_argument("--signature", required=True, help="Base64 signature: path, text or '-' for stdin")
    sp.add_argument("--no-check", action="store_true", help="skip the pre-flight validity check")
    sp.set_defaults(func=cmd_verify)

    sp = sub.add_parser("keygen", help="generate a demo RSA keypair")
    sp.add_argument("--out", help="output prefix (writes <out>.key.pem and <out>.pub.pem); prints when omitted")
    sp.add_argument("--keysize", type=int, default=config.KEY_SIZE, help="RSA modulus length (default 2048)")
    sp.add_argument("--pkcs1", action="store_true", help="write RSA PRIVATE KEY / RSA PUBLIC KEY instead of PKCS#8 / SPKI")
    sp.add_argument("--single-line", dest="single_line", action="store_true", default=None,
                    help="PEM body on a single line")
    sp.add_argument("--wrapped", dest="single_line", action="store_false", default=None,
                    help="PEM body wrapped at 64 characters")
    sp.set_defaults(func=cmd_keygen)

    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        level = args.log_level.upper()
        logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
        logging.getLogger("reqsign").setLevel(level)
        return args.func(args)
    except ValueError as e:
        # unknown log level or backend, unsupported key size ...
        print(f"[!] {e}")
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
