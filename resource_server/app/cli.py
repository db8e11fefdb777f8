"""
resource-server command line.

Usage:
    resource-server -u alice [-t URL] [-i IDENTITY] [-p PORT] [-r ROOT]
    resource-server keygen [--curve secp256k1]
    resource-server sign --key PRIVATE --user alice --identity localhost~3002
    resource-server recover --message "alice,localhost~3002,1700000000" --signature SIG
    resource-server fetch --url http://localhost:3002 --key PRIVATE --user alice docs/a.md
"""
import argparse
import json
import logging
import sys

import requests
from dotenv import load_dotenv

from . import signing
from .client import ResourceClient, authorization_header
from .errors import ConfigError, DecodeError, RecoveryError, TrustAnchorFetchError
from .keys import DEFAULT_CURVE, KeyMaterial, supported_curves

log = logging.getLogger("resource_server")

COMMANDS = ("serve", "keygen", "sign", "recover", "fetch")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="resource-server", description="EC-authenticated resource server")
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="fetch the trust anchor and serve files")
    serve.add_argument("user_pos", nargs="?", metavar="USER")
    serve.add_argument("-u", "--user")
    serve.add_argument("-t", "--trust", help="trust anchor URL")
    serve.add_argument("-i", "--identity")
    serve.add_argument("-p", "--port", type=int)
    serve.add_argument("-r", "--root", help="directory to serve")
    serve.add_argument("--host")
    serve.add_argument("--curve", choices=supported_curves())
    serve.add_argument("--max-skew", type=float, help="reject timestamps further than this many seconds away")

    keygen = sub.add_parser("keygen", help="generate a key pair")
    keygen.add_argument("--curve", default=DEFAULT_CURVE, choices=supported_curves())

    sign = sub.add_parser("sign", help="print an Authorization header value")
    sign.add_argument("--key", required=True, help="encoded private key")
    sign.add_argument("--user", required=True)
    sign.add_argument("--identity", required=True)
    sign.add_argument("--timestamp", help="defaults to the current time in milliseconds")
    sign.add_argument("--curve", default=DEFAULT_CURVE, choices=supported_curves())

    recover = sub.add_parser("recover", help="recover the signer's public key")
    recover.add_argument("--message", required=True)
    recover.add_argument("--signature", required=True)
    recover.add_argument("--curve", default=DEFAULT_CURVE, choices=supported_curves())

    fetch = sub.add_parser("fetch", help="download a protected resource")
    fetch.add_argument("path")
    fetch.add_argument("--url", required=True, help="server base URL")
    fetch.add_argument("--key", required=True, help="encoded private key")
    fetch.add_argument("--user", required=True)
    fetch.add_argument("--curve", default=DEFAULT_CURVE, choices=supported_curves())
    return parser


def _serve(args) -> int:
    import uvicorn

    from .config import load_settings
    from .main import create_app
    from .trust import TrustAnchor

    try:
        settings = load_settings(
            user=args.user or args.user_pos,
            trust_url=args.trust,
            identity=args.identity,
            port=args.port,
            host=args.host,
            root=args.root,
            curve=args.curve,
            max_skew_seconds=args.max_skew,
        )
    except ConfigError as exc:
        print(exc, file=sys.stderr)
        return 2

    try:
        anchor = TrustAnchor.fetch(settings.trust_url, settings.curve, timeout=settings.trust_timeout)
    except TrustAnchorFetchError as exc:
        log.error("cannot start without a trust anchor: %s", exc)
        return 1

    app = create_app(settings, anchor)
    log.info("> Running on localhost:%d", settings.port)
    log.info("Serving %s", settings.root)
    uvicorn.run(app, host=settings.host, port=settings.port)
    return 0


def _keygen(args) -> int:
    key = KeyMaterial.generate(args.curve)
    print(json.dumps({
        "curve": args.curve,
        "private": key.private_encoded(),
        "public": key.public_encoded(),
    }, indent=2))
    return 0


def _sign(args) -> int:
    try:
        key = KeyMaterial.from_private_encoded(args.key, args.curve)
    except DecodeError as exc:
        print(f"invalid private key: {exc}", file=sys.stderr)
        return 2
    print(authorization_header(key, args.user, args.identity, args.timestamp))
    return 0


def _recover(args) -> int:
    try:
        key = signing.recover_public_key(args.message, args.signature, args.curve)
    except (DecodeError, RecoveryError) as exc:
        print(f"cannot recover key: {exc}", file=sys.stderr)
        return 2
    print(key.public_encoded())
    return 0


def _fetch(args) -> int:
    try:
        key = KeyMaterial.from_private_encoded(args.key, args.curve)
    except DecodeError as exc:
        print(f"invalid private key: {exc}", file=sys.stderr)
        return 2
    try:
        response = ResourceClient(args.url, key, args.user).get(args.path)
    except requests.RequestException as exc:
        print(f"fetch failed: {exc}", file=sys.stderr)
        return 1
    sys.stdout.buffer.write(response.content)
    return 0


def main(argv=None) -> int:
    load_dotenv()
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv or (argv[0] not in COMMANDS and argv[0] not in ("-h", "--help")):
        argv.insert(0, "serve")
    args = _build_parser().parse_args(argv)
    handlers = {"serve": _serve, "keygen": _keygen, "sign": _sign, "recover": _recover, "fetch": _fetch}
    return handlers[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
