"""Command-line interface for photogate."""
import argparse
import json
import logging
import sys
from pathlib import Path

from .analyzer import LSBAnalyzer
from .auth import ActorTokens
from .config import DEFAULT_BLOCK_SIZE, LOG_FORMAT, MAX_UPLOAD_BYTES, TOKEN_TTL_SECONDS, default_store_dir
from .decode import decode_image, validate_upload
from .errors import AuthenticationError, PhotogateError
from .gate import ModerationGate
from .store import JsonPhotoStore
from .types import AnalysisOptions, AnalysisReport, ModerationOutcome, PhotoStatus

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_REFUSED = 2


def _fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(EXIT_ERROR)


def _analyzer(args) -> LSBAnalyzer:
    return LSBAnalyzer(AnalysisOptions(
        block_size=getattr(args, "block_size", DEFAULT_BLOCK_SIZE),
        max_workers=getattr(args, "workers", 1),
    ))


def _gate(args) -> ModerationGate:
    store_dir = getattr(args, "store", None) or default_store_dir()
    return ModerationGate(JsonPhotoStore(Path(store_dir)), analyzer=_analyzer(args))


def _authenticate(args) -> str:
    """Return the actor named by ``--token`` or exit."""
    if not getattr(args, "token", None) or not getattr(args, "public_key", None):
        _fail("This command requires --token and --public-key")

    key_path = Path(args.public_key)
    if not key_path.exists():
        _fail(f"Public key not found: {args.public_key}")

    try:
        return ActorTokens.verify(args.token, key_path.read_text())
    except AuthenticationError as e:
        _fail(f"Authentication failed: {e}")


def _print_report(report: AnalysisReport, as_json: bool, title: str = "LSB Analysis Report") -> None:
    if as_json:
        print(json.dumps(report.to_dict(), indent=2))
        return

    verdict = "SUSPICIOUS" if report.is_suspicious else "CLEAN"
    print(f"\n{'='*60}")
    print(f"  {title}")
    print(f"{'='*60}\n")
    print(f"Verdict: {verdict}")
    print(f"Suspicious blocks: {report.suspect_blocks} / {report.total_blocks}")
    print(f"Suspicious proportion: {report.suspicious_proportion:.2f} "
          f"(max {report.max_suspicious_proportion:.2f})")
    print(f"Thresholds: {report.thresholds['lower']} - {report.thresholds['upper']}")
    print(f"\n{'='*60}\n")


def analyze_command(args):
    """Analyze a local image file."""
    path = Path(args.file)
    if not path.exists():
        _fail(f"File not found: {args.file}")

    try:
        sample, fmt = decode_image(path.read_bytes())
        report = _analyzer(args).analyze(sample, fmt)
    except PhotogateError as e:
        _fail(str(e))

    _print_report(report, args.json)
    sys.exit(EXIT_REFUSED if report.is_suspicious else EXIT_OK)


def submit_command(args):
    """Queue an image for moderation."""
    path = Path(args.file)
    if not path.exists():
        _fail(f"File not found: {args.file}")

    data = path.read_bytes()
    try:
        fmt = validate_upload(data, max_bytes=getattr(args, "max_bytes", MAX_UPLOAD_BYTES))
        photo = _gate(args).submit(data, fmt)
    except PhotogateError as e:
        _fail(str(e))

    print(f"\n✓ Photo submitted for review.\n")
    print(f"Id: {photo.id}")
    print(f"Format: {photo.format_name}")


def list_command(args):
    """List photos by status."""
    status = PhotoStatus(args.status)
    if status is not PhotoStatus.APPROVED:
        _authenticate(args)

    photos = _gate(args).list(status)
    if args.json:
        print(json.dumps([
            {key: value for key, value in photo.to_dict().items() if key != "url"}
            for photo in photos
        ], indent=2))
        return

    if not photos:
        print(f"No {status.value} photos.")
        return
    for photo in photos:
        line = f"{photo.id}  {photo.format_name:<5}  uploaded {photo.uploaded_at.isoformat()}"
        if photo.approved_at:
            line += f"  approved {photo.approved_at.isoformat()} by {photo.approved_by}"
        print(line)


def check_command(args):
    """Analyze a stored photo without changing it."""
    _authenticate(args)
    try:
        report = _gate(args).check(args.id)
    except PhotogateError as e:
        _fail(str(e))
    _print_report(report, args.json, title=f"LSB Analysis: {args.id}")


def status_command(args):
    """Approve or reject a pending photo."""
    actor = _authenticate(args)
    try:
        result = _gate(args).set_status(args.id, args.target, actor)
    except PhotogateError as e:
        _fail(str(e))

    if args.json:
        print(json.dumps({
            "outcome": result.outcome.value,
            "photo": result.photo.to_dict() if result.photo else None,
            "analysis_report": result.report.to_dict() if result.report else None,
        }, indent=2, default=str))
    elif result.outcome is ModerationOutcome.APPROVED:
        print(f"\n✓ Photo {args.id} approved by {actor}.\n")
    elif result.outcome is ModerationOutcome.REJECTED:
        print(f"\n✓ Photo {args.id} rejected and deleted.\n")
        if result.report:
            _print_report(result.report, False)
    else:
        print(f"\n✗ Photo {args.id} has suspicious characteristics and cannot be approved.")
        _print_report(result.report, False)

    sys.exit(EXIT_REFUSED if result.outcome is ModerationOutcome.REFUSED else EXIT_OK)


def delete_command(args):
    """Delete a photo regardless of status."""
    actor = _authenticate(args)
    try:
        _gate(args).delete(args.id, actor)
    except PhotogateError as e:
        _fail(str(e))
    print(f"✓ Photo {args.id} deleted.")


def keys_command(args):
    """Create the key pair that signs and verifies moderator tokens."""
    if not args.generate:
        print("Moderator tokens are signed with an RSA private key and checked with its public key.\n")
        print("Create a pair:")
        print("  photogate keys --generate [-o DIR]\n")
        print("Then issue a token with private.pem and pass public.pem to moderation commands:")
        print("  photogate token -k DIR/private.pem -a mod@example.com")
        print("  photogate approve ID -t TOKEN -k DIR/public.pem")
        return

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)
    public_key, private_key = ActorTokens.generate_signing_keys()

    private_path = output_dir / "private.pem"
    public_path = output_dir / "public.pem"
    private_path.write_text(private_key)
    private_path.chmod(0o600)
    public_path.write_text(public_key)

    print(f"Token signing key:       {private_path}  (used by 'photogate token'; keep private)")
    print(f"Token verification key:  {public_path}  (pass to moderation commands with -k)")


def token_command(args):
    """Issue a moderator token."""
    key_path = Path(args.key)
    if not key_path.exists():
        _fail(f"Private key not found: {args.key}")

    try:
        token = ActorTokens.issue(args.actor, key_path.read_text(), ttl_seconds=args.ttl)
    except ValueError as e:
        _fail(str(e))
    print(token)


def main():
    """Main CLI entry point."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-s", "--store", help="Photo store directory (default: $PHOTOGATE_STORE or ./photogate-data)")
    common.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    common.add_argument("-j", "--json", action="store_true", help="Output as JSON")

    auth = argparse.ArgumentParser(add_help=False)
    auth.add_argument("-t", "--token", help="Moderator token")
    auth.add_argument("-k", "--public-key", help="Token verification key (public.pem from 'photogate keys')")

    analysis = argparse.ArgumentParser(add_help=False)
    analysis.add_argument("-b", "--block-size", type=int, default=DEFAULT_BLOCK_SIZE, help=f"Bits per block (default: {DEFAULT_BLOCK_SIZE})")
    analysis.add_argument("-w", "--workers", type=int, default=1, help="Number of parallel threads for analysis (default: 1)")

    parser = argparse.ArgumentParser(
        prog="photogate",
        description="LSB screening and moderation for submitted photos"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    analyze_parser = subparsers.add_parser("analyze", parents=[common, analysis], help="Analyze a local image")
    analyze_parser.add_argument("file", help="Image to analyze")
    analyze_parser.set_defaults(func=analyze_command)

    submit_parser = subparsers.add_parser("submit", parents=[common], help="Submit an image for review")
    submit_parser.add_argument("file", help="Image to submit")
    submit_parser.set_defaults(func=submit_command)

    list_parser = subparsers.add_parser("list", parents=[common, auth], help="List photos")
    list_parser.add_argument("--status", choices=["pending", "approved"], default="approved", help="Status to list (default: approved)")
    list_parser.set_defaults(func=list_command)

    check_parser = subparsers.add_parser("check", parents=[common, auth, analysis], help="Analyze a stored photo")
    check_parser.add_argument("id", help="Photo id")
    check_parser.set_defaults(func=check_command)

    for target, help_text in (("approve", "Approve a pending photo"), ("reject", "Reject and delete a pending photo")):
        status_parser = subparsers.add_parser(target, parents=[common, auth, analysis], help=help_text)
        status_parser.add_argument("id", help="Photo id")
        status_parser.set_defaults(func=status_command, target="approved" if target == "approve" else "rejected")

    delete_parser = subparsers.add_parser("delete", parents=[common, auth], help="Delete a photo")
    delete_parser.add_argument("id", help="Photo id")
    delete_parser.set_defaults(func=delete_command)

    keys_parser = subparsers.add_parser("keys", help="Create the RSA key pair for moderator tokens")
    keys_parser.add_argument("-g", "--generate", action="store_true", help="Write private.pem (signs tokens) and public.pem (verifies them)")
    keys_parser.add_argument("-o", "--output", default="./keys", help="Directory for the key files (default: ./keys)")
    keys_parser.set_defaults(func=keys_command)

    token_parser = subparsers.add_parser("token", help="Issue a moderator token")
    token_parser.add_argument("-k", "--key", required=True, help="Token signing key (private.pem from 'photogate keys')")
    token_parser.add_argument("-a", "--actor", required=True, help="Moderator identity (e.g. email)")
    token_parser.add_argument("--ttl", type=int, default=TOKEN_TTL_SECONDS, help=f"Token lifetime in seconds (default: {TOKEN_TTL_SECONDS})")
    token_parser.set_defaults(func=token_command)

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(EXIT_ERROR)

    logging.basicConfig(
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.WARNING,
        format=LOG_FORMAT,
    )

    args.func(args)


if __name__ == "__main__":
    main()
