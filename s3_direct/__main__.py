"""Command line entry point for the object-store client."""
import argparse
import getpass
import logging
from pathlib import Path
import sys

from .controller import ObjectStoreClient
from .errors import ConfigError, ObjectStoreError
from .models import Credentials
from .profiles import ConfigStorage, EnvironmentCredentialProvider
from .services import ObjectStoreService
from .settings import AppSettings, SettingsStorage
from .transport import BotocoreTransport
from .ui_utils import format_listing, load_package_info, summarize_transfers

LOGGER = logging.getLogger("s3_direct")


def build_parser() -> argparse.ArgumentParser:
    info = load_package_info()
    parser = argparse.ArgumentParser(prog="python -m s3_direct", description=info.summary)
    parser.add_argument("--version", action="version", version=info.version or "unknown")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    connect = commands.add_parser("connect", help="verify credentials and save the connection")
    connect.add_argument("--access-key", required=True)
    connect.add_argument("--bucket", required=True)
    connect.add_argument("--secret", help="secret access key (prompted when omitted)")

    ls = commands.add_parser("ls", help="list files and folders under a prefix")
    ls.add_argument("path", nargs="?", default="")

    put = commands.add_parser("put", help="upload local files")
    put.add_argument("files", nargs="+")
    put.add_argument("--path", default="", help="destination folder")
    put.add_argument("--meta", action="append", default=[], metavar="KEY=VALUE")

    get = commands.add_parser("get", help="download an object")
    get.add_argument("key")
    get.add_argument("destination", nargs="?", default=".")

    rm = commands.add_parser("rm", help="delete objects")
    rm.add_argument("keys", nargs="+")

    commands.add_parser("disconnect", help="forget the saved connection")
    return parser


def _parse_metadata(pairs: list[str]) -> dict[str, str]:
    metadata = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep:
            raise SystemExit(f"Invalid metadata '{pair}', expected KEY=VALUE")
        metadata[name] = value
    return metadata


def _connect(client: ObjectStoreClient, settings: AppSettings) -> None:
    defaults = Credentials(
        access_key_id="",
        secret_access_key="",
        bucket="",
        region=settings.region,
        endpoint=settings.endpoint,
        use_ssl=settings.use_ssl,
    )
    provider = EnvironmentCredentialProvider(defaults=defaults)
    if provider.load() is not None:
        client.connect_from(provider)
    else:
        client.connect_saved()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = SettingsStorage().load()
    client = ObjectStoreClient(
        service=ObjectStoreService(BotocoreTransport(timeout=settings.timeout)),
        storage=ConfigStorage(),
        settings=settings,
    )

    try:
        if args.command == "connect":
            secret = args.secret or getpass.getpass("Secret access key: ")
            result = client.connect(args.access_key, secret, args.bucket)
            print(f"Connected to {args.bucket}: {len(result.files)} file(s), {len(result.folders)} folder(s)")
            return 0
        if args.command == "disconnect":
            client.clear_config()
            print("Saved connection removed")
            return 0

        _connect(client, settings)
        if args.command == "ls":
            lines = format_listing(client.list_files(args.path))
            print("\n".join(lines) if lines else "(empty)")
        elif args.command == "put":
            metadata = _parse_metadata(args.meta)
            files = [(Path(name).name, Path(name).read_bytes()) for name in args.files]
            results = client.upload_files(files, args.path, metadata=metadata)
            for result in results:
                print(f"{'ok' if result.success else 'FAILED'}  {result.key}  {result.error or ''}".rstrip())
            print(summarize_transfers(results))
            return 0 if all(result.success for result in results) else 1
        elif args.command == "get":
            target = client.download_to(args.key, args.destination)
            print(f"Saved {args.key} to {target}")
        elif args.command == "rm":
            results = client.delete_files(args.keys)
            print(summarize_transfers(results))
            return 0 if all(result.success for result in results) else 1
    except ConfigError as exc:
        print(f"{exc}. Run 'connect' first or set S3_ACCESS_KEY_ID, S3_SECRET_ACCESS_KEY and S3_BUCKET.", file=sys.stderr)
        return 2
    except (ObjectStoreError, OSError) as exc:
        LOGGER.debug("Command '%s' failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
