import argparse
import json
import logging
import sys
from pathlib import Path

from .addressing import DataType
from .codec import decode_durable
from .config import load_config
from .errors import SaveDataError
from .logging_config import configure_logging

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="savedata",
        description="Per-account save data server: system and session saves, run completion ledger.",
    )
    parser.add_argument("--debug", action="store_true", help="Enable verbose debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP server.")
    serve.add_argument("--config", dest="config_path", type=Path, default=None, help="YAML config file.")
    serve.add_argument("--host", default=None, help="Override the configured bind address.")
    serve.add_argument("--port", type=int, default=None, help="Override the configured port.")

    inspect = sub.add_parser("inspect", help="Decode a stored .pzs file and print it as JSON.")
    inspect.add_argument("path", type=Path)
    inspect.add_argument(
        "--type",
        dest="data_type",
        choices=["system", "session"],
        default=None,
        help="Save type; inferred from the file name when omitted.",
    )

    init_db = sub.add_parser("init-db", help="Create the account store schema.")
    init_db.add_argument("--config", dest="config_path", type=Path, default=None, help="YAML config file.")
    return parser.parse_args(argv)


def infer_data_type(path: Path) -> DataType:
    if path.stem == "system":
        return DataType.SYSTEM
    if path.stem.startswith("session"):
        return DataType.SESSION
    raise SaveDataError(f"cannot infer save type from file name {path.name}; pass --type")


def cmd_inspect(args) -> int:
    data_type = DataType[args.data_type.upper()] if args.data_type else infer_data_type(args.path)
    save = decode_durable(data_type, args.path.read_bytes())
    print(json.dumps(save.model_dump(by_alias=True), indent=2, sort_keys=True))
    return 0


def cmd_init_db(args) -> int:
    from .db import SqlAccountStore

    config = load_config(args.config_path)
    url = config.resolved_database_url()
    SqlAccountStore.from_url(url).create_schema()
    logger.info("Account store schema ready at %s", url)
    return 0


def cmd_serve(args) -> int:
    import uvicorn

    from .api import create_app
    from .bootstrap import build_runtime

    config = load_config(args.config_path)
    if not args.debug:
        configure_logging(config.log_level)
    runtime = build_runtime(config)
    app = create_app(runtime.service, runtime.authenticator)
    uvicorn.run(app, host=args.host or config.host, port=args.port or config.port)
    return 0


COMMANDS = {
    "serve": cmd_serve,
    "inspect": cmd_inspect,
    "init-db": cmd_init_db,
}


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(level=logging.DEBUG if args.debug else logging.INFO)
    try:
        return COMMANDS[args.command](args)
    except (SaveDataError, OSError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
