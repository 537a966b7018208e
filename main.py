"""Life Simulator: server launcher."""

import argparse
from pathlib import Path

import uvicorn

from lifesim.app import create_app
from lifesim.config import Settings, setup_logging


def main():
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(description="Life Simulator API server")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help=f"Save directory (default: {settings.data_dir})")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument("--log-level", default=settings.log_level,
                        help="Root log level (DEBUG, INFO, WARNING, ...)")
    args = parser.parse_args()

    setup_logging(args.log_level)
    app = create_app(data_dir=args.data_dir, settings=settings)

    print(f"Starting Life Simulator on http://{args.host}:{args.port} ...")
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)


if __name__ == "__main__":
    main()
