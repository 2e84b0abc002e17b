"""CLI entry point for the repoguard webhook server."""

import argparse
import os


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="repoguard-server",
        description="repoguard: GitHub App that protects default branches of new repositories",
    )
    parser.add_argument("--host", default=None, help="Bind host (default: REPOGUARD_HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default: REPOGUARD_PORT or 3000)")
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Development mode: colored console logs at debug level",
    )
    args = parser.parse_args(argv)

    if args.dev:
        os.environ["REPOGUARD_JSON_LOGS"] = "0"
        os.environ["REPOGUARD_LOG_LEVEL"] = "debug"

    import uvicorn

    # Imported after the env overrides so Settings picks them up
    from repoguard.config import Settings

    config = Settings()
    uvicorn.run(
        "repoguard.main:app",
        host=args.host or config.host,
        port=args.port or config.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
