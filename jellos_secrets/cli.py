#!/usr/bin/env python3
"""
Jellos Secrets CLI

Usage:
    jellos-secrets health                    # Show provider health
    jellos-secrets get GITHUB_TOKEN -n prod  # Resolve a secret (printed masked)
    jellos-secrets validate .jellos.yml      # Check every reference resolves
    jellos-secrets load-env --env-file .env  # Load an env file and report
    jellos-secrets serve                     # Run the diagnostics MCP server
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .env_loader import EnvLoaderConfig, load_environment_variables
from .errors import SecretsError
from .manager import create_secret_manager
from .masking import mask_secret


async def show_health() -> int:
    manager = await create_secret_manager()
    health = await manager.get_providers_health()

    print("🔐 Secret Provider Health\n")
    if not health:
        print("❌ No secret providers available")
        return 1

    for provider_type, check in health.items():
        icon = "✅" if check.available else "❌"
        print(f"{icon} {provider_type.value}: {check.status.value}")
        if check.version:
            print(f"   Version: {check.version}")
        if check.error:
            print(f"   Error: {check.error}")
        if check.help_text:
            print(f"   Help: {check.help_text}")
        print()
    return 0


async def get_secret(key: str, namespace: str = None) -> int:
    manager = await create_secret_manager()
    result = await manager.get_secret(key, namespace)

    if not result.resolved:
        print(f"❌ {result.error}")
        return 1

    print(f"✅ {key} = {mask_secret(result.value)} (from {result.provider.value})")
    return 0


async def validate_file(path: Path) -> int:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        print(f"❌ Cannot read {path}: {e}")
        return 1

    manager = await create_secret_manager()
    errors = await manager.validate_secrets(content)

    if not errors:
        print(f"✅ All secret references in {path} resolve")
        return 0

    print(f"❌ {len(errors)} unresolved secret reference(s) in {path}:")
    for error in errors:
        print(f"   {error.reference}: {error.message}")
    return 1


async def load_env(env_file: str, environment: str, override: bool) -> int:
    manager = await create_secret_manager()
    result = await load_environment_variables(EnvLoaderConfig(
        env_file_path=env_file,
        environment=environment,
        override=override,
        secret_manager=manager,
    ))

    print(f"✅ Loaded {result.loaded} variable(s), {result.masked} tracked for masking")
    for name in result.variables:
        print(f"   {name}")
    for error in result.errors:
        print(f"❌ {error}")
    return 1 if result.failed else 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="jellos-secrets",
        description="Jellos Secrets - provider-backed secret resolution",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Providers (highest priority first):
  keychain   macOS Keychain (security CLI)
  1password  1Password (op CLI)
  env        JELLOS_SECRET_<NAMESPACE>_<KEY> variables

Examples:
  %(prog)s health                       Show provider health
  %(prog)s get GITHUB_TOKEN -n prod     Resolve a secret (masked)
  %(prog)s validate config.yml          Check references resolve
  %(prog)s load-env --env-file .env     Load an env file
  %(prog)s serve --port 8000            Run the diagnostics MCP server
"""
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("health", help="Show provider health")

    get_parser = subparsers.add_parser("get", help="Resolve a secret and print it masked")
    get_parser.add_argument("key", help="Secret key")
    get_parser.add_argument(
        "-n", "--namespace",
        default=None,
        help="Namespace (default: configured default environment)"
    )

    validate_parser = subparsers.add_parser("validate", help="Validate secret references in a file")
    validate_parser.add_argument("file", type=Path, help="File containing ${secret:...} references")

    load_parser = subparsers.add_parser("load-env", help="Load an env file with secrets resolved")
    load_parser.add_argument("--env-file", default=".env", help="Env file path (default: .env)")
    load_parser.add_argument(
        "-e", "--environment",
        default="dev",
        help="Namespace for references without one (default: dev)"
    )
    load_parser.add_argument(
        "--override",
        action="store_true",
        help="Override variables that are already set"
    )

    serve_parser = subparsers.add_parser("serve", help="Run the diagnostics MCP server")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        from .server import run
        run(host=args.host, port=args.port)
        return 0

    if args.command == "health":
        coro = show_health()
    elif args.command == "get":
        coro = get_secret(args.key, args.namespace)
    elif args.command == "validate":
        coro = validate_file(args.file)
    else:
        coro = load_env(args.env_file, args.environment, args.override)

    try:
        return asyncio.run(coro)
    except SecretsError as e:
        print(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
