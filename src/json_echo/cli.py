"""
JSON Echo CLI

Command-line interface for the json-echo mock server.

Commands:
    init        - Write a starter configuration file
    serve       - Start the mock HTTP server
    validate    - Load a configuration and report its routes

Examples:
    # Create json-echo.json in the current directory
    json-echo init

    # Serve it
    json-echo serve

    # Check another configuration without serving it
    json-echo --config mocks/api.json validate
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from . import __version__
from .core.config import DEFAULT_CONFIG_FILE, ConfigLoader, default_configuration
from .core.errors import JsonEchoError
from .core.filesystem import FileSystemManager, find_root
from .core.store import RouteStore
from .mock.server import MockConfig, MockServer


BANNER = """
    ░▀▀█░█▀▀░█▀█░█▀█░░░█▀▀░█▀▀░█░█░█▀█
    ░░░█░▀▀█░█░█░█░█░░░█▀▀░█░░░█▀█░█░█
    ░▀▀░░▀▀▀░▀▀▀░▀░▀░░░▀▀▀░▀▀▀░▀░▀░▀▀▀
    Version: {version}
"""

LOG_LEVELS = ['debug', 'info', 'warning', 'error']


def configure_logging(level: str):
    """Configure root logging for the CLI."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


def resolve_config_location(config: str) -> Tuple[FileSystemManager, str]:
    """
    Split the --config value into a file system root and a file name.

    An absolute path uses its own directory as the root. A relative path is
    resolved against the project root found from the working directory.
    """
    path = Path(config)
    if path.is_absolute():
        return FileSystemManager(path.parent), path.name
    return FileSystemManager(find_root()), config


def cmd_init(args) -> int:
    """
    Write the default configuration file.

    Args:
        args: Parsed command-line arguments
    """
    file_system, config_file = resolve_config_location(args.config)
    target = file_system.resolve(config_file)

    print(f"📝 JSON Echo Init")

    if target.exists() and not args.force:
        print(f"❌ {target} already exists (use --force to overwrite)")
        return 1

    loader = ConfigLoader(file_system)
    try:
        asyncio.run(loader.save(config_file, default_configuration()))
    except JsonEchoError as e:
        print(f"❌ Failed to write configuration: {e}")
        return 1

    print(f"✅ Configuration file created at: {target}")
    return 0


def cmd_validate(args) -> int:
    """
    Load a configuration, build the route store and print the route table.

    Args:
        args: Parsed command-line arguments
    """
    file_system, config_file = resolve_config_location(args.config)
    loader = ConfigLoader(file_system)

    print(f"✓ JSON Echo Configuration Validation")
    print(f"   Config file: {file_system.resolve(config_file)}")

    try:
        configuration = asyncio.run(loader.load(config_file))
        store = RouteStore.from_configuration(configuration)
    except JsonEchoError as e:
        print(f"❌ Invalid configuration: {e}")
        return 1

    print(f"   Server: http://{configuration.hostname}:{configuration.port}")
    print(f"   Total routes: {len(store)}")
    print()

    for model in store.get_models():
        line = f"  • {model.identifier} -> {model.status}"
        if model.description:
            line += f"  ({model.description})"
        print(line)

    print()
    print(f"✅ Configuration is valid")
    return 0


def cmd_serve(args) -> int:
    """
    Start the mock HTTP server.

    Args:
        args: Parsed command-line arguments
    """
    print(BANNER.format(version=__version__))

    file_system, config_file = resolve_config_location(args.config)
    loader = ConfigLoader(file_system)

    config = MockConfig(
        log_level=args.log_level,
        cors_enabled=not args.no_cors,
        admin_enabled=not args.no_admin
    )

    logging.getLogger("json_echo").info("Loading config file.")
    try:
        server = asyncio.run(MockServer.create(loader, config_file, config=config))
    except JsonEchoError as e:
        print(f"❌ Failed to load configuration: {e}")
        return 1

    # Start server (blocking)
    try:
        server.start(host=args.host, port=args.port)
    except KeyboardInterrupt:
        print("\n\n👋 Mock server stopped")

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="json-echo",
        description="JSON Echo - Mock API server driven by a JSON configuration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create a starter configuration
  %(prog)s init

  # Serve json-echo.json from the project root
  %(prog)s serve

  # Serve on another port
  %(prog)s serve --port 8080

  # Validate a configuration
  %(prog)s --config mocks/api.json validate
        """
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--config', default=DEFAULT_CONFIG_FILE,
                        help=f'Configuration file (default: {DEFAULT_CONFIG_FILE})')
    parser.add_argument('--log-level', default='info', choices=LOG_LEVELS,
                        help='Logging level (default: info)')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # --- INIT command ---
    init_parser = subparsers.add_parser('init', help='Write a starter configuration file')
    init_parser.add_argument('--force', action='store_true', help='Overwrite an existing file')

    # --- SERVE command ---
    serve_parser = subparsers.add_parser('serve', help='Start mock HTTP server')
    serve_parser.add_argument('--host', help='Host to bind (default: hostname from the configuration)')
    serve_parser.add_argument('-p', '--port', type=int, help='Port to bind (default: port from the configuration)')
    serve_parser.add_argument('--no-admin', action='store_true', help='Disable admin API')
    serve_parser.add_argument('--no-cors', action='store_true', help='Disable CORS headers')

    # --- VALIDATE command ---
    subparsers.add_parser('validate', help='Validate a configuration file')

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    # Dispatch to command handler
    if args.command == 'init':
        code = cmd_init(args)
    elif args.command == 'serve':
        code = cmd_serve(args)
    elif args.command == 'validate':
        code = cmd_validate(args)
    else:
        parser.print_help()
        code = 1

    sys.exit(code)


if __name__ == '__main__':
    main()
