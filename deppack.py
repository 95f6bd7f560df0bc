import argparse
import json
import os
import sys

from depcore.bundler import CommandBundler
from depcore.config import CONFIG_FILE, load_config
from depcore.errors import DeployError
from depcore.logs import log, set_verbose
from pipeline import create_distribution, scan


def emit(payload):
    """Print a JSON payload on stdout."""
    print(json.dumps(payload, indent=2))


def fail(error):
    emit(error.to_payload())
    print(error, file=sys.stderr)
    sys.exit(1)


def cmd_build(args):
    try:
        config = load_config(args.root, env_file=args.env_file,
                             in_place=True if args.in_place else None)
        bundler = None
        if config.bundler_command and not args.no_bundle:
            bundler = CommandBundler(config.bundler_command, cwd=config.root)
        report = create_distribution(config, bundler)
    except DeployError as e:
        fail(e)
    emit(report.model_dump())


def cmd_scan(args):
    """Extract, resolve and match every entry module without writing anything."""
    try:
        config = load_config(args.root, env_file=args.env_file)
        outcomes = scan(config)
    except DeployError as e:
        fail(e)
    folders = []
    for outcome in outcomes:
        folders.append({
            "folder": outcome.folder,
            "status": outcome.status.value,
            "entry_module": outcome.entry_module,
            "error": outcome.error,
            "sites": [
                site.model_dump(include={"raw_match_text", "kind", "canonical_id", "pattern",
                                         "lookup_key", "external", "resolved_files", "error"},
                                mode="json")
                for site in outcome.sites
            ],
        })
    emit({"success": True, "root": config.root, "folders": folders})


def cmd_init(args):
    root = os.path.abspath(args.root or os.getcwd())
    target = os.path.join(root, CONFIG_FILE)
    if os.path.exists(target) and not args.force:
        print(f"Error: '{target}' already exists (use --force to overwrite).", file=sys.stderr)
        sys.exit(1)
    try:
        config = load_config(root, env_file=os.devnull, environ={})
    except DeployError as e:
        fail(e)
    with open(target, "w") as f:
        for key, value in config.to_env().items():
            # Quoted so JSON arrays survive the dotenv parser
            f.write(f"{key}='{value}'\n")
    log(f"Created {target}")


def main():
    parser = argparse.ArgumentParser(description="deppack - resolve dynamic require() calls for bundling")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output (sent to stderr)")
    subparsers = parser.add_subparsers(dest="command")

    build = subparsers.add_parser("build", help="Rewrite entry modules and generate the registry")
    build.add_argument("root", nargs="?", help="Tree root (default: DEPLOYMENT_SOURCE or current directory)")
    build.add_argument("--in-place", action="store_true", help="Rewrite entry modules in place instead of under the dist folder")
    build.add_argument("--no-bundle", action="store_true", help="Skip the bundler even if one is configured")
    build.add_argument("--env-file", help="Settings file (default: <root>/.deployment)")

    scan_parser = subparsers.add_parser("scan", help="Report import sites and matches without writing")
    scan_parser.add_argument("root", nargs="?")
    scan_parser.add_argument("--env-file")

    init = subparsers.add_parser("init", help="Write a .deployment file with the default settings")
    init.add_argument("root", nargs="?")
    init.add_argument("--force", action="store_true")

    args = parser.parse_args()
    set_verbose(args.verbose)

    if args.command == "build": cmd_build(args)
    elif args.command == "scan": cmd_scan(args)
    elif args.command == "init": cmd_init(args)
    else: parser.print_help()


if __name__ == "__main__":
    main()
