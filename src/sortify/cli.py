"""
Command-line interface for Sortify.

Runs the watcher and edits the rules in the config file. A running
watcher picks up saved changes on its own.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from sortify import config
from sortify.exceptions import SortifyError
from sortify.rules import RuleSet

logger = logging.getLogger("sortify")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="sortify",
        description="Sort new files in your Downloads folder by extension",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    def add_config_option(sub):
        sub.add_argument("--config", type=Path, default=None, help="Config file path")

    # Watcher
    watch_parser = subparsers.add_parser("watch", help="Watch a folder and sort new files")
    watch_parser.add_argument("--folder", type=Path, default=None, help="Folder to watch")
    watch_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    add_config_option(watch_parser)

    # Status
    status_parser = subparsers.add_parser("status", help="Show sorter status")
    status_parser.add_argument("--folder", type=Path, default=None, help="Folder to watch")
    add_config_option(status_parser)

    # Config file
    init_parser = subparsers.add_parser("init-config", help="Write the default config file")
    init_parser.add_argument("--force", action="store_true", help="Overwrite an existing config")
    add_config_option(init_parser)

    enable_parser = subparsers.add_parser("enable", help="Turn sorting on")
    add_config_option(enable_parser)
    disable_parser = subparsers.add_parser("disable", help="Turn sorting off")
    add_config_option(disable_parser)

    # Rules
    rules_parser = subparsers.add_parser("rules", help="List or edit sorting rules")
    add_config_option(rules_parser)
    rules_sub = rules_parser.add_subparsers(dest="rules_command")
    rules_sub.add_parser("list", help="List rules")
    add_rule = rules_sub.add_parser("add", help="Add a rule")
    add_rule.add_argument("extension", help="File extension, e.g. .pdf")
    add_rule.add_argument("folder", help="Subfolder name, e.g. Documents")
    remove_rule = rules_sub.add_parser("remove", help="Remove rules for an extension")
    remove_rule.add_argument("extension", help="File extension, e.g. .pdf")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        if args.command == "watch":
            from sortify import watcher
            watcher.run(
                folder=args.folder,
                config_path=args.config,
                verbose=args.verbose,
            )

        elif args.command == "status":
            print_status(args.folder, args.config)

        elif args.command == "init-config":
            return init_config(args.config, force=args.force)

        elif args.command in ("enable", "disable"):
            set_enabled(args.config, args.command == "enable")

        elif args.command == "rules":
            return edit_rules(args)

        else:
            parser.print_help()
            return 1

    except SortifyError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


def _config_path(path: Optional[Path]) -> Path:
    return Path(path) if path else config.CONFIG_FILE


def print_rules(rule_set: RuleSet) -> None:
    if not rule_set.rules:
        print("  (no rules)")
        return
    for rule in rule_set.rules:
        print(f"  {rule.extension:<10} -> {rule.folder_name}")


def print_status(folder: Optional[Path] = None, config_path: Optional[Path] = None) -> None:
    """Print current sorter status."""
    folder = Path(folder) if folder else config.DOWNLOADS_FOLDER
    config_path = _config_path(config_path)
    rule_set = config.load_config(config_path)

    print("=" * 50)
    print("Sortify Status")
    print("=" * 50)

    print(f"\nWatched folder: {folder}")
    print(f"  Exists: {folder.exists()}")

    print(f"\nConfig file: {config_path}")
    print(f"  Exists: {config_path.exists()}")

    print(f"\nSorting: {'ENABLED' if rule_set.enabled else 'DISABLED'}")
    print(f"Rules ({len(rule_set.rules)}):")
    print_rules(rule_set)

    print("=" * 50)


def init_config(config_path: Optional[Path] = None, force: bool = False) -> int:
    config_path = _config_path(config_path)
    if config_path.exists() and not force:
        print(f"Config already exists: {config_path} (use --force to overwrite)")
        return 1

    config.save_config(RuleSet.default(), config_path)
    print(f"Wrote default config: {config_path}")
    return 0


def set_enabled(config_path: Optional[Path], enabled: bool) -> None:
    config_path = _config_path(config_path)
    rule_set = config.load_config(config_path).with_enabled(enabled)
    config.save_config(rule_set, config_path)
    print(f"Sorting {'enabled' if enabled else 'disabled'}")


def edit_rules(args: argparse.Namespace) -> int:
    config_path = _config_path(args.config)
    rule_set = config.load_config(config_path)

    if args.rules_command in (None, "list"):
        print_rules(rule_set)
        return 0

    if args.rules_command == "add":
        new_rules = config.normalize_rules([(args.extension, args.folder)])
        if not new_rules:
            print("Extension must not be blank and folder must be a subfolder name", file=sys.stderr)
            return 1
        rules = list(rule_set.rules) + new_rules
        if rule_set.lookup(new_rules[0].extension) is not None:
            print(f"Note: an earlier rule for {new_rules[0].extension} takes precedence")

    elif args.rules_command == "remove":
        removed = config.normalize_rules([(args.extension, "-")])
        if not removed:
            print("Extension must not be blank", file=sys.stderr)
            return 1
        rules = [r for r in rule_set.rules if not r.matches(removed[0].extension)]
        if len(rules) == len(rule_set.rules):
            print(f"No rule for {removed[0].extension}")
            return 1

    else:
        return 1

    config.save_config(RuleSet(enabled=rule_set.enabled, rules=rules), config_path)
    print_rules(config.load_config(config_path))
    return 0


if __name__ == "__main__":
    sys.exit(main())
