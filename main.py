"""
Entry point for the WordPress to Directus migration tool.

Usage::

    python main.py init
    python main.py migrate --limit 10 --post-template <uuid> --collection-template <uuid> \
        --folder <uuid> --author-id <uuid> --author-name "Editor"
    python main.py rollback [batch_id] [--tables post_translations post_tag post]
    python main.py status
    python main.py clean
    python main.py clean-all
"""

import argparse
import json
import sys

from wp_directus.migration_tool import DirectusMigrationTool
from wp_directus.utils.config import CONFIG_FILE
from wp_directus.utils.errors import ConfigurationError, PreFlightCheckError
from wp_directus.utils.log import configure_logging


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Migrate a WordPress export into Directus.")
    parser.add_argument("--config", default=CONFIG_FILE, help="JSON configuration file")
    parser.add_argument("--log-level", default="INFO", help="DEBUG, INFO, WARNING or ERROR")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Create the migration tracking tables")

    migrate = sub.add_parser("migrate", help="Run a migration batch")
    migrate.add_argument("--limit", type=int, default=None, help="Migrate at most N posts (0 = all)")
    migrate.add_argument("--post-template", help="Directus template id for posts")
    migrate.add_argument("--collection-template", help="Directus template id for collections")
    migrate.add_argument("--folder", help="Directus folder id for imported media")
    migrate.add_argument("--author-id", help="Directus user id set as post author")
    migrate.add_argument("--author-name", help="Author display name")
    migrate.add_argument("--skip-connection-check", action="store_true", help="Do not call Directus before starting")

    rollback = sub.add_parser("rollback", help="Roll back a completed batch")
    rollback.add_argument("batch_id", nargs="?", type=int, default=None, help="Batch id (default: last completed)")
    rollback.add_argument("--tables", nargs="+", default=None, help="Only roll back these tables")

    status = sub.add_parser("status", help="Show recent batches and record counts")
    status.add_argument("--limit", type=int, default=10)

    sub.add_parser("clean", help="Delete all migrated rows and the tracking data")
    sub.add_parser("clean-all", help="Delete ALL content rows and the tracking data")
    return parser.parse_args(argv)


def apply_overrides(config: dict, args: argparse.Namespace) -> None:
    """Command-line values win over the configuration file."""
    overrides = {
        ("migration", "post_template_id"): getattr(args, "post_template", None),
        ("migration", "collection_template_id"): getattr(args, "collection_template", None),
        ("migration", "author_id"): getattr(args, "author_id", None),
        ("migration", "author_name"): getattr(args, "author_name", None),
        ("directus", "folder_id"): getattr(args, "folder", None),
    }
    for (section, key), value in overrides.items():
        if value:
            config[section][key] = value


def print_status(report: dict) -> None:
    print("\n=== Recent Migration Batches ===")
    for batch in report["batches"]:
        print(
            f"#{batch['id']} {batch['batch_name']} [{batch['status']}] "
            f"started={batch['started_at']} completed={batch['completed_at']} "
            f"total={batch['total_records']} success={batch['success_count']} failed={batch['failed_count']}"
        )
        if batch["error_message"]:
            print(f"    error: {batch['error_message']}")
    if report["latest_batch"]:
        print("\n=== Latest Batch Details ===")
        for row in report["latest_batch"]:
            print(f"{row['table_name']:<26} {row['status']:<12} {row['count']}")
    print("\n=== Overall Statistics ===")
    for row in report["overall"]:
        print(f"{row['table_name']:<26} {row['status']:<12} {row['count']}")


def main(argv=None) -> int:
    """
    Main function to run the WordPress to Directus migration tool.
    """
    args = parse_args(argv)
    configure_logging(args.log_level)
    tool = DirectusMigrationTool(config_file=args.config)
    apply_overrides(tool.config, args)

    if args.command == "init":
        tool.init()
    elif args.command == "migrate":
        try:
            results = tool.run_migration(args.limit, check_connection=not args.skip_connection_check)
        except (ConfigurationError, PreFlightCheckError) as e:
            tool.log_message(str(e), level="ERROR")
            return 1
        for name, stats in results.items():
            tool.log_message(f"{name}: {stats}")
    elif args.command == "rollback":
        result = tool.rollback(args.batch_id, args.tables)
        tool.log_message(result.message, level="INFO" if result.rolled_back else "WARNING")
        if result.errors:
            tool.log_message(json.dumps(result.errors, ensure_ascii=False), level="ERROR")
            return 1
        if not result.rolled_back:
            return 1
    elif args.command == "status":
        print_status(tool.status(args.limit))
    elif args.command == "clean":
        tool.log_message(f"Cleaned: {tool.clean()}")
    elif args.command == "clean-all":
        tool.log_message(f"Cleaned: {tool.clean_all()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
