"""
Entry point for the WordPress gallery conversion tool.

Runs the batch conversion client-side: the candidates of a post type are
discovered first and then converted one document per call, so an interrupted
run can simply be started again.
"""

import argparse
import sys

from gallery_converter.conversion_tool import GalleryConversionTool, configure_logging
from gallery_converter.utils.errors import ConversionError
from gallery_converter.utils.pre_flight_checks import PreFlightCheckError, run_pre_flight_checks

CONFIG_FILE = "config/conversion_config.json"


def main() -> int:
    """
    Main function to run the gallery conversion tool.
    """
    parser = argparse.ArgumentParser(description="Convert WordPress galleries into Imagely galleries.")
    parser.add_argument("--config", default=CONFIG_FILE, help="Path to the JSON configuration file.")
    parser.add_argument("--scope", help="Post type to convert (e.g. post, page).")
    parser.add_argument("--post-id", type=int, help="Convert a single post instead of a whole post type.")
    parser.add_argument("--list-scopes", action="store_true", help="List the post types that can be converted.")
    parser.add_argument("--skip-checks", action="store_true", help="Skip the pre-flight checks.")
    args = parser.parse_args()

    tool = GalleryConversionTool(config_file=args.config)
    configure_logging(tool.reports_dir)
    tool.log_message("Starting gallery conversion.")

    if not args.skip_checks:
        try:
            run_pre_flight_checks(tool.config)
        except PreFlightCheckError as e:
            tool.log_message(str(e), level="ERROR")
            return 1

    try:
        if args.list_scopes:
            for option in tool.list_eligible_scopes():
                print(f"{option.value}\t{option.label}")
            return 0

        if args.post_id:
            result = tool.process_one(args.post_id)
            tool.log_message(result.message)
            if result.edit_url:
                tool.log_message(f"Edit the post manually: {result.edit_url}", level="WARNING")
            return 0 if result.rewritten else 2

        if not args.scope:
            tool.log_message("Either --scope, --post-id or --list-scopes is required.", level="ERROR")
            return 1

        rows = tool.convert_scope(args.scope)
    except ConversionError as e:
        tool.log_message(e.message, level="ERROR")
        if e.edit_url:
            tool.log_message(f"Edit the post manually: {e.edit_url}", level="ERROR")
        return 1

    converted = sum(1 for row in rows if row.get("rewritten"))
    tool.log_message(f"Conversion finished: {converted} of {len(rows)} document(s) converted.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
