#!/usr/bin/env python3
"""
Script Base - shared setup for the command-line clients in this directory

Scripts run from backend/scripts/ but import the backend modules, so the
parent directory is put on sys.path as soon as this module is imported.
Each script gets a log file under scripts/log/, an argument parser with
the --api-url and --debug options, and exit codes from run_script().

Usage:
    from script_base import ScriptBase, run_script

    def main():
        script = ScriptBase(name="my_script", description="Does something useful")
        script.add_api_url_arg()
        script.add_debug_arg()
        args = script.parse_args()
        ...
        return True

    if __name__ == "__main__":
        run_script(main)
"""

import sys
import argparse
import logging
from pathlib import Path
from typing import Callable, Optional

# Add parent directory to path for imports (do this immediately)
sys.path.insert(0, str(Path(__file__).parent.parent))

DEFAULT_API_URL = 'http://localhost:5001'


class ScriptBase:
    """Logging, arguments and console formatting for one script run"""

    def __init__(
        self,
        name: str,
        description: str,
        epilog: str = "",
        log_dir: Optional[Path] = None,
        console_level: int = logging.INFO
    ):
        """
        Initialize the script base.

        Args:
            name: Script name (used for log file naming)
            description: Script description for --help
            epilog: Additional help text (examples, etc.)
            log_dir: Directory for log files (default: scripts/log/)
            console_level: Lowest level echoed to the console (the file gets everything)
        """
        self.name = name
        self.log_dir = log_dir or Path(__file__).parent / 'log'
        self.logger = self._setup_logging(console_level)
        self.parser = self._create_parser(description, epilog)

    def _setup_logging(self, console_level: int) -> logging.Logger:
        """Everything goes to the log file; the console only shows console_level and up"""
        self.log_dir.mkdir(exist_ok=True)

        console = logging.StreamHandler(sys.stdout)
        console.setLevel(console_level)

        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(levelname)s - %(message)s',
            handlers=[
                console,
                logging.FileHandler(self.log_dir / f'{self.name}.log', encoding='utf-8')
            ]
        )
        return logging.getLogger(self.name)

    def _create_parser(self, description: str, epilog: str) -> argparse.ArgumentParser:
        return argparse.ArgumentParser(
            description=description,
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=epilog
        )

    # =========================================================================
    # Common Arguments
    # =========================================================================

    def add_api_url_arg(self, default: str = DEFAULT_API_URL):
        """Add --api-url argument."""
        self.parser.add_argument(
            '--api-url',
            default=default,
            help=f'Base URL of the quiz backend (default: {default})'
        )

    def add_debug_arg(self):
        """Add --debug argument."""
        self.parser.add_argument(
            '--debug',
            action='store_true',
            help='Enable debug logging'
        )

    # =========================================================================
    # Argument Parsing
    # =========================================================================

    def parse_args(self, args=None) -> argparse.Namespace:
        """
        Parse command line arguments and apply common settings.

        Args:
            args: Arguments to parse (default: sys.argv)

        Returns:
            Parsed arguments namespace
        """
        parsed = self.parser.parse_args(args)

        if getattr(parsed, 'debug', False):
            logging.getLogger().setLevel(logging.DEBUG)
            self.logger.debug("Debug logging enabled")

        return parsed

    # =========================================================================
    # Output Formatting
    # =========================================================================

    def print_header(self, title: str = None):
        """Banner printed before the script starts its work"""
        title = title or self.name.replace('_', ' ').title()
        print("=" * 60)
        print(title)
        print("=" * 60)

    def print_summary(self, stats: dict, title: str = "SUMMARY"):
        """
        Print a formatted summary of statistics.

        Args:
            stats: Dict of stat_name -> value
            title: Summary section title
        """
        print()
        print("=" * 60)
        print(title)
        print("=" * 60)

        if stats:
            max_key_len = max(len(str(k)) for k in stats.keys())
            for key, value in stats.items():
                display_key = key.replace('_', ' ').title()
                print(f"{display_key:<{max_key_len + 5}} {value}")

        print("=" * 60)


def run_script(main_func: Callable[[], bool]):
    """
    Run a script's main function with standard exception handling.

    Args:
        main_func: Function that returns True on success, False on failure
    """
    try:
        success = main_func()
        sys.exit(0 if success else 1)
    except KeyboardInterrupt:
        print("\nCancelled by user")
        sys.exit(1)
    except Exception as e:
        logging.error(f"Unexpected error: {e}", exc_info=True)
        sys.exit(1)
