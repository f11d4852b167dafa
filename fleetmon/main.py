"""Main entry point for the fleetmon health monitor."""
import argparse
import logging

from .config.config_manager import ConfigManager
from .core.data_manager import DataCollectionManager
from .logging_setup import setup_logging
from .ui.display_manager import DisplayManager

logger = logging.getLogger(__name__)


def main(argv=None):
    """Main entry point for the application."""
    parser = argparse.ArgumentParser(description="Fleet health monitor")
    parser.add_argument("--config", default=None, help="YAML configuration file")
    parser.add_argument("--refresh-rate", type=float, default=None)
    parser.add_argument("--once", action="store_true", help="poll every collector once, print and exit")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)

    setup_logging(args.log_level)

    config = ConfigManager.load_config(args.config)
    if args.refresh_rate is not None and args.refresh_rate > 0:
        config.display.refresh_rate = args.refresh_rate

    data_manager = DataCollectionManager.from_config(config)
    display_manager = DisplayManager(config.display)

    if args.once:
        try:
            display_manager.print_once(data_manager.poll_once())
        finally:
            data_manager.stop_collection()
        return

    data_manager.start_collection()
    try:
        display_manager.run_display(data_manager)
    except KeyboardInterrupt:
        pass
    finally:
        data_manager.stop_collection()


if __name__ == "__main__":
    main()
