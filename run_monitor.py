#!/usr/bin/env python3
"""
FX Sentiment Monitor - Entry Point
==================================

Polls Grok for a forex market sentiment report and keeps the latest
per-pair sentiment on screen:
- Refetches every REFETCH_INTERVAL seconds
- Retries transient failures with exponential backoff
- Backs off on rate limits and alerts instead of retrying
- Keeps showing last-known-good data, labelled stale or failed
"""

import sys
import os
import time
import logging
import argparse
from pathlib import Path

# Add the project root to the path to ensure imports work correctly
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv
from colorama import Fore, Style, init

# Initialize colorama for Windows
init(autoreset=True)

# Load environment variables
load_dotenv()

from config import config
from sentiment_monitor import __version__
from sentiment_monitor.analyzers import SentimentExtractor
from sentiment_monitor.core import AlertManager, PollingSentimentCache, PollingSettings
from sentiment_monitor.ui import InteractiveUI, print_entry
from sentiment_monitor.utils import GrokReportFetcher


def setup_logging(cfg, debug: bool = False):
    """Configure root file/console logging and the dedicated Grok log"""
    main_log = cfg.LOG_FILES.get('main', 'logs/sentiment_monitor.log')
    os.makedirs(os.path.dirname(main_log) or '.', exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    file_handler = logging.FileHandler(main_log)
    file_handler.setLevel(cfg.LOG_LEVELS.get('file', 'DEBUG'))
    file_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(threadName)s - %(message)s'))
    root.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel('DEBUG' if debug else cfg.LOG_LEVELS.get('console', 'WARNING'))
    console_handler.setFormatter(logging.Formatter('%(levelname)s - %(message)s'))
    root.addHandler(console_handler)

    # Grok prompts and raw responses go to their own file only
    grok_log_path = cfg.LOG_FILES.get('grok', 'logs/grok_interactions.log')
    os.makedirs(os.path.dirname(grok_log_path) or '.', exist_ok=True)
    grok_logger = logging.getLogger('grok')
    grok_logger.setLevel(cfg.LOG_LEVELS.get('grok', 'DEBUG'))
    grok_handler = logging.FileHandler(grok_log_path)
    grok_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
    grok_logger.addHandler(grok_handler)
    grok_logger.propagate = False


def build_cache(cfg) -> PollingSentimentCache:
    """Wire fetcher, extractor and alerting into a polling cache"""
    return PollingSentimentCache(
        fetcher=GrokReportFetcher.from_config(cfg),
        extractor=SentimentExtractor(),
        notifier=AlertManager(webhook=cfg.ALERT_WEBHOOK, cooldown=cfg.ALERT_THROTTLE),
        settings=PollingSettings.from_config(cfg),
    )


def print_banner(cfg):
    print(f"{Fore.CYAN}{Style.BRIGHT}{'=' * 60}")
    print(f"  FX SENTIMENT MONITOR v{__version__}")
    print(f"{'=' * 60}{Style.RESET_ALL}")
    print(f"  XAI API:     {Fore.GREEN + 'Configured' if cfg.XAI_API_KEY else Fore.RED + 'Missing'}{Style.RESET_ALL}")
    print(f"  Model:       {cfg.GROK_MODEL}")
    print(f"  Instruments: {', '.join(cfg.SENTIMENT_INSTRUMENTS)}")
    print(f"  Refetch:     every {cfg.REFETCH_INTERVAL:.0f}s (stale after {cfg.STALE_AFTER:.0f}s)\n")


def main():
    """Main entry point for the sentiment monitor"""
    parser = argparse.ArgumentParser(description=f'FX Sentiment Monitor v{__version__}')

    parser.add_argument('--validate-config', action='store_true',
                        help='Validate configuration and exit')
    parser.add_argument('--once', action='store_true',
                        help='Run a single fetch cycle, print the result and exit')
    parser.add_argument('--interval', type=float, default=None,
                        help='Seconds between console refreshes (default: DISPLAY_INTERVAL)')
    parser.add_argument('--no-interactive', action='store_true',
                        help='Disable the interactive key menu')
    parser.add_argument('--debug', action='store_true',
                        help='Log debug output to the console')

    args = parser.parse_args()

    print_banner(config)

    if args.validate_config:
        print(f"{Fore.BLUE}[*] Validating configuration...{Style.RESET_ALL}")
        issues = config.validate_config()
        if issues:
            print(f"{Fore.RED}[-] Configuration issues found:{Style.RESET_ALL}")
            for issue in issues:
                print(f"  * {issue}")
            return 1
        print(f"{Fore.GREEN}[+] Configuration is valid{Style.RESET_ALL}")
        return 0

    setup_logging(config, debug=args.debug)

    issues = config.validate_config()
    if issues:
        print(f"{Fore.RED}[!] Configuration validation issues:{Style.RESET_ALL}")
        for issue in issues:
            print(f"  {Fore.YELLOW}* {issue}{Style.RESET_ALL}")

    cache = build_cache(config)

    if args.once:
        cache.run_cycle()
        print_entry(cache.get_current(), time.time())
        return 0 if cache.get_current().records else 1

    shutdown = {'requested': False}

    def request_shutdown():
        shutdown['requested'] = True

    ui = None
    if not args.no_interactive and sys.stdin.isatty():
        ui = InteractiveUI(cache, on_quit=request_shutdown)
        ui.start()

    interval = args.interval if args.interval is not None else config.DISPLAY_INTERVAL

    try:
        cache.start()
        last_render = 0.0
        while not shutdown['requested']:
            now = time.time()
            if now - last_render >= interval:
                print_entry(cache.get_current(), now)
                last_render = now
            time.sleep(0.5)
        return 0

    except KeyboardInterrupt:
        print(f"\n{Fore.YELLOW}[!] Monitor stopped by user{Style.RESET_ALL}")
        logging.info("Sentiment monitor stopped by user")
        return 0
    except Exception as e:
        print(f"\n{Fore.RED}[!] Critical error: {e}{Style.RESET_ALL}")
        logging.error(f"Critical error in sentiment monitor: {e}", exc_info=True)
        return 1
    finally:
        cache.stop()
        if ui:
            ui.stop()


if __name__ == '__main__':
    sys.exit(main())
