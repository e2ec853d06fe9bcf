"""
Interactive UI for Manual Monitor Control

Provides non-blocking user interface for:
- Manual sentiment refresh
- Status display

Runs in separate thread so polling is never blocked by the terminal.
"""

import threading
import select
import sys
import logging
import time
from colorama import Fore, Style

from sentiment_monitor.ui.console_view import print_entry


class InteractiveUI:
    """Non-blocking interactive UI for manual monitor control"""

    def __init__(self, cache, on_quit=None):
        """
        Initialize interactive UI.

        Args:
            cache: PollingSentimentCache to control
            on_quit: Callback invoked when the user asks to quit
        """
        self.cache = cache
        self.on_quit = on_quit
        self.running = False
        self.ui_thread = None

    def start(self):
        """Start the interactive UI in a separate thread"""
        self.running = True
        self.ui_thread = threading.Thread(target=self._ui_loop, daemon=True)
        self.ui_thread.start()
        logging.info("[UI] Interactive UI started - Press ENTER for menu")

    def stop(self):
        """Stop the interactive UI"""
        self.running = False
        if self.ui_thread and self.ui_thread is not threading.current_thread():
            self.ui_thread.join(timeout=1.0)

    def _ui_loop(self):
        """Main UI loop (runs in separate thread)"""
        print(f"{Fore.GREEN}  Commands: [ENTER] = Menu  |  'r' = Refresh  |  's' = Status  |  'q' = Quit{Style.RESET_ALL}\n")

        while self.running:
            try:
                if sys.platform == 'win32':
                    import msvcrt
                    if msvcrt.kbhit():
                        key = msvcrt.getch().decode('utf-8').lower()
                        self.handle_command(key)
                else:
                    if select.select([sys.stdin], [], [], 0.1)[0]:
                        key = sys.stdin.read(1).lower()
                        self.handle_command(key)

                threading.Event().wait(0.1)

            except (OSError, ValueError) as e:
                logging.debug(f"[UI] Input check error: {e}")
                threading.Event().wait(1.0)

    def handle_command(self, key: str):
        """Handle user command"""
        if key in ('\n', '\r', ''):
            self._show_menu()

        elif key == 'r':
            print(f"\n{Fore.YELLOW}[MANUAL] Sentiment refresh requested{Style.RESET_ALL}")
            self.cache.request_refresh()

        elif key == 's':
            print_entry(self.cache.get_current(), time.time())

        elif key == 'q':
            print(f"\n{Fore.RED}[SHUTDOWN] Graceful shutdown requested...{Style.RESET_ALL}")
            self.running = False
            if self.on_quit:
                self.on_quit()

        elif key in ('h', '?'):
            self._show_menu()

    def _show_menu(self):
        """Display interactive menu"""
        print(f"\n{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}")
        print(f"  {Fore.GREEN}r{Style.RESET_ALL} - Refresh sentiment now")
        print(f"  {Fore.GREEN}s{Style.RESET_ALL} - Show current sentiment and cache status")
        print(f"  {Fore.RED}q{Style.RESET_ALL} - Quit (graceful shutdown)")
        print(f"{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}\n")
