"""
Color scheme component for consistent console output formatting.
Maps colorama codes onto the message types used by the monitor.
"""
from colorama import Fore, Style

from sentiment_monitor.core.models import CacheStatus


class Colors:
    """Color scheme for console output"""

    HEADER = Fore.CYAN + Style.BRIGHT
    SUCCESS = Fore.GREEN + Style.BRIGHT
    WARNING = Fore.YELLOW + Style.BRIGHT
    ERROR = Fore.RED + Style.BRIGHT
    INFO = Fore.BLUE + Style.BRIGHT
    DIM = Style.DIM
    RESET = Style.RESET_ALL

    STATUS = {
        CacheStatus.IDLE: DIM,
        CacheStatus.LOADING: INFO,
        CacheStatus.FRESH: SUCCESS,
        CacheStatus.STALE: WARNING,
        CacheStatus.FAILED: ERROR,
    }

    @classmethod
    def for_status(cls, status: CacheStatus) -> str:
        return cls.STATUS.get(status, cls.RESET)
