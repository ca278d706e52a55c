"""
Console output utilities - Colors and formatting for the admin tools.
"""

from typing import Any, List


class Colors:
    """ANSI color codes for terminal output"""
    HEADER = '\033[95m'
    OKBLUE = '\033[94m'
    OKCYAN = '\033[96m'
    OKGREEN = '\033[92m'
    WARNING = '\033[93m'
    FAIL = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'


class Console:
    """Console output helper methods"""

    @staticmethod
    def success(msg: str):
        print(f"{Colors.OKGREEN}{msg}{Colors.ENDC}")

    @staticmethod
    def error(msg: str):
        print(f"{Colors.FAIL}{msg}{Colors.ENDC}")

    @staticmethod
    def warning(msg: str):
        print(f"{Colors.WARNING}{msg}{Colors.ENDC}")

    @staticmethod
    def info(msg: str):
        print(f"{Colors.OKBLUE}{msg}{Colors.ENDC}")

    @staticmethod
    def section(title: str):
        """Print section header with separator"""
        print(f"\n{Colors.HEADER}{Colors.BOLD}{title}{Colors.ENDC}")
        print(f"{Colors.HEADER}{'=' * len(title)}{Colors.ENDC}\n")

    @staticmethod
    def key_value(key: str, value: Any, key_color: str = Colors.BOLD, value_color: str = Colors.OKCYAN):
        print(f"{key_color}{key}:{Colors.ENDC} {value_color}{value}{Colors.ENDC}")

    @staticmethod
    def findings(title: str, items: List[str], color: str):
        """Print a titled bullet list"""
        if not items:
            return
        print(f"\n{color}{Colors.BOLD}{title} ({len(items)}){Colors.ENDC}")
        for item in items:
            print(f"  {color}• {item}{Colors.ENDC}")
