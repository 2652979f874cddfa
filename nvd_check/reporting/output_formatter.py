"""
@file output_formatter.py
@brief Terminal output formatting and color management module

Provides colored, formatted output for the dependency check with:
- ANSI color codes for terminal output
- Status indicator functions (success, error)
- The "Checking dependencies for ..." status line
- One line per vulnerability finding with a clickable NVD URL

@details
Uses ANSI escape sequences for styling:
- Foreground colors for text
- Bold formatting for emphasis
- OSC 8 hyperlink protocol for clickable URLs in modern terminals
"""


class Colors:
    """
    @class Colors
    @brief ANSI color code constants for terminal styling
    """
    RESET = "\033[0m"
    BOLD = "\033[1m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"


def style(text, *codes):
    """Wrap text in the given Colors codes."""
    return f"{''.join(codes)}{text}{Colors.RESET}"


def print_success(message):
    print(f"{Colors.GREEN}✓ {message}{Colors.RESET}")


def print_error(message):
    print(f"{Colors.RED}✗ {message}{Colors.RESET}")


def print_checking(label):
    """
    Print the status line naming the application under check.

    @param label str "<app name> <version>"
    """
    print(f"Checking dependencies for {style(label, Colors.BOLD, Colors.YELLOW)} ...")


def print_vulnerability(vulnerability):
    """
    Print one finding on a single line.

    @param vulnerability Vulnerability Finding to display

    @details
    Format example:
    @code
    CVE-2021-44228 [CRITICAL 10.0] 🔗 https://nvd.nist.gov/vuln/detail/CVE-2021-44228
    @endcode
    """
    url = vulnerability.url
    clickable_url = f"\033]8;;{url}\033\\{url}\033]8;;\033\\"
    if vulnerability.cvss_score is not None:
        rating = f"{vulnerability.severity} {vulnerability.cvss_score}"
    else:
        rating = vulnerability.severity
    print(f"{style(vulnerability.name, Colors.BOLD, Colors.RED)} [{rating}] {Colors.BLUE}🔗 {clickable_url}{Colors.RESET}")


def print_stats(dependency_count, vulnerability_count):
    """Print final summary of a check."""
    print(f"\n{Colors.BOLD}{Colors.CYAN}{'=' * 60}{Colors.RESET}")
    print(f"{Colors.BOLD}Check Summary:{Colors.RESET}")
    print(f"  • Dependencies analyzed: {Colors.BLUE}{dependency_count}{Colors.RESET}")
    print(f"  • Vulnerabilities found: {Colors.RED}{vulnerability_count}{Colors.RESET}")
    print(f"{Colors.BOLD}{Colors.CYAN}{'=' * 60}{Colors.RESET}\n")
