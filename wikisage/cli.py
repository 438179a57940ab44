"""CLI interface for wikisage"""

import itertools
import sys
import time
import threading
import argparse
import logging
import textwrap
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from colorama import init, Fore, Style

from .agent import SageAgent
from .feedback import BAD, GOOD, FeedbackStore
from .responses import Response, SEARCH
from . import config, __version__, __author__, __powered_by__

# Initialize colorama for Windows support
init(autoreset=True)

logger = logging.getLogger(__name__)


# ── Output pacing ────────────────────────────────────────────────────────────
def _typewrite(text: str, color: str = Fore.WHITE, delay: float = config.TYPE_DELAY, end: str = '\n'):
    """Echo text a character at a time; long answers scroll faster."""
    if len(text) > config.FAST_TYPE_AFTER:
        delay = min(delay, config.FAST_TYPE_DELAY)
    print(color, end='', flush=True)
    for ch in text:
        print(ch, end='', flush=True)
        time.sleep(delay)
    print(Style.RESET_ALL, end=end, flush=True)


@contextmanager
def _busy(message: str, color: str = Fore.YELLOW):
    """Spin on the current line until the block finishes, even if it raises."""
    done = threading.Event()

    def spin():
        for frame in itertools.cycle('⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏'):
            if done.wait(config.SPINNER_INTERVAL):
                return
            sys.stdout.write(f"\r{color}  {frame}  {message}{Style.RESET_ALL}")
            sys.stdout.flush()

    worker = threading.Thread(target=spin, daemon=True)
    worker.start()
    try:
        yield
    finally:
        done.set()
        worker.join()
        sys.stdout.write('\r' + ' ' * (len(message) + 8) + '\r')
        sys.stdout.flush()


class WikiSageCLI:
    """Interactive shell around a SageAgent"""

    def __init__(self, memory_path: Optional[Path] = None, offline: bool = False):
        self.memory_path = memory_path
        self.offline = offline
        self.agent: Optional[SageAgent] = None
        self.last_query = None
        self.last_answer: Optional[Response] = None
        self.answers_since_feedback = 0
        self.feedback_interval = 5  # ask about every 5th encyclopedia answer

    def print_banner(self):
        W = 62
        lines = [
            "",
            f"{Fore.MAGENTA}╔{'═' * W}╗{Style.RESET_ALL}",
            f"{Fore.MAGENTA}║{Fore.CYAN + Style.BRIGHT}{'·  w i k i s a g e  ·':^{W}}{Style.RESET_ALL}{Fore.MAGENTA}║{Style.RESET_ALL}",
            f"{Fore.MAGENTA}║{Fore.YELLOW}{'Memory + Wikipedia Question Answering':^{W}}{Style.RESET_ALL}{Fore.MAGENTA}║{Style.RESET_ALL}",
            f"{Fore.MAGENTA}║{'─' * W}║{Style.RESET_ALL}",
            f"{Fore.MAGENTA}║{Fore.WHITE}{f'v{__version__}  ·  {__powered_by__}':^{W}}{Style.RESET_ALL}{Fore.MAGENTA}║{Style.RESET_ALL}",
            f"{Fore.MAGENTA}╚{'═' * W}╝{Style.RESET_ALL}",
            "",
        ]
        for line in lines:
            print(line)
            time.sleep(0.030)

    def print_help(self):
        bar = f"{Fore.CYAN}{'─' * 60}{Style.RESET_ALL}"
        print(f"\n{bar}")
        _typewrite("  Commands", Fore.CYAN + Style.BRIGHT, delay=0.035)
        print(bar)
        for cmd, desc in [
            ("help",  "Show this help message"),
            ("stats", "Show memory and session statistics"),
            ("clear", "Forget the conversation and cached searches"),
            ("quit",  "Exit the application"),
        ]:
            print(f"  {Fore.GREEN}{cmd:<10}{Style.RESET_ALL}{Fore.WHITE}{desc}{Style.RESET_ALL}")

        print(f"\n{Fore.CYAN + Style.BRIGHT}  Examples{Style.RESET_ALL}")
        for ex in [
            "What is photosynthesis?",
            "Difference between Mercury and Venus",
            "Spell banana backwards",
            "What is 12 * 7?",
        ]:
            print(f"  {Fore.YELLOW}›{Style.RESET_ALL} {ex}")
        print(f"{bar}\n")

    def print_response(self, response: Response):
        sep = f"{Fore.GREEN}{'─' * 62}{Style.RESET_ALL}"
        print(f"\n{sep}")
        print(f"{Fore.GREEN + Style.BRIGHT}  {config.CLI_ASSISTANT}{Style.RESET_ALL}")
        print(sep)

        for raw_line in response.text.splitlines():
            chunks = textwrap.wrap(raw_line, width=config.CLI_WIDTH) if len(raw_line) > config.CLI_WIDTH else [raw_line]
            for line in chunks:
                if not line.strip():
                    print()
                else:
                    _typewrite(line, Fore.WHITE, delay=0.013)

        if response.sources:
            print(f"{Fore.BLUE}  [{', '.join(response.sources)}]{Style.RESET_ALL}")
        print(sep)
        self._prompt_feedback()
        print()

    def print_error(self, error: str):
        print(f"\n{Fore.RED}  ✗  {error}{Style.RESET_ALL}\n")

    def print_stats(self):
        stats = self.agent.get_statistics()
        session = stats.pop("session")
        print()
        for key, value in list(stats.items()) + list(session.items()):
            label = key.replace('_', ' ').capitalize()
            print(f"  {Fore.GREEN}{label:<24}{Style.RESET_ALL}{value}")
        print()

    def get_input(self) -> str:
        try:
            prompt = (
                f"{Fore.LIGHTMAGENTA_EX}  ╰─{Style.RESET_ALL}"
                f"{Fore.LIGHTMAGENTA_EX + Style.BRIGHT} {config.CLI_PROMPT} {Style.RESET_ALL}"
                f"{Fore.LIGHTMAGENTA_EX}›{Style.RESET_ALL} "
            )
            return input(prompt).strip()
        except (KeyboardInterrupt, EOFError):
            return "quit"

    def _prompt_feedback(self):
        """Occasionally ask whether an encyclopedia answer helped."""
        if not self.last_query or not self.last_answer or self.last_answer.category != SEARCH:
            return
        self.answers_since_feedback += 1
        if self.answers_since_feedback < self.feedback_interval:
            return
        self.answers_since_feedback = 0

        try:
            print(f"\n{Fore.CYAN}  Was this answer helpful? (y/n/skip): {Style.RESET_ALL}", end='')
            answer = input().strip().lower()
        except (KeyboardInterrupt, EOFError):
            return

        if answer in ('y', 'yes'):
            self.agent.record_feedback(self.last_query, self.last_answer.text, GOOD)
            print(f"{Fore.GREEN}  Thanks for the feedback!{Style.RESET_ALL}")
        elif answer in ('n', 'no'):
            self.agent.record_feedback(self.last_query, self.last_answer.text, BAD)
            print(f"{Fore.GREEN}  Feedback recorded.{Style.RESET_ALL}")

    def initialize_agent(self) -> bool:
        print()
        try:
            with _busy("Loading memory…", Fore.YELLOW):
                self.agent = SageAgent(feedback_store=FeedbackStore(), offline=self.offline)
                path = self.memory_path or config.DEFAULT_MEMORY_FILE
                if self.memory_path or path.exists():
                    self.agent.load_file(path)
            print(f"{Fore.GREEN}  ✓  Ready! {len(self.agent.store)} memory entries loaded.{Style.RESET_ALL}\n")
            return True
        except Exception as e:
            self.print_error(f"Failed to initialize: {e}")
            logger.exception("Initialization error")
            return False

    def handle_command(self, command: str):
        """
        Handle special commands.
        Returns True to continue, False to exit, None if not a command.
        """
        cmd = command.lower()

        if cmd in ('quit', 'exit', 'q'):
            _typewrite("\n  Goodbye!", Fore.MAGENTA, delay=0.022)
            print()
            return False

        if cmd == 'help':
            self.print_help()
            return True

        if cmd in ('stats', 'statistics'):
            self.print_stats()
            return True

        if cmd == 'clear':
            self.agent.reset()
            print(f"{Fore.GREEN}  ✓  Conversation cleared{Style.RESET_ALL}\n")
            return True

        return None

    def run(self):
        self.print_banner()
        self.print_help()

        if not self.initialize_agent():
            return

        while True:
            try:
                user_input = self.get_input()
                if not user_input:
                    continue

                result = self.handle_command(user_input)
                if result is False:
                    break
                if result is True:
                    continue

                self.last_query = user_input
                with _busy("Thinking…", Fore.CYAN):
                    response = self.agent.ask(user_input)
                self.last_answer = response
                self.print_response(response)

            except KeyboardInterrupt:
                print(f"\n{Fore.YELLOW}  Use 'quit' to exit.{Style.RESET_ALL}\n")
            except Exception as e:
                self.print_error(f"Unexpected error: {e}")
                logger.exception("Unexpected error in main loop")


def main():
    """Main entry point: parse flags and start the interactive shell"""
    parser = argparse.ArgumentParser(
        prog="wikisage",
        description="wikisage - question answering over a local memory and Wikipedia",
        epilog=f"Developed by: {__author__}",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"wikisage v{__version__}",
    )
    parser.add_argument(
        "--memory", "-m",
        type=Path,
        default=None,
        help=f"JSON file of memory records (default: {config.DEFAULT_MEMORY_FILE})",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Answer from local memory only; never contact Wikipedia",
    )
    args = parser.parse_args()

    cli = WikiSageCLI(memory_path=args.memory, offline=args.offline)
    try:
        cli.run()
    except Exception as e:
        print(f"{Fore.RED}Fatal error: {e}{Style.RESET_ALL}")
        logging.exception("Fatal error")
        sys.exit(1)


if __name__ == "__main__":
    main()
