"""
Auto-parts assistant entry point.

Usage:
    Console chat:        python main.py console
    Configuration check: python main.py check
"""

import logging
import sys

from src.config import settings

logger = logging.getLogger(__name__)


def _run_console_mode() -> None:
    """Start the interactive console chat (requires an API key)."""
    from console_demo import ConsoleSession

    ConsoleSession().run()


def _run_check_mode() -> int:
    """Print configuration and function validation. Returns a process exit code."""
    from src.conversation.orchestrator import ConversationOrchestrator
    from src.llm.client import ChatCompletionClient

    client = ChatCompletionClient()
    orchestrator = ConversationOrchestrator(client)

    print(f"Business: {settings.business.name} ({settings.business.city})")
    for key, value in client.get_config().items():
        print(f"  {key}: {value}")
    print(f"Functions: {', '.join(orchestrator.registry.function_names(exposed_only=True))}")

    errors = orchestrator.validate_service()
    if errors:
        for error in errors:
            print(f"  ERROR {error}")
        return 1
    print("OK")
    return 0


if __name__ == "__main__":
    mode = sys.argv[1] if len(sys.argv) > 1 else "console"
    if mode == "console":
        _run_console_mode()
    elif mode == "check":
        sys.exit(_run_check_mode())
    else:
        logger.error("Unknown mode %r; expected 'console' or 'check'", mode)
        sys.exit(2)
