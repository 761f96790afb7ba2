"""
Interactive console chat with the auto-parts assistant.

Runs the real orchestrator, function registry and session store against the
configured chat-completions endpoint (requires OPENROUTER_API_KEY). Each
line typed is one WhatsApp message from the given phone number.

Usage:
    python console_demo.py
    python console_demo.py --phone 5215512345678
"""

import argparse
import asyncio
import json

from src.channels.whatsapp import conversation_id_for
from src.config import settings
from src.conversation.orchestrator import ConversationOrchestrator
from src.conversation.session_store import InMemorySessionStore
from src.llm.client import ChatCompletionClient

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

DEFAULT_PHONE = "5215500000000"


class ConsoleSession:
    """Chats with the assistant in the terminal, one turn per line."""

    def __init__(self, phone: str = DEFAULT_PHONE) -> None:
        self.phone = phone
        self.conversation_id = conversation_id_for(phone)
        self.store = InMemorySessionStore()
        self.orchestrator = ConversationOrchestrator(ChatCompletionClient(), store=self.store)

    def agent_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[{settings.business.name}]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def run(self) -> None:
        asyncio.run(self._run())

    async def _run(self) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  AUTO-PARTS ASSISTANT - Console Chat{RESET}")
        print(f"{BOLD}  Business: {settings.business.name}  Model: {settings.llm.model}{RESET}")
        print(f"{BOLD}  Type 'quit' to exit, 'reset' to start over{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

        problems = self.orchestrator.validate_service()
        for problem in problems:
            print(f"{YELLOW}  ! {problem}{RESET}")

        async with self.store:
            session = self.orchestrator.start_conversation(self.conversation_id, self.phone)
            self.agent_say(session.messages[0].content)

            while True:
                user_input = (await asyncio.to_thread(input, f"\n{BLUE}[Cliente] {RESET}")).strip()
                if not user_input:
                    continue
                if user_input.lower() in ("quit", "exit", "q"):
                    print(f"\n{DIM}Session ended.{RESET}")
                    break
                if user_input.lower() == "reset":
                    session = self.orchestrator.reset_conversation(self.conversation_id, self.phone)
                    self.agent_say(session.messages[0].content)
                    continue

                result = await self.orchestrator.process_message(
                    self.conversation_id, user_input, self.phone
                )
                if result.error:
                    print(f"{RED}  error: {result.error}{RESET}")
                self.agent_say(result.content)
                if result.function_name:
                    self.system_log(f"Function: {result.function_name}")
                self.system_log(f"Status: {result.conversation_state.status.value}")
                info = result.conversation_state.client_info.to_wire()
                if info:
                    self.system_log(f"Client info: {json.dumps(info, ensure_ascii=False)}")

        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{DIM}  Stats: {self.orchestrator.get_stats()}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Auto-parts assistant console chat")
    parser.add_argument("--phone", default=DEFAULT_PHONE, help="customer phone number")
    args = parser.parse_args()
    ConsoleSession(args.phone).run()


if __name__ == "__main__":
    main()
