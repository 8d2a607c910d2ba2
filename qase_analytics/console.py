"""
Interactive console chat against a real Qase account

Reads OPENAI_API_KEY and QASE_API_TOKEN from the environment (or .env) and
streams answers to the terminal. Commands: /projeto <CODE>, /limpar, /sair.
"""

import asyncio

from colorama import Fore, Style, init

from qase_analytics.agents.orchestrator import Project, StreamCallbacks
from qase_analytics.config.settings import settings
from qase_analytics.services.chat import ChatService
from qase_analytics.utils.logger import setup_logger

CONSOLE_USER = "console"


def _print_token(token: str) -> None:
    print(token, end="", flush=True)


def _print_tool_start(name: str) -> None:
    print(f"{Style.DIM}[{name}...]{Style.RESET_ALL} ", end="", flush=True)


def _print_projects(projects: list) -> None:
    codes = ", ".join(project.code if isinstance(project, Project) else str(project) for project in projects)
    print(f"\n{Fore.CYAN}Projetos disponíveis: {codes}")


def _print_error(message: str) -> None:
    print(f"\n{Fore.RED}{message}")


def _print_done(result) -> None:
    tools = ", ".join(result.tools_used) or "none"
    print(f"\n{Style.DIM}({result.duration_ms}ms, tools: {tools}){Style.RESET_ALL}\n")


async def chat_loop(service: ChatService) -> None:
    callbacks = StreamCallbacks(
        on_token=_print_token,
        on_tool_start=_print_tool_start,
        on_needs_project_selection=_print_projects,
        on_error=_print_error,
        on_done=_print_done,
    )

    while True:
        try:
            message = input(f"{Fore.YELLOW}> {Style.RESET_ALL}").strip()
        except (EOFError, KeyboardInterrupt):
            break

        if not message:
            continue
        if message == "/sair":
            break
        if message == "/limpar":
            service.clear_chat_history(CONSOLE_USER)
            print(f"{Fore.GREEN}Histórico limpo.\n")
            continue
        if message.startswith("/projeto "):
            result = await service.set_project(CONSOLE_USER, message.split(maxsplit=1)[1])
            print(f"{Fore.GREEN if result.success else Fore.RED}{result.message}\n")
            continue

        await service.send_message_stream(CONSOLE_USER, message, callbacks)


def main() -> None:
    init(autoreset=True)
    setup_logger(level="WARNING", to_file=True)

    print(f"\n{Fore.MAGENTA}{'='*80}")
    print(f"{Fore.MAGENTA}QASE ANALYTICS - console chat (model: {settings.openai_model})")
    print(f"{Fore.MAGENTA}{'='*80}\n")

    service = ChatService(token_lookup=lambda user_id: settings.qase_api_token or None)
    asyncio.run(chat_loop(service))


if __name__ == "__main__":
    main()
