import argparse
import asyncio
import sys

from config.config import Config
from models.rag_types import AnswerResult
from orchestrator.core import RagOrchestrator
from utils.token_tracker import TokenTracker


def render_result(result: AnswerResult) -> str:
    """Format an AnswerResult for the terminal."""
    if not result.is_success:
        return f"Error ({result.error.code}): {result.error.message}"

    lines = [result.answer_text]
    if result.citations:
        lines.append("")
        lines.append("Sources:")
        for citation in result.citations:
            lines.append(f"  [{citation.index}] {citation.title} - {citation.source_url}")
    elif not result.grounded:
        lines.append("")
        lines.append("(ungrounded answer - no web sources were used)")
    if "search_unavailable" in result.warnings:
        lines.append("(web search was unavailable for this question)")
    return "\n".join(lines)


async def show_loading_animation(stop_event: asyncio.Event) -> None:
    while not stop_event.is_set():
        for char in "|/-\\":
            if stop_event.is_set():
                break
            sys.stdout.write(f"\r\033[93mSearching {char}\033[0m")
            sys.stdout.flush()
            await asyncio.sleep(0.1)

    sys.stdout.write("\r" + " " * 20 + "\r")
    sys.stdout.flush()


async def ask(orchestrator: RagOrchestrator, query: str, web_search: bool) -> AnswerResult:
    stop_animation = asyncio.Event()
    spinner = asyncio.create_task(show_loading_animation(stop_animation))
    try:
        return await orchestrator.answer(query, web_search=web_search)
    finally:
        stop_animation.set()
        await spinner


async def print_recent_sources(orchestrator: RagOrchestrator, limit: int = 10) -> None:
    sources = await orchestrator.recent_sources(limit)
    if not sources:
        print("\nNo sources stored yet.\n")
        return
    print("\n=== Recent Sources ===")
    for source in sources:
        print(f"  {source.retrieved_at:%Y-%m-%d %H:%M}  {source.title}\n      {source.url}")
    print()


async def interactive(orchestrator: RagOrchestrator, web_search: bool) -> None:
    token_tracker = TokenTracker()

    print("\n=== W9 Search ===")
    print("Type 'exit' to quit, 'web' to toggle web search, or 'help' for commands\n")

    try:
        while True:
            try:
                user_input = (await asyncio.to_thread(input, "You: ")).strip()
            except (EOFError, KeyboardInterrupt):
                print("\nExiting...")
                break

            if not user_input:
                continue

            command = user_input.lower()
            if command in ("exit", "quit"):
                print("\nGoodbye!")
                break

            if command == "web":
                web_search = not web_search
                print(f"\nWeb search is now {'on' if web_search else 'off'}\n")
                continue

            if command == "sources":
                await print_recent_sources(orchestrator)
                continue

            if command == "stats":
                print("\n=== Token Usage ===")
                print(token_tracker.format_summary())
                print()
                continue

            if command == "help":
                print("\n=== Available Commands ===")
                print("help      - Show this help message")
                print("web       - Toggle web search on/off")
                print("sources   - Show recently stored sources")
                print("stats     - Show token usage statistics")
                print("exit/quit - Exit the program\n")
                continue

            result = await ask(orchestrator, user_input, web_search)
            token_tracker.record(result)
            print(f"\nAI: {render_result(result)}")
            if result.is_success:
                print(f"[Tokens used: {result.usage.total_tokens}]\n")
            else:
                print()
    finally:
        if token_tracker.requests > 0 or token_tracker.failed_answers > 0:
            print("\n=== Final Token Usage ===")
            print(token_tracker.format_summary())


async def run(args: argparse.Namespace) -> int:
    config = Config.from_env(args.env_file)
    for problem in config.validate():
        print(f"Warning: {problem}", file=sys.stderr)

    try:
        orchestrator = RagOrchestrator.from_config(config)
    except ValueError as e:
        print(f"Error initializing: {e}", file=sys.stderr)
        return 1

    print(f"Using model: {config.get_model_info()}", file=sys.stderr)
    try:
        if args.query:
            result = await ask(orchestrator, " ".join(args.query), args.web)
            print(render_result(result))
            return 0 if result.is_success else 2
        await interactive(orchestrator, args.web)
        return 0
    finally:
        await orchestrator.aclose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Answer questions with optional web grounding.")
    parser.add_argument("query", nargs="*", help="Ask one question and exit")
    parser.add_argument("--web", action="store_true", help="Ground answers in web search results")
    parser.add_argument("--env-file", default=None, help="Path to a .env file")
    return parser


def main() -> None:
    args = build_parser().parse_args()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
