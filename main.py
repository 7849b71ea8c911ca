import argparse
import json
import sys
import threading
import time

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from config.config import Config
from models.chat import ChatRequest, PipelineResult
from orchestrator.core import ChatPipeline, build_pipeline
from utils.logger import configure_logging


def show_loading_animation(stop_event: threading.Event) -> None:
    """
    Show a loading animation in the console.

    Args:
        stop_event: A threading.Event that will be set to stop the animation
    """
    while not stop_event.is_set():
        for char in '|/-\\':
            if stop_event.is_set():
                break
            sys.stdout.write(f'\r\033[93mThinking {char}\033[0m')
            sys.stdout.flush()
            time.sleep(0.1)

    # Clear the loading line
    sys.stdout.write('\r' + ' ' * 40 + '\r')
    sys.stdout.flush()


def display_result(result: PipelineResult, verbose: bool = False) -> None:
    tools = ', '.join(result.tools_used) or 'none'
    print(f"\nTools used: {tools}")
    print(f"\nAI: {result.response}\n")
    print(f"[Execution time: {result.metadata.get('execution_time', 'N/A')}s]")

    if result.metadata.get('fallback'):
        print(f"[Fallback used: {result.metadata.get('error', 'unknown error')}]")

    if verbose:
        print("\n=== Structured data ===")
        print(json.dumps(result.to_record(), indent=2, ensure_ascii=False, default=str))
    print()


def process_message(
    pipeline: ChatPipeline,
    message: str,
    context: dict,
    verbose: bool = False,
) -> PipelineResult:
    stop_animation = threading.Event()
    loading_thread = threading.Thread(target=show_loading_animation, args=(stop_animation,))
    loading_thread.daemon = True
    loading_thread.start()

    def on_progress(step: str) -> None:
        if verbose:
            sys.stdout.write('\r' + ' ' * 40 + '\r')
            print(f"  {step}")

    try:
        result = pipeline.process(ChatRequest(message=message, context=context), on_progress)
    finally:
        # Ensure loading is stopped even if there's an error
        stop_animation.set()
        loading_thread.join()

    display_result(result, verbose=verbose)
    return result


def run_interactive(pipeline: ChatPipeline, user: str, verbose: bool) -> None:
    history: list[dict[str, str]] = []

    print("\n=== AI Chat ===")
    print("Type 'exit' to quit, 'clear' to forget the conversation, or 'help' for commands\n")

    while True:
        try:
            user_input = input("You: ").strip()

            if not user_input:
                continue

            if user_input.lower() in ('exit', 'quit', 'q'):
                print("\nGoodbye!")
                break

            if user_input.lower() == 'clear':
                history.clear()
                print("\nConversation cleared.\n")
                continue

            if user_input.lower() == 'help':
                print("\n=== Available Commands ===")
                print("help      - Show this help message")
                print("clear     - Forget the conversation so far")
                print("exit/quit - Exit the program\n")
                continue

            context = {"user": {"name": user}, "message_history": list(history)}
            result = process_message(pipeline, user_input, context, verbose=verbose)

            history.append({"role": "user", "content": user_input})
            history.append({"role": "assistant", "content": result.response})

        except (KeyboardInterrupt, EOFError):
            print("\nExiting...")
            break


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Chat with the intent-routing pipeline")
    parser.add_argument("message", nargs="?", help="The message to send")
    parser.add_argument("--user", default="User", help="Name of the user being assisted")
    parser.add_argument("--interactive", action="store_true", help="Run in interactive mode")
    parser.add_argument("--verbose", action="store_true", help="Show progress and structured data")
    args = parser.parse_args(argv)

    if args.verbose:
        configure_logging(level="DEBUG", console=True)

    config = Config()
    print(f"Using model: {config.get_model_info()}")
    for problem in config.validate():
        print(f"Warning: {problem}")

    pipeline = build_pipeline(config)

    if args.interactive:
        run_interactive(pipeline, args.user, args.verbose)
        return 0

    message = args.message
    if not message:
        try:
            message = input("Enter your message: ").strip()
        except (KeyboardInterrupt, EOFError):
            message = ""

    if not message:
        print("Error: Message is required")
        return 1

    process_message(pipeline, message, {"user": {"name": args.user}}, verbose=args.verbose)
    return 0


if __name__ == "__main__":
    sys.exit(main())
