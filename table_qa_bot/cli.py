"""
Interactive command-line chatbot.

Loads a CSV table at startup, then answers questions about it until the
user types ``exit``.
"""

import argparse
import sys
from typing import Callable, List, Optional

from table_qa_bot.config import settings
from table_qa_bot.core.agent import TableQueryAgent
from table_qa_bot.data.loader import TableLoader, table_shape
from table_qa_bot.llm.client import InferenceClient
from table_qa_bot.llm.schemas import TableAnswer
from table_qa_bot.utils.exceptions import ConfigurationError, TableQABotError
from table_qa_bot.utils.logger import LoggerFactory, logger

BANNER = "AI-Powered Table Question Answering"
EXIT_COMMAND = "exit"


def format_answer(answer: TableAnswer) -> str:
    coordinates = ", ".join(f"({row}, {col})" for row, col in answer.coordinates)
    return "\n".join([
        f"Answer: {answer.answer}",
        f"Coordinates: [{coordinates}]",
        f"Cells: [{', '.join(answer.cells)}]",
        f"Aggregator: {answer.aggregator}",
    ])


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Ask natural-language questions about a CSV table.")
    p.add_argument("--csv", dest="csv_path", default=settings.data.source_path,
                   help=f"CSV file to load (default: {settings.data.source_path})")
    p.add_argument("--endpoint", default=settings.inference.endpoint_url,
                   help="Inference endpoint URL")
    p.add_argument("--max-retries", type=_positive_int, default=settings.inference.max_retries,
                   help=f"Attempts allowed while the model warms up (default: {settings.inference.max_retries})")
    p.add_argument("--log-level", default=settings.logging.level,
                   help=f"Logging level (default: {settings.logging.level})")
    return p


def run_loop(agent: TableQueryAgent, read: Callable[[str], str] = input) -> None:
    """Read queries until ``exit`` or end of input, printing each answer."""
    while True:
        try:
            query = read("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if not query:
            continue
        if query.lower() == EXIT_COMMAND:
            break

        try:
            answer = agent.ask(query)
        except TableQABotError as e:
            logger.error(f"Query failed: {e}")
            continue

        print(format_answer(answer))
        print()


def main(argv: Optional[List[str]] = None, read: Callable[[str], str] = input) -> int:
    args = build_parser().parse_args(argv)
    LoggerFactory.set_level(args.log_level)

    try:
        if not settings.inference.api_token:
            raise ConfigurationError(
                "HUGGINGFACE_TOKEN not found",
                details="Set it in the environment or in a .env file"
            )
        client = InferenceClient(endpoint_url=args.endpoint, max_retries=args.max_retries)
        agent = TableQueryAgent(loader=TableLoader(), client=client)
        table = agent.load_table(args.csv_path)
    except TableQABotError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    rows, columns = table_shape(table)
    print(BANNER)
    print(f"Loaded {args.csv_path} ({rows} rows, {columns} columns)")
    print(f"Enter your query (type '{EXIT_COMMAND}' to quit):")

    run_loop(agent, read)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
