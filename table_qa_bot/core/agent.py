"""
Main agent orchestration class.

Loads the table once and answers queries about it through the inference client.
"""

from typing import Optional

from pydantic import ValidationError

from table_qa_bot.data.loader import Table, TableLoader, table_shape
from table_qa_bot.llm.client import InferenceClient
from table_qa_bot.llm.schemas import TableAnswer, TableQuestion
from table_qa_bot.utils.exceptions import NotLoadedError, QueryValidationError
from table_qa_bot.utils.logger import logger


class TableQueryAgent:
    """
    Main agent that ties the table loader to the inference client.

    Provides a unified interface for loading data and processing queries.
    """

    def __init__(
        self,
        loader: Optional[TableLoader] = None,
        client: Optional[InferenceClient] = None
    ) -> None:
        self._loader = loader or TableLoader()
        self._client = client or InferenceClient()
        self._table: Optional[Table] = None
        self._source: Optional[str] = None

    @property
    def is_loaded(self) -> bool:
        return self._table is not None

    @property
    def table(self) -> Table:
        if self._table is None:
            raise NotLoadedError("No table loaded", details="Call load_table() first")
        return self._table

    @property
    def source(self) -> Optional[str]:
        return self._source

    def load_table(self, file_path: Optional[str] = None) -> Table:
        """
        Load the table that every later query is asked against.

        Args:
            file_path: Path to the CSV file (default from config)

        Returns:
            The loaded table
        """
        self._table = self._loader.load(file_path)
        self._source = file_path
        rows, columns = table_shape(self._table)
        logger.debug(f"Agent ready with {rows}x{columns} table")
        return self._table

    def ask(self, query: str) -> TableAnswer:
        """
        Ask one question about the loaded table.

        Raises:
            NotLoadedError: If no table has been loaded
            QueryValidationError: If the query is blank
        """
        table = self.table
        try:
            payload = TableQuestion(
                table={column: list(cells) for column, cells in table.items()},
                query=query
            )
        except ValidationError as e:
            raise QueryValidationError("Invalid query", details=e.errors()[0]["msg"])

        logger.debug(f"Sending query: {payload.query}")
        return self._client.query(payload)
