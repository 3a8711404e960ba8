"""
Table QA Bot - ask natural-language questions about a CSV table.

Loads a CSV file into a column-oriented table and sends each question to a
hosted table-question-answering model.
"""

__version__ = "1.0.0"
