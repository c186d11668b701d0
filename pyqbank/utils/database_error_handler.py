"""
Database error handling utilities for consistent constraint error processing.
"""
import re
from typing import Optional, Dict, Any

from sqlalchemy.exc import IntegrityError

from pyqbank.exceptions.question_exceptions import QuestionConflictError


class DatabaseErrorHandler:
    """Utility class for handling database constraint errors."""

    # PostgreSQL (asyncpg) and SQLite phrasing
    PATTERNS = {
        'unique': [
            r'duplicate key value violates unique constraint "([^"]+)"',
            r'violates unique constraint "([^"]+)"',
            r'UNIQUE constraint failed: ([^,\s]+)'
        ],
        'foreign_key': [
            r'violates foreign key constraint "([^"]+)"',
            r'FOREIGN KEY constraint failed'
        ],
        'not_null': [
            r'null value in column "([^"]+)"',
            r'NOT NULL constraint failed: ([^,\s]+)'
        ],
        'check': [
            r'violates check constraint "([^"]+)"',
            r'CHECK constraint failed: ([^,\s]+)'
        ]
    }

    @staticmethod
    def parse_constraint_error(error_msg: str) -> Dict[str, Any]:
        """
        Parse constraint error message to extract constraint details.

        Args:
            error_msg: Error message from database

        Returns:
            Dict containing type, name and, when present, the offending key
        """
        constraint_info = {}

        for constraint_type, pattern_list in DatabaseErrorHandler.PATTERNS.items():
            for pattern in pattern_list:
                match = re.search(pattern, error_msg, re.IGNORECASE)
                if match:
                    constraint_info['type'] = constraint_type
                    constraint_info['name'] = match.group(1) if match.groups() else None
                    break
            if constraint_info.get('type'):
                break

        # PostgreSQL detail line: Key (question_id)=(Q-1-abc) already exists.
        key_match = re.search(r'Key \(([^)]+)\)=\(([^)]*)\)', error_msg)
        if key_match:
            constraint_info['column'] = key_match.group(1)
            constraint_info['value'] = key_match.group(2)
        elif constraint_info.get('name') and '.' in constraint_info['name']:
            # SQLite reports table.column
            constraint_info['column'] = constraint_info['name'].split('.', 1)[1]

        return constraint_info

    @staticmethod
    def to_conflict(error: IntegrityError, operation: Optional[str] = None) -> QuestionConflictError:
        """Translate an IntegrityError into the conflict exception surfaced to clients."""
        error_msg = str(error.orig) if getattr(error, 'orig', None) is not None else str(error)
        constraint_info = DatabaseErrorHandler.parse_constraint_error(error_msg)

        column = constraint_info.get('column')
        if constraint_info.get('type') == 'unique':
            additional_context = "Duplicate value. This record already exists."
        elif constraint_info.get('type') == 'foreign_key':
            additional_context = "Invalid reference. The specified resource does not exist."
        else:
            additional_context = f"Database integrity error during {operation or 'write'}"

        return QuestionConflictError(
            field=column,
            value=constraint_info.get('value'),
            constraint_name=constraint_info.get('name'),
            additional_context=additional_context
        )

    @staticmethod
    def handle_integrity_error(error: IntegrityError, operation: Optional[str] = None) -> None:
        """
        Raise the conflict exception for an IntegrityError.

        Raises:
            QuestionConflictError: always
        """
        raise DatabaseErrorHandler.to_conflict(error, operation) from error
