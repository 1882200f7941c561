import logging

import sqlparse  # type: ignore

logger = logging.getLogger(__name__)


def format_statement(sql: str) -> str:
    """Pretty-print a statement for display.

    Falls back to the stripped original text if sqlparse cannot handle it.
    """
    text = sql.strip()
    if not text:
        return text
    try:
        return sqlparse.format(text, reindent=True, keyword_case="upper")
    except Exception:
        logger.debug("Failed to format statement %r", text, exc_info=True)
        return text


def sql_code_block(sql: str) -> str:
    """Wrap a statement in a fenced markdown code block."""
    return "```sql\n" + format_statement(sql) + "\n```"
